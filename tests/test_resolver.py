"""
Tests for the upgrade resolver.

Covers the digest branch, the tag branch, and the two fatal failure kinds
against the in-memory fake registry.
"""
from __future__ import annotations

import logging
from unittest.mock import Mock

import pytest

from image_upgrades.errors import LookupFailure, RegistryFailureError, UnresolvableReferenceError
from image_upgrades.models import ImageReference, UpdatePolicy, UpgradeType
from image_upgrades.resolver import LookupResult, lookup_upgrades, resolve_digest, short_digest

from tests.storage.fakes.fake_registry import digest_for

DIGEST = "sha256:abcdef1234567890abcdef1234567890abcdef1234567890abcdef1234567890"


class TestShortDigest:
    """Test digest display form."""

    def test_slices_after_prefix(self):
        assert short_digest(DIGEST) == "abcdef"

    def test_short_input(self):
        assert short_digest("sha256:ab") == "ab"


class TestResolveDigest:
    """Test the digest lookup helper."""

    def test_delegates_to_registry(self, registry):
        registry.add_tags("node", "18.0.0", registry="ghcr.io")
        ref = ImageReference(registry="ghcr.io", dep_name="node", current_tag="18.0.0")
        assert resolve_digest(registry, ref, "18.0.0") == digest_for("ghcr.io/node:18.0.0")
        assert registry.calls == [("get_digest", "ghcr.io", "node", "18.0.0")]

    def test_missing_tag_returns_none(self, registry):
        ref = ImageReference(dep_name="node")
        assert resolve_digest(registry, ref, "nope") is None


class TestTagUpgrades:
    """Test tag-based upgrades."""

    def test_single_stream_proposes_highest(self, registry):
        """Not separating major/minor collapses everything into one upgrade."""
        registry.add_tags("app", "1.2.0", "1.3.0", "2.0.0")
        ref = ImageReference(dep_name="app", current_tag="1.2.0")
        policy = UpdatePolicy(separate_major_minor=False)

        result = lookup_upgrades(ref, policy, registry)

        assert result.ok
        assert len(result.upgrades) == 1
        upgrade = result.upgrades[0]
        assert upgrade.new_tag == "2.0.0"
        assert upgrade.type == UpgradeType.MAJOR
        assert upgrade.new_major == "2"
        assert upgrade.new_value == "2.0.0"
        assert upgrade.new_from == "app:2.0.0"
        assert upgrade.new_dep_tag == "app:2.0.0"
        assert upgrade.new_digest is None

    def test_separate_majors(self, registry):
        registry.add_tags("app", "1.2.0", "1.3.0", "2.0.0")
        ref = ImageReference(dep_name="app", current_tag="1.2.0")
        policy = UpdatePolicy(separate_major_minor=True, separate_multiple_major=True)

        result = lookup_upgrades(ref, policy, registry)

        assert [(u.new_tag, u.type) for u in result.upgrades] == [
            ("1.3.0", UpgradeType.MINOR),
            ("2.0.0", UpgradeType.MAJOR),
        ]

    def test_collapsed_majors_come_first(self, registry):
        registry.add_tags("app", "1.3.0", "2.0.0", "3.0.0")
        ref = ImageReference(dep_name="app", current_tag="1.2.0")

        result = lookup_upgrades(ref, UpdatePolicy(), registry)

        assert [u.new_tag for u in result.upgrades] == ["3.0.0", "1.3.0"]

    def test_suffix_channel_respected(self, registry):
        registry.add_tags("app", "1.1.0-alpine", "1.1.0")
        ref = ImageReference(dep_name="app", current_tag="1.0.0-alpine")

        result = lookup_upgrades(ref, UpdatePolicy(), registry)

        assert [u.new_tag for u in result.upgrades] == ["1.1.0-alpine"]
        assert result.upgrades[0].new_from == "app:1.1.0-alpine"
        assert result.upgrades[0].type == UpgradeType.MINOR

    def test_registry_prefix_in_new_from(self, registry):
        registry.add_tags("org/app", "1.1.0", registry="quay.io")
        ref = ImageReference(registry="quay.io", dep_name="org/app", current_tag="1.0.0")

        result = lookup_upgrades(ref, UpdatePolicy(), registry)

        assert result.upgrades[0].new_from == "quay.io/org/app:1.1.0"

    def test_no_newer_tags(self, registry):
        registry.add_tags("app", "1.0.0", "0.9.0")
        ref = ImageReference(dep_name="app", current_tag="1.0.0")

        result = lookup_upgrades(ref, UpdatePolicy(), registry)

        assert result == LookupResult(upgrades=[])

    def test_unlistable_tags_degrade_to_empty(self, registry):
        registry.make_unlistable("app")
        ref = ImageReference(dep_name="app", current_tag="1.0.0")

        result = lookup_upgrades(ref, UpdatePolicy(), registry)

        assert result.ok
        assert result.upgrades == []

    def test_no_tag_and_no_digest_is_noop(self, registry):
        ref = ImageReference(dep_name="app")

        result = lookup_upgrades(ref, UpdatePolicy(), registry)

        assert result.ok
        assert result.upgrades == []
        assert registry.calls == []

    def test_pinned_reference_pins_new_tags(self, registry):
        registry.add_tags("app", "1.0.0", "1.1.0")
        ref = ImageReference(dep_name="app", current_tag="1.0.0")

        result = lookup_upgrades(ref, UpdatePolicy(pin_digests=True), registry)

        pin, minor = result.upgrades
        assert pin.type == UpgradeType.PIN
        assert minor.type == UpgradeType.MINOR
        assert minor.new_digest == digest_for("None/app:1.1.0")
        assert minor.new_from == f"app:1.1.0@{digest_for('None/app:1.1.0')}"
        assert registry.digest_calls() == ["1.0.0", "1.1.0"]

    def test_current_digest_pins_new_tags(self, registry):
        """A digest in the reference pins new tags even with pinning off."""
        registry.add_tags("app", "1.0.0", "1.1.0")
        ref = ImageReference(dep_name="app", current_tag="1.0.0", current_digest="sha256:old")

        result = lookup_upgrades(ref, UpdatePolicy(pin_digests=False), registry)

        new_digest = digest_for("None/app:1.1.0")
        assert [u.type for u in result.upgrades] == [UpgradeType.DIGEST, UpgradeType.MINOR]
        minor = result.upgrades[1]
        assert minor.new_digest == new_digest
        assert minor.new_from == f"app:1.1.0@{new_digest}"
        assert registry.digest_calls() == ["1.0.0", "1.1.0"]

    def test_semver_prerelease_is_a_suffix_channel(self, registry):
        registry.add_tags("app", "1.1.0-rc.1", "1.1.0", "2.0.0-rc.1")
        ref = ImageReference(dep_name="app", current_tag="1.0.0-rc.1")
        policy = UpdatePolicy(versioning="semver", separate_major_minor=False)

        result = lookup_upgrades(ref, policy, registry)

        assert [u.new_tag for u in result.upgrades] == ["2.0.0-rc.1"]

    def test_versioning_from_policy(self, registry):
        registry.add_tags("python", "3.12.0rc1", "3.12.0", "3.11.5")
        ref = ImageReference(dep_name="python", current_tag="3.11.4")
        policy = UpdatePolicy(versioning="pep440", separate_major_minor=False)

        result = lookup_upgrades(ref, policy, registry)

        assert [u.new_tag for u in result.upgrades] == ["3.12.0"]


class TestDigestUpgrades:
    """Test the digest/pin branch."""

    def test_unchanged_digest_is_noop(self, registry):
        registry.add_tags("app", "1.0.0")
        current = digest_for("None/app:1.0.0")
        ref = ImageReference(dep_name="app", current_tag="1.0.0", current_digest=current)

        result = lookup_upgrades(ref, UpdatePolicy(pin_digests=False), registry)

        assert result.ok
        assert result.upgrades == []

    def test_pin_latest_when_untagged(self, registry):
        registry.set_digest("app", "latest", DIGEST)
        ref = ImageReference(dep_name="app")

        result = lookup_upgrades(ref, UpdatePolicy(pin_digests=True), registry)

        assert len(result.upgrades) == 1
        upgrade = result.upgrades[0]
        assert upgrade.type == UpgradeType.PIN
        assert upgrade.new_tag == "latest"
        assert upgrade.new_value == "abcdef"
        assert upgrade.new_digest_short == "abcdef"
        assert upgrade.new_from == f"app:latest@{DIGEST}"

    def test_pin_latest_tag_is_range(self, registry):
        """A "latest" tag is not a version, so the pin is a range result."""
        registry.set_digest("app", "latest", DIGEST)
        ref = ImageReference(dep_name="app", current_tag="latest")

        result = lookup_upgrades(ref, UpdatePolicy(pin_digests=True), registry)

        assert len(result.upgrades) == 1
        assert result.upgrades[0].type == UpgradeType.PIN
        assert result.upgrades[0].new_value == "abcdef"
        assert result.upgrades[0].is_range is True

    def test_changed_digest_is_digest_upgrade(self, registry):
        registry.set_digest("app", "stable", DIGEST)
        ref = ImageReference(dep_name="app", current_tag="stable", current_digest="sha256:old")

        result = lookup_upgrades(ref, UpdatePolicy(), registry)

        assert [u.type for u in result.upgrades] == [UpgradeType.DIGEST]
        assert result.upgrades[0].is_range is True
        assert result.upgrades[0].new_from == f"app:stable@{DIGEST}"

    def test_invalid_tag_skips_tag_upgrades(self, registry):
        registry.set_digest("app", "stable", DIGEST)
        registry.add_tags("app", "1.0.0", "2.0.0")
        ref = ImageReference(dep_name="app", current_tag="stable")

        result = lookup_upgrades(ref, UpdatePolicy(pin_digests=True), registry)

        assert len(result.upgrades) == 1
        assert result.upgrades[0].type == UpgradeType.PIN
        assert all(u.is_range for u in result.upgrades)
        assert ("list_tags", None, "app") not in registry.calls

    def test_invalid_tag_without_pinning_is_empty(self, registry):
        registry.add_tags("app", "1.0.0")
        ref = ImageReference(dep_name="app", current_tag="edge")

        assert lookup_upgrades(ref, UpdatePolicy(), registry).upgrades == []


class TestLookupFailures:
    """Test the two fatal failure kinds."""

    def test_missing_current_digest_is_unresolvable(self, registry):
        registry.add_tags("app", "1.1.0")
        ref = ImageReference(dep_name="app", current_tag="1.0.0", current_digest="sha256:old")

        result = lookup_upgrades(ref, UpdatePolicy(), registry)

        assert not result.ok
        assert result.failure == LookupFailure.UNRESOLVABLE_REFERENCE
        assert result.upgrades == []
        assert "app:1.0.0@sha256:old" in result.message

    def test_missing_candidate_digest_is_registry_failure(self, registry):
        registry.add_tags("app", "1.0.0")
        registry.set_digest("app", "1.1.0", None)
        ref = ImageReference(dep_name="app", current_tag="1.0.0")

        result = lookup_upgrades(ref, UpdatePolicy(pin_digests=True), registry)

        assert result.failure == LookupFailure.REGISTRY_FAILURE
        assert result.upgrades == []
        assert "app:1.1.0" in result.message

    def test_raise_for_failure(self, registry):
        ref = ImageReference(dep_name="app", current_tag="1.0.0")

        with pytest.raises(UnresolvableReferenceError):
            lookup_upgrades(ref, UpdatePolicy(pin_digests=True), registry).raise_for_failure()

    def test_raise_for_registry_failure(self):
        result = LookupResult(failure=LookupFailure.REGISTRY_FAILURE, message="boom")
        with pytest.raises(RegistryFailureError, match="boom"):
            result.raise_for_failure()

    def test_raise_for_failure_returns_self_on_success(self):
        result = LookupResult()
        assert result.raise_for_failure() is result


class TestLookupBehavior:
    """Cross-cutting resolver properties."""

    def test_idempotent(self, registry):
        registry.add_tags("app", "1.0.0", "1.1.0", "2.0.0", "2.1.0")
        ref = ImageReference(dep_name="app", current_tag="1.0.0")
        policy = UpdatePolicy(pin_digests=True, separate_multiple_major=True)

        assert lookup_upgrades(ref, policy, registry) == lookup_upgrades(ref, policy, registry)

    def test_injected_logger_receives_diagnostics(self, registry):
        registry.add_tags("app", "1.1.0")
        ref = ImageReference(dep_name="app", current_tag="1.0.0")
        log = Mock(spec=logging.Logger)

        lookup_upgrades(ref, UpdatePolicy(), registry, log=log)

        assert log.info.called
        assert log.debug.called

    def test_unknown_versioning_rejected_by_policy(self):
        with pytest.raises(ValueError, match="Unknown versioning"):
            UpdatePolicy(versioning="calver")
