"""
Image upgrade resolver.

Implements ``lookup_upgrades()``: given the image reference in use and an
update policy, ask the registry which tags and digests are newer and return
the upgrades to propose.

Two branches run in order:

1. Digest branch, when the reference carries a digest or pinning is
   requested: detect a changed (or first) digest for the current tag.
2. Tag branch, when the reference carries a tag: filter and bucket newer
   versions and build one upgrade per bucket, pinned to a digest if needed.

Failures are reported on the returned ``LookupResult`` rather than raised.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .buckets import select_upgrades
from .errors import FAILURE_EXCEPTIONS, LookupFailure
from .models import ImageReference, UpdatePolicy, UpgradeRecord, UpgradeType, format_image_from
from .policy import filter_candidates
from .storage.registry import ImageRegistry
from .tags import join_tag, parse_tag
from .versioning import get_versioning

__all__ = ["LookupResult", "lookup_upgrades", "resolve_digest", "short_digest"]

logger = logging.getLogger(__name__)

# Length of the "sha256:" prefix and of the displayed digest
_DIGEST_PREFIX_LEN = 7
_SHORT_DIGEST_LEN = 6


@dataclass(frozen=True)
class LookupResult:
    """
    Outcome of an upgrade lookup.

    ``failure`` is None on success, in which case ``upgrades`` may still be
    empty (nothing newer). On failure ``upgrades`` is always empty.
    """
    upgrades: List[UpgradeRecord] = field(default_factory=list)
    failure: Optional[LookupFailure] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    def raise_for_failure(self) -> LookupResult:
        """Raise the exception matching ``failure``; return self on success."""
        if self.failure is not None:
            raise FAILURE_EXCEPTIONS[self.failure](self.message or self.failure.value)
        return self


def short_digest(digest: str) -> str:
    """
    Display form of a digest: six characters after the algorithm prefix.

    >>> short_digest("sha256:abcdef1234567890")
    'abcdef'
    """
    return digest[_DIGEST_PREFIX_LEN:_DIGEST_PREFIX_LEN + _SHORT_DIGEST_LEN]


def resolve_digest(registry: ImageRegistry, reference: ImageReference, tag: str) -> Optional[str]:
    """Ask the registry for the digest of ``reference.dep_name:tag``."""
    return registry.get_digest(reference.registry, reference.dep_name, tag)


def _failed(failure: LookupFailure, message: str) -> LookupResult:
    return LookupResult(upgrades=[], failure=failure, message=message)


def lookup_upgrades(
    reference: ImageReference,
    policy: UpdatePolicy,
    registry: ImageRegistry,
    *,
    log: Optional[logging.Logger] = None,
) -> LookupResult:
    """
    Compute the upgrades available for an image reference.

    Args:
        reference: Image reference currently in use
        policy: Update policy (stability, bucketing, digest pinning)
        registry: Registry used to list tags and resolve digests
        log: Logger for diagnostics (defaults to this module's logger)

    Returns:
        LookupResult with the proposed upgrades, or a failure of kind
        UNRESOLVABLE_REFERENCE (no digest for the current tag) or
        REGISTRY_FAILURE (no digest for a new tag while pinning)

    Raises:
        ValueError: If the policy names an unknown version scheme
    """
    log = log or logger
    scheme = get_versioning(policy.versioning)
    pinning = bool(reference.current_digest) or policy.pin_digests
    upgrades: List[UpgradeRecord] = []

    if pinning:
        log.debug(f"Checking digest for {reference.current_from}")
        tag = reference.current_tag or "latest"
        new_digest = resolve_digest(registry, reference, tag)
        if not new_digest:
            log.info(f"No digest found for {format_image_from(reference.registry, reference.dep_name, tag)}")
            return _failed(
                LookupFailure.UNRESOLVABLE_REFERENCE,
                f"No digest found for {reference.current_from}",
            )
        if new_digest != reference.current_digest:
            upgrades.append(UpgradeRecord(
                type=UpgradeType.DIGEST if reference.current_digest else UpgradeType.PIN,
                new_tag=tag,
                new_digest=new_digest,
                new_digest_short=short_digest(new_digest),
                new_value=short_digest(new_digest),
                new_from=format_image_from(reference.registry, reference.dep_name, tag, new_digest),
            ))

    if not reference.current_tag:
        return LookupResult(upgrades=upgrades)

    current_version, current_suffix = parse_tag(reference.current_tag)
    if not scheme.is_valid(current_version):
        log.info(f"Tag {reference.current_dep_tag} is not a valid {scheme.name} version - skipping")
        return LookupResult(upgrades=[u.model_copy(update={"is_range": True}) for u in upgrades])

    current_major = scheme.major_of(current_version)
    all_tags = registry.list_tags(reference.registry, reference.dep_name) or []
    candidates = filter_candidates(all_tags, current_version, current_suffix, policy, scheme)
    log.debug(f"Candidate versions for {reference.current_dep_tag}: {candidates}")

    selected = select_upgrades(candidates, current_version, policy, scheme)
    summary = {str(key): version for key, version in selected.items()}
    log.debug(f"Selected upgrades for {reference.current_dep_tag}: {summary}")

    for version in selected.values():
        new_tag = join_tag(version, current_suffix)
        new_major = scheme.major_of(version)
        new_digest = None
        if pinning:
            new_digest = resolve_digest(registry, reference, new_tag)
            if not new_digest:
                log.warning(f"No digest found for {reference.dep_name}:{new_tag}")
                return _failed(
                    LookupFailure.REGISTRY_FAILURE,
                    f"No digest found for {format_image_from(reference.registry, reference.dep_name, new_tag)}",
                )
        upgrade = UpgradeRecord(
            type=UpgradeType.MAJOR if new_major > current_major else UpgradeType.MINOR,
            new_tag=new_tag,
            new_dep_tag=f"{reference.dep_name}:{new_tag}",
            new_major=str(new_major),
            new_value=new_tag,
            new_digest=new_digest,
            new_from=format_image_from(reference.registry, reference.dep_name, new_tag, new_digest),
        )
        log.info(f"Tag upgrade found: {reference.current_dep_tag} -> {upgrade.new_dep_tag}")
        upgrades.append(upgrade)

    return LookupResult(upgrades=upgrades)
