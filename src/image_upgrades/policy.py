"""
Candidate filtering.

Turns the raw tag list of a repository into the versions that may be proposed
as upgrades of the current tag.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Optional

from .models import UpdatePolicy
from .tags import parse_tag
from .versioning import VersionScheme

__all__ = ["is_stable", "filter_candidates"]


def is_stable(version: str, unstable_pattern: Optional[str]) -> bool:
    """
    A version is stable unless the unstable pattern matches somewhere in it.

    With no pattern configured every version is stable.
    """
    if not unstable_pattern:
        return True
    return re.search(unstable_pattern, version) is None


def filter_candidates(
    tags: Iterable[str],
    current_version: str,
    current_suffix: str,
    policy: UpdatePolicy,
    scheme: VersionScheme,
) -> List[str]:
    """
    Filter repository tags down to eligible candidate versions.

    Steps, in order:
    1. keep tags in the same suffix channel as the current tag
    2. drop versions the scheme considers invalid
    3. stability: unstable versions only pass when ``ignore_unstable`` is off,
       or when the current version is itself unstable and the candidate shares
       its major version
    4. keep versions with as many dot-separated components as the current one
    5. keep versions strictly greater than the current one

    Args:
        tags: Raw tags published for the image
        current_version: Version part of the current tag (must be valid)
        current_suffix: Suffix part of the current tag
        policy: Update policy
        scheme: Version scheme used for validity and ordering

    Returns:
        Candidate versions in registry order (duplicates are kept)
    """
    current_major = scheme.major_of(current_version)
    currently_stable = is_stable(current_version, policy.unstable_pattern)
    component_count = len(current_version.split("."))

    def stability_ok(version: str) -> bool:
        return (
            is_stable(version, policy.unstable_pattern)
            or not policy.ignore_unstable
            or (not currently_stable and scheme.major_of(version) == current_major)
        )

    versions = [parse_tag(tag) for tag in tags]
    versions = [p.version for p in versions if p.suffix == current_suffix]
    versions = [v for v in versions if scheme.is_valid(v)]
    versions = [v for v in versions if stability_ok(v)]
    versions = [v for v in versions if len(v.split(".")) == component_count]
    return [v for v in versions if scheme.compare(v, current_version) > 0]
