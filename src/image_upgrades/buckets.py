"""
Upgrade bucketing.

Each candidate version lands in exactly one bucket and only the highest
version of each bucket is proposed. The policy decides the buckets:

- one bucket for everything (``Latest``)
- minors of the current major per major number, all newer majors collapsed
  into a single ``MajorCollapsed`` bucket
- one bucket per major number (``MajorNumber``)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Union

from .models import UpdatePolicy
from .versioning import VersionScheme

__all__ = ["Latest", "MajorCollapsed", "MajorNumber", "BucketKey", "bucket_key_for", "select_upgrades"]


@dataclass(frozen=True)
class Latest:
    """Single upgrade stream."""

    def __str__(self) -> str:
        return "latest"


@dataclass(frozen=True)
class MajorCollapsed:
    """All newer majors in one bucket."""

    def __str__(self) -> str:
        return "major"


@dataclass(frozen=True)
class MajorNumber:
    """One major version line."""
    major: int

    def __str__(self) -> str:
        return str(self.major)


BucketKey = Union[Latest, MajorCollapsed, MajorNumber]


def _sort_key(key: BucketKey) -> tuple:
    if isinstance(key, Latest):
        return (0, 0)
    if isinstance(key, MajorCollapsed):
        return (1, 0)
    return (2, key.major)


def bucket_key_for(candidate_major: int, current_major: int, policy: UpdatePolicy) -> BucketKey:
    """Pick the bucket for a candidate. First matching rule wins."""
    if not policy.separate_major_minor or policy.grouped or policy.automerge_major:
        return Latest()
    if not policy.separate_multiple_major and candidate_major > current_major:
        return MajorCollapsed()
    return MajorNumber(candidate_major)


def select_upgrades(
    candidates: Iterable[str],
    current_version: str,
    policy: UpdatePolicy,
    scheme: VersionScheme,
) -> Dict[BucketKey, str]:
    """
    Keep the highest candidate per bucket.

    A later candidate only replaces the current best when it compares strictly
    greater, so the first-seen version wins ties.

    Returns:
        Mapping of bucket key to best version, ordered Latest, MajorCollapsed,
        then MajorNumber ascending
    """
    current_major = scheme.major_of(current_version)
    best: Dict[BucketKey, str] = {}
    for version in candidates:
        key = bucket_key_for(scheme.major_of(version), current_major, policy)
        if key not in best or scheme.compare(version, best[key]) > 0:
            best[key] = version
    return {key: best[key] for key in sorted(best, key=_sort_key)}
