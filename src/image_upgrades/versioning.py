"""
Version schemes.

A version scheme answers three questions about version strings: is it valid,
what is its major version, and how do two versions order. The resolver never
hard-codes an ordering; it asks the scheme selected by the policy's
``versioning`` identifier.
"""
from __future__ import annotations

import re
from typing import Dict, Protocol, Type, runtime_checkable

from packaging.version import InvalidVersion, Version

__all__ = [
    "VersionScheme",
    "DockerVersioning",
    "SemverVersioning",
    "Pep440Versioning",
    "get_versioning",
    "available_versionings",
]


@runtime_checkable
class VersionScheme(Protocol):
    """Capability interface for version validity, major extraction and ordering."""

    name: str

    def is_valid(self, version: str) -> bool:
        """Return True if ``version`` is well formed under this scheme."""
        ...

    def major_of(self, version: str) -> int:
        """
        Return the major version number.

        Only defined for valid versions.
        """
        ...

    def compare(self, a: str, b: str) -> int:
        """
        Order two valid versions.

        Returns:
            Negative if a < b, zero if equal, positive if a > b
        """
        ...


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


class DockerVersioning:
    """
    Dot-separated numeric versions as commonly used in image tags.

    Any number of components is accepted (``14``, ``14.10``, ``1.2.3.4``).
    Components compare numerically; a missing component counts as zero.
    """
    name = "docker"

    _VERSION_RE = re.compile(r"^\d+(?:\.\d+)*$")

    def is_valid(self, version: str) -> bool:
        return bool(self._VERSION_RE.match(version))

    def major_of(self, version: str) -> int:
        return int(version.split(".", 1)[0])

    def compare(self, a: str, b: str) -> int:
        a_parts = [int(p) for p in a.split(".")]
        b_parts = [int(p) for p in b.split(".")]
        width = max(len(a_parts), len(b_parts))
        a_parts += [0] * (width - len(a_parts))
        b_parts += [0] * (width - len(b_parts))
        return _cmp(a_parts, b_parts)


class SemverVersioning:
    """
    Strict semantic versioning (``MAJOR.MINOR.PATCH[-pre][+build]``).

    Precedence follows semver.org: build metadata is ignored, a prerelease
    sorts before its release, and prerelease identifiers compare numerically
    when both are numeric, lexically otherwise, with numeric ones lower.

    In an upgrade lookup the tag is split at its first ``-`` before the scheme
    sees it, so ``-pre`` becomes the tag suffix and only core versions (with
    optional ``+build``) reach this class. Prerelease ordering applies when
    the scheme is used directly on full version strings.
    """
    name = "semver"

    _VERSION_RE = re.compile(
        r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
        r"(?:-(?P<pre>(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
        r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
        r"(?:\+(?P<build>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
    )

    def _parse(self, version: str) -> re.Match:
        match = self._VERSION_RE.match(version)
        if not match:
            raise ValueError(f"Invalid semver version: {version}")
        return match

    def is_valid(self, version: str) -> bool:
        return bool(self._VERSION_RE.match(version))

    def major_of(self, version: str) -> int:
        return int(self._parse(version).group("major"))

    def compare(self, a: str, b: str) -> int:
        ma, mb = self._parse(a), self._parse(b)
        core_a = tuple(int(ma.group(k)) for k in ("major", "minor", "patch"))
        core_b = tuple(int(mb.group(k)) for k in ("major", "minor", "patch"))
        if core_a != core_b:
            return _cmp(core_a, core_b)

        pre_a, pre_b = ma.group("pre"), mb.group("pre")
        if pre_a is None or pre_b is None:
            # A release outranks any of its prereleases
            return _cmp(pre_a is None, pre_b is None)

        for ida, idb in zip(pre_a.split("."), pre_b.split(".")):
            if ida == idb:
                continue
            if ida.isdigit() and idb.isdigit():
                return _cmp(int(ida), int(idb))
            if ida.isdigit():
                return -1
            if idb.isdigit():
                return 1
            return _cmp(ida, idb)
        return _cmp(len(pre_a.split(".")), len(pre_b.split(".")))


class Pep440Versioning:
    """PEP 440 versions, backed by ``packaging.version.Version``."""
    name = "pep440"

    def is_valid(self, version: str) -> bool:
        try:
            Version(version)
        except InvalidVersion:
            return False
        return True

    def major_of(self, version: str) -> int:
        return Version(version).major

    def compare(self, a: str, b: str) -> int:
        return _cmp(Version(a), Version(b))


_SCHEMES: Dict[str, Type] = {
    DockerVersioning.name: DockerVersioning,
    SemverVersioning.name: SemverVersioning,
    Pep440Versioning.name: Pep440Versioning,
}


def available_versionings() -> list[str]:
    return sorted(_SCHEMES)


def get_versioning(name: str) -> VersionScheme:
    """
    Create the version scheme registered under ``name``.

    Args:
        name: Scheme identifier ("docker", "semver", "pep440")

    Returns:
        Version scheme instance

    Raises:
        ValueError: If no scheme is registered under ``name``
    """
    try:
        return _SCHEMES[name]()
    except KeyError:
        raise ValueError(
            f"Unknown versioning: {name}. "
            f"Supported values: {', '.join(available_versionings())}"
        ) from None
