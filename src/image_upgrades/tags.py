"""
Tag parsing.

A Docker tag is split at its first ``-`` into a version and a suffix. The
suffix names a release channel (``alpine``, ``slim``) and tags are only ever
compared within the same channel.
"""
from __future__ import annotations

from typing import NamedTuple

__all__ = ["ParsedTag", "parse_tag", "get_version", "get_suffix", "join_tag"]


class ParsedTag(NamedTuple):
    """Version and suffix of a tag. Suffix is empty when the tag has none."""
    version: str
    suffix: str


def parse_tag(tag: str) -> ParsedTag:
    """
    Split a tag into ``(version, suffix)``.

    No validation happens here; version schemes decide what is well formed.
    A leading ``-`` does not split, so ``"-rc"`` is all version.

    Examples:
        >>> parse_tag("1.2.3-alpine")
        ParsedTag(version='1.2.3', suffix='alpine')

        >>> parse_tag("1.2.3-alpine-3.18")
        ParsedTag(version='1.2.3', suffix='alpine-3.18')

        >>> parse_tag("latest")
        ParsedTag(version='latest', suffix='')
    """
    split = tag.find("-")
    if split > 0:
        return ParsedTag(tag[:split], tag[split + 1:])
    return ParsedTag(tag, "")


def get_version(tag: str) -> str:
    return parse_tag(tag).version


def get_suffix(tag: str) -> str:
    return parse_tag(tag).suffix


def join_tag(version: str, suffix: str) -> str:
    """Reattach a suffix to a version (inverse of ``parse_tag``)."""
    if suffix:
        return f"{version}-{suffix}"
    return version
