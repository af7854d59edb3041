"""
Data models for image upgrade lookups.

These Pydantic models describe the inputs of a lookup (the image reference
currently in use and the update policy) and its output (upgrade records).
All of them are immutable once constructed.
"""
from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from .versioning import available_versionings

__all__ = [
    "ImageReference",
    "UpdatePolicy",
    "UpgradeType",
    "UpgradeRecord",
    "parse_image_reference",
    "format_image_from",
]

# Repository path components per the OCI distribution grammar (lowercase, separators inside)
_NAME_COMPONENT = r"[a-z0-9]+(?:(?:[._]|__|[-]+)[a-z0-9]+)*"
_NAME_RE = re.compile(rf"^{_NAME_COMPONENT}(?:/{_NAME_COMPONENT})*$")
_TAG_RE = re.compile(r"^[\w][\w.-]{0,127}$")
_DIGEST_RE = re.compile(r"^[a-z0-9]+(?:[.+_-][a-z0-9]+)*:[a-zA-Z0-9=_-]+$")


def format_image_from(registry: Optional[str], dep_name: str, tag: Optional[str] = None,
                      digest: Optional[str] = None) -> str:
    """
    Render ``[registry/]name[:tag][@digest]``.

    Examples:
        >>> format_image_from("quay.io", "coreos/etcd", "3.5.0")
        'quay.io/coreos/etcd:3.5.0'

        >>> format_image_from(None, "node", "18", "sha256:abc")
        'node:18@sha256:abc'
    """
    text = f"{registry}/{dep_name}" if registry else dep_name
    if tag:
        text += f":{tag}"
    if digest:
        text += f"@{digest}"
    return text


class ImageReference(BaseModel):
    """The image reference currently declared by the user."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    registry: Optional[str] = Field(default=None, alias="dockerRegistry",
                                    description="Registry host (None means the default registry)")
    dep_name: str = Field(..., alias="depName", description="Image name, e.g. 'library/node'")
    current_tag: Optional[str] = Field(default=None, alias="currentTag", description="Current tag")
    current_digest: Optional[str] = Field(default=None, alias="currentDigest", description="Current digest")

    @field_validator("dep_name")
    @classmethod
    def validate_dep_name(cls, v: str) -> str:
        if not v:
            raise ValueError("dep_name cannot be empty")
        return v

    @computed_field
    @property
    def current_from(self) -> str:
        """The reference as written, e.g. ``node:18-alpine@sha256:...``."""
        return format_image_from(self.registry, self.dep_name, self.current_tag, self.current_digest)

    @computed_field
    @property
    def current_dep_tag(self) -> str:
        """Image name with tag (``name:tag``), or the bare name when untagged."""
        if self.current_tag:
            return f"{self.dep_name}:{self.current_tag}"
        return self.dep_name


def parse_image_reference(text: str) -> ImageReference:
    """
    Parse an image reference string into an ImageReference.

    Supports formats:
    - "node" -> ImageReference(dep_name="node")
    - "node:18-alpine" -> tag "18-alpine"
    - "node@sha256:abc..." -> digest only
    - "ghcr.io/org/app:1.2.3@sha256:abc..." -> registry, tag and digest
    - "localhost:5000/app:1.0" -> registry with port

    The first path component is a registry host when it contains a "." or
    ":" or is "localhost", following Docker's own rule.

    Args:
        text: Image reference string

    Returns:
        ImageReference

    Raises:
        ValueError: If the reference is malformed
    """
    text = text.strip()
    if not text:
        raise ValueError("Image reference cannot be empty")

    digest = None
    if "@" in text:
        text, digest = text.split("@", 1)
        if not _DIGEST_RE.match(digest):
            raise ValueError(f"Invalid digest in image reference: {digest}")

    registry = None
    first, sep, rest = text.partition("/")
    if sep and ("." in first or ":" in first or first == "localhost"):
        registry = first
        text = rest

    tag = None
    name, sep, candidate_tag = text.rpartition(":")
    if sep and "/" not in candidate_tag:
        text = name
        tag = candidate_tag
        if not _TAG_RE.match(tag):
            raise ValueError(f"Invalid tag in image reference: {tag}")

    if not _NAME_RE.match(text):
        raise ValueError(f"Invalid image name: {text!r}")

    return ImageReference(registry=registry, dep_name=text, current_tag=tag, current_digest=digest)


class UpdatePolicy(BaseModel):
    """
    Policy controlling which upgrades are proposed.

    Field aliases follow the camelCase keys used in policy files
    (``pinDigests``, ``separateMajorMinor``, ...). A nested
    ``major: {automerge: true}`` block is accepted as ``automergeMajor``.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    unstable_pattern: Optional[str] = Field(default=None, alias="unstablePattern",
                                            description="Regex matching unstable versions")
    ignore_unstable: bool = Field(default=True, alias="ignoreUnstable",
                                  description="Skip unstable versions unless already on one")
    pin_digests: bool = Field(default=False, alias="pinDigests",
                              description="Pin tags to digests")
    separate_major_minor: bool = Field(default=True, alias="separateMajorMinor",
                                       description="Propose major upgrades separately from minor ones")
    separate_multiple_major: bool = Field(default=False, alias="separateMultipleMajor",
                                          description="Propose one upgrade per major version")
    automerge_major: bool = Field(default=False, alias="automergeMajor",
                                  description="Major upgrades are automerged")
    group_name: Optional[str] = Field(default=None, alias="groupName",
                                      description="Group upgrades under this name")
    versioning: str = Field(default="docker", description="Version scheme identifier")

    @model_validator(mode="before")
    @classmethod
    def lift_major_block(cls, data):
        """Map ``major: {automerge: ...}`` onto ``automergeMajor``."""
        if isinstance(data, dict) and isinstance(data.get("major"), dict):
            data = dict(data)
            major = data.pop("major")
            if "automerge" in major and "automergeMajor" not in data and "automerge_major" not in data:
                data["automergeMajor"] = major["automerge"]
        return data

    @field_validator("unstable_pattern")
    @classmethod
    def validate_unstable_pattern(cls, v: Optional[str]) -> Optional[str]:
        if v:
            try:
                re.compile(v)
            except re.error as e:
                raise ValueError(f"Invalid unstable_pattern {v!r}: {e}") from e
        return v or None

    @field_validator("versioning")
    @classmethod
    def validate_versioning(cls, v: str) -> str:
        if v not in available_versionings():
            raise ValueError(f"Unknown versioning '{v}'. Supported: {', '.join(available_versionings())}")
        return v

    @property
    def grouped(self) -> bool:
        return bool(self.group_name)

    @classmethod
    def from_yaml_file(cls, path: Path) -> UpdatePolicy:
        """Load an UpdatePolicy from a YAML file."""
        import yaml

        if not path.exists():
            raise FileNotFoundError(f"Policy file not found: {path}")

        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Policy file must contain a mapping: {path}")

        # Allow the policy to live under a top-level "docker" key
        if isinstance(data.get("docker"), dict):
            data = data["docker"]

        return cls.model_validate(data)


class UpgradeType(str, Enum):
    """Kind of upgrade proposed."""
    PIN = "pin"
    DIGEST = "digest"
    MAJOR = "major"
    MINOR = "minor"


class UpgradeRecord(BaseModel):
    """
    A single proposed upgrade.

    ``new_from`` is the full new reference (``[registry/]name:tag[@digest]``).
    ``is_range`` marks records the caller should not compare further because
    the current tag is not a valid version.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: UpgradeType = Field(..., description="pin, digest, major or minor")
    new_value: str = Field(..., alias="newValue", description="Display value (tag or short digest)")
    new_from: str = Field(..., alias="newFrom", description="Full new image reference")
    new_tag: Optional[str] = Field(default=None, alias="newTag", description="New tag")
    new_dep_tag: Optional[str] = Field(default=None, alias="newDepTag", description="Image name with new tag")
    new_major: Optional[str] = Field(default=None, alias="newMajor", description="Major version of the new tag")
    new_digest: Optional[str] = Field(default=None, alias="newDigest", description="New digest")
    new_digest_short: Optional[str] = Field(default=None, alias="newDigestShort",
                                            description="Short digest for display")
    is_range: bool = Field(default=False, alias="isRange", description="Current tag is not a comparable version")

    def to_dict(self) -> dict:
        """Serialize with camelCase keys, omitting unset fields."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
