"""
Pack Schema - Discovered content packages

This defines the manifest format that Discovery reads
and the Pack records it produces.

Manifest (manifest.json):
    header.name     display name
    header.uuid     identity used to match source and installed packs
    header.version  [major, minor, patch]
    modules[].type  client_data | data | resources | (ignored)
"""
from enum import Enum
from pathlib import Path
from typing import Any, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNNAMED_PACK = "No name specified"
NO_VERSION = "No version in manifest"


class PackCapability(str, Enum):
    """What a pack produces, derived from its manifest modules"""
    BEHAVIOR = "behavior"
    RESOURCES = "resources"


# Module type -> capability. Types not listed contribute nothing.
MODULE_CAPABILITIES = {
    "client_data": PackCapability.BEHAVIOR,
    "data": PackCapability.BEHAVIOR,
    "resources": PackCapability.RESOURCES,
}


def parse_version(value: Any) -> Optional[Tuple[int, int, int]]:
    """Accept [1, 2, 3] or "1.2.3"; None stays None"""
    if value is None:
        return None
    if isinstance(value, str):
        parts = value.strip().split(".")
        if len(parts) != 3 or not all(p.isdigit() for p in parts):
            raise ValueError(f"version string must look like '1.2.3', got {value!r}")
        return (int(parts[0]), int(parts[1]), int(parts[2]))
    if isinstance(value, (list, tuple)):
        if len(value) != 3 or not all(isinstance(p, int) and not isinstance(p, bool) for p in value):
            raise ValueError(f"version must be three integers, got {value!r}")
        return (value[0], value[1], value[2])
    raise ValueError(f"unsupported version value: {value!r}")


def _string_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


class ManifestHeader(BaseModel):
    """
    The header block of a manifest

    Fields are read loosely: a value of the wrong shape is treated as
    absent rather than failing discovery.
    """
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = Field(None, description="Human readable pack name")
    uuid: Optional[str] = Field(None, description="Pack identity")
    version: Optional[Tuple[int, int, int]] = Field(None, description="(major, minor, patch)")

    @field_validator("name", "uuid", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        return _string_or_none(value)

    @field_validator("version", mode="before")
    @classmethod
    def _coerce_version(cls, value):
        try:
            return parse_version(value)
        except ValueError:
            # e.g. "1.0.0-beta"
            return None


class ManifestModule(BaseModel):
    """One entry of the manifest's modules list"""
    model_config = ConfigDict(extra="allow")

    type: Optional[str] = Field(None, description="client_data, data, resources, ...")

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value):
        return _string_or_none(value)


class Manifest(BaseModel):
    """A parsed manifest.json"""
    model_config = ConfigDict(extra="allow")

    format_version: Optional[Any] = Field(None)
    header: Optional[ManifestHeader] = Field(None)
    modules: List[ManifestModule] = Field(default_factory=list)

    @field_validator("header", mode="before")
    @classmethod
    def _coerce_header(cls, value):
        return value if isinstance(value, dict) else None

    @field_validator("modules", mode="before")
    @classmethod
    def _coerce_modules(cls, value):
        if not isinstance(value, list):
            return []
        return [m for m in value if isinstance(m, dict)]

    def capabilities(self) -> FrozenSet[PackCapability]:
        """Capabilities declared by the module types"""
        found = set()
        for module in self.modules:
            capability = MODULE_CAPABILITIES.get(module.type or "")
            if capability is not None:
                found.add(capability)
        return frozenset(found)


class Pack(BaseModel):
    """
    One discovered content package

    Packs are immutable. A discovery pass builds a fresh list of them
    and never updates packs from an earlier pass.
    """
    model_config = ConfigDict(frozen=True)

    root_path: Path = Field(..., description="Absolute directory containing the manifest")
    relative_path: str = Field(..., description="POSIX path relative to the scan root; unique per pass")
    display_name: str = Field(UNNAMED_PACK, description="header.name from the manifest")
    identity: Optional[str] = Field(None, description="header.uuid from the manifest")
    version: Optional[Tuple[int, int, int]] = Field(None)
    capabilities: FrozenSet[PackCapability] = Field(default_factory=frozenset)

    def has_capability(self, capability: PackCapability) -> bool:
        return capability in self.capabilities

    @property
    def version_label(self) -> str:
        if self.version is None:
            return NO_VERSION
        return ".".join(str(part) for part in self.version)

    @classmethod
    def from_manifest(cls, manifest: Manifest, root_path: Path, relative_path: str) -> "Pack":
        header = manifest.header or ManifestHeader()
        return cls(
            root_path=root_path,
            relative_path=relative_path,
            display_name=header.name or UNNAMED_PACK,
            identity=header.uuid,
            version=header.version,
            capabilities=manifest.capabilities(),
        )


__all__ = [
    "UNNAMED_PACK",
    "NO_VERSION",
    "PackCapability",
    "MODULE_CAPABILITIES",
    "parse_version",
    "ManifestHeader",
    "ManifestModule",
    "Manifest",
    "Pack",
]
