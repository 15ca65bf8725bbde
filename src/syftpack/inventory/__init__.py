"""Artifact inventory: catalog, versions and resolution."""

from syftpack.inventory.models import (
    Arch,
    Artifact,
    ArtifactMetadata,
    Checksum,
    Inventory,
    Os,
    SbomDescriptor,
)
from syftpack.inventory.parser import (
    checksum_for_file,
    default_inventory_text,
    dump_inventory,
    inventory_from_checksums,
    load_inventory,
    load_inventory_file,
)
from syftpack.inventory.resolver import resolve, resolve_for_current_platform
from syftpack.inventory.version import Version, VersionConstraint

__all__ = [
    "Arch",
    "Artifact",
    "ArtifactMetadata",
    "Checksum",
    "Inventory",
    "Os",
    "SbomDescriptor",
    "Version",
    "VersionConstraint",
    "checksum_for_file",
    "default_inventory_text",
    "dump_inventory",
    "inventory_from_checksums",
    "load_inventory",
    "load_inventory_file",
    "resolve",
    "resolve_for_current_platform",
]
