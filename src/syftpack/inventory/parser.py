"""Inventory loading and rendering.

Inventories are TOML documents with one ``[[artifacts]]`` table per entry:

    [[artifacts]]
    version = "1.34.2"
    os = "linux"
    arch = "amd64"
    url = "https://github.com/anchore/syft/releases/download/v1.34.2/syft_1.34.2_linux_amd64.tar.gz"
    checksum = "sha256:..."

    [artifacts.metadata.sbom]
    url = "https://github.com/anchore/syft/releases/download/v1.34.2/syft_1.34.2_linux_amd64.tar.gz.sbom"
    checksum = "sha256:..."

An entry may name the release checksums file instead of an inline digest:

    checksums_url = "https://github.com/anchore/syft/releases/download/v1.34.2/syft_1.34.2_checksums.txt"
"""

import json
import logging
import re
import tomllib
from importlib import resources
from pathlib import Path
from typing import Any, Iterator

from syftpack.errors import ParseInventoryError
from syftpack.inventory.models import (
    Arch,
    Artifact,
    ArtifactMetadata,
    Checksum,
    Inventory,
    Os,
    SbomDescriptor,
)
from syftpack.inventory.version import Version

logger = logging.getLogger(__name__)

RELEASE_BASE_URL = "https://github.com/anchore/syft/releases/download"

# syft_<version>_<os>_<arch>.tar.gz, optionally followed by .sbom
_RELEASE_ASSET_RE = re.compile(
    r"^syft_(?P<version>[^_]+)_(?P<os>[a-z]+)_(?P<arch>[a-z0-9]+)\.tar\.gz(?P<sbom>\.sbom(?:\.json)?)?$"
)

_REQUIRED_KEYS = ("version", "os", "arch", "url")


def load_inventory(text: str) -> Inventory:
    """Parse inventory TOML text.

    Args:
        text: Inventory document

    Returns:
        Immutable Inventory, entries in document order

    Raises:
        ParseInventoryError: If the text is malformed
    """
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ParseInventoryError(f"Invalid inventory TOML: {e}")

    entries = data.get("artifacts", [])
    if not isinstance(entries, list):
        raise ParseInventoryError("'artifacts' must be an array of tables")

    artifacts = tuple(
        _parse_artifact(entry, index) for index, entry in enumerate(entries)
    )
    logger.debug("Loaded inventory with %d artifacts", len(artifacts))
    return Inventory(artifacts=artifacts)


def load_inventory_file(path: Path) -> Inventory:
    """Load an inventory from a file.

    Raises:
        ParseInventoryError: If the file cannot be read or parsed
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ParseInventoryError(f"Cannot read inventory {path}: {e}")
    return load_inventory(text)


def default_inventory_text() -> str:
    """Return the inventory shipped with the package."""
    return resources.files("syftpack").joinpath("data/inventory.toml").read_text(
        encoding="utf-8"
    )


def _parse_artifact(entry: Any, index: int) -> Artifact:
    """Parse a single ``[[artifacts]]`` table."""
    where = f"artifacts[{index}]"
    if not isinstance(entry, dict):
        raise ParseInventoryError(f"{where}: expected a table")

    missing = [key for key in _REQUIRED_KEYS if key not in entry]
    if missing:
        raise ParseInventoryError(f"{where}: missing keys: {', '.join(missing)}")

    try:
        os = Os(entry["os"])
    except ValueError:
        raise ParseInventoryError(f"{where}: unknown os: {entry['os']!r}")
    try:
        arch = Arch(entry["arch"])
    except ValueError:
        raise ParseInventoryError(f"{where}: unknown arch: {entry['arch']!r}")

    if ("checksum" in entry) == ("checksums_url" in entry):
        raise ParseInventoryError(
            f"{where}: exactly one of 'checksum' or 'checksums_url' is required"
        )

    try:
        version = Version.parse(str(entry["version"]))
        checksum = Checksum.parse(str(entry["checksum"])) if "checksum" in entry else None
        metadata = _parse_metadata(entry.get("metadata", {}))
    except ValueError as e:
        raise ParseInventoryError(f"{where}: {e}")

    checksums_url = entry.get("checksums_url")
    return Artifact(
        os=os,
        arch=arch,
        version=version,
        url=str(entry["url"]),
        checksum=checksum,
        metadata=metadata,
        checksums_url=str(checksums_url) if checksums_url is not None else None,
    )


def _parse_metadata(data: Any) -> ArtifactMetadata:
    if not isinstance(data, dict):
        raise ValueError("metadata must be a table")

    extra = {k: v for k, v in data.items() if k != "sbom"}
    sbom_data = data.get("sbom")
    if sbom_data is None:
        return ArtifactMetadata(extra=extra)

    if not isinstance(sbom_data, dict) or "url" not in sbom_data or "checksum" not in sbom_data:
        raise ValueError("metadata.sbom requires 'url' and 'checksum'")

    return ArtifactMetadata(
        sbom=SbomDescriptor(
            url=str(sbom_data["url"]),
            checksum=Checksum.parse(str(sbom_data["checksum"])),
        ),
        extra=extra,
    )


# =============================================================================
# Rendering
# =============================================================================


def _toml_string(value: str) -> str:
    # JSON string escapes are valid TOML basic-string escapes
    return json.dumps(value)


def dump_inventory(inventory: Inventory) -> str:
    """Render an inventory as TOML text readable by load_inventory.

    Only string-valued extra metadata is rendered.
    """
    blocks = []
    for artifact in inventory:
        lines = [
            "[[artifacts]]",
            f"version = {_toml_string(str(artifact.version))}",
            f"os = {_toml_string(artifact.os.value)}",
            f"arch = {_toml_string(artifact.arch.value)}",
            f"url = {_toml_string(artifact.url)}",
        ]
        if artifact.checksum is not None:
            lines.append(f"checksum = {_toml_string(str(artifact.checksum))}")
        else:
            lines.append(f"checksums_url = {_toml_string(artifact.checksums_url or '')}")
        extra = {
            k: v for k, v in artifact.metadata.extra.items() if isinstance(v, str)
        }
        if extra:
            lines.append("")
            lines.append("[artifacts.metadata]")
            lines.extend(f"{k} = {_toml_string(v)}" for k, v in sorted(extra.items()))
        if artifact.metadata.sbom:
            lines.append("")
            lines.append("[artifacts.metadata.sbom]")
            lines.append(f"url = {_toml_string(artifact.metadata.sbom.url)}")
            lines.append(f"checksum = {_toml_string(str(artifact.metadata.sbom.checksum))}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) + "\n" if blocks else ""


# =============================================================================
# Release checksums
# =============================================================================


def inventory_from_checksums(
    version: str,
    checksums_text: str,
    base_url: str = RELEASE_BASE_URL,
) -> Inventory:
    """Build inventory entries from a Syft release ``checksums.txt``.

    Each line is ``<sha256 hex>  <file name>``. Archives for unsupported
    platforms are skipped. A ``.sbom`` file listed for an archive becomes
    that entry's companion SBOM.

    Args:
        version: Release version (with or without leading "v")
        checksums_text: Contents of ``syft_<version>_checksums.txt``
        base_url: Release download base URL

    Returns:
        Inventory sorted by os then arch

    Raises:
        ParseInventoryError: If the version or a checksum line is invalid
    """
    version = version.lstrip("v")
    try:
        parsed_version = Version.parse(version)
    except ValueError as e:
        raise ParseInventoryError(str(e))

    archives: dict[tuple[str, str], Checksum] = {}
    sboms: dict[tuple[str, str], tuple[str, Checksum]] = {}

    for filename, checksum in _read_checksums(checksums_text):
        m = _RELEASE_ASSET_RE.match(filename)
        if not m or m.group("version") != version:
            continue
        key = (m.group("os"), m.group("arch"))
        if m.group("sbom"):
            sboms[key] = (filename, checksum)
        else:
            archives[key] = checksum

    artifacts = []
    for (os_name, arch_name), checksum in sorted(archives.items()):
        try:
            os, arch = Os(os_name), Arch(arch_name)
        except ValueError:
            logger.debug("Skipping unsupported platform %s/%s", os_name, arch_name)
            continue

        archive_name = f"syft_{version}_{os_name}_{arch_name}.tar.gz"
        url = f"{base_url}/v{version}/{archive_name}"
        metadata = ArtifactMetadata()
        if (os_name, arch_name) in sboms:
            sbom_name, sbom_checksum = sboms[(os_name, arch_name)]
            metadata = ArtifactMetadata(sbom=SbomDescriptor(
                url=f"{base_url}/v{version}/{sbom_name}",
                checksum=sbom_checksum,
            ))
        artifacts.append(Artifact(
            os=os,
            arch=arch,
            version=parsed_version,
            url=url,
            checksum=checksum,
            metadata=metadata,
        ))

    return Inventory(artifacts=tuple(artifacts))


def checksum_for_file(checksums_text: str, filename: str) -> Checksum:
    """Look up the sha256 of filename in a release ``checksums.txt``.

    Raises:
        ParseInventoryError: If a line is malformed or filename is not listed
    """
    for listed, checksum in _read_checksums(checksums_text):
        if listed == filename:
            return checksum
    raise ParseInventoryError(f"Release checksums do not list {filename}")


def _read_checksums(checksums_text: str) -> Iterator[tuple[str, Checksum]]:
    """Yield (file name, checksum) for each ``<sha256 hex>  <file>`` line."""
    for line_no, line in enumerate(checksums_text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        parts = line.split()
        if len(parts) != 2:
            raise ParseInventoryError(f"checksums line {line_no}: expected '<digest> <file>'")
        hex_digest, filename = parts
        try:
            checksum = Checksum.parse(f"sha256:{hex_digest}")
        except ValueError as e:
            raise ParseInventoryError(f"checksums line {line_no}: {e}") from e
        yield filename.lstrip("*"), checksum
