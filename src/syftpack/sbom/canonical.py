"""Canonical SBOM model.

A tool-agnostic view of the packages in an SBOM document. syft-json,
CycloneDX JSON and SPDX JSON documents all parse into CanonicalSBOM, which
is what the build log summaries and the round-trip checks consume.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from syftpack.sbom.documents import SbomFormat

logger = logging.getLogger(__name__)


# Mapping from Syft package types to canonical ecosystem names
SYFT_TYPE_TO_ECOSYSTEM: dict[str, str] = {
    "npm": "npm",
    "python": "pypi",
    "go-module": "go",
    "java-archive": "maven",
    "gem": "rubygems",
    "rust-crate": "cargo",
    "dotnet": "nuget",
    "deb": "deb",
    "rpm": "rpm",
    "apk": "apk",
    "cocoapods": "cocoapods",
    "swift": "swift",
    "php-composer": "composer",
    "hackage": "hackage",
    "hex": "hex",
    "dart-pub": "pub",
    "conan": "conan",
    "cpan": "cpan",
    "R-package": "cran",
    "binary": "binary",
}

# Mapping from purl types to canonical ecosystem names
PURL_TYPE_TO_ECOSYSTEM: dict[str, str] = {
    "npm": "npm",
    "pypi": "pypi",
    "golang": "go",
    "maven": "maven",
    "gem": "rubygems",
    "cargo": "cargo",
    "nuget": "nuget",
    "deb": "deb",
    "rpm": "rpm",
    "apk": "apk",
    "cocoapods": "cocoapods",
    "swift": "swift",
    "composer": "composer",
    "hackage": "hackage",
    "hex": "hex",
    "pub": "pub",
    "conan": "conan",
    "cpan": "cpan",
    "cran": "cran",
    "github": "github",
}


class SBOMParseError(ValueError):
    """Raised when a document cannot be parsed as the given format."""


@dataclass
class SBOMSource:
    """Metadata about the SBOM generation.

    Attributes:
        tool: Tool that generated this (e.g., "syft")
        tool_version: Version of the tool
        scanned_at: When the document was created
        format: Format the document was read from
    """

    tool: str
    tool_version: str
    scanned_at: datetime
    format: SbomFormat

    def __post_init__(self) -> None:
        """Ensure timestamp is timezone-aware UTC."""
        if self.scanned_at.tzinfo is None:
            self.scanned_at = self.scanned_at.replace(tzinfo=UTC)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tool": self.tool,
            "tool_version": self.tool_version,
            "scanned_at": self.scanned_at.isoformat(),
            "format": self.format.value,
        }


@dataclass
class CanonicalPackage:
    """Standard package representation across SBOM formats.

    Attributes:
        name: Package name
        ecosystem: Package ecosystem (npm, pypi, go, maven, cargo, etc.)
        version: Version string (if available)
        license: License expression (if available)
        purl: Package URL - standardized identifier (if available)
    """

    name: str
    ecosystem: str
    version: str | None = None
    license: str | None = None
    purl: str | None = None

    @property
    def identifier(self) -> str:
        """Stable component identifier: the purl, else name@version."""
        if self.purl:
            return self.purl
        return f"{self.name}@{self.version}" if self.version else self.name

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "ecosystem": self.ecosystem,
        }
        if self.version:
            result["version"] = self.version
        if self.license:
            result["license"] = self.license
        if self.purl:
            result["purl"] = self.purl
        return result


@dataclass
class CanonicalSBOM:
    """Packages of one SBOM document, independent of its encoding."""

    packages: list[CanonicalPackage] = field(default_factory=list)
    source: SBOMSource | None = None

    def add_package(self, package: CanonicalPackage) -> None:
        self.packages.append(package)

    def get_packages_by_ecosystem(self, ecosystem: str) -> list[CanonicalPackage]:
        return [p for p in self.packages if p.ecosystem == ecosystem]

    def get_unique_ecosystems(self) -> list[str]:
        return sorted(set(p.ecosystem for p in self.packages))

    def component_ids(self) -> set[str]:
        """Identifiers of all packages, for comparing documents."""
        return {p.identifier for p in self.packages}

    @property
    def package_count(self) -> int:
        return len(self.packages)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "packages": [p.to_dict() for p in self.packages],
            "package_count": self.package_count,
            "ecosystems": self.get_unique_ecosystems(),
        }
        if self.source:
            result["source"] = self.source.to_dict()
        return result


# =============================================================================
# Parsing
# =============================================================================


def parse_sbom(data: bytes, format: SbomFormat) -> CanonicalSBOM:
    """Parse an SBOM document into CanonicalSBOM.

    Args:
        data: Document bytes
        format: Encoding of data

    Returns:
        CanonicalSBOM with one package per component

    Raises:
        SBOMParseError: If data is not a JSON document of that format
    """
    try:
        document = json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise SBOMParseError(f"Invalid {format.value} document: {e}")
    if not isinstance(document, dict):
        raise SBOMParseError(f"Invalid {format.value} document: not a JSON object")

    if format is SbomFormat.SYFT_JSON:
        sbom = _from_syft(document)
    elif format is SbomFormat.CYCLONEDX_JSON:
        sbom = _from_cyclonedx(document)
    else:
        sbom = _from_spdx(document)

    logger.debug(
        "Parsed %d packages (%d ecosystems) from %s",
        sbom.package_count,
        len(sbom.get_unique_ecosystems()),
        format.value,
    )
    return sbom


def _ecosystem_from_purl(purl: str | None) -> str | None:
    if not purl or not purl.startswith("pkg:"):
        return None
    purl_type = purl[4:].split("/", 1)[0].lower()
    return PURL_TYPE_TO_ECOSYSTEM.get(purl_type, purl_type)


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    return datetime.now(UTC)


def _from_syft(document: dict[str, Any]) -> CanonicalSBOM:
    descriptor = document.get("descriptor") or {}
    sbom = CanonicalSBOM(source=SBOMSource(
        tool=descriptor.get("name", "syft"),
        tool_version=descriptor.get("version", "unknown"),
        scanned_at=_parse_timestamp(descriptor.get("timestamp")),
        format=SbomFormat.SYFT_JSON,
    ))

    for artifact in document.get("artifacts", []):
        name = artifact.get("name")
        if not name:
            continue

        pkg_type = artifact.get("type", "")
        purl = artifact.get("purl") or None
        ecosystem = (
            SYFT_TYPE_TO_ECOSYSTEM.get(pkg_type)
            or _ecosystem_from_purl(purl)
            or pkg_type
            or "unknown"
        )

        # Syft provides licenses as array of strings or {"value": ...}
        license_parts = []
        for lic in artifact.get("licenses", []) or []:
            if isinstance(lic, dict):
                license_parts.append(lic.get("value", ""))
            else:
                license_parts.append(str(lic))

        sbom.add_package(CanonicalPackage(
            name=name,
            ecosystem=ecosystem,
            version=artifact.get("version") or None,
            license=" AND ".join(filter(None, license_parts)) or None,
            purl=purl,
        ))
    return sbom


def _from_cyclonedx(document: dict[str, Any]) -> CanonicalSBOM:
    metadata = document.get("metadata") or {}
    tools = metadata.get("tools") or {}
    # CycloneDX 1.5 nests tools under "components"; 1.4 uses a plain list
    tool_list = tools.get("components", []) if isinstance(tools, dict) else tools
    tool = tool_list[0] if tool_list else {}

    sbom = CanonicalSBOM(source=SBOMSource(
        tool=tool.get("name", "unknown"),
        tool_version=tool.get("version", "unknown"),
        scanned_at=_parse_timestamp(metadata.get("timestamp")),
        format=SbomFormat.CYCLONEDX_JSON,
    ))

    for component in document.get("components", []):
        name = component.get("name")
        if not name:
            continue

        license_parts = []
        for entry in component.get("licenses", []) or []:
            if "expression" in entry:
                license_parts.append(entry["expression"])
            else:
                lic = entry.get("license", {})
                license_parts.append(lic.get("id") or lic.get("name", ""))

        purl = component.get("purl") or None
        sbom.add_package(CanonicalPackage(
            name=name,
            ecosystem=_ecosystem_from_purl(purl) or component.get("type", "unknown"),
            version=component.get("version") or None,
            license=" AND ".join(filter(None, license_parts)) or None,
            purl=purl,
        ))
    return sbom


def _from_spdx(document: dict[str, Any]) -> CanonicalSBOM:
    creation = document.get("creationInfo") or {}
    tool_name, tool_version = "unknown", "unknown"
    for creator in creation.get("creators", []):
        if creator.startswith("Tool:"):
            tool_name, _, tool_version = creator[5:].strip().partition("-")
            tool_version = tool_version or "unknown"
            break

    sbom = CanonicalSBOM(source=SBOMSource(
        tool=tool_name,
        tool_version=tool_version,
        scanned_at=_parse_timestamp(creation.get("created")),
        format=SbomFormat.SPDX_JSON,
    ))

    # The described root (the scanned directory or image) is not a component
    described = set(document.get("documentDescribes", []))

    for package in document.get("packages", []):
        name = package.get("name")
        spdx_id = package.get("SPDXID", "")
        if not name or spdx_id in described or spdx_id.startswith("SPDXRef-DocumentRoot"):
            continue

        purl = None
        for ref in package.get("externalRefs", []):
            if ref.get("referenceType") == "purl":
                purl = ref.get("referenceLocator")
                break

        license = package.get("licenseDeclared") or package.get("licenseConcluded")
        if license in ("NOASSERTION", "NONE"):
            license = None

        sbom.add_package(CanonicalPackage(
            name=name,
            ecosystem=_ecosystem_from_purl(purl) or "unknown",
            version=package.get("versionInfo") or None,
            license=license,
            purl=purl,
        ))
    return sbom
