"""SBOM generation and parsing."""

from syftpack.sbom.base import SBOMAdapter
from syftpack.sbom.canonical import (
    CanonicalPackage,
    CanonicalSBOM,
    SBOMParseError,
    SBOMSource,
    parse_sbom,
)
from syftpack.sbom.documents import CANONICAL_FORMAT, SbomDocumentSet, SbomFormat
from syftpack.sbom.syft import SyftAdapter, generate

__all__ = [
    "CANONICAL_FORMAT",
    "CanonicalPackage",
    "CanonicalSBOM",
    "SBOMAdapter",
    "SBOMParseError",
    "SBOMSource",
    "SbomDocumentSet",
    "SbomFormat",
    "SyftAdapter",
    "generate",
    "parse_sbom",
]
