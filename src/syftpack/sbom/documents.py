"""SBOM formats and generated document sets."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

from syftpack.errors import ConversionError


class SbomFormat(Enum):
    """SBOM encodings syftpack produces.

    Values are Syft output format tags.
    """

    SYFT_JSON = "syft-json"
    CYCLONEDX_JSON = "cyclonedx-json"
    SPDX_JSON = "spdx-json"

    @classmethod
    def from_tag(cls, tag: str) -> "SbomFormat":
        """Look up a format by Syft tag.

        Raises:
            ValueError: If the tag is unknown
        """
        try:
            return cls(tag)
        except ValueError:
            valid = ", ".join(f.value for f in cls)
            raise ValueError(f"Unknown SBOM format: {tag}. Valid: {valid}")

    @property
    def extension(self) -> str:
        """File extension used for buildpack SBOM files."""
        return _EXTENSIONS[self]

    @property
    def media_type(self) -> str:
        return _MEDIA_TYPES[self]


_EXTENSIONS = {
    SbomFormat.SYFT_JSON: "syft.json",
    SbomFormat.CYCLONEDX_JSON: "cdx.json",
    SbomFormat.SPDX_JSON: "spdx.json",
}

_MEDIA_TYPES = {
    SbomFormat.SYFT_JSON: "application/vnd.syft+json",
    SbomFormat.CYCLONEDX_JSON: "application/vnd.cyclonedx+json",
    SbomFormat.SPDX_JSON: "application/spdx+json",
}

# The tool's native encoding; all conversions start from it
CANONICAL_FORMAT = SbomFormat.SYFT_JSON


@dataclass
class SbomDocumentSet:
    """SBOM documents keyed by format.

    Attributes:
        documents: Generated bytes per format
        errors: Per-format conversion failures (best-effort mode only)
    """

    documents: dict[SbomFormat, bytes] = field(default_factory=dict)
    errors: dict[SbomFormat, ConversionError] = field(default_factory=dict)

    def add(self, format: SbomFormat, data: bytes) -> None:
        """Add a document.

        Raises:
            ValueError: If the format is already present
        """
        if format in self.documents:
            raise ValueError(f"Duplicate SBOM format: {format.value}")
        self.documents[format] = data

    def add_error(self, format: SbomFormat, error: ConversionError) -> None:
        self.errors[format] = error

    @property
    def formats(self) -> list[SbomFormat]:
        return list(self.documents)

    @property
    def is_complete(self) -> bool:
        """True when no requested format failed."""
        return not self.errors

    def __len__(self) -> int:
        return len(self.documents)

    def __contains__(self, format: object) -> bool:
        return format in self.documents

    def __getitem__(self, format: SbomFormat) -> bytes:
        return self.documents[format]

    def __iter__(self) -> Iterator[SbomFormat]:
        return iter(self.documents)

    def to_dict(self) -> dict[str, Any]:
        """Summary for JSON output."""
        return {
            "documents": {f.value: len(data) for f, data in self.documents.items()},
            "errors": {f.value: str(e) for f, e in self.errors.items()},
        }
