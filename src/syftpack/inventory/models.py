"""Inventory data model.

An inventory is the declarative catalog of downloadable Syft artifacts, one
entry per (os, arch, version). Entries are immutable once loaded.
"""

import hashlib
import hmac
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from syftpack.inventory.version import Version

# Digest algorithms accepted in inventory checksums, with hex digest lengths
SUPPORTED_ALGORITHMS: dict[str, int] = {
    "sha256": 64,
    "sha512": 128,
}


class Os(Enum):
    """Operating systems Syft publishes binaries for."""

    LINUX = "linux"
    DARWIN = "darwin"
    WINDOWS = "windows"


class Arch(Enum):
    """CPU architectures Syft publishes binaries for."""

    AMD64 = "amd64"
    ARM64 = "arm64"


@dataclass(frozen=True)
class Checksum:
    """Expected digest of an artifact.

    Attributes:
        algorithm: hashlib algorithm name (sha256, sha512)
        digest: Expected raw digest bytes
    """

    algorithm: str
    digest: bytes

    @classmethod
    def parse(cls, text: str) -> "Checksum":
        """Parse ``<algorithm>:<hex digest>``.

        Raises:
            ValueError: On unknown algorithm, non-hex digest or wrong length
        """
        algorithm, sep, hex_digest = text.strip().partition(":")
        if not sep:
            raise ValueError(f"Checksum must be '<algorithm>:<hex>': {text!r}")

        algorithm = algorithm.lower()
        expected_length = SUPPORTED_ALGORITHMS.get(algorithm)
        if expected_length is None:
            raise ValueError(f"Unsupported checksum algorithm: {algorithm}")
        if len(hex_digest) != expected_length:
            raise ValueError(
                f"{algorithm} digest must be {expected_length} hex characters "
                f"(got {len(hex_digest)})"
            )
        try:
            digest = bytes.fromhex(hex_digest)
        except ValueError:
            raise ValueError(f"Checksum digest is not valid hex: {hex_digest!r}")
        return cls(algorithm=algorithm, digest=digest)

    @classmethod
    def of(cls, data: bytes, algorithm: str = "sha256") -> "Checksum":
        """Compute the checksum of data."""
        return cls(algorithm=algorithm, digest=hashlib.new(algorithm, data).digest())

    @property
    def hex_digest(self) -> str:
        return self.digest.hex()

    def matches(self, data: bytes) -> bool:
        """Return True if data hashes to this digest."""
        actual = hashlib.new(self.algorithm, data).digest()
        return hmac.compare_digest(actual, self.digest)

    def __str__(self) -> str:
        return f"{self.algorithm}:{self.hex_digest}"


@dataclass(frozen=True)
class SbomDescriptor:
    """Companion SBOM document published alongside an artifact."""

    url: str
    checksum: Checksum


@dataclass(frozen=True)
class ArtifactMetadata:
    """Format-specific extra fields of an inventory entry.

    Attributes:
        sbom: Companion SBOM descriptor, if the inventory tracks one
        extra: Any other metadata keys, kept verbatim
    """

    sbom: SbomDescriptor | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def is_empty(self) -> bool:
        return self.sbom is None and not self.extra


@dataclass(frozen=True)
class Artifact:
    """One downloadable file in the inventory.

    An entry either carries its digest inline (``checksum``) or names the
    release's published checksums file (``checksums_url``). The latter must
    be pinned with ``with_checksum`` before the archive is fetched.
    """

    os: Os
    arch: Arch
    version: Version
    url: str
    checksum: Checksum | None
    metadata: ArtifactMetadata = field(default_factory=ArtifactMetadata)
    checksums_url: str | None = None

    @property
    def filename(self) -> str:
        return self.url.rsplit("/", 1)[-1]

    @property
    def is_pinned(self) -> bool:
        return self.checksum is not None

    def with_checksum(self, checksum: Checksum) -> "Artifact":
        """Return a copy of this artifact pinned to checksum."""
        return replace(self, checksum=checksum)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        result: dict[str, Any] = {
            "os": self.os.value,
            "arch": self.arch.value,
            "version": str(self.version),
            "url": self.url,
            "checksum": str(self.checksum) if self.checksum else None,
        }
        if self.checksums_url:
            result["checksums_url"] = self.checksums_url
        if self.metadata.sbom:
            result["sbom"] = {
                "url": self.metadata.sbom.url,
                "checksum": str(self.metadata.sbom.checksum),
            }
        return result


@dataclass(frozen=True)
class Inventory:
    """Ordered, immutable collection of artifacts."""

    artifacts: tuple[Artifact, ...] = ()

    def __len__(self) -> int:
        return len(self.artifacts)

    def __iter__(self):
        return iter(self.artifacts)

    def versions(self) -> list[Version]:
        """Distinct versions in the inventory, highest first."""
        return sorted(set(a.version for a in self.artifacts), reverse=True)
