"""Abstract base class for SBOM tool adapters.

An adapter drives an external SBOM tool as a subprocess. It knows how to:
1. Scan a directory into the tool's canonical document
2. Convert a canonical document into another encoding
3. Report whether the tool is usable and which version it is

The multi-format generate loop lives here so every adapter shares the same
staging and failure semantics.
"""

import logging
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable

from syftpack.errors import ConversionError
from syftpack.sbom.documents import CANONICAL_FORMAT, SbomDocumentSet, SbomFormat

logger = logging.getLogger(__name__)


class SBOMAdapter(ABC):
    """Abstract interface for SBOM generation tools.

    Implementations:
    - SyftAdapter: Uses Anchore Syft

    Attributes:
        name: Tool identifier (e.g., "syft")
        tool_path: Executable to invoke
        timeout: Subprocess timeout in seconds
    """

    def __init__(self, name: str, tool_path: str | Path, timeout: int) -> None:
        self.name = name
        self.tool_path = str(tool_path)
        self.timeout = timeout
        self._version: str | None = None

    @property
    def version(self) -> str | None:
        """Get the tool version (cached after first check)."""
        if self._version is None:
            self._version = self.get_version()
        return self._version

    @abstractmethod
    def check_available(self) -> bool:
        """Verify the tool is installed and runnable."""

    @abstractmethod
    def get_version(self) -> str | None:
        """Return the tool version string, or None if it cannot be run."""

    @abstractmethod
    def convert(self, input_path: Path, format: SbomFormat, output_path: Path) -> bytes:
        """Convert the canonical document at input_path into format.

        Raises:
            ToolNotAvailableError: If the tool cannot be executed
            ConversionError: If the tool fails or produces no output
        """

    @abstractmethod
    def scan(self, target_dir: Path) -> bytes:
        """Scan a directory and return the canonical document.

        Raises:
            ToolNotAvailableError: If the tool cannot be executed
            ConversionError: If the scan fails or produces no output
        """

    def generate(
        self,
        canonical_document: bytes,
        target_formats: Iterable[SbomFormat],
        include_canonical: bool = False,
        fail_fast: bool = True,
    ) -> SbomDocumentSet:
        """Produce one document per requested format from a canonical document.

        The canonical bytes are staged in a temporary directory that is
        removed on every exit path.

        Args:
            canonical_document: Document in the tool's canonical encoding
            target_formats: Encodings to produce
            include_canonical: Also include the canonical bytes as-is
            fail_fast: Abort on the first failure. When False, failures are
                recorded in the result's ``errors`` and the remaining formats
                are still attempted.

        Returns:
            SbomDocumentSet keyed by format

        Raises:
            ConversionError: On the first failure, when fail_fast
            ToolNotAvailableError: If the tool cannot be executed at all
        """
        result = SbomDocumentSet()
        formats = list(dict.fromkeys(target_formats))

        if include_canonical:
            result.add(CANONICAL_FORMAT, canonical_document)
            formats = [f for f in formats if f is not CANONICAL_FORMAT]

        with tempfile.TemporaryDirectory(prefix="syftpack-sbom-") as staging:
            staging_dir = Path(staging)
            input_path = staging_dir / f"input.{CANONICAL_FORMAT.extension}"
            input_path.write_bytes(canonical_document)

            for format in formats:
                output_path = staging_dir / f"output.{format.extension}"
                try:
                    data = self.convert(input_path, format, output_path)
                except ConversionError as e:
                    if fail_fast:
                        raise
                    logger.warning("Skipping %s: %s", format.value, e)
                    result.add_error(format, e)
                    continue
                result.add(format, data)
                logger.debug("Generated %s (%d bytes)", format.value, len(data))

        return result

    def get_metadata(self) -> dict[str, Any]:
        """Get adapter metadata for logging and debugging."""
        return {
            "name": self.name,
            "tool_path": self.tool_path,
            "version": self.version,
            "available": self.check_available(),
        }
