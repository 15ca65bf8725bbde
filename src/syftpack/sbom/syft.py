"""Syft SBOM adapter.

Drives the provisioned Anchore Syft binary to scan directories and to
convert syft-json documents into other SBOM encodings.
https://github.com/anchore/syft
"""

import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Iterable

from syftpack.errors import ConversionError, ToolNotAvailableError
from syftpack.sbom.base import SBOMAdapter
from syftpack.sbom.documents import CANONICAL_FORMAT, SbomDocumentSet, SbomFormat

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300
VERSION_TIMEOUT = 10


class SyftAdapter(SBOMAdapter):
    """SBOM adapter using Anchore Syft.

    Commands used:
        syft version
        syft convert <input> -o <format>=<output>
        syft scan dir:<target> -o syft-json=<output> --quiet
    """

    def __init__(
        self,
        tool_path: str | Path = "syft",
        timeout: int = DEFAULT_TIMEOUT,
        name: str = "syft",
    ) -> None:
        super().__init__(name=name, tool_path=tool_path, timeout=timeout)

    def check_available(self) -> bool:
        """Check if Syft is installed and accessible."""
        try:
            result = subprocess.run(
                [self.tool_path, "version"],
                capture_output=True,
                text=True,
                timeout=VERSION_TIMEOUT,
            )
            return result.returncode == 0
        except (subprocess.TimeoutExpired, OSError):
            return False

    def get_version(self) -> str | None:
        """Get Syft version string."""
        try:
            result = subprocess.run(
                [self.tool_path, "version"],
                capture_output=True,
                text=True,
                timeout=VERSION_TIMEOUT,
            )
        except (subprocess.TimeoutExpired, OSError):
            return None
        if result.returncode != 0:
            return None

        # Output format: "Application: syft\nVersion: 1.34.2\n..."
        output = result.stdout.strip()
        for line in output.splitlines():
            key, _, value = line.partition(":")
            if key.strip().lower() == "version" and value.strip():
                return value.strip()
        return output.splitlines()[0].strip() if output else None

    def convert(self, input_path: Path, format: SbomFormat, output_path: Path) -> bytes:
        """Convert a syft-json document into format.

        Args:
            input_path: syft-json document
            format: Target encoding
            output_path: Where Syft writes the result

        Returns:
            Converted document bytes

        Raises:
            ToolNotAvailableError: If Syft cannot be executed
            ConversionError: If Syft fails or writes no usable output
        """
        logger.debug("Converting %s to %s", input_path, format.value)
        self._run(
            format.value,
            ["convert", str(input_path), "-o", f"{format.value}={output_path}"],
        )
        return self._read_output(format.value, output_path)

    def scan(self, target_dir: Path) -> bytes:
        """Scan a directory into a syft-json document.

        Args:
            target_dir: Directory to scan

        Returns:
            syft-json document bytes

        Raises:
            ToolNotAvailableError: If Syft cannot be executed
            ConversionError: If the scan fails or writes no usable output
        """
        logger.info("Scanning %s", target_dir)
        with tempfile.TemporaryDirectory(prefix="syftpack-scan-") as staging:
            output_path = Path(staging) / f"scan.{CANONICAL_FORMAT.extension}"
            self._run(
                CANONICAL_FORMAT.value,
                [
                    "scan",
                    f"dir:{target_dir}",
                    "-o", f"{CANONICAL_FORMAT.value}={output_path}",
                    "--quiet",  # Suppress progress output
                ],
            )
            return self._read_output(CANONICAL_FORMAT.value, output_path)

    def _run(self, format: str, args: list[str]) -> subprocess.CompletedProcess:
        command = [self.tool_path, *args]
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise ToolNotAvailableError(
                self.name, f"Syft executable not found: {self.tool_path}"
            )
        except PermissionError:
            raise ToolNotAvailableError(
                self.name, f"Syft executable is not runnable: {self.tool_path}"
            )
        except subprocess.TimeoutExpired as e:
            raise ConversionError(
                format,
                f"Syft timed out after {self.timeout} seconds",
                stderr=str(e),
            )
        except OSError as e:
            raise ConversionError(format, f"Failed to execute Syft: {e}")

        if result.returncode != 0:
            raise ConversionError(
                format,
                f"Syft {args[0]} failed",
                exit_code=result.returncode,
                stderr=result.stderr,
            )
        return result

    def _read_output(self, format: str, output_path: Path) -> bytes:
        if not output_path.exists():
            raise ConversionError(format, f"Syft produced no output at {output_path}")
        try:
            data = output_path.read_bytes()
        except OSError as e:
            raise ConversionError(format, f"Unreadable output {output_path}: {e}")
        if not data:
            raise ConversionError(format, f"Syft produced empty output at {output_path}")
        return data


def generate(
    canonical_document: bytes,
    tool_path: str | Path,
    target_formats: Iterable[SbomFormat],
    include_canonical: bool = False,
    fail_fast: bool = True,
    timeout: int = DEFAULT_TIMEOUT,
) -> SbomDocumentSet:
    """Convert a syft-json document into each target format with Syft.

    See SBOMAdapter.generate for the failure semantics.
    """
    adapter = SyftAdapter(tool_path=tool_path, timeout=timeout)
    return adapter.generate(
        canonical_document,
        target_formats,
        include_canonical=include_canonical,
        fail_fast=fail_fast,
    )
