"""Binary extraction from gzip-compressed tar archives.

Scans the archive as a stream and writes out only the first regular file
whose path ends with the requested name. The rest of the archive is never
unpacked.
"""

import io
import logging
import os
import tarfile
import zlib
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from syftpack.errors import ExtractionError

logger = logging.getLogger(__name__)

EXECUTABLE_MODE = 0o755


@dataclass
class ExtractedFile:
    """A binary written out of an archive.

    Attributes:
        path: Destination path on disk
        member: Path of the entry inside the archive
        size: Bytes written
    """

    path: Path
    member: str
    size: int


def _member_matches(member_name: str, target_name: str) -> bool:
    """Component-wise suffix match (``dist/bin/syft`` ends with ``syft``)."""
    member_parts = PurePosixPath(member_name).parts
    target_parts = PurePosixPath(target_name).parts
    if not target_parts or len(target_parts) > len(member_parts):
        return False
    return member_parts[-len(target_parts):] == target_parts


def extract_binary(
    tar_gz_bytes: bytes,
    target_name: str,
    destination: Path,
) -> ExtractedFile:
    """Extract the first entry ending with target_name to destination.

    Args:
        tar_gz_bytes: Verified archive bytes
        target_name: Binary name (or trailing path) to look for
        destination: File path to write the binary to

    Returns:
        ExtractedFile describing what was written

    Raises:
        ExtractionError: If the archive is invalid, has no matching entry,
            or the file cannot be written
    """
    destination = Path(destination)

    try:
        with tarfile.open(fileobj=io.BytesIO(tar_gz_bytes), mode="r|gz") as archive:
            for member in archive:
                if not member.isfile() or not _member_matches(member.name, target_name):
                    continue

                source = archive.extractfile(member)
                if source is None:
                    raise ExtractionError(f"Cannot read archive entry {member.name}")
                data = source.read()
                _write_executable(destination, data)

                logger.debug("Extracted %s to %s", member.name, destination)
                return ExtractedFile(path=destination, member=member.name, size=len(data))
    except (tarfile.TarError, zlib.error, EOFError) as e:
        raise ExtractionError(f"Invalid tar.gz archive: {e}")
    except OSError as e:
        # gzip raises BadGzipFile (an OSError) for non-gzip input
        raise ExtractionError(f"Invalid tar.gz archive: {e}")

    raise ExtractionError(f"No entry named '{target_name}' in archive")


def _write_executable(destination: Path, data: bytes) -> None:
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(data)
        os.chmod(destination, EXECUTABLE_MODE)
    except OSError as e:
        raise ExtractionError(f"Failed to write {destination}: {e}")
