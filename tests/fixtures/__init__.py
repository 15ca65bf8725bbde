"""Test fixtures for syftpack.

Sample applications, a fake Syft executable, and helpers for building
release archives and HTTP sessions in memory.

Sample Applications:
- sample_apps/python_app: A Flask app with a pinned requirements.txt
"""

import io
import sys
import tarfile
from pathlib import Path
from unittest.mock import MagicMock

import requests

# Path to fixtures directory
FIXTURES_DIR = Path(__file__).parent

# Path to sample applications
SAMPLE_APPS_DIR = FIXTURES_DIR / "sample_apps"
PYTHON_APP_PATH = SAMPLE_APPS_DIR / "python_app"

# Source of the fake Syft CLI
FAKE_SYFT_PATH = FIXTURES_DIR / "fake_syft.py"

RELEASE_URL = "https://github.com/anchore/syft/releases/download"


def artifact_url(version: str, os_name: str, arch: str) -> str:
    """Return the upstream release archive URL for a platform."""
    return f"{RELEASE_URL}/v{version}/syft_{version}_{os_name}_{arch}.tar.gz"


def fake_syft_script() -> bytes:
    """Return the fake Syft CLI as an executable script for this interpreter."""
    return f"#!{sys.executable}\n".encode() + FAKE_SYFT_PATH.read_bytes()


def install_fake_syft(directory: Path, name: str = "syft") -> Path:
    """Write the fake Syft CLI into directory as an executable."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_bytes(fake_syft_script())
    path.chmod(0o755)
    return path


def make_tar_gz(members: dict[str, bytes], directories: list[str] | None = None) -> bytes:
    """Build a gzip-compressed tar archive in memory.

    Args:
        members: Archive path -> file content, in archive order
        directories: Directory entries to add first

    Returns:
        Archive bytes
    """
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        for name in directories or []:
            info = tarfile.TarInfo(name)
            info.type = tarfile.DIRTYPE
            info.mode = 0o755
            archive.addfile(info)
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o644
            archive.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def syft_release_archive() -> bytes:
    """A Syft release archive whose binary is the fake Syft CLI."""
    return make_tar_gz({
        "LICENSE": b"Apache License 2.0\n",
        "README.md": b"# syft\n",
        "syft": fake_syft_script(),
    })


def fake_session(responses: dict[str, bytes | int]) -> MagicMock:
    """Mock requests.Session serving fixed responses.

    Args:
        responses: URL -> body bytes, or URL -> HTTP status code for errors.
            Unknown URLs answer 404.

    Returns:
        MagicMock whose ``get`` records every call
    """

    def get(url: str, **kwargs: object) -> MagicMock:
        response = MagicMock()
        body = responses.get(url, 404)
        if isinstance(body, int):
            response.status_code = body
            response.content = b""
            response.raise_for_status.side_effect = requests.HTTPError(
                f"{body} Client Error for url: {url}", response=response
            )
        else:
            response.status_code = 200
            response.content = body
            response.raise_for_status.return_value = None
        return response

    session = MagicMock(spec=requests.Session)
    session.get.side_effect = get
    return session
