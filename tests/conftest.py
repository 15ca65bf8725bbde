"""Shared pytest fixtures for syftpack tests.

Fixtures are organized by category:
- Path fixtures: sample applications and layer directories
- Inventory fixtures: inventory text and parsed inventories
- Syft fixtures: fake Syft executable, release archives, sample documents
- Configuration fixtures: config dictionaries for various scenarios
"""

import json
import logging
from pathlib import Path
from typing import Any

import pytest

from syftpack.inventory import Checksum, Inventory, load_inventory
from tests.fixtures import (
    PYTHON_APP_PATH,
    artifact_url,
    install_fake_syft,
    syft_release_archive,
)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(autouse=True)
def _propagate_syftpack_logs():
    """Let caplog see syftpack records even after the CLI configured logging."""
    logger = logging.getLogger("syftpack")
    yield
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def sample_app() -> Path:
    """Return the sample Python application."""
    return PYTHON_APP_PATH


@pytest.fixture
def layers_dir(tmp_path: Path) -> Path:
    """Create an empty layers directory."""
    path = tmp_path / "layers"
    path.mkdir()
    return path


# =============================================================================
# Syft Fixtures
# =============================================================================


@pytest.fixture
def fake_syft(tmp_path: Path) -> Path:
    """Install the fake Syft CLI and return its path."""
    return install_fake_syft(tmp_path / "tools")


@pytest.fixture
def syft_log(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Record every fake Syft invocation to a file."""
    path = tmp_path / "syft-calls.jsonl"
    monkeypatch.setenv("FAKE_SYFT_LOG", str(path))
    return path


@pytest.fixture
def release_archive() -> bytes:
    """A Syft release tar.gz containing the fake Syft CLI."""
    return syft_release_archive()


@pytest.fixture
def syft_document() -> dict[str, Any]:
    """A small syft-json document."""
    return {
        "artifacts": [
            {
                "id": "a1",
                "name": "flask",
                "version": "3.0.3",
                "type": "python",
                "purl": "pkg:pypi/flask@3.0.3",
                "licenses": [{"value": "BSD-3-Clause"}],
            },
            {
                "id": "a2",
                "name": "golang.org/x/net",
                "version": "v0.24.0",
                "type": "go-module",
                "purl": "pkg:golang/golang.org/x/net@v0.24.0",
                "licenses": [],
            },
            {
                "id": "a3",
                "name": "libc6",
                "version": "2.36-9",
                "type": "deb",
                "licenses": ["LGPL-2.1"],
            },
        ],
        "source": {"type": "directory", "target": "/workspace"},
        "descriptor": {
            "name": "syft",
            "version": "1.34.2",
            "timestamp": "2026-01-31T19:45:23Z",
        },
    }


@pytest.fixture
def syft_document_bytes(syft_document: dict[str, Any]) -> bytes:
    """The sample syft-json document as bytes."""
    return json.dumps(syft_document).encode()


# =============================================================================
# Inventory Fixtures
# =============================================================================


@pytest.fixture
def inventory_text() -> str:
    """Inventory covering several versions and platforms."""
    entries = []
    for version in ("1.33.0", "1.34.2", "1.34.1", "2.0.0-rc.1"):
        for os_name, arch in (("linux", "amd64"), ("linux", "arm64"), ("darwin", "arm64")):
            digest = Checksum.of(f"{version}-{os_name}-{arch}".encode())
            entries.append(
                "[[artifacts]]\n"
                f'version = "{version}"\n'
                f'os = "{os_name}"\n'
                f'arch = "{arch}"\n'
                f'url = "{artifact_url(version, os_name, arch)}"\n'
                f'checksum = "{digest}"\n'
            )
    return "\n".join(entries)


@pytest.fixture
def inventory(inventory_text: str) -> Inventory:
    """Parsed multi-version inventory."""
    return load_inventory(inventory_text)


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def minimal_config() -> dict[str, Any]:
    """Return a minimal valid syftpack configuration."""
    return {
        "tool": {
            "version": "1.34.2",
        }
    }


@pytest.fixture
def full_config() -> dict[str, Any]:
    """Return a complete syftpack configuration with all options."""
    return {
        "tool": {
            "version": "^1.30.0",
            "layer_name": "sbom-tool",
            "binary_name": "syft",
        },
        "inventory": {
            "path": "inventory.toml",
        },
        "sbom": {
            "formats": ["cyclonedx-json"],
            "include_canonical": False,
            "fail_fast": False,
            "scan_app": False,
        },
        "network": {
            "timeout": 15,
        },
        "ci": {
            "json_output": True,
            "timeout": 120,
        },
    }
