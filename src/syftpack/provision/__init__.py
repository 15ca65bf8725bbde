"""Verified download and extraction of tool artifacts."""

from syftpack.provision.extractor import ExtractedFile, extract_binary
from syftpack.provision.fetcher import (
    fetch_artifact,
    fetch_checksum,
    fetch_text,
    fetch_verified,
    pin_artifact,
)

__all__ = [
    "ExtractedFile",
    "extract_binary",
    "fetch_artifact",
    "fetch_checksum",
    "fetch_text",
    "fetch_verified",
    "pin_artifact",
]
