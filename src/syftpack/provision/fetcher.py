"""Verified HTTP fetching.

Downloads a payload into memory and checks it against a trusted digest
before handing it back. Bytes that fail verification are dropped here and
never reach the layer or the converter.
"""

import hashlib
import hmac
import logging

import requests

from syftpack.errors import ChecksumMismatch, ParseInventoryError, TransportError
from syftpack.inventory.models import Artifact, Checksum
from syftpack.inventory.parser import checksum_for_file

logger = logging.getLogger(__name__)

# Timeout for artifact downloads (seconds)
DEFAULT_TIMEOUT: float = 60.0

USER_AGENT: str = "syftpack"


def fetch_verified(
    url: str,
    algorithm: str,
    expected_digest: bytes,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    session: requests.Session | None = None,
) -> bytes:
    """Fetch url and verify the body against expected_digest.

    Args:
        url: URL to GET
        algorithm: hashlib algorithm name (e.g. "sha256")
        expected_digest: Expected raw digest bytes
        timeout: Request timeout in seconds
        session: Optional requests session (a new request is made otherwise)

    Returns:
        The verified response body

    Raises:
        TransportError: If the request fails or returns a non-2xx status
        ChecksumMismatch: If the body digest differs from expected_digest
    """
    body = _download(url, timeout=timeout, session=session)

    actual = hashlib.new(algorithm, body).digest()
    if not hmac.compare_digest(actual, expected_digest):
        logger.error("Checksum mismatch for %s", url)
        raise ChecksumMismatch(
            url,
            expected=f"{algorithm}:{expected_digest.hex()}",
            actual=f"{algorithm}:{actual.hex()}",
        )

    logger.debug("Verified %s (%d bytes, %s)", url, len(body), algorithm)
    return body


def fetch_checksum(
    url: str,
    checksum: Checksum,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    session: requests.Session | None = None,
) -> bytes:
    """fetch_verified with a parsed Checksum."""
    return fetch_verified(
        url,
        checksum.algorithm,
        checksum.digest,
        timeout=timeout,
        session=session,
    )


def fetch_artifact(
    artifact: Artifact,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    session: requests.Session | None = None,
) -> bytes:
    """Fetch and verify an inventory artifact, pinning it first if needed."""
    artifact = pin_artifact(artifact, timeout=timeout, session=session)
    return fetch_checksum(artifact.url, artifact.checksum, timeout=timeout, session=session)


def pin_artifact(
    artifact: Artifact,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    session: requests.Session | None = None,
) -> Artifact:
    """Return artifact with its checksum taken from the release checksums file.

    Artifacts that already carry a checksum are returned unchanged.

    Raises:
        TransportError: If the checksums file cannot be fetched
        ParseInventoryError: If the checksums file does not list the archive
    """
    if artifact.checksum is not None:
        return artifact
    if not artifact.checksums_url:
        raise ParseInventoryError(f"Artifact {artifact.url} has no checksum source")

    text = fetch_text(artifact.checksums_url, timeout=timeout, session=session)
    checksum = checksum_for_file(text, artifact.filename)
    logger.debug("Pinned %s to %s", artifact.filename, checksum)
    return artifact.with_checksum(checksum)


def fetch_text(
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    session: requests.Session | None = None,
) -> str:
    """Fetch url without verification and return the body as text.

    Only for documents that are themselves the trust root for later
    verification, such as a release checksums file.

    Raises:
        TransportError: If the request fails
    """
    return _download(url, timeout=timeout, session=session).decode("utf-8")


def _download(
    url: str,
    *,
    timeout: float,
    session: requests.Session | None,
) -> bytes:
    getter = session.get if session is not None else requests.get
    logger.debug("GET %s", url)
    try:
        response = getter(url, timeout=timeout, headers={"User-Agent": USER_AGENT})
        response.raise_for_status()
        return response.content
    except requests.HTTPError as e:
        status = e.response.status_code if e.response is not None else None
        raise TransportError(url, str(e), status_code=status)
    except requests.RequestException as e:
        raise TransportError(url, str(e))
