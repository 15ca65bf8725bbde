"""syftpack exception hierarchy.

Every failure of the provisioning step is a ``SyftpackError``. Each error
names the pipeline stage that failed so the build log can say exactly where
provisioning stopped (resolve, fetch, verify, extract, layer, convert).

Nothing here is retried internally: callers either abort the build or
surface the error to the user.
"""


class SyftpackError(Exception):
    """Base exception for all syftpack errors.

    Attributes:
        stage: Pipeline stage that failed
    """

    stage = "build"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ParseInventoryError(SyftpackError):
    """Raised when inventory text is malformed.

    This is a packaging defect, not a runtime condition.
    """

    stage = "inventory"


class NoValidArtifact(SyftpackError):
    """Raised when no inventory entry matches the resolution query."""

    stage = "resolve"

    def __init__(self, os: str, arch: str, constraint: str) -> None:
        self.os = os
        self.arch = arch
        self.constraint = constraint
        super().__init__(
            f"No valid artifacts for {os}/{arch} matching version '{constraint}'"
        )


class TransportError(SyftpackError):
    """Raised when a URL cannot be fetched (connection, timeout, HTTP status)."""

    stage = "fetch"

    def __init__(
        self,
        url: str,
        reason: str,
        status_code: int | None = None,
    ) -> None:
        self.url = url
        self.reason = reason
        self.status_code = status_code
        message = f"HTTP error fetching {url}: {reason}"
        if status_code is not None:
            message += f" (status: {status_code})"
        super().__init__(message)


class ChecksumMismatch(SyftpackError):
    """Raised when fetched bytes do not match the expected digest."""

    stage = "verify"
    label = "Checksum mismatch"

    def __init__(self, url: str, expected: str, actual: str) -> None:
        self.url = url
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{self.label} for {url}: expected {expected}, got {actual}"
        )


class SbomChecksumMismatch(ChecksumMismatch):
    """Raised when a companion SBOM document fails verification."""

    label = "SBOM checksum mismatch"


class ExtractionError(SyftpackError):
    """Raised when the archive is unreadable or the binary cannot be written."""

    stage = "extract"


class LayerError(SyftpackError):
    """Raised when a layer directory cannot be created, reset or written."""

    stage = "layer"


class LayerMetadataError(LayerError):
    """Raised when a persisted layer metadata record cannot be deserialized."""


class ToolNotAvailableError(SyftpackError):
    """Raised when the provisioned tool binary is missing or not executable."""

    stage = "convert"

    def __init__(self, tool_name: str, message: str | None = None) -> None:
        self.tool_name = tool_name
        super().__init__(message or f"Tool not available: {tool_name}")


class ConversionError(SyftpackError):
    """Raised when the tool fails to produce an SBOM in the requested format."""

    stage = "convert"

    def __init__(
        self,
        format: str,
        message: str,
        exit_code: int | None = None,
        stderr: str | None = None,
    ) -> None:
        self.format = format
        self.exit_code = exit_code
        self.stderr = stderr
        full_message = f"SBOM conversion failed: {format} - {message}"
        if exit_code is not None:
            full_message += f" (exit code: {exit_code})"
        super().__init__(full_message)


class UnsupportedPlatformError(RuntimeError):
    """Raised when the running platform is outside the supported set.

    The supported os/arch set is fixed at release time, so this is an
    environment invariant violation rather than a recoverable build error.
    """
