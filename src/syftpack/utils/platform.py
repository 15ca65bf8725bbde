"""Runtime platform identification.

Maps the interpreter's platform identifiers onto the inventory's Os/Arch
enums. The supported set is fixed, so an unknown identifier raises
UnsupportedPlatformError instead of a recoverable SyftpackError.
"""

import platform

from syftpack.errors import UnsupportedPlatformError
from syftpack.inventory.models import Arch, Os

# platform.system() values
SYSTEM_TO_OS: dict[str, Os] = {
    "linux": Os.LINUX,
    "darwin": Os.DARWIN,
    "windows": Os.WINDOWS,
}

# platform.machine() values
MACHINE_TO_ARCH: dict[str, Arch] = {
    "x86_64": Arch.AMD64,
    "amd64": Arch.AMD64,
    "aarch64": Arch.ARM64,
    "arm64": Arch.ARM64,
}


def current_os(system: str | None = None) -> Os:
    """Return the Os for the running (or given) system name."""
    name = (system if system is not None else platform.system()).lower()
    try:
        return SYSTEM_TO_OS[name]
    except KeyError:
        raise UnsupportedPlatformError(f"Unsupported operating system: {name!r}")


def current_arch(machine: str | None = None) -> Arch:
    """Return the Arch for the running (or given) machine name."""
    name = (machine if machine is not None else platform.machine()).lower()
    try:
        return MACHINE_TO_ARCH[name]
    except KeyError:
        raise UnsupportedPlatformError(f"Unsupported CPU architecture: {name!r}")


def binary_name(tool: str, os: Os) -> str:
    """Executable file name of tool on os."""
    return f"{tool}.exe" if os is Os.WINDOWS else tool
