"""Preflight validation.

Checks the environment before a build: the platform is one the inventory
can serve, the inventory parses and resolves for it, and (optionally) what
is already cached in the layers directory.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from syftpack.config import SyftpackConfig
from syftpack.errors import SyftpackError, UnsupportedPlatformError
from syftpack.inventory import Inventory, resolve
from syftpack.layers.store import METADATA_FILE
from syftpack.sbom import SyftAdapter
from syftpack.utils.platform import binary_name, current_arch, current_os


@dataclass
class ToolCheck:
    """Result of a single check.

    Attributes:
        name: Check name
        available: Whether the check passed
        version: Version found, if any
        required: Whether a failure fails the preflight
        path: Related path, if any
        message: Status message (human-readable context)
    """

    name: str
    available: bool
    version: str | None = None
    required: bool = True
    path: str | None = None
    message: str = ""


@dataclass
class PreflightResult:
    """Result of preflight validation.

    Attributes:
        success: Whether all required checks passed
        checks: Individual check results
        errors: Messages for failed required checks
        warnings: Messages for failed optional checks
    """

    success: bool = True
    checks: list[ToolCheck] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_check(self, check: ToolCheck) -> None:
        """Add a check result."""
        self.checks.append(check)

        if not check.available:
            detail = f": {check.message}" if check.message else ""
            if check.required:
                self.success = False
                self.errors.append(f"{check.name} check failed{detail}")
            else:
                self.warnings.append(f"{check.name} not ready{detail}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "success": self.success,
            "checks": [
                {
                    "name": c.name,
                    "available": c.available,
                    "version": c.version,
                    "required": c.required,
                    "path": c.path,
                    "message": c.message,
                }
                for c in self.checks
            ],
            "errors": self.errors,
            "warnings": self.warnings,
        }


class PreflightChecker:
    """Validates the build environment.

    Usage:
        checker = PreflightChecker(config)
        result = checker.check_all(inventory, layers_dir)
        if not result.success:
            sys.exit(1)
    """

    def __init__(self, config: SyftpackConfig | None = None, timeout: int = 10) -> None:
        """Initialize preflight checker.

        Args:
            config: Loaded configuration
            timeout: Timeout in seconds for version checks
        """
        self.config = config or SyftpackConfig()
        self.timeout = timeout

    def check_platform(self) -> ToolCheck:
        """Check the running platform is supported."""
        try:
            os_, arch = current_os(), current_arch()
        except UnsupportedPlatformError as e:
            return ToolCheck(name="platform", available=False, message=str(e))
        return ToolCheck(
            name="platform",
            available=True,
            message=f"{os_.value}/{arch.value}",
        )

    def check_inventory(self, inventory: Inventory) -> ToolCheck:
        """Check the inventory resolves for the running platform.

        Args:
            inventory: Loaded inventory

        Returns:
            ToolCheck with the resolved version and URL
        """
        constraint = self.config.tool.version
        try:
            artifact = resolve(inventory, current_os(), current_arch(), constraint)
        except (SyftpackError, UnsupportedPlatformError) as e:
            return ToolCheck(
                name="inventory",
                available=False,
                message=f"{e} ({len(inventory)} artifacts in inventory)",
            )
        return ToolCheck(
            name="inventory",
            available=True,
            version=str(artifact.version),
            path=artifact.url,
            message=f"Resolves '{constraint}'",
        )

    def check_layer(self, layers_dir: Path) -> ToolCheck:
        """Check for a provisioned Syft in the layers directory.

        A missing layer is not an error: the build provisions it.

        Args:
            layers_dir: Build layers directory

        Returns:
            ToolCheck result (never required)
        """
        tool = self.config.tool
        try:
            executable = binary_name(tool.binary_name, current_os())
        except UnsupportedPlatformError as e:
            return ToolCheck(name="layer", available=False, required=False, message=str(e))

        layer_dir = Path(layers_dir) / tool.layer_name
        tool_path = layer_dir / "bin" / executable

        if not (layer_dir / METADATA_FILE).exists() or not os.access(tool_path, os.X_OK):
            return ToolCheck(
                name="layer",
                available=False,
                required=False,
                path=str(tool_path),
                message="Syft not cached yet; the build will download it",
            )

        adapter = SyftAdapter(tool_path=tool_path, timeout=self.timeout)
        return ToolCheck(
            name="layer",
            available=True,
            version=adapter.get_version(),
            required=False,
            path=str(tool_path),
            message="Cached Syft",
        )

    def check_all(
        self,
        inventory: Inventory,
        layers_dir: Path | None = None,
    ) -> PreflightResult:
        """Run all preflight checks.

        Args:
            inventory: Loaded inventory
            layers_dir: Layers directory to inspect (skipped if None)

        Returns:
            PreflightResult with all check results
        """
        result = PreflightResult()

        platform_check = self.check_platform()
        result.add_check(platform_check)

        if platform_check.available:
            result.add_check(self.check_inventory(inventory))
            if layers_dir is not None:
                result.add_check(self.check_layer(layers_dir))

        return result
