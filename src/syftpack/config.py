"""syftpack configuration system.

Configuration is YAML-based with a handful of CLI overrides (--ci, --verbose).
Supports environment variable substitution (${VAR}) in config files.

Configuration file discovery (in priority order):
1. CLI --config argument
2. ./.syftpack/config.yaml
3. ./syftpack.yaml
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from syftpack.inventory.version import VersionConstraint
from syftpack.sbom.documents import SbomFormat

# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class ToolConfig:
    """Which Syft to provision and where.

    Attributes:
        version: Version constraint resolved against the inventory
        layer_name: Name of the cached layer holding the binary
        binary_name: Executable name inside the release archive
    """

    version: str = "*"
    layer_name: str = "syft"
    binary_name: str = "syft"

    def __post_init__(self) -> None:
        """Validate the version constraint."""
        try:
            VersionConstraint.parse(self.version)
        except ValueError as e:
            raise ValueError(f"Invalid tool version constraint: {e}")

        if not self.layer_name or "/" in self.layer_name:
            raise ValueError(f"Invalid layer name: {self.layer_name!r}")


@dataclass
class InventoryConfig:
    """Inventory source.

    Attributes:
        path: Inventory TOML file (None uses the packaged inventory)
    """

    path: str | None = None


@dataclass
class SbomConfig:
    """SBOM generation settings.

    Attributes:
        formats: Target encodings (Syft format tags)
        include_canonical: Also emit the syft-json document
        fail_fast: Abort on the first conversion failure
        scan_app: Scan the application directory during build
    """

    formats: list[str] = field(default_factory=lambda: ["cyclonedx-json", "spdx-json"])
    include_canonical: bool = True
    fail_fast: bool = True
    scan_app: bool = True

    def __post_init__(self) -> None:
        """Validate SBOM formats."""
        for tag in self.formats:
            SbomFormat.from_tag(tag)

    @property
    def target_formats(self) -> list[SbomFormat]:
        return [SbomFormat.from_tag(tag) for tag in self.formats]


@dataclass
class NetworkConfig:
    """HTTP settings.

    Attributes:
        timeout: Request timeout in seconds
    """

    timeout: float = 60.0

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError(f"Network timeout must be positive (got {self.timeout})")


@dataclass
class CIConfig:
    """CI/CD-specific configuration.

    Attributes:
        json_output: Emit JSON log lines (same as --ci)
        timeout: Timeout for Syft subprocesses in seconds
    """

    json_output: bool = False
    timeout: int = 300


@dataclass
class SyftpackConfig:
    """Top-level syftpack configuration.

    Attributes:
        tool: Syft version and layer settings
        inventory: Inventory source
        sbom: SBOM generation settings
        network: HTTP settings
        ci: CI/CD settings
    """

    tool: ToolConfig = field(default_factory=ToolConfig)
    inventory: InventoryConfig = field(default_factory=InventoryConfig)
    sbom: SbomConfig = field(default_factory=SbomConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    ci: CIConfig = field(default_factory=CIConfig)

    # Runtime overrides (set by CLI)
    _config_path: Path | None = field(default=None, repr=False)

    @property
    def config_path(self) -> Path | None:
        """Get the path to the config file that was loaded."""
        return self._config_path


# =============================================================================
# Environment Variable Substitution
# =============================================================================


def substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in config values.

    Supports ${VAR} syntax for environment variable substitution.
    Example: ${SYFT_VERSION} -> value of SYFT_VERSION

    Args:
        value: Config value (string, dict, list, or other)

    Returns:
        Value with environment variables substituted

    Raises:
        ValueError: If a referenced variable is not set
    """
    if isinstance(value, str):
        pattern = re.compile(r"\$\{([^}]+)\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(f"Environment variable not set: {var_name}")
            return env_value

        return pattern.sub(replace_var, value)

    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]

    return value


# =============================================================================
# Config File Discovery
# =============================================================================


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find configuration file in standard locations.

    Search order:
    1. ./.syftpack/config.yaml
    2. ./syftpack.yaml

    Args:
        start_path: Starting directory for search (defaults to cwd)

    Returns:
        Path to config file if found, None otherwise
    """
    if start_path is None:
        start_path = Path.cwd()

    start_path = start_path.resolve()

    candidates = [
        start_path / ".syftpack" / "config.yaml",
        start_path / "syftpack.yaml",
    ]

    for candidate in candidates:
        if candidate.exists():
            return candidate

    return None


# =============================================================================
# Config Loading
# =============================================================================


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a config section; a section with only comments loads as empty."""
    section = data[name]
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ValueError(f"Config section '{name}' must be a mapping")
    return section


def load_config_from_dict(data: dict[str, Any]) -> SyftpackConfig:
    """Load configuration from a dictionary.

    Args:
        data: Configuration dictionary

    Returns:
        SyftpackConfig instance

    Raises:
        ValueError: If a value is invalid
    """
    if not isinstance(data, dict):
        raise ValueError("Config must be a mapping of sections")
    data = substitute_env_vars(data)

    config = SyftpackConfig()

    if "tool" in data:
        tool_data = _section(data, "tool")
        config.tool = ToolConfig(
            version=str(tool_data.get("version", config.tool.version)),
            layer_name=tool_data.get("layer_name", config.tool.layer_name),
            binary_name=tool_data.get("binary_name", config.tool.binary_name),
        )

    if "inventory" in data:
        inventory_data = _section(data, "inventory")
        config.inventory = InventoryConfig(path=inventory_data.get("path"))

    if "sbom" in data:
        sbom_data = _section(data, "sbom")
        config.sbom = SbomConfig(
            formats=list(sbom_data.get("formats", config.sbom.formats)),
            include_canonical=sbom_data.get("include_canonical", True),
            fail_fast=sbom_data.get("fail_fast", True),
            scan_app=sbom_data.get("scan_app", True),
        )

    if "network" in data:
        network_data = _section(data, "network")
        config.network = NetworkConfig(
            timeout=float(network_data.get("timeout", config.network.timeout)),
        )

    if "ci" in data:
        ci_data = _section(data, "ci")
        config.ci = CIConfig(
            json_output=ci_data.get("json_output", False),
            timeout=ci_data.get("timeout", 300),
        )

    return config


def load_config(
    config_path: Path | None = None,
    auto_discover: bool = True,
) -> SyftpackConfig:
    """Load configuration from file.

    Args:
        config_path: Explicit path to config file
        auto_discover: Whether to search for config file if not specified

    Returns:
        SyftpackConfig instance

    Raises:
        FileNotFoundError: If config_path specified but doesn't exist
        ValueError: If the file is not valid YAML or a value is invalid
    """
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        found_path = config_path
    elif auto_discover:
        found_path = find_config_file()
    else:
        found_path = None

    if found_path is not None:
        with open(found_path) as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {found_path}: {e}")
        config = load_config_from_dict(data)
        config._config_path = found_path
    else:
        config = SyftpackConfig()

    return config


def create_default_config() -> str:
    """Create default configuration YAML content.

    Returns:
        YAML string with default configuration and comments
    """
    return '''# syftpack Configuration

# Syft provisioning
tool:
  version: "*"          # Version constraint: "*", "1.34.2", "^1.30.0", ">=1.20.0, <2.0.0"
  layer_name: "syft"    # Cached layer directory under the layers dir
  binary_name: "syft"

# Inventory of downloadable Syft releases
inventory:
  # path: "inventory.toml"  # Defaults to the packaged inventory

# SBOM generation
sbom:
  formats:              # syft-json, cyclonedx-json, spdx-json
    - "cyclonedx-json"
    - "spdx-json"
  include_canonical: true  # Also emit the syft-json document
  fail_fast: true          # false: keep formats that converted, report the rest
  scan_app: true           # Scan the application directory

# HTTP settings
network:
  timeout: 60

# CI/CD settings
ci:
  json_output: false   # JSON log lines, same as --ci
  timeout: 300          # Syft subprocess timeout in seconds
'''
