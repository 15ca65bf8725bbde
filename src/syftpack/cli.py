"""syftpack CLI interface.

Commands:
- detect: Report whether the buildpack applies (always)
- build: Provision Syft and generate SBOMs
- resolve: Show the artifact the inventory resolves to
- check: Validate the build environment
- inventory generate: Render inventory entries for a Syft release
- init: Initialize syftpack configuration

Global options:
- --config: Path to configuration file
- --verbose: Enable verbose output with timestamps
- --quiet: Suppress info messages
- --ci: JSON log lines (also enabled by ci.json_output in the config)
- --version: Show version and exit
"""

import json
from pathlib import Path
from typing import Annotated, NoReturn

import typer

from syftpack import __version__
from syftpack.config import SyftpackConfig, create_default_config, load_config
from syftpack.errors import SyftpackError
from syftpack.utils.logging import configure_from_cli, get_logger

app = typer.Typer(
    name="syftpack",
    help="Provision Anchore Syft into build layers and generate SBOMs",
    add_completion=False,
    no_args_is_help=True,
)

inventory_app = typer.Typer(
    help="Inspect and generate artifact inventories",
    no_args_is_help=True,
)
app.add_typer(inventory_app, name="inventory")

# Global state
_config: SyftpackConfig | None = None
_logger = get_logger()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"syftpack {__version__}")
        raise typer.Exit()


def _get_config() -> SyftpackConfig:
    return _config if _config is not None else SyftpackConfig()


def _fail(error: SyftpackError) -> NoReturn:
    """Log a pipeline error with its stage and exit 1."""
    _logger.error(f"[{error.stage}] {error.message}")
    raise typer.Exit(1)


@app.callback()
def main(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output with timestamps",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress info messages (warnings and errors only)",
        ),
    ] = False,
    ci: Annotated[
        bool,
        typer.Option(
            "--ci",
            help="Enable CI mode with JSON output",
        ),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """syftpack - Syft provisioning and SBOM generation for builds."""
    global _config

    configure_from_cli(verbose=verbose, quiet=quiet, ci=ci)

    try:
        _config = load_config(config_path=config)
        if _config.config_path:
            _logger.debug(f"Loaded config from: {_config.config_path}")
    except FileNotFoundError as e:
        _logger.error(str(e))
        raise typer.Exit(1)
    except (ValueError, OSError) as e:
        _logger.error(f"Failed to load config: {e}")
        raise typer.Exit(1)

    # ci.json_output in the config file switches on JSON logs like --ci
    if _config.ci.json_output and not ci:
        configure_from_cli(verbose=verbose, quiet=quiet, ci=True)


# =============================================================================
# detect / build
# =============================================================================


@app.command()
def detect() -> None:
    """Report whether the buildpack applies. Syft applies to every app."""
    from syftpack.buildpack import SyftBuildpack
    from syftpack.inventory import Inventory

    result = SyftBuildpack(Inventory()).detect()
    _logger.debug(result.message)
    raise typer.Exit(0 if result.passed else 1)


@app.command()
def build(
    app_dir: Annotated[
        Path,
        typer.Option(
            "--app",
            "-a",
            help="Application directory",
            exists=True,
            file_okay=False,
        ),
    ] = Path("."),
    layers_dir: Annotated[
        Path,
        typer.Option(
            "--layers",
            "-l",
            help="Layers directory (created if missing)",
            file_okay=False,
        ),
    ] = Path("layers"),
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Print the build result as JSON",
        ),
    ] = False,
) -> None:
    """Provision Syft into its layer and generate SBOMs.

    Exit codes:
        0: Build succeeded
        1: Build failed
    """
    from syftpack.buildpack import BuildContext, SyftBuildpack, load_configured_inventory

    config = _get_config()

    try:
        layers_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        _logger.error(f"Cannot create layers directory {layers_dir}: {e}")
        raise typer.Exit(1)

    try:
        inventory = load_configured_inventory(config)
        result = SyftBuildpack(inventory).build(
            BuildContext(
                app_dir=app_dir.resolve(),
                layers_dir=layers_dir.resolve(),
                config=config,
            )
        )
    except SyftpackError as e:
        _fail(e)

    if json_output:
        typer.echo(json.dumps(result.to_dict(), indent=2))


# =============================================================================
# resolve
# =============================================================================


@app.command()
def resolve(
    os_name: Annotated[
        str | None,
        typer.Option(
            "--os",
            help="Target OS: linux, darwin, windows (default: this machine)",
        ),
    ] = None,
    arch_name: Annotated[
        str | None,
        typer.Option(
            "--arch",
            help="Target architecture: amd64, arm64 (default: this machine)",
        ),
    ] = None,
    version: Annotated[
        str | None,
        typer.Option(
            "--version",
            help="Version constraint (default: from config)",
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output the artifact as JSON",
        ),
    ] = False,
) -> None:
    """Show which inventory artifact a build would use."""
    from syftpack.buildpack import load_configured_inventory
    from syftpack.inventory import Arch, Os, resolve as resolve_artifact
    from syftpack.utils.platform import current_arch, current_os

    config = _get_config()
    constraint = version if version is not None else config.tool.version

    try:
        target_os = Os(os_name) if os_name else current_os()
        target_arch = Arch(arch_name) if arch_name else current_arch()
    except ValueError as e:
        _logger.error(f"Invalid platform: {e}")
        raise typer.Exit(1)

    try:
        inventory = load_configured_inventory(config)
        artifact = resolve_artifact(inventory, target_os, target_arch, constraint)
    except SyftpackError as e:
        _fail(e)
    except ValueError as e:
        _logger.error(f"Invalid version constraint: {e}")
        raise typer.Exit(1)

    if json_output:
        typer.echo(json.dumps(artifact.to_dict(), indent=2))
    else:
        typer.echo(f"syft {artifact.version} ({artifact.os.value}/{artifact.arch.value})")
        typer.echo(f"  url:      {artifact.url}")
        if artifact.checksum is not None:
            typer.echo(f"  checksum: {artifact.checksum}")
        else:
            typer.echo(f"  checksums: {artifact.checksums_url}")
        if artifact.metadata.sbom:
            typer.echo(f"  sbom:     {artifact.metadata.sbom.url}")


# =============================================================================
# check command
# =============================================================================


@app.command()
def check(
    layers_dir: Annotated[
        Path | None,
        typer.Option(
            "--layers",
            "-l",
            help="Layers directory to inspect for a cached Syft",
            file_okay=False,
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results as JSON",
        ),
    ] = False,
) -> None:
    """Validate the build environment.

    Exit codes:
        0: All checks passed
        1: A required check failed
        2: Only optional checks failed (warnings)
    """
    from syftpack.buildpack import load_configured_inventory
    from syftpack.utils.preflight import PreflightChecker

    config = _get_config()
    try:
        inventory = load_configured_inventory(config)
    except SyftpackError as e:
        _fail(e)

    result = PreflightChecker(config).check_all(inventory, layers_dir)

    if json_output:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        typer.echo("\nPreflight Check Results\n")

        for check_result in result.checks:
            status = "ok" if check_result.available else "FAIL"
            version_str = f" ({check_result.version})" if check_result.version else ""
            required_str = " [required]" if check_result.required else " [optional]"

            typer.echo(f"  [{status}] {check_result.name}{version_str}{required_str}")
            if check_result.message:
                typer.echo(f"     {check_result.message}")
            if check_result.path:
                typer.echo(f"     {check_result.path}")

        typer.echo()

    if result.errors:
        if not json_output:
            typer.echo("Preflight check FAILED")
            for error in result.errors:
                typer.echo(f"   - {error}")
        raise typer.Exit(1)
    elif result.warnings:
        if not json_output:
            typer.echo("Preflight check passed with WARNINGS")
            for warning in result.warnings:
                typer.echo(f"   - {warning}")
        raise typer.Exit(2)
    else:
        if not json_output:
            typer.echo("All preflight checks passed")
        raise typer.Exit(0)


# =============================================================================
# inventory commands
# =============================================================================


@inventory_app.command("generate")
def inventory_generate(
    version: Annotated[
        str,
        typer.Argument(help="Syft release version, e.g. 1.34.2"),
    ],
    checksums_file: Annotated[
        Path | None,
        typer.Option(
            "--checksums-file",
            help="Read a local checksums.txt instead of downloading it",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    base_url: Annotated[
        str | None,
        typer.Option(
            "--base-url",
            help="Release download base URL",
        ),
    ] = None,
) -> None:
    """Print inventory TOML for every supported platform of a release."""
    from syftpack.inventory import dump_inventory, inventory_from_checksums
    from syftpack.inventory.parser import RELEASE_BASE_URL
    from syftpack.provision import fetch_text

    config = _get_config()
    version = version.lstrip("v")
    base_url = (base_url or RELEASE_BASE_URL).rstrip("/")

    try:
        if checksums_file is not None:
            checksums_text = checksums_file.read_text(encoding="utf-8")
        else:
            url = f"{base_url}/v{version}/syft_{version}_checksums.txt"
            _logger.info(f"Downloading {url}")
            checksums_text = fetch_text(url, timeout=config.network.timeout)
        inventory = inventory_from_checksums(version, checksums_text, base_url=base_url)
    except SyftpackError as e:
        _fail(e)

    if not len(inventory):
        _logger.error(f"No supported artifacts listed for Syft {version}")
        raise typer.Exit(1)

    typer.echo(dump_inventory(inventory), nl=False)


@inventory_app.command("list")
def inventory_list() -> None:
    """List the artifacts in the configured inventory."""
    from syftpack.buildpack import load_configured_inventory

    try:
        inventory = load_configured_inventory(_get_config())
    except SyftpackError as e:
        _fail(e)

    if not len(inventory):
        typer.echo("Inventory is empty")
        return

    for artifact in inventory:
        sbom = " +sbom" if artifact.metadata.sbom else ""
        typer.echo(f"{artifact.version}\t{artifact.os.value}/{artifact.arch.value}{sbom}")


# =============================================================================
# init command
# =============================================================================


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            help="Overwrite existing config",
        ),
    ] = False,
) -> None:
    """Initialize syftpack configuration.

    Creates .syftpack/config.yaml with the default settings.
    """
    config_dir = Path(".syftpack")
    config_dir.mkdir(exist_ok=True)
    config_file = config_dir / "config.yaml"

    if config_file.exists() and not force:
        _logger.error(f"Config already exists: {config_file}")
        _logger.info("Use --force to overwrite")
        raise typer.Exit(1)

    config_file.write_text(create_default_config())
    _logger.info(f"Created config: {config_file}")
    raise typer.Exit(0)


if __name__ == "__main__":
    app()
