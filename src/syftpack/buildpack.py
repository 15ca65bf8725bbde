"""Syft buildpack: detect and build entry points.

Build sequence:
1. Resolve the Syft artifact for the build platform from the inventory
2. Provision the binary into the cached Syft layer
3. Convert the release's companion SBOM (if listed) and attach it to the layer
4. Scan the application directory and attach the result as the launch SBOM

Every step either succeeds or raises a SyftpackError. SBOM files are only
written once the whole sequence has succeeded.
"""

import functools
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import requests

from syftpack.config import SyftpackConfig
from syftpack.errors import ChecksumMismatch, LayerError, SbomChecksumMismatch
from syftpack.inventory import (
    Arch,
    Artifact,
    Inventory,
    Os,
    default_inventory_text,
    load_inventory,
    load_inventory_file,
    resolve,
)
from syftpack.layers import LayerRef, LayerStore, SyftLayerMetadata, handle
from syftpack.layers.syft import Fetcher
from syftpack.provision import fetch_checksum, pin_artifact
from syftpack.sbom import (
    CANONICAL_FORMAT,
    SBOMParseError,
    SbomDocumentSet,
    SbomFormat,
    SyftAdapter,
    parse_sbom,
)
from syftpack.utils.logging import get_logger
from syftpack.utils.platform import binary_name, current_arch, current_os

logger = get_logger(__name__)

LAUNCH_SCOPE = "launch"


@dataclass
class BuildContext:
    """Inputs to a build.

    Attributes:
        app_dir: Application source directory
        layers_dir: Directory holding layers and SBOM files
        config: Loaded configuration
        os: Target OS (defaults to the running platform)
        arch: Target architecture (defaults to the running platform)
    """

    app_dir: Path
    layers_dir: Path
    config: SyftpackConfig = field(default_factory=SyftpackConfig)
    os: Os | None = None
    arch: Arch | None = None

    @property
    def target_os(self) -> Os:
        return self.os if self.os is not None else current_os()

    @property
    def target_arch(self) -> Arch:
        return self.arch if self.arch is not None else current_arch()


@dataclass
class DetectResult:
    """Outcome of detection."""

    passed: bool
    message: str = ""


@dataclass
class BuildResult:
    """Outcome of a successful build.

    Attributes:
        artifact: The resolved Syft artifact
        layer: The Syft layer
        tool_path: Provisioned Syft executable
        sboms: SBOM documents keyed by scope (layer name or "launch")
    """

    artifact: Artifact
    layer: LayerRef[SyftLayerMetadata]
    tool_path: Path
    sboms: dict[str, SbomDocumentSet] = field(default_factory=dict)

    def attach_sbom(self, scope: str, format: SbomFormat, data: bytes) -> None:
        """Attach one SBOM document to a scope.

        Raises:
            ValueError: If the scope already has a document in that format
        """
        self.sboms.setdefault(scope, SbomDocumentSet()).add(format, data)

    def attach_sboms(self, scope: str, documents: SbomDocumentSet) -> None:
        """Attach every document of a set to a scope."""
        for format in documents:
            self.attach_sbom(scope, format, documents[format])

    def sbom_path(self, layers_dir: Path, scope: str, format: SbomFormat) -> Path:
        return Path(layers_dir) / f"{scope}.sbom.{format.extension}"

    def write(self, layers_dir: Path) -> list[Path]:
        """Write attached SBOMs as ``<layers_dir>/<scope>.sbom.<ext>``.

        Either every file is written or none is left behind.

        Returns:
            Paths written, in attachment order

        Raises:
            LayerError: If a file cannot be written
        """
        written: list[Path] = []
        for scope, documents in self.sboms.items():
            for format in documents:
                path = self.sbom_path(layers_dir, scope, format)
                try:
                    path.write_bytes(documents[format])
                except OSError as e:
                    for done in written:
                        done.unlink(missing_ok=True)
                    raise LayerError(f"Failed to write SBOM {path}: {e}") from e
                written.append(path)
                logger.debug("Wrote %s", path)
        return written

    def to_dict(self) -> dict[str, Any]:
        return {
            "artifact": self.artifact.to_dict(),
            "layer": str(self.layer.path),
            "tool_path": str(self.tool_path),
            "sboms": {scope: docs.to_dict() for scope, docs in self.sboms.items()},
        }


def load_configured_inventory(config: SyftpackConfig) -> Inventory:
    """Load the configured inventory, or the packaged one.

    Raises:
        ParseInventoryError: If the inventory cannot be read or parsed
    """
    if config.inventory.path:
        return load_inventory_file(Path(config.inventory.path))
    return load_inventory(default_inventory_text())


class SyftBuildpack:
    """Provisions Syft and produces SBOMs for an application.

    Usage:
        buildpack = SyftBuildpack(inventory)
        result = buildpack.build(BuildContext(app_dir, layers_dir, config))
    """

    def __init__(
        self,
        inventory: Inventory,
        fetch: Fetcher | None = None,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the buildpack.

        Args:
            inventory: Artifact inventory
            fetch: Verified fetch function (defaults to HTTP via requests)
            session: HTTP session for the default fetch function
        """
        self.inventory = inventory
        self._fetch = fetch
        self._session = session

    def detect(self, context: BuildContext | None = None) -> DetectResult:
        """Syft applies to every application."""
        return DetectResult(passed=True, message="Syft is available to all builds")

    def build(self, context: BuildContext) -> BuildResult:
        """Run the build sequence.

        Raises:
            NoValidArtifact: If no inventory entry matches
            ParseInventoryError: If the release checksums do not list the archive
            TransportError, ChecksumMismatch: If the download fails
            SbomChecksumMismatch: If the companion SBOM fails verification
            ExtractionError, LayerError: If provisioning or SBOM writing fails
            ConversionError, ToolNotAvailableError: If SBOM generation fails
        """
        config = context.config
        logger.info("Syft Buildpack")

        os, arch = context.target_os, context.target_arch
        artifact = resolve(self.inventory, os, arch, config.tool.version)
        logger.debug(
            "Resolved %s/%s '%s' -> %s",
            os.value,
            arch.value,
            config.tool.version,
            artifact.url,
        )

        if not artifact.is_pinned:
            logger.info(
                "Reading Syft v%s checksums from %s", artifact.version, artifact.checksums_url
            )
            artifact = pin_artifact(
                artifact, timeout=config.network.timeout, session=self._session
            )

        fetch = self._fetch or functools.partial(
            fetch_checksum,
            timeout=config.network.timeout,
            session=self._session,
        )
        executable = binary_name(config.tool.binary_name, os)
        layer = handle(
            LayerStore(context.layers_dir),
            artifact,
            fetch,
            layer_name=config.tool.layer_name,
            binary_name=executable,
        )

        tool_path = layer.bin_dir / executable
        result = BuildResult(artifact=artifact, layer=layer, tool_path=tool_path)
        adapter = SyftAdapter(tool_path=tool_path, timeout=config.ci.timeout)

        sbom = artifact.metadata.sbom
        if sbom is not None:
            logger.info("Verifying Syft SBOM")
            try:
                document = fetch(sbom.url, sbom.checksum)
            except ChecksumMismatch as e:
                raise SbomChecksumMismatch(e.url, e.expected, e.actual) from e
            _log_package_summary("Syft release", document)
            result.attach_sboms(config.tool.layer_name, self._generate(adapter, document, config))

        if config.sbom.scan_app:
            logger.info("Generating application SBOM")
            document = adapter.scan(context.app_dir)
            _log_package_summary("Application", document)
            result.attach_sboms(LAUNCH_SCOPE, self._generate(adapter, document, config))

        written = result.write(context.layers_dir)
        logger.structured(
            logging.INFO,
            f"Syft v{artifact.version} ready with {len(written)} SBOM files",
            version=str(artifact.version),
            layer=str(layer.path),
            sbom_files=[p.name for p in written],
        )
        return result

    def _generate(
        self,
        adapter: SyftAdapter,
        document: bytes,
        config: SyftpackConfig,
    ) -> SbomDocumentSet:
        documents = adapter.generate(
            document,
            config.sbom.target_formats,
            include_canonical=config.sbom.include_canonical,
            fail_fast=config.sbom.fail_fast,
        )
        if not documents.is_complete:
            logger.warning(
                "SBOM formats not generated: %s",
                ", ".join(f.value for f in documents.errors),
            )
        return documents


def _log_package_summary(label: str, document: bytes) -> None:
    try:
        sbom = parse_sbom(document, CANONICAL_FORMAT)
    except SBOMParseError as e:
        logger.warning("%s SBOM could not be summarized: %s", label, e)
        return
    logger.info(
        "%s SBOM lists %d packages (%s)",
        label,
        sbom.package_count,
        ", ".join(sbom.get_unique_ecosystems()) or "no ecosystems",
    )
