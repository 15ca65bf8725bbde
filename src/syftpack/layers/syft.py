"""The Syft layer: provisions the resolved Syft binary into a cached layer."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from syftpack.errors import LayerMetadataError
from syftpack.inventory.models import Artifact, Checksum
from syftpack.layers.store import (
    LayerRef,
    LayerState,
    LayerStore,
    LayerTypes,
    RestoredLayerAction,
)
from syftpack.provision.extractor import extract_binary

logger = logging.getLogger(__name__)

# Downloads a URL and verifies it, returning trusted bytes
Fetcher = Callable[[str, Checksum], bytes]

SYFT_LAYER_TYPES = LayerTypes(build=True, launch=False, cache=True)


@dataclass(frozen=True)
class SyftLayerMetadata:
    """Metadata persisted with the Syft layer."""

    version: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyftLayerMetadata":
        version = data.get("version")
        if not isinstance(version, str) or not version:
            raise LayerMetadataError(f"Layer metadata has no valid version: {data!r}")
        return cls(version=version)

    def to_dict(self) -> dict[str, Any]:
        return {"version": self.version}


def handle(
    store: LayerStore,
    artifact: Artifact,
    fetch: Fetcher,
    layer_name: str = "syft",
    binary_name: str = "syft",
) -> LayerRef[SyftLayerMetadata]:
    """Make sure the Syft binary for artifact is present in its layer.

    An EMPTY layer is populated: the archive is fetched and verified, the
    binary extracted to ``bin/``, and the version recorded. A RESTORED layer
    is left untouched. A restored layer holding a different version, or one
    whose binary has gone missing, is reset and populated again.

    Args:
        store: Layer store for the build
        artifact: Resolved Syft artifact
        fetch: Verified fetch function
        layer_name: Layer name
        binary_name: Executable name inside the archive

    Returns:
        LayerRef whose ``bin/<binary_name>`` is an executable Syft

    Raises:
        TransportError, ChecksumMismatch: If the download fails
        ExtractionError: If the binary cannot be extracted
        LayerError: If the layer cannot be managed
        ValueError: If artifact has not been pinned to a checksum
    """
    if artifact.checksum is None:
        raise ValueError(f"Artifact {artifact.url} is not pinned to a checksum")
    expected_version = str(artifact.version)

    def restored_action(metadata: SyftLayerMetadata, path: Path) -> RestoredLayerAction:
        if metadata.version != expected_version:
            logger.info(
                "Cached Syft v%s does not match v%s", metadata.version, expected_version
            )
            return RestoredLayerAction.DELETE
        if not os.access(path / "bin" / binary_name, os.X_OK):
            logger.warning("Cached Syft layer has no executable binary")
            return RestoredLayerAction.DELETE
        return RestoredLayerAction.KEEP

    layer = store.cached_layer(
        layer_name,
        SyftLayerMetadata,
        types=SYFT_LAYER_TYPES,
        restored_action=restored_action,
    )

    if layer.state is LayerState.RESTORED:
        logger.info("Using cached Syft v%s", expected_version)
        return layer

    logger.info("Downloading Syft v%s", expected_version)
    tar_gz = fetch(artifact.url, artifact.checksum)

    logger.info("Extracting Syft to %s", layer.path)
    extracted = extract_binary(tar_gz, binary_name, layer.bin_dir / binary_name)
    logger.debug("Extracted %s (%d bytes)", extracted.member, extracted.size)

    layer.write_metadata(SyftLayerMetadata(version=expected_version))
    return layer
