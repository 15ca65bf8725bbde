"""Cached layer store.

A layer is a directory under the build's layers directory plus a small
metadata record. A layer survives between builds; on each build it is
either handed back as RESTORED (metadata read and accepted) or as EMPTY
(new, or reset because its metadata was unusable or rejected).

Layout:
    <layers_dir>/<name>/            layer contents
    <layers_dir>/<name>/bin/        executables
    <layers_dir>/<name>/layer.json  {"types": {...}, "metadata": {...}}

Restoring a layer trusts whatever a previous build put there. Integrity is
checked once, when the layer is populated.
"""

import json
import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Generic, Protocol, TypeVar

from syftpack.errors import LayerError, LayerMetadataError

logger = logging.getLogger(__name__)

METADATA_FILE = "layer.json"


class LayerMetadata(Protocol):
    """Serializable layer metadata record."""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LayerMetadata": ...

    def to_dict(self) -> dict[str, Any]: ...


M = TypeVar("M", bound=LayerMetadata)


class LayerState(Enum):
    """State of a layer at the start of a build."""

    EMPTY = "empty"
    RESTORED = "restored"


class RestoredLayerAction(Enum):
    """What to do with a layer whose metadata was read back successfully."""

    KEEP = "keep"
    DELETE = "delete"


@dataclass(frozen=True)
class LayerTypes:
    """Where a layer is made available.

    Attributes:
        build: Available to later build steps
        launch: Exported into the application image
        cache: Kept between builds
    """

    build: bool = True
    launch: bool = False
    cache: bool = True

    def to_dict(self) -> dict[str, bool]:
        return {"build": self.build, "launch": self.launch, "cache": self.cache}


@dataclass
class LayerRef(Generic[M]):
    """Handle to a layer for the current build.

    Attributes:
        name: Layer name
        path: Layer directory
        state: EMPTY or RESTORED
        types: Layer availability flags
        metadata: Restored metadata (None when EMPTY)
    """

    name: str
    path: Path
    state: LayerState
    types: LayerTypes = field(default_factory=LayerTypes)
    metadata: M | None = None

    @property
    def bin_dir(self) -> Path:
        return self.path / "bin"

    @property
    def record_path(self) -> Path:
        return self.path / METADATA_FILE

    def write_metadata(self, metadata: M) -> None:
        """Persist metadata for the next build.

        Raises:
            LayerError: If the record cannot be written
        """
        record = {"types": self.types.to_dict(), "metadata": metadata.to_dict()}
        try:
            self.record_path.write_text(json.dumps(record, indent=2), encoding="utf-8")
        except OSError as e:
            raise LayerError(f"Failed to write metadata for layer {self.name}: {e}")
        self.metadata = metadata
        logger.debug("Wrote metadata for layer %s: %s", self.name, record["metadata"])


class LayerStore:
    """Creates, restores and invalidates layers under a layers directory.

    Usage:
        store = LayerStore(layers_dir)
        layer = store.cached_layer("syft", SyftLayerMetadata)
        if layer.state is LayerState.EMPTY:
            ...populate...
            layer.write_metadata(SyftLayerMetadata(version="1.34.2"))
    """

    def __init__(self, layers_dir: Path) -> None:
        self.layers_dir = Path(layers_dir)

    def layer_path(self, name: str) -> Path:
        return self.layers_dir / name

    def cached_layer(
        self,
        name: str,
        metadata_type: type[M],
        types: LayerTypes | None = None,
        restored_action: Callable[[M, Path], RestoredLayerAction] | None = None,
    ) -> LayerRef[M]:
        """Open a layer, restoring or resetting it based on its metadata.

        Args:
            name: Layer name
            metadata_type: Metadata class with from_dict/to_dict
            types: Layer availability flags
            restored_action: Decides whether restored metadata is still
                acceptable; receives the metadata and the layer path.
                Defaults to always keeping the layer.

        Returns:
            LayerRef in EMPTY or RESTORED state

        Raises:
            LayerError: If the layer directory cannot be created or reset
        """
        types = types or LayerTypes()
        path = self.layer_path(name)

        if not path.exists():
            self._create(path)
            logger.debug("Created layer %s", name)
            return LayerRef(name=name, path=path, state=LayerState.EMPTY, types=types)

        try:
            metadata = self._read_metadata(path, metadata_type)
        except LayerMetadataError as e:
            logger.warning("Invalid metadata for layer %s, deleting layer: %s", name, e)
            self._reset(path)
            return LayerRef(name=name, path=path, state=LayerState.EMPTY, types=types)

        if restored_action is not None:
            action = restored_action(metadata, path)
            if action is RestoredLayerAction.DELETE:
                logger.debug("Restored layer %s rejected, deleting layer", name)
                self._reset(path)
                return LayerRef(name=name, path=path, state=LayerState.EMPTY, types=types)

        logger.debug("Restored layer %s", name)
        return LayerRef(
            name=name,
            path=path,
            state=LayerState.RESTORED,
            types=types,
            metadata=metadata,
        )

    def _read_metadata(self, path: Path, metadata_type: type[M]) -> M:
        record_path = path / METADATA_FILE
        if not record_path.exists():
            raise LayerMetadataError(f"Missing metadata record {record_path}")

        try:
            record = json.loads(record_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise LayerMetadataError(f"Unreadable metadata record {record_path}: {e}")

        if not isinstance(record, dict) or not isinstance(record.get("metadata"), dict):
            raise LayerMetadataError(f"Malformed metadata record {record_path}")

        return metadata_type.from_dict(record["metadata"])

    def _create(self, path: Path) -> None:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LayerError(f"Failed to create layer {path}: {e}")

    def _reset(self, path: Path) -> None:
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise LayerError(f"Failed to delete layer {path}: {e}")
        self._create(path)
