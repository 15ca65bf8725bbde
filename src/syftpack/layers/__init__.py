"""Cached build layers."""

from syftpack.layers.store import (
    LayerRef,
    LayerState,
    LayerStore,
    LayerTypes,
    RestoredLayerAction,
)
from syftpack.layers.syft import SyftLayerMetadata, handle

__all__ = [
    "LayerRef",
    "LayerState",
    "LayerStore",
    "LayerTypes",
    "RestoredLayerAction",
    "SyftLayerMetadata",
    "handle",
]
