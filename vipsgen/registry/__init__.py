"""Registry readers and backend selection."""

from __future__ import annotations

from importlib import metadata
from pathlib import Path
from typing import Callable, Dict, Iterable

from ..errors import DiscoveryError
from .base import (
    RawArgument,
    RawEnum,
    RawEnumValue,
    RawImageType,
    RawOperation,
    RegistrySnapshot,
    TypeRegistry,
)
from .pyvips_registry import PyvipsRegistry
from .snapshot import SnapshotRegistry, dump_snapshot, load_snapshot

_ENTRY_POINT_GROUP = "vipsgen.registries"

_BUILTIN_FACTORIES: Dict[str, Callable[[], TypeRegistry]] = {
    "pyvips": PyvipsRegistry,
}


def open_registry(*, snapshot: Path | None = None, backend: str = "pyvips") -> TypeRegistry:
    """Return the registry reader for this run.

    A snapshot path wins over ``backend``. Backends other than the built-in
    ``pyvips`` reader are looked up in the ``vipsgen.registries`` entry point
    group.
    """
    if snapshot is not None:
        return SnapshotRegistry.from_path(snapshot)

    key = backend.lower()
    factory = _BUILTIN_FACTORIES.get(key)
    if factory is None:
        for entry in _iter_entry_points():
            if entry.name.lower() != key:
                continue
            try:
                factory = entry.load()
            except Exception as exc:
                raise DiscoveryError(f"Failed to load registry backend '{backend}': {exc}") from exc
            break
    if factory is None:
        raise DiscoveryError(f"Unknown registry backend: {backend}")

    instance = factory()
    if not isinstance(instance, TypeRegistry):
        raise DiscoveryError(f"Registry backend '{backend}' did not return a TypeRegistry instance")
    return instance


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


__all__ = [
    "PyvipsRegistry",
    "RawArgument",
    "RawEnum",
    "RawEnumValue",
    "RawImageType",
    "RawOperation",
    "RegistrySnapshot",
    "SnapshotRegistry",
    "TypeRegistry",
    "dump_snapshot",
    "load_snapshot",
    "open_registry",
]
