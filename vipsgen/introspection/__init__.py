"""Discovery pass: read the registry and normalise everything it reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from ..errors import ArgumentMappingWarning, DiscoveryError, VipsgenError, wrap_stage
from ..logging import get_logger, log_mapping_warnings
from ..models import EnumTypeInfo, ImageTypeInfo, Operation
from ..registry.base import RegistrySnapshot, TypeRegistry
from .catalog import build_image_catalog, normalize_enums
from .normalizer import DEFAULT_EXCLUDED_OPERATIONS, DEFAULT_OBJECT_TYPES, OperationNormalizer

_LOGGER = get_logger("introspection")


@dataclass
class DiscoveryResult:
    """Normalised metadata plus the raw snapshot it came from."""

    version: str
    operations: Dict[str, Operation]
    enum_types: Tuple[EnumTypeInfo, ...]
    image_types: Tuple[ImageTypeInfo, ...]
    raw: RegistrySnapshot
    warnings: List[ArgumentMappingWarning] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


def read_registry(registry: TypeRegistry) -> RegistrySnapshot:
    """Query ``registry`` once; any failure is a :class:`DiscoveryError`."""
    with wrap_stage("discovery"):
        try:
            return registry.snapshot()
        except VipsgenError:
            raise
        except Exception as exc:
            raise DiscoveryError(f"Registry query failed: {exc}") from exc


def normalize_snapshot(
    snapshot: RegistrySnapshot,
    *,
    excluded: Iterable[str] = DEFAULT_EXCLUDED_OPERATIONS,
) -> DiscoveryResult:
    """Normalise a raw snapshot: catalogs first, then operations against them."""
    with wrap_stage("normalization"):
        enum_types = normalize_enums(snapshot.enum_types)
        image_types = build_image_catalog(snapshot.image_types)
        normalizer = OperationNormalizer(
            enum_types,
            object_types=DEFAULT_OBJECT_TYPES.union(info.name for info in image_types),
            excluded=excluded,
        )
        result = normalizer.normalize_all(snapshot.operations)

    _LOGGER.info("Normalised %d operations", len(result.operations))
    _LOGGER.info("Discovered %d enum types", len(enum_types))
    dropped = log_mapping_warnings(result.warnings)
    if dropped:
        _LOGGER.info("Dropped %d unsupported arguments (run with --verbose or --debug for details)", dropped)
    return DiscoveryResult(
        version=snapshot.version,
        operations=result.operations,
        enum_types=enum_types,
        image_types=image_types,
        raw=snapshot,
        warnings=result.warnings,
        skipped=result.skipped,
    )


def discover(
    registry: TypeRegistry,
    *,
    excluded: Iterable[str] = DEFAULT_EXCLUDED_OPERATIONS,
) -> DiscoveryResult:
    snapshot = read_registry(registry)
    _LOGGER.info("Read %d operations from libvips %s", len(snapshot.operations), snapshot.version)
    return normalize_snapshot(snapshot, excluded=excluded)


__all__ = ["DiscoveryResult", "discover", "normalize_snapshot", "read_registry"]
