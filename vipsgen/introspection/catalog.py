"""Enum and object-type catalog normalisation."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..errors import SchemaError
from ..models import EnumMember, EnumTypeInfo, ImageTypeInfo
from ..registry.base import RawEnum, RawImageType


def normalize_enum(raw: RawEnum) -> EnumTypeInfo:
    """Return the catalog record for ``raw``, keeping member order and values exactly.

    Distinct members may share a value (libvips keeps aliases such as
    ``VIPS_INTERPRETATION_sRGB``); a repeated member nick is malformed.
    """
    seen: set[str] = set()
    members: List[EnumMember] = []
    for value in raw.values:
        if value.nick in seen:
            raise SchemaError(f"Enum {raw.name} reports member {value.nick!r} twice")
        seen.add(value.nick)
        members.append(EnumMember(name=value.name, nick=value.nick, value=int(value.value)))
    return EnumTypeInfo(name=raw.name, members=tuple(members), is_flags=raw.fundamental == "GFlags")


def normalize_enums(raws: Iterable[RawEnum]) -> Tuple[EnumTypeInfo, ...]:
    catalog: Dict[str, EnumTypeInfo] = {}
    for raw in raws:
        catalog[raw.name] = normalize_enum(raw)
    return tuple(catalog.values())


def normalize_image_type(raw: RawImageType) -> ImageTypeInfo:
    if not raw.name:
        raise SchemaError("Object type without a name")
    if raw.parent == raw.name:
        raise SchemaError(f"Object type {raw.name} is its own parent")
    return ImageTypeInfo(
        name=raw.name,
        parent=raw.parent or None,
        nickname=raw.nickname,
        description=raw.description,
    )


def build_image_catalog(raws: Sequence[RawImageType]) -> Tuple[ImageTypeInfo, ...]:
    """Normalise the object hierarchy, checking that every parent exists and no cycle does."""
    catalog: Dict[str, ImageTypeInfo] = {}
    for raw in raws:
        info = normalize_image_type(raw)
        if info.name in catalog:
            raise SchemaError(f"Object type {info.name} reported twice")
        catalog[info.name] = info

    for info in catalog.values():
        if info.parent is not None and info.parent not in catalog:
            raise SchemaError(f"Object type {info.name} names unknown parent {info.parent}")
    for info in catalog.values():
        ancestry(info.name, catalog)
    return tuple(catalog.values())


def ancestry(name: str, catalog: Dict[str, ImageTypeInfo]) -> List[str]:
    """Return ``name`` followed by its ancestors, root last.

    The walk is bounded by the catalog size; exceeding it means a cycle.
    """
    chain = [name]
    current: Optional[str] = catalog[name].parent
    while current is not None:
        if len(chain) > len(catalog):
            raise SchemaError(f"Object type hierarchy has a cycle through {name}")
        chain.append(current)
        parent = catalog.get(current)
        current = parent.parent if parent is not None else None
    return chain


__all__ = [
    "ancestry",
    "build_image_catalog",
    "normalize_enum",
    "normalize_enums",
    "normalize_image_type",
]
