"""Live registry reader that introspects libvips through pyvips."""

from __future__ import annotations

import re
from typing import Any, Callable, List, Optional, Sequence, Tuple

from ..errors import DiscoveryError
from ..logging import get_logger
from .base import (
    ARG_INPUT,
    ARG_OUTPUT,
    ARG_REQUIRED,
    RawArgument,
    RawEnum,
    RawEnumValue,
    RawImageType,
    RawOperation,
    TypeRegistry,
)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_OBJECT_ROOT = "VipsObject"
# Operations are discovered separately; the object catalog stops at this subtree.
_OPERATION_ROOT = "VipsOperation"
_SCALAR_FUNDAMENTALS = {"gint", "guint", "gint64", "guint64", "gdouble", "gfloat", "gboolean", "gchararray", "GEnum", "GFlags"}


def _load_pyvips() -> Any:
    try:
        import pyvips
    except ImportError as exc:
        raise DiscoveryError(
            "pyvips is required for live introspection. Install it with `pip install vipsgen[native]` "
            "or pass --snapshot to generate from a recorded registry."
        ) from exc
    except OSError as exc:
        raise DiscoveryError(f"Failed to load libvips: {exc}") from exc
    return pyvips


class PyvipsRegistry(TypeRegistry):
    """Reads operations, enums and object types from the running libvips."""

    def __init__(self, pyvips_module: Any | None = None) -> None:
        self._pyvips = pyvips_module if pyvips_module is not None else _load_pyvips()
        self.logger = get_logger("registry.pyvips")

    def get_version(self) -> str:
        vips = self._pyvips
        try:
            return f"{vips.version(0)}.{vips.version(1)}.{vips.version(2)}"
        except vips.Error as exc:
            raise DiscoveryError(f"Failed to query libvips version: {exc}") from exc

    def discover_operations(self) -> Sequence[RawOperation]:
        vips = self._pyvips
        operations: List[RawOperation] = []
        seen: set[str] = set()

        def visit(gtype: int) -> None:
            nickname = vips.nickname_find(gtype)
            if nickname and nickname not in seen:
                seen.add(nickname)
                raw = self._read_operation(nickname)
                if raw is not None:
                    operations.append(raw)

        self._walk(self._type_from_name(_OPERATION_ROOT), visit)
        self.logger.debug("Introspected %d operations", len(operations))
        return operations

    def discover_enum_types(self) -> Sequence[RawEnum]:
        vips = self._pyvips
        enums: List[RawEnum] = []
        for fundamental, lookup in (("GEnum", vips.enum_dict), ("GFlags", vips.flags_dict)):
            found: List[Tuple[str, int]] = []

            def visit(gtype: int) -> None:
                name = vips.type_name(gtype)
                if name.startswith("Vips"):
                    found.append((name, gtype))

            self._walk(self._type_from_name(fundamental), visit)
            for name, gtype in found:
                prefix = _CAMEL_BOUNDARY.sub("_", name).upper()
                values = tuple(
                    RawEnumValue(
                        name=f"{prefix}_{nick.replace('-', '_').upper()}",
                        nick=nick,
                        value=int(value),
                    )
                    for nick, value in lookup(gtype).items()
                )
                enums.append(RawEnum(name=name, values=values, fundamental=fundamental))
        return enums

    def discover_image_types(self) -> Sequence[RawImageType]:
        vips = self._pyvips
        root = self._type_from_name(_OBJECT_ROOT)
        types: List[RawImageType] = [RawImageType(name=_OBJECT_ROOT, parent=None, nickname="object")]

        def walk(gtype: int, parent: str) -> None:
            children: List[int] = []

            def collect(child: int, a: Any, b: Any) -> Any:
                children.append(child)
                return vips.ffi.NULL

            vips.type_map(gtype, collect)
            for child in children:
                name = vips.type_name(child)
                if name == _OPERATION_ROOT:
                    continue
                types.append(
                    RawImageType(name=name, parent=parent, nickname=vips.nickname_find(child) or "")
                )
                walk(child, name)

        walk(root, _OBJECT_ROOT)
        return types

    # ------------------------------------------------------------------
    # Internal helpers

    def _type_from_name(self, name: str) -> int:
        gtype = self._pyvips.type_from_name(name)
        if not gtype:
            raise DiscoveryError(f"libvips does not register type {name}")
        return gtype

    def _walk(self, root: int, visit: Callable[[int], None]) -> None:
        """Depth-first walk over the subclasses of ``root`` in registration order."""
        vips = self._pyvips

        def callback(gtype: int, a: Any, b: Any) -> Any:
            visit(gtype)
            vips.type_map(gtype, callback)
            return vips.ffi.NULL

        vips.type_map(root, callback)

    def _read_operation(self, nickname: str) -> Optional[RawOperation]:
        vips = self._pyvips
        try:
            introspect = vips.Introspect.get(nickname)
            instance = vips.Operation.new_from_name(nickname)
        except vips.Error:
            # abstract base classes such as "foreign_load" cannot be instantiated
            self.logger.debug("Skipping abstract operation class %s", nickname)
            return None

        arguments: List[RawArgument] = []
        for priority, (name, details) in enumerate(introspect.details.items()):
            gtype = details["type"]
            flags = int(details["flags"])
            fundamental = vips.type_name(vips.gobject_lib.g_type_fundamental(gtype))
            arguments.append(
                RawArgument(
                    name=name,
                    type_name=vips.type_name(gtype),
                    flags=flags,
                    priority=priority,
                    fundamental=fundamental,
                    blurb=details.get("blurb") or "",
                    default=self._read_default(instance, name, flags, fundamental),
                )
            )
        return RawOperation(
            name=nickname,
            arguments=tuple(arguments),
            flags=int(introspect.flags),
            description=introspect.description or "",
        )

    def _read_default(self, instance: Any, name: str, flags: int, fundamental: str) -> Any:
        # A freshly built operation holds its declared defaults.
        if flags & ARG_REQUIRED or not flags & ARG_INPUT or flags & ARG_OUTPUT:
            return None
        if fundamental not in _SCALAR_FUNDAMENTALS:
            return None
        try:
            return instance.get(name)
        except self._pyvips.Error as exc:
            self.logger.debug("No readable default for %s.%s: %s", instance, name, exc)
            return None


__all__ = ["PyvipsRegistry"]
