"""Operation normalisation: raw registry records to typed operations."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from ..errors import ArgumentMappingWarning
from ..logging import get_logger
from ..models import Argument, ArgumentKind, Direction, EnumTypeInfo, Operation
from ..registry.base import ARG_INPUT, ARG_MODIFY, ARG_OUTPUT, RawArgument, RawOperation

_SCALAR_KINDS: Dict[str, ArgumentKind] = {
    "gint": ArgumentKind.INTEGER,
    "guint": ArgumentKind.INTEGER,
    "gint64": ArgumentKind.INTEGER,
    "guint64": ArgumentKind.INTEGER,
    "gdouble": ArgumentKind.FLOAT,
    "gfloat": ArgumentKind.FLOAT,
    "gboolean": ArgumentKind.BOOLEAN,
    "gchararray": ArgumentKind.STRING,
}

_ARRAY_ELEMENTS: Dict[str, ArgumentKind] = {
    "VipsArrayDouble": ArgumentKind.FLOAT,
    "VipsArrayInt": ArgumentKind.INTEGER,
    "VipsArrayImage": ArgumentKind.OBJECT,
}

_BLOB_TYPES = {"VipsBlob"}

# Object types every libvips build provides, used when no catalog is supplied.
DEFAULT_OBJECT_TYPES = frozenset({"VipsImage", "VipsInterpolate"})

# Internal operations with no useful binding.
DEFAULT_EXCLUDED_OPERATIONS = frozenset({"system"})
_EXCLUDED_SUFFIXES = ("_source", "_target")


class _Unmappable(Exception):
    """Internal signal that one argument cannot be represented."""


@dataclass
class NormalizationResult:
    operations: Dict[str, Operation]
    warnings: List[ArgumentMappingWarning]
    skipped: List[str]


class OperationNormalizer:
    """Turns registry operations into :class:`Operation` records.

    Arguments whose native type falls outside the closed set of
    :class:`ArgumentKind` values are dropped one at a time and reported as
    :class:`ArgumentMappingWarning` records; the rest of the operation is
    still generated. An operation loses its binding only when one of its
    required arguments cannot be mapped.
    """

    def __init__(
        self,
        enum_types: Iterable[EnumTypeInfo] = (),
        *,
        object_types: Iterable[str] | None = None,
        excluded: Iterable[str] = DEFAULT_EXCLUDED_OPERATIONS,
    ) -> None:
        self._enums: Dict[str, EnumTypeInfo] = {info.name: info for info in enum_types}
        self._object_types = frozenset(object_types) if object_types is not None else DEFAULT_OBJECT_TYPES
        self._excluded = frozenset(excluded)
        self.logger = get_logger("normalizer")

    def is_excluded(self, name: str) -> bool:
        return name in self._excluded or name.endswith(_EXCLUDED_SUFFIXES)

    def normalize(self, raw: RawOperation) -> Tuple[Optional[Operation], List[ArgumentMappingWarning]]:
        """Normalise one operation.

        Returns the operation (``None`` when a required argument cannot be
        mapped) and the mapping warnings raised along the way.
        """
        issues: List[ArgumentMappingWarning] = []
        required: List[Argument] = []
        optional: List[Argument] = []

        for raw_arg in sorted(raw.arguments, key=lambda item: item.priority):
            if raw_arg.deprecated and not raw_arg.required:
                issues.append(self._issue(raw, raw_arg, "deprecated optional argument"))
                continue
            try:
                argument = self._normalize_argument(raw_arg)
            except _Unmappable as exc:
                issue = self._issue(raw, raw_arg, str(exc))
                issues.append(issue)
                # no minimal call can be formed without a required argument
                if raw_arg.required:
                    self.logger.warning(
                        "Skipping operation %s: required argument %s is unsupported (%s)",
                        raw.name,
                        raw_arg.name,
                        exc,
                    )
                    return None, issues
                continue
            (required if argument.required else optional).append(argument)

        arguments = tuple(required + optional)
        operation = Operation(
            name=raw.name,
            arguments=arguments,
            has_output=any(arg.required and arg.is_output for arg in arguments),
            deprecated=raw.deprecated,
            description=raw.description.strip(),
            dropped_arguments=tuple(issues),
        )
        return operation, issues

    def normalize_all(self, raws: Sequence[RawOperation]) -> NormalizationResult:
        """Normalise every operation, deduplicating by name (later discovery wins)."""
        operations: Dict[str, Operation] = {}
        warnings: List[ArgumentMappingWarning] = []
        skipped: List[str] = []
        seen: Set[str] = set()
        for raw in raws:
            if self.is_excluded(raw.name):
                self.logger.debug("Excluding internal operation %s", raw.name)
                continue
            operation, issues = self.normalize(raw)
            if raw.name in seen:
                self.logger.warning("Operation %s reported more than once; using the later definition", raw.name)
                # the later record keeps the slot of the first one
                warnings = [issue for issue in warnings if issue.operation != raw.name]
                skipped = [name for name in skipped if name != raw.name]
                if operation is None:
                    operations.pop(raw.name, None)
            seen.add(raw.name)
            warnings.extend(issues)
            if operation is None:
                skipped.append(raw.name)
                continue
            operations[raw.name] = operation
        return NormalizationResult(operations=operations, warnings=warnings, skipped=skipped)

    # ------------------------------------------------------------------
    # Internal helpers

    def _normalize_argument(self, raw: RawArgument) -> Argument:
        kind, element_kind, enum_type = self._classify(raw)
        direction = _direction(raw)
        default: Any = None
        if not raw.required and direction is not Direction.OUTPUT:
            default = self._resolve_default(raw, kind, element_kind, enum_type)
        return Argument(
            name=raw.name.replace("-", "_"),
            native_type=raw.type_name,
            kind=kind,
            direction=direction,
            required=raw.required,
            priority=raw.priority,
            default_value=default,
            element_kind=element_kind,
            enum_type=enum_type,
            description=raw.blurb.strip(),
        )

    def _classify(self, raw: RawArgument) -> Tuple[ArgumentKind, Optional[ArgumentKind], Optional[str]]:
        type_name = raw.type_name
        if type_name in _SCALAR_KINDS:
            return _SCALAR_KINDS[type_name], None, None
        if type_name in _ARRAY_ELEMENTS:
            return ArgumentKind.ARRAY, _ARRAY_ELEMENTS[type_name], None
        if type_name in _BLOB_TYPES:
            return ArgumentKind.BLOB, None, None
        if raw.fundamental in {"GEnum", "GFlags"}:
            if self._enums and type_name not in self._enums:
                raise _Unmappable(f"unknown enum type {type_name}")
            kind = ArgumentKind.FLAGS if raw.fundamental == "GFlags" else ArgumentKind.ENUM
            return kind, None, type_name
        if type_name in self._object_types:
            return ArgumentKind.OBJECT, None, None
        raise _Unmappable(f"unsupported native type {type_name}")

    def _resolve_default(
        self,
        raw: RawArgument,
        kind: ArgumentKind,
        element_kind: Optional[ArgumentKind],
        enum_type: Optional[str],
    ) -> Any:
        value = raw.default
        if kind is ArgumentKind.INTEGER:
            return _to_int(value, 0)
        if kind is ArgumentKind.FLOAT:
            return _to_float(value, 0.0)
        if kind is ArgumentKind.BOOLEAN:
            return _to_bool(value)
        if kind is ArgumentKind.STRING:
            return "" if value is None else str(value)
        if kind is ArgumentKind.ENUM:
            return self._enum_default(raw, enum_type, value)
        if kind is ArgumentKind.FLAGS:
            if isinstance(value, str):
                return self._enum_default(raw, enum_type, value)
            return _to_int(value, 0)
        if kind is ArgumentKind.ARRAY:
            if value is None:
                return ()
            if not isinstance(value, (list, tuple)):
                raise _Unmappable(f"array default {value!r} is not a sequence")
            if element_kind is ArgumentKind.OBJECT:
                return ()
            convert = _to_float if element_kind is ArgumentKind.FLOAT else _to_int
            return tuple(convert(item, 0) for item in value)
        # object and blob inputs default to "not supplied"
        return None

    def _enum_default(self, raw: RawArgument, enum_type: Optional[str], value: Any) -> int:
        info = self._enums.get(enum_type or "")
        if value is None:
            return info.default_value if info is not None else 0
        if isinstance(value, bool):
            raise _Unmappable(f"enum default {value!r} is not a member")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            if value.lstrip("-").isdigit():
                return int(value)
            if info is None:
                raise _Unmappable(f"enum default {value!r} cannot be resolved without {enum_type}")
            if raw.fundamental == "GFlags" and "|" in value:
                return _combine_flags(info, value)
            try:
                return info.value_of(value)
            except KeyError:
                raise _Unmappable(f"enum default {value!r} is not a member of {enum_type}") from None
        raise _Unmappable(f"enum default {value!r} has no portable literal")

    @staticmethod
    def _issue(raw: RawOperation, arg: RawArgument, reason: str) -> ArgumentMappingWarning:
        return ArgumentMappingWarning(
            operation=raw.name,
            argument=arg.name,
            native_type=arg.type_name,
            reason=reason,
        )


def _direction(raw: RawArgument) -> Direction:
    if raw.flags & ARG_INPUT and raw.flags & ARG_MODIFY:
        return Direction.INPUT_OUTPUT
    if raw.flags & ARG_OUTPUT:
        return Direction.OUTPUT
    if raw.flags & ARG_INPUT:
        return Direction.INPUT
    raise _Unmappable("argument is neither input nor output")


def _combine_flags(info: EnumTypeInfo, value: str) -> int:
    result = 0
    for part in value.split("|"):
        nick = part.strip()
        if not nick:
            continue
        try:
            result |= info.value_of(nick)
        except KeyError:
            raise _Unmappable(f"flag {nick!r} is not a member of {info.name}") from None
    return result


def _to_int(value: Any, fallback: int) -> int:
    if value is None:
        return fallback
    if isinstance(value, bool):
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        raise _Unmappable(f"default {value!r} is not an integer") from None


def _to_float(value: Any, fallback: float) -> float:
    if value is None:
        return fallback
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise _Unmappable(f"default {value!r} is not a number") from None
    if not math.isfinite(result):
        raise _Unmappable(f"default {value!r} has no portable literal")
    return result


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0", ""}:
            return False
        raise _Unmappable(f"default {value!r} is not a boolean")
    return bool(value)


def describe_kinds(operations: Mapping[str, Operation]) -> Dict[str, int]:
    """Count arguments per kind; used in debug output."""
    counts: Dict[str, int] = {}
    for operation in operations.values():
        for argument in operation.arguments:
            counts[argument.kind.value] = counts.get(argument.kind.value, 0) + 1
    return dict(sorted(counts.items()))


__all__ = [
    "DEFAULT_EXCLUDED_OPERATIONS",
    "DEFAULT_OBJECT_TYPES",
    "NormalizationResult",
    "OperationNormalizer",
    "describe_kinds",
]
