"""Aggregation of normalised metadata into the template snapshot."""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from ..errors import ArgumentMappingWarning
from ..models import EnumTypeInfo, ImageTypeInfo, Operation, TemplateData


def aggregate(
    operations: Mapping[str, Operation] | Iterable[Operation],
    enum_types: Sequence[EnumTypeInfo],
    image_types: Sequence[ImageTypeInfo],
    version: str,
    include_test: bool = False,
    *,
    warnings: Sequence[ArgumentMappingWarning] = (),
) -> TemplateData:
    """Build the immutable :class:`TemplateData` every template renders from.

    Pure: no I/O, and equal inputs give equal snapshots. Operations keep
    their discovery order; given a plain iterable, a later operation with
    the same name replaces an earlier one.
    """
    if isinstance(operations, Mapping):
        ordered = dict(operations)
    else:
        ordered = {}
        for operation in operations:
            ordered[operation.name] = operation
    return TemplateData(
        version=version,
        operations=ordered,
        enum_types=tuple(enum_types),
        image_types=tuple(image_types),
        include_test=include_test,
        warnings=tuple(warnings),
    )


__all__ = ["aggregate"]
