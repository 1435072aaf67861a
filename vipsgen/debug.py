"""Debug metadata dump.

The dump is a registry snapshot document with an extra ``normalized``
section, so it can be inspected by hand and replayed with ``--snapshot``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List

from .errors import ArgumentMappingWarning, OutputError
from .introspection import DiscoveryResult
from .introspection.normalizer import describe_kinds
from .logging import get_logger
from .models import Argument, Operation
from .registry.snapshot import dump_snapshot, to_jsonable

DEFAULT_DEBUG_PATH = Path("vipsgen-debug.json")

_LOGGER = get_logger("debug")


def _argument_record(argument: Argument) -> Dict[str, Any]:
    return {
        "name": argument.name,
        "native_type": argument.native_type,
        "kind": argument.kind.value,
        "direction": argument.direction.value,
        "required": argument.required,
        "priority": argument.priority,
        "default": to_jsonable(argument.default_value),
        "element_kind": argument.element_kind.value if argument.element_kind else None,
        "enum_type": argument.enum_type,
    }


def _operation_record(operation: Operation) -> Dict[str, Any]:
    return {
        "name": operation.name,
        "description": operation.description,
        "deprecated": operation.deprecated,
        "has_output": operation.has_output,
        "arguments": [_argument_record(argument) for argument in operation.arguments],
    }


def _warning_records(warnings: Iterable[ArgumentMappingWarning]) -> List[Dict[str, str]]:
    return [
        {
            "operation": warning.operation,
            "argument": warning.argument,
            "native_type": warning.native_type,
            "reason": warning.reason,
        }
        for warning in warnings
    ]


def build_debug_document(result: DiscoveryResult) -> Dict[str, Any]:
    document = dump_snapshot(result.raw)
    document["normalized"] = {
        "operations": [_operation_record(operation) for operation in result.operations.values()],
        "kinds": describe_kinds(result.operations),
        "warnings": _warning_records(result.warnings),
        "skipped": list(result.skipped),
    }
    return document


def write_debug_dump(result: DiscoveryResult, path: Path = DEFAULT_DEBUG_PATH) -> Path:
    """Write the debug document for ``result`` as sorted-key JSON."""
    path = Path(path)
    try:
        text = json.dumps(build_debug_document(result), indent=2, sort_keys=True, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise OutputError(f"Failed to encode debug dump {path}: {exc}") from exc
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text + "\n", encoding="utf-8")
    except OSError as exc:
        raise OutputError(f"Failed to write debug dump {path}: {exc}") from exc
    _LOGGER.info("Wrote debug metadata to %s", path)
    return path


__all__ = ["DEFAULT_DEBUG_PATH", "build_debug_document", "write_debug_dump"]
