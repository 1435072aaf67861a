"""Registry reader backed by a recorded metadata snapshot.

A snapshot is the JSON (or YAML) document written by ``vipsgen --debug``.
It lets a machine without libvips regenerate bindings byte-for-byte from
the registry state another machine recorded.
"""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import DiscoveryError, SchemaError
from ..logging import get_logger
from .base import (
    RawArgument,
    RawEnum,
    RawEnumValue,
    RawImageType,
    RawOperation,
    RegistrySnapshot,
    TypeRegistry,
)

_SNAPSHOT_FORMAT = 1


class ArgumentPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    type_name: str = Field(alias="type")
    flags: int
    priority: int = 0
    fundamental: str = ""
    blurb: str = ""
    default: Any = None


class OperationPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    description: str = ""
    flags: int = 0
    arguments: List[ArgumentPayload] = Field(default_factory=list)


class EnumValuePayload(BaseModel):
    name: str
    nick: str
    value: int


class EnumPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    fundamental: str = "GEnum"
    values: List[EnumValuePayload] = Field(default_factory=list)


class ImageTypePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    parent: Optional[str] = None
    nickname: str = ""
    description: str = ""


class SnapshotPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    format: int = _SNAPSHOT_FORMAT
    version: str
    operations: List[OperationPayload] = Field(default_factory=list)
    enum_types: List[EnumPayload] = Field(default_factory=list)
    image_types: List[ImageTypePayload] = Field(default_factory=list)


class SnapshotRegistry(TypeRegistry):
    """Serves registry metadata from a snapshot file or an in-memory mapping."""

    def __init__(self, snapshot: RegistrySnapshot) -> None:
        self._snapshot = snapshot

    @classmethod
    def from_path(cls, path: Path) -> "SnapshotRegistry":
        if not path.is_file():
            raise DiscoveryError(f"Registry snapshot not found: {path}")
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise DiscoveryError(f"Failed to read registry snapshot {path}: {exc}") from exc
        try:
            if path.suffix.lower() in {".yml", ".yaml"}:
                data = yaml.safe_load(text)
            else:
                data = json.loads(text)
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise SchemaError(f"Failed to parse registry snapshot {path.name}: {exc}") from exc
        get_logger("registry").debug("Loaded registry snapshot from %s", path)
        return cls(load_snapshot(data))

    def get_version(self) -> str:
        return self._snapshot.version

    def discover_operations(self) -> Sequence[RawOperation]:
        return list(self._snapshot.operations)

    def discover_enum_types(self) -> Sequence[RawEnum]:
        return list(self._snapshot.enum_types)

    def discover_image_types(self) -> Sequence[RawImageType]:
        return list(self._snapshot.image_types)


def load_snapshot(data: object) -> RegistrySnapshot:
    """Validate a decoded snapshot document and convert it to raw records."""
    if not isinstance(data, dict):
        raise SchemaError("Registry snapshot must contain a mapping at the root")
    try:
        payload = SnapshotPayload.model_validate(data)
    except ValidationError as exc:
        raise SchemaError(f"Invalid registry snapshot: {exc}") from exc
    if payload.format != _SNAPSHOT_FORMAT:
        raise SchemaError(f"Unsupported registry snapshot format {payload.format}")

    return RegistrySnapshot(
        version=payload.version,
        operations=[
            RawOperation(
                name=op.name,
                description=op.description,
                flags=op.flags,
                arguments=tuple(
                    RawArgument(
                        name=arg.name,
                        type_name=arg.type_name,
                        flags=arg.flags,
                        priority=arg.priority,
                        fundamental=arg.fundamental,
                        blurb=arg.blurb,
                        default=arg.default,
                    )
                    for arg in op.arguments
                ),
            )
            for op in payload.operations
        ],
        enum_types=[
            RawEnum(
                name=enum.name,
                fundamental=enum.fundamental,
                values=tuple(
                    RawEnumValue(name=value.name, nick=value.nick, value=value.value)
                    for value in enum.values
                ),
            )
            for enum in payload.enum_types
        ],
        image_types=[
            RawImageType(
                name=image_type.name,
                parent=image_type.parent,
                nickname=image_type.nickname,
                description=image_type.description,
            )
            for image_type in payload.image_types
        ],
    )


def dump_snapshot(snapshot: RegistrySnapshot) -> Dict[str, Any]:
    """Return the snapshot document for ``snapshot``; inverse of :func:`load_snapshot`."""
    return {
        "format": _SNAPSHOT_FORMAT,
        "version": snapshot.version,
        "operations": [
            {
                "name": op.name,
                "description": op.description,
                "flags": op.flags,
                "arguments": [
                    {
                        "name": arg.name,
                        "type": arg.type_name,
                        "flags": arg.flags,
                        "priority": arg.priority,
                        "fundamental": arg.fundamental,
                        "blurb": arg.blurb,
                        "default": to_jsonable(arg.default),
                    }
                    for arg in op.arguments
                ],
            }
            for op in snapshot.operations
        ],
        "enum_types": [
            {
                "name": enum.name,
                "fundamental": enum.fundamental,
                "values": [
                    {"name": value.name, "nick": value.nick, "value": value.value}
                    for value in enum.values
                ],
            }
            for enum in snapshot.enum_types
        ],
        "image_types": [
            {
                "name": image_type.name,
                "parent": image_type.parent,
                "nickname": image_type.nickname,
                "description": image_type.description,
            }
            for image_type in snapshot.image_types
        ],
    }


def to_jsonable(value: Any) -> Any:
    """Return ``value`` as plain JSON data.

    Non-finite floats become the strings ``"inf"``, ``"-inf"`` and ``"nan"``,
    which ``float()`` reads back when the snapshot is replayed.
    """
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, float) and not math.isfinite(value):
        return "nan" if math.isnan(value) else ("inf" if value > 0 else "-inf")
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


__all__ = ["SnapshotRegistry", "dump_snapshot", "load_snapshot", "to_jsonable"]
