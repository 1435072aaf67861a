"""Core data models shared across vipsgen components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

from .errors import ArgumentMappingWarning


class ArgumentKind(str, Enum):
    """Closed set of semantic argument kinds every native type maps onto."""

    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    STRING = "string"
    ENUM = "enum"
    FLAGS = "flags"
    ARRAY = "array"
    OBJECT = "object"
    BLOB = "blob"


class Direction(str, Enum):
    INPUT = "input"
    OUTPUT = "output"
    INPUT_OUTPUT = "input-output"


@dataclass(frozen=True)
class Argument:
    """Normalised operation argument."""

    name: str
    native_type: str
    kind: ArgumentKind
    direction: Direction
    required: bool
    priority: int = 0
    default_value: Any = None
    element_kind: Optional[ArgumentKind] = None
    enum_type: Optional[str] = None
    description: str = ""

    @property
    def is_input(self) -> bool:
        return self.direction in (Direction.INPUT, Direction.INPUT_OUTPUT)

    @property
    def is_output(self) -> bool:
        return self.direction is Direction.OUTPUT

    @property
    def is_image(self) -> bool:
        return self.kind is ArgumentKind.OBJECT and self.native_type == "VipsImage"

    @property
    def is_image_array(self) -> bool:
        return self.kind is ArgumentKind.ARRAY and self.native_type == "VipsArrayImage"


@dataclass(frozen=True)
class Operation:
    """One introspected callable unit of libvips.

    ``arguments`` holds required arguments first, then optional ones, each
    partition in native declaration order.
    """

    name: str
    arguments: Tuple[Argument, ...]
    has_output: bool
    deprecated: bool = False
    description: str = ""
    dropped_arguments: Tuple[ArgumentMappingWarning, ...] = ()

    @property
    def required_inputs(self) -> Tuple[Argument, ...]:
        return tuple(arg for arg in self.arguments if arg.required and arg.is_input)

    @property
    def optional_inputs(self) -> Tuple[Argument, ...]:
        return tuple(arg for arg in self.arguments if not arg.required and arg.is_input)

    @property
    def required_outputs(self) -> Tuple[Argument, ...]:
        return tuple(arg for arg in self.arguments if arg.required and arg.is_output)

    @property
    def optional_outputs(self) -> Tuple[Argument, ...]:
        return tuple(arg for arg in self.arguments if not arg.required and arg.is_output)

    @property
    def image_input(self) -> Optional[Argument]:
        """First required image input; operations with one become image methods."""
        for arg in self.required_inputs:
            if arg.is_image:
                return arg
        return None

    @property
    def output_image(self) -> Optional[Argument]:
        for arg in self.required_outputs:
            if arg.is_image:
                return arg
        return None

    def argument(self, name: str) -> Argument:
        for arg in self.arguments:
            if arg.name == name:
                return arg
        raise KeyError(name)


@dataclass(frozen=True)
class EnumMember:
    name: str
    nick: str
    value: int


@dataclass(frozen=True)
class EnumTypeInfo:
    """Enum or flags type with members in registry order."""

    name: str
    members: Tuple[EnumMember, ...]
    is_flags: bool = False

    def value_of(self, nick: str) -> int:
        for member in self.members:
            if member.nick == nick or member.name == nick:
                return member.value
        raise KeyError(nick)

    @property
    def default_value(self) -> int:
        return self.members[0].value if self.members else 0


@dataclass(frozen=True)
class ImageTypeInfo:
    """Object type with a back-reference to its parent type."""

    name: str
    parent: Optional[str] = None
    nickname: str = ""
    description: str = ""


@dataclass(frozen=True)
class TemplateData:
    """Immutable snapshot shared read-only by every render step."""

    version: str
    operations: Mapping[str, Operation]
    enum_types: Tuple[EnumTypeInfo, ...] = ()
    image_types: Tuple[ImageTypeInfo, ...] = ()
    include_test: bool = False
    warnings: Tuple[ArgumentMappingWarning, ...] = field(default=())

    def __post_init__(self) -> None:
        if not isinstance(self.operations, MappingProxyType):
            object.__setattr__(self, "operations", MappingProxyType(dict(self.operations)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TemplateData):
            return NotImplemented
        return (
            self.version == other.version
            and list(self.operations.items()) == list(other.operations.items())
            and self.enum_types == other.enum_types
            and self.image_types == other.image_types
            and self.include_test == other.include_test
            and self.warnings == other.warnings
        )

    def enum(self, name: str) -> Optional[EnumTypeInfo]:
        for info in self.enum_types:
            if info.name == name:
                return info
        return None


__all__ = [
    "Argument",
    "ArgumentKind",
    "Direction",
    "EnumMember",
    "EnumTypeInfo",
    "ImageTypeInfo",
    "Operation",
    "TemplateData",
]
