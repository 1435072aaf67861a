"""Raw registry records and the reader contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

# VipsArgumentFlags
ARG_REQUIRED = 1
ARG_CONSTRUCT = 2
ARG_INPUT = 16
ARG_OUTPUT = 32
ARG_DEPRECATED = 64
ARG_MODIFY = 128

# VipsOperationFlags
OPERATION_DEPRECATED = 8


@dataclass(frozen=True)
class RawArgument:
    """Argument exactly as the registry reports it."""

    name: str
    type_name: str
    flags: int
    priority: int = 0
    fundamental: str = ""
    blurb: str = ""
    default: Any = None

    @property
    def required(self) -> bool:
        return bool(self.flags & ARG_REQUIRED)

    @property
    def deprecated(self) -> bool:
        return bool(self.flags & ARG_DEPRECATED)


@dataclass(frozen=True)
class RawOperation:
    name: str
    arguments: Tuple[RawArgument, ...]
    flags: int = 0
    description: str = ""

    @property
    def deprecated(self) -> bool:
        return bool(self.flags & OPERATION_DEPRECATED)


@dataclass(frozen=True)
class RawEnumValue:
    name: str
    nick: str
    value: int


@dataclass(frozen=True)
class RawEnum:
    name: str
    values: Tuple[RawEnumValue, ...]
    fundamental: str = "GEnum"


@dataclass(frozen=True)
class RawImageType:
    name: str
    parent: Optional[str] = None
    nickname: str = ""
    description: str = ""


@dataclass
class RegistrySnapshot:
    """Everything one discovery pass read from a registry."""

    version: str
    operations: List[RawOperation] = field(default_factory=list)
    enum_types: List[RawEnum] = field(default_factory=list)
    image_types: List[RawImageType] = field(default_factory=list)


class TypeRegistry(ABC):
    """Contract for readers of the libvips type and operation registry.

    Implementations must report every operation exactly once, in an order
    that is stable across runs against the same libvips build.
    """

    @abstractmethod
    def get_version(self) -> str:
        """Return the library version string."""

    @abstractmethod
    def discover_operations(self) -> Sequence[RawOperation]:
        """Return all registered operations in discovery order."""

    @abstractmethod
    def discover_enum_types(self) -> Sequence[RawEnum]:
        """Return all registered enum and flags types."""

    @abstractmethod
    def discover_image_types(self) -> Sequence[RawImageType]:
        """Return the object type hierarchy."""

    def snapshot(self) -> RegistrySnapshot:
        return RegistrySnapshot(
            version=self.get_version(),
            operations=list(self.discover_operations()),
            enum_types=list(self.discover_enum_types()),
            image_types=list(self.discover_image_types()),
        )


__all__ = [
    "ARG_CONSTRUCT",
    "ARG_DEPRECATED",
    "ARG_INPUT",
    "ARG_MODIFY",
    "ARG_OUTPUT",
    "ARG_REQUIRED",
    "OPERATION_DEPRECATED",
    "RawArgument",
    "RawEnum",
    "RawEnumValue",
    "RawImageType",
    "RawOperation",
    "RegistrySnapshot",
    "TypeRegistry",
]
