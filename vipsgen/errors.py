"""Error taxonomy shared by the discovery and generation stages."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional


class VipsgenError(RuntimeError):
    """Base class for fatal vipsgen failures.

    ``stage`` names the pipeline stage that failed (``discovery``,
    ``normalization``, ``generation`` ...) and is filled in by
    :func:`wrap_stage` when the error crosses a stage boundary.
    """

    def __init__(self, message: str, *, stage: Optional[str] = None) -> None:
        super().__init__(message)
        self.stage = stage


class DiscoveryError(VipsgenError):
    """Raised when the native registry cannot be initialised or read."""


class SchemaError(VipsgenError):
    """Raised when introspected metadata is malformed."""


class ConfigError(VipsgenError):
    """Raised when the configuration file cannot be parsed."""


class TemplateError(VipsgenError):
    """Raised when a template references data or a helper that does not exist."""

    def __init__(self, unit: str, reference: str, *, stage: Optional[str] = None) -> None:
        super().__init__(f"template {unit!r} failed: {reference}", stage=stage)
        self.unit = unit
        self.reference = reference


class ConsistencyError(VipsgenError):
    """Raised when rendered layers disagree about which calls exist."""

    def __init__(self, missing: dict[str, list[str]], *, stage: Optional[str] = None) -> None:
        details = "; ".join(
            f"{symbol} needs {', '.join(needed)}" for symbol, needed in sorted(missing.items())
        )
        super().__init__(f"inconsistent layered API: {details}", stage=stage)
        self.missing = missing


class OutputError(VipsgenError):
    """Raised when the output directory or a generated file cannot be written.

    The underlying :class:`OSError` is kept as ``__cause__``.
    """


class GenerationTimeout(VipsgenError):
    """Raised when a run exceeds its deadline."""


@dataclass(frozen=True)
class ArgumentMappingWarning:
    """Non-fatal record of one argument dropped during normalisation."""

    operation: str
    argument: str
    native_type: str
    reason: str

    def message(self) -> str:
        return f"{self.operation}.{self.argument} ({self.native_type}) dropped: {self.reason}"


@contextmanager
def wrap_stage(stage: str) -> Iterator[None]:
    """Attach ``stage`` to vipsgen errors and wrap stray OS errors raised inside."""
    try:
        yield
    except VipsgenError as exc:
        if exc.stage is None:
            exc.stage = stage
        raise
    except OSError as exc:
        raise OutputError(str(exc), stage=stage) from exc


__all__ = [
    "ArgumentMappingWarning",
    "ConfigError",
    "ConsistencyError",
    "DiscoveryError",
    "GenerationTimeout",
    "OutputError",
    "SchemaError",
    "TemplateError",
    "VipsgenError",
    "wrap_stage",
]
