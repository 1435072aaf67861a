"""Template sources and template units."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ..errors import ConfigError
from ..logging import get_logger

DEFAULT_SUFFIX = ".j2"
DEFAULT_TEST_SUFFIX = "_test.go"

_LOGGER = get_logger("generator.loader")


@dataclass(frozen=True)
class TemplateUnit:
    """One template that renders to exactly one output file."""

    name: str
    output_name: str
    test_only: bool = False


class TemplateSource(ABC):
    """Provides template text by name.

    Templates whose file name starts with ``_`` are partials: they can be
    imported by other templates and are extracted, but never rendered on
    their own.
    """

    def __init__(self, *, suffix: str = DEFAULT_SUFFIX, test_suffix: str = DEFAULT_TEST_SUFFIX) -> None:
        self.suffix = suffix
        self.test_suffix = test_suffix

    @abstractmethod
    def names(self) -> List[str]:
        """Return every template name, partials included, sorted."""

    @abstractmethod
    def read_name(self, name: str) -> Optional[str]:
        """Return the text of template ``name`` or ``None`` when it does not exist."""

    def list_units(self) -> List[TemplateUnit]:
        units: List[TemplateUnit] = []
        for name in self.names():
            if not name.endswith(self.suffix) or Path(name).name.startswith("_"):
                continue
            output_name = name[: -len(self.suffix)] if self.suffix else name
            units.append(
                TemplateUnit(
                    name=name,
                    output_name=output_name,
                    test_only=bool(self.test_suffix) and output_name.endswith(self.test_suffix),
                )
            )
        return sorted(units, key=lambda unit: unit.name)

    def read(self, unit: TemplateUnit) -> str:
        text = self.read_name(unit.name)
        if text is None:
            raise ConfigError(f"Template {unit.name} is missing")
        return text


class DirectoryTemplateSource(TemplateSource):
    """Templates read from a directory tree on disk."""

    def __init__(
        self,
        root: Path,
        *,
        suffix: str = DEFAULT_SUFFIX,
        test_suffix: str = DEFAULT_TEST_SUFFIX,
    ) -> None:
        super().__init__(suffix=suffix, test_suffix=test_suffix)
        self.root = Path(root)
        if not self.root.is_dir():
            raise ConfigError(f"Template directory {self.root} does not exist")

    def names(self) -> List[str]:
        return sorted(
            path.relative_to(self.root).as_posix()
            for path in self.root.rglob("*")
            if path.is_file() and path.name.endswith(self.suffix)
        )

    def read_name(self, name: str) -> Optional[str]:
        path = self.root / name
        try:
            path.resolve().relative_to(self.root.resolve())
        except ValueError:
            return None
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")


class EmbeddedTemplateSource(DirectoryTemplateSource):
    """The default template set shipped inside the package."""

    def __init__(self, *, suffix: str = DEFAULT_SUFFIX, test_suffix: str = DEFAULT_TEST_SUFFIX) -> None:
        super().__init__(embedded_templates_dir(), suffix=suffix, test_suffix=test_suffix)


def embedded_templates_dir() -> Path:
    return Path(__file__).resolve().parent.parent / "templates"


def extract_templates(source: TemplateSource, destination: Path) -> List[Path]:
    """Copy every template from ``source`` into ``destination``.

    Existing files are overwritten; the copies can be edited and passed
    back with ``--templates``.
    """
    destination = Path(destination)
    destination.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for name in source.names():
        text = source.read_name(name)
        if text is None:
            continue
        target = destination / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
        written.append(target)
        _LOGGER.debug("Extracted %s", target)
    _LOGGER.info("Extracted %d templates to %s", len(written), destination)
    return written


__all__ = [
    "DEFAULT_SUFFIX",
    "DEFAULT_TEST_SUFFIX",
    "DirectoryTemplateSource",
    "EmbeddedTemplateSource",
    "TemplateSource",
    "TemplateUnit",
    "extract_templates",
    "embedded_templates_dir",
]
