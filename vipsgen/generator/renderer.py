"""Template Rendering Engine."""

from __future__ import annotations

from typing import Any, Dict, List

from jinja2 import (
    Environment,
    FunctionLoader,
    StrictUndefined,
    TemplateNotFound,
    TemplateSyntaxError,
    UndefinedError,
)
from jinja2 import TemplateError as JinjaTemplateError

from ..errors import TemplateError
from ..logging import get_logger
from ..models import TemplateData
from ..postproc.lint import SourceLinter
from .helpers import template_helpers
from .loader import TemplateSource, TemplateUnit

_LOGGER = get_logger("generator.renderer")


class TemplateRenderer:
    """Renders template units against a :class:`TemplateData` snapshot.

    Rendering has no side effects; the bytes returned are written by the
    driver. Undefined variables, attributes and helpers fail loudly.
    """

    def __init__(self, source: TemplateSource, *, linter: SourceLinter | None = None) -> None:
        self.source = source
        self.linter = linter or SourceLinter()
        self._env = self._create_env(source)

    def list_units(self) -> List[TemplateUnit]:
        return self.source.list_units()

    def render(self, unit: TemplateUnit, data: TemplateData) -> bytes:
        try:
            template = self._env.get_template(unit.name)
            text = template.render(self._context(data))
        except TemplateNotFound as exc:
            raise TemplateError(unit.name, f"template not found: {exc.name}") from exc
        except UndefinedError as exc:
            raise TemplateError(unit.name, exc.message or str(exc)) from exc
        except TemplateSyntaxError as exc:
            location = f"{exc.name or unit.name}:{exc.lineno}"
            raise TemplateError(unit.name, f"{location}: {exc.message}") from exc
        except JinjaTemplateError as exc:
            raise TemplateError(unit.name, str(exc)) from exc
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise TemplateError(unit.name, f"{type(exc).__name__}: {exc}") from exc
        _LOGGER.debug("Rendered %s", unit.name)
        return self.linter.lint(text).encode("utf-8")

    @staticmethod
    def _context(data: TemplateData) -> Dict[str, Any]:
        return {
            "data": data,
            "version": data.version,
            "operations": list(data.operations.values()),
            "enum_types": data.enum_types,
            "image_types": data.image_types,
            "include_test": data.include_test,
        }

    @staticmethod
    def _create_env(source: TemplateSource) -> Environment:
        env = Environment(
            loader=FunctionLoader(source.read_name),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        filters, globals_, tests = template_helpers()
        env.filters.update(filters)
        env.globals.update(globals_)
        env.tests.update(tests)
        return env


__all__ = ["TemplateRenderer"]
