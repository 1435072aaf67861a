"""Generation Driver: render every unit, check, then write."""

from __future__ import annotations

import os
import tempfile
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from pathlib import Path
from typing import Dict, List, Optional

from ..errors import GenerationTimeout, OutputError, TemplateError
from ..logging import get_logger
from ..models import TemplateData
from .consistency import LayerConsistencyChecker
from .loader import TemplateUnit
from .renderer import TemplateRenderer

_LOGGER = get_logger("generator.driver")


class _Deadline:
    def __init__(self, seconds: Optional[float]) -> None:
        self.seconds = seconds
        self.expires = None if seconds is None else time.monotonic() + seconds

    def remaining(self) -> Optional[float]:
        if self.expires is None:
            return None
        return max(0.0, self.expires - time.monotonic())

    def check(self, step: str) -> None:
        if self.expires is not None and time.monotonic() >= self.expires:
            raise GenerationTimeout(f"deadline of {self.seconds}s exceeded before {step}")


def select_units(units: List[TemplateUnit], include_test: bool) -> List[TemplateUnit]:
    selected: List[TemplateUnit] = []
    for unit in sorted(units, key=lambda item: item.name):
        if unit.test_only and not include_test:
            _LOGGER.info("Skipping test template %s (use --include-test to render it)", unit.name)
            continue
        selected.append(unit)
    return selected


def render_units(
    renderer: TemplateRenderer,
    units: List[TemplateUnit],
    data: TemplateData,
    *,
    workers: int = 1,
    deadline: Optional[_Deadline] = None,
) -> Dict[str, bytes]:
    """Render ``units`` into memory, keyed by output name.

    Every unit is attempted; failures are reported together, sorted by unit
    name, and the first one is raised.
    """
    deadline = deadline or _Deadline(None)
    results: Dict[str, bytes] = {}
    failures: List[TemplateError] = []

    if workers <= 1:
        for unit in units:
            deadline.check(f"rendering {unit.name}")
            try:
                results[unit.output_name] = renderer.render(unit, data)
            except TemplateError as exc:
                failures.append(exc)
    else:
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="vipsgen-render")
        try:
            futures: Dict[str, Future[bytes]] = {
                unit.name: executor.submit(renderer.render, unit, data) for unit in units
            }
            for unit in units:
                try:
                    results[unit.output_name] = futures[unit.name].result(timeout=deadline.remaining())
                except TemplateError as exc:
                    failures.append(exc)
                except FutureTimeout as exc:
                    raise GenerationTimeout(
                        f"deadline of {deadline.seconds}s exceeded while rendering {unit.name}"
                    ) from exc
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

    if failures:
        failures.sort(key=lambda exc: exc.unit)
        for failure in failures:
            _LOGGER.error("Template %s failed: %s", failure.unit, failure.reference)
        first = failures[0]
        if len(failures) == 1:
            raise first
        raise TemplateError(
            first.unit, f"{first.reference} (and {len(failures) - 1} more failing templates)"
        ) from first
    return results


def write_atomic(path: Path, content: bytes) -> None:
    """Write ``content`` to ``path`` through a temporary file in the same directory."""
    try:
        handle, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    except OSError as exc:
        raise OutputError(f"Failed to write {path}: {exc}") from exc
    try:
        with os.fdopen(handle, "wb") as stream:
            stream.write(content)
        os.replace(temp_name, path)
    except OSError as exc:
        try:
            os.unlink(temp_name)
        except FileNotFoundError:
            pass
        raise OutputError(f"Failed to write {path}: {exc}") from exc


def generate(
    renderer: TemplateRenderer,
    data: TemplateData,
    output_root: Path,
    *,
    workers: int = 1,
    deadline: Optional[float] = None,
    check_consistency: bool = True,
    checker: Optional[LayerConsistencyChecker] = None,
) -> List[Path]:
    """Render every selected unit and write one file per unit under ``output_root``.

    Nothing is written unless every unit renders and the layered API is
    consistent.
    """
    timer = _Deadline(deadline)
    units = select_units(renderer.list_units(), data.include_test)
    rendered = render_units(renderer, units, data, workers=workers, deadline=timer)

    if check_consistency:
        timer.check("the consistency check")
        (checker or LayerConsistencyChecker()).check(rendered, data.operations.values())

    output_root = Path(output_root)
    try:
        output_root.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise OutputError(f"Cannot create output directory {output_root}: {exc}") from exc

    written: List[Path] = []
    for unit in units:
        timer.check(f"writing {unit.output_name}")
        target = output_root / unit.output_name
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputError(f"Cannot create directory {target.parent}: {exc}") from exc
        write_atomic(target, rendered[unit.output_name])
        written.append(target)

    for path in written:
        _LOGGER.info("Wrote %s", path)
    return written


__all__ = ["generate", "render_units", "select_units", "write_atomic"]
