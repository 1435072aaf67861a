"""Tests for the generation driver."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from vipsgen.errors import ConsistencyError, GenerationTimeout, OutputError, TemplateError
from vipsgen.generator.driver import generate, write_atomic
from vipsgen.generator.loader import DirectoryTemplateSource, EmbeddedTemplateSource
from vipsgen.generator.renderer import TemplateRenderer
from vipsgen.generator.templatedata import aggregate
from vipsgen.introspection import DiscoveryResult
from vipsgen.models import TemplateData


def _renderer(template_dir: Path, files: dict[str, str]) -> TemplateRenderer:
    for name, text in files.items():
        (template_dir / name).write_text(text, encoding="utf-8")
    return TemplateRenderer(DirectoryTemplateSource(template_dir))


def _with_tests(discovery: DiscoveryResult) -> TemplateData:
    return aggregate(
        discovery.operations,
        discovery.enum_types,
        discovery.image_types,
        discovery.version,
        include_test=True,
    )


def test_test_units_are_skipped_by_default(
    template_dir: Path, template_data: TemplateData, tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    renderer = _renderer(template_dir, {"a.go.j2": "package a\n", "a_test.go.j2": "package a\n"})
    out = tmp_path / "out"

    with caplog.at_level(logging.INFO, logger="vipsgen"):
        written = generate(renderer, template_data, out)

    assert written == [out / "a.go"]
    assert not (out / "a_test.go").exists()
    assert "Skipping test template a_test.go.j2" in caplog.text


def test_test_units_render_when_requested(
    template_dir: Path, discovery: DiscoveryResult, tmp_path: Path
) -> None:
    renderer = _renderer(template_dir, {"a.go.j2": "package a\n", "a_test.go.j2": "package a\n"})

    written = generate(renderer, _with_tests(discovery), tmp_path / "out")

    assert [path.name for path in written] == ["a.go", "a_test.go"]


def test_failures_abort_before_any_write(template_dir: Path, template_data: TemplateData, tmp_path: Path) -> None:
    renderer = _renderer(
        template_dir,
        {"a.go.j2": "ok\n", "b.go.j2": "{{ first_missing }}\n", "c.go.j2": "{{ second_missing }}\n"},
    )
    out = tmp_path / "out"

    with pytest.raises(TemplateError) as excinfo:
        generate(renderer, template_data, out)

    assert excinfo.value.unit == "b.go.j2"
    assert "first_missing" in excinfo.value.reference
    assert "(and 1 more failing templates)" in excinfo.value.reference
    assert not out.exists()


def test_single_failure_is_raised_unchanged(template_dir: Path, template_data: TemplateData, tmp_path: Path) -> None:
    renderer = _renderer(template_dir, {"a.go.j2": "ok\n", "b.go.j2": "{{ missing }}\n"})

    with pytest.raises(TemplateError) as excinfo:
        generate(renderer, template_data, tmp_path / "out", workers=3)

    assert excinfo.value.unit == "b.go.j2"
    assert "more failing" not in excinfo.value.reference


def test_inconsistent_layers_abort_before_any_write(
    template_dir: Path, template_data: TemplateData, tmp_path: Path
) -> None:
    renderer = _renderer(template_dir, {"image.go.j2": "func (r *Image) Invert() error {\n}\n"})
    out = tmp_path / "out"

    with pytest.raises(ConsistencyError) as excinfo:
        generate(renderer, template_data, out)

    assert excinfo.value.missing == {"Invert": ["vipsgen_invert", "vipsgenInvert"]}
    assert not out.exists()
    assert generate(renderer, template_data, out, check_consistency=False) == [out / "image.go"]


def test_writes_replace_files_without_leftovers(
    template_dir: Path, template_data: TemplateData, tmp_path: Path
) -> None:
    renderer = _renderer(template_dir, {"a.go.j2": "new\n"})
    out = tmp_path / "out"
    out.mkdir()
    (out / "a.go").write_text("old\n", encoding="utf-8")
    (out / "keep.txt").write_text("untouched\n", encoding="utf-8")

    generate(renderer, template_data, out)

    assert (out / "a.go").read_text(encoding="utf-8") == "new\n"
    assert sorted(path.name for path in out.iterdir()) == ["a.go", "keep.txt"]


def test_nested_outputs_get_their_directories(
    template_dir: Path, template_data: TemplateData, tmp_path: Path
) -> None:
    (template_dir / "include").mkdir()
    renderer = _renderer(template_dir, {"include/vips.h.j2": "/* h */\n"})

    written = generate(renderer, template_data, tmp_path / "out")

    assert written == [tmp_path / "out" / "include" / "vips.h"]
    assert written[0].read_bytes() == b"/* h */\n"


def test_expired_deadline_raises_timeout(template_dir: Path, template_data: TemplateData, tmp_path: Path) -> None:
    renderer = _renderer(template_dir, {"a.go.j2": "ok\n"})
    out = tmp_path / "out"

    with pytest.raises(GenerationTimeout):
        generate(renderer, template_data, out, deadline=0)

    assert not out.exists()


def test_output_root_that_is_a_file_is_output_error(
    template_dir: Path, template_data: TemplateData, tmp_path: Path
) -> None:
    renderer = _renderer(template_dir, {"a.go.j2": "ok\n"})
    blocker = tmp_path / "out"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(OutputError) as excinfo:
        generate(renderer, template_data, blocker)

    assert isinstance(excinfo.value.__cause__, OSError)


def test_write_atomic_into_missing_directory_is_output_error(tmp_path: Path) -> None:
    with pytest.raises(OutputError):
        write_atomic(tmp_path / "missing" / "a.go", b"x")


def test_parallel_rendering_matches_sequential(template_data: TemplateData, tmp_path: Path) -> None:
    renderer = TemplateRenderer(EmbeddedTemplateSource())

    sequential = generate(renderer, template_data, tmp_path / "one", workers=1)
    parallel = generate(renderer, template_data, tmp_path / "many", workers=4)

    assert [path.name for path in sequential] == [path.name for path in parallel]
    for left, right in zip(sequential, parallel):
        assert left.read_bytes() == right.read_bytes()
