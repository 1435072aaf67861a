"""Tests for template sources and extraction."""

from __future__ import annotations

from pathlib import Path

import pytest

from vipsgen.errors import ConfigError
from vipsgen.generator.loader import (
    DirectoryTemplateSource,
    EmbeddedTemplateSource,
    TemplateUnit,
    extract_templates,
)


def test_embedded_units_are_sorted_and_classified() -> None:
    units = EmbeddedTemplateSource().list_units()

    assert [unit.name for unit in units] == sorted(unit.name for unit in units)
    outputs = {unit.output_name: unit.test_only for unit in units}
    assert outputs == {
        "enums.go": False,
        "image.go": False,
        "vips.c": False,
        "vips.go": False,
        "vips.h": False,
        "vips_test.go": True,
    }


def test_partials_are_readable_but_not_units() -> None:
    source = EmbeddedTemplateSource()

    assert "_macros.j2" in source.names()
    assert source.read_name("_macros.j2")
    assert all(not unit.name.startswith("_") for unit in source.list_units())


def test_directory_source_honours_suffixes(template_dir: Path) -> None:
    (template_dir / "a.go.tmpl").write_text("a", encoding="utf-8")
    (template_dir / "a_check.go.tmpl").write_text("b", encoding="utf-8")
    (template_dir / "notes.txt").write_text("ignored", encoding="utf-8")
    nested = template_dir / "sub"
    nested.mkdir()
    (nested / "c.h.tmpl").write_text("c", encoding="utf-8")

    source = DirectoryTemplateSource(template_dir, suffix=".tmpl", test_suffix="_check.go")

    assert source.list_units() == [
        TemplateUnit("a.go.tmpl", "a.go", False),
        TemplateUnit("a_check.go.tmpl", "a_check.go", True),
        TemplateUnit("sub/c.h.tmpl", "sub/c.h", False),
    ]
    assert source.read(source.list_units()[0]) == "a"


def test_directory_source_refuses_paths_outside_root(template_dir: Path) -> None:
    (template_dir.parent / "secret.j2").write_text("x", encoding="utf-8")
    source = DirectoryTemplateSource(template_dir)

    assert source.read_name("../secret.j2") is None
    with pytest.raises(ConfigError):
        source.read(TemplateUnit("missing.j2", "missing"))


def test_missing_directory_is_config_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        DirectoryTemplateSource(tmp_path / "nope")


def test_extract_templates_round_trips(tmp_path: Path) -> None:
    destination = tmp_path / "extracted"
    written = extract_templates(EmbeddedTemplateSource(), destination)

    embedded = EmbeddedTemplateSource()
    assert sorted(path.name for path in written) == embedded.names()
    extracted = DirectoryTemplateSource(destination)
    assert extracted.list_units() == embedded.list_units()
    for name in embedded.names():
        assert extracted.read_name(name) == embedded.read_name(name)
