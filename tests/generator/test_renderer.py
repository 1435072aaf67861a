"""Tests for the template rendering engine."""

from __future__ import annotations

from pathlib import Path

import pytest

from vipsgen.errors import TemplateError
from vipsgen.generator.loader import DirectoryTemplateSource, EmbeddedTemplateSource, TemplateUnit
from vipsgen.generator.renderer import TemplateRenderer
from vipsgen.models import TemplateData


def _renderer(template_dir: Path, files: dict[str, str]) -> TemplateRenderer:
    for name, text in files.items():
        (template_dir / name).write_text(text, encoding="utf-8")
    return TemplateRenderer(DirectoryTemplateSource(template_dir))


def _unit(renderer: TemplateRenderer, name: str) -> TemplateUnit:
    return next(unit for unit in renderer.list_units() if unit.name == name)


def test_render_exposes_data_and_helpers(template_dir: Path, template_data: TemplateData) -> None:
    renderer = _renderer(
        template_dir,
        {
            "ops.txt.j2": (
                "version {{ version }}\n"
                "{% for op in operations %}\n"
                "{{ op.name | pascal_case }} {{ layer_a(op).symbol }}{{ ' +' if op is with_options else '' }}\n"
                "{% endfor %}\n"
            )
        },
    )

    text = renderer.render(_unit(renderer, "ops.txt.j2"), template_data).decode("utf-8")

    assert text.startswith("version 8.15.1\n")
    assert "Resize vipsgen_resize +\n" in text
    assert "Invert vipsgen_invert\n" in text


def test_undefined_variable_raises_template_error(template_dir: Path, template_data: TemplateData) -> None:
    renderer = _renderer(template_dir, {"bad.j2": "{{ missing_value }}\n"})

    with pytest.raises(TemplateError) as excinfo:
        renderer.render(_unit(renderer, "bad.j2"), template_data)

    assert excinfo.value.unit == "bad.j2"
    assert "missing_value" in excinfo.value.reference


def test_undefined_attribute_raises_template_error(template_dir: Path, template_data: TemplateData) -> None:
    renderer = _renderer(template_dir, {"bad.j2": "{% for op in operations %}{{ op.no_such_field }}{% endfor %}"})

    with pytest.raises(TemplateError) as excinfo:
        renderer.render(_unit(renderer, "bad.j2"), template_data)

    assert "no_such_field" in excinfo.value.reference


def test_unknown_helper_raises_template_error(template_dir: Path, template_data: TemplateData) -> None:
    renderer = _renderer(template_dir, {"bad.j2": "{{ version | no_such_filter }}"})

    with pytest.raises(TemplateError) as excinfo:
        renderer.render(_unit(renderer, "bad.j2"), template_data)

    assert "no_such_filter" in excinfo.value.reference


def test_missing_import_raises_template_error(template_dir: Path, template_data: TemplateData) -> None:
    renderer = _renderer(template_dir, {"bad.j2": '{% import "_absent.j2" as m %}'})

    with pytest.raises(TemplateError, match="_absent.j2"):
        renderer.render(_unit(renderer, "bad.j2"), template_data)


def test_output_is_linted(template_dir: Path, template_data: TemplateData) -> None:
    renderer = _renderer(template_dir, {"ws.j2": "a   \r\n\r\n\r\n\r\nb\n\n\n"})

    assert renderer.render(_unit(renderer, "ws.j2"), template_data) == b"a\n\nb\n"


def test_embedded_templates_render(template_data: TemplateData) -> None:
    renderer = TemplateRenderer(EmbeddedTemplateSource())

    rendered = {unit.output_name: renderer.render(unit, template_data).decode("utf-8") for unit in renderer.list_units()}

    header = rendered["vips.h"]
    assert "libvips 8.15.1" in header
    assert "int vipsgen_resize(VipsImage *in, VipsImage **out, double scale);" in header
    assert "int vipsgen_invert_with_options" not in header

    image = rendered["image.go"]
    assert "type ResizeOptions struct {" in image
    assert "func DefaultResizeOptions() *ResizeOptions {" in image
    assert "\t\tKernel: Kernel(5)," in image
    assert "func (r *Image) Resize(scale float64, options *ResizeOptions) error {" in image
    assert "func Black(width int, height int, options *BlackOptions) (*Image, error) {" in image
    assert "func (r *Image) Invert() error {" in image

    enums = rendered["enums.go"]
    assert "\tKernelLanczos3 Kernel = 5" in enums

    source = rendered["vips.c"]
    assert 'vips_operation_new("resize")' in source
    assert "int vipsgen_resize_with_options(" in source

    assert "func TestDefaultResizeOptions(t *testing.T) {" in rendered["vips_test.go"]
