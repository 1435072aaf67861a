"""End-to-end check of the three layers generated for ``resize``."""

from __future__ import annotations

from pathlib import Path

from tests._fixtures.registry_builder import FakeRegistry
from vipsgen.config import VipsgenConfig
from vipsgen.generator.contract import layer_a, layer_b, layer_c
from vipsgen.introspection import DiscoveryResult
from vipsgen.orchestrator import GenerateOptions, Orchestrator


def _function_body(text: str, header: str) -> str:
    start = text.index(header)
    end = text.index("\n}\n", start)
    return text[start:end]


def test_resize_layers_are_equivalent(discovery: DiscoveryResult) -> None:
    resize = discovery.operations["resize"]

    assert resize.argument("kernel").default_value == 5
    assert [param.name for param in layer_a(resize).params] == ["in", "out", "scale"]
    assert [param.name for param in layer_b(resize).params] == ["in", "out", "scale", "kernel", "gap", "vscale"]
    high = layer_c(resize)
    assert high.receiver is not None and high.receiver.name == "in"
    assert [param.name for param in high.params] == ["scale"]


def test_generated_resize_bindings(fake_registry: FakeRegistry, tmp_path: Path) -> None:
    out = tmp_path / "vips"
    Orchestrator(registry=fake_registry, config=VipsgenConfig(root=tmp_path)).run_generate(
        GenerateOptions(output_dir=out, include_test=True)
    )

    header = (out / "vips.h").read_text(encoding="utf-8")
    assert "int vipsgen_resize(VipsImage *in, VipsImage **out, double scale);" in header
    assert (
        "int vipsgen_resize_with_options(VipsImage *in, VipsImage **out, double scale, "
        "int kernel, double gap, double vscale);"
    ) in header
    assert "//   kernel: default 5" in header

    source = (out / "vips.c").read_text(encoding="utf-8")
    plain = _function_body(source, "int vipsgen_resize(VipsImage *in")
    assert 'g_object_set(operation, "scale", scale, NULL);' in plain
    assert '"kernel"' not in plain
    options = _function_body(source, "int vipsgen_resize_with_options(")
    assert '\tg_object_set(operation, "kernel", kernel, NULL);' in options
    assert '\tg_object_get(operation, "out", out, NULL);' in options

    image = (out / "image.go").read_text(encoding="utf-8")
    defaults = _function_body(image, "func DefaultResizeOptions() *ResizeOptions {")
    assert "Kernel: Kernel(5)," in defaults
    assert "Gap: 2.0," in defaults
    assert "Vscale: 0.0," in defaults
    method = _function_body(image, "func (r *Image) Resize(scale float64, options *ResizeOptions) error {")
    assert "vipsgenResizeWithOptions(r.image, scale, int(options.Kernel), options.Gap, options.Vscale)" in method
    assert "vipsgenResize(r.image, scale)" in method
    assert method.index("vipsgenResizeWithOptions") < method.index("vipsgenResize(r.image")
    assert "r.setImage(out)" in method

    assert "func TestDefaultResizeOptions(t *testing.T) {" in (out / "vips_test.go").read_text(encoding="utf-8")
