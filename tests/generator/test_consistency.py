"""Tests for the cross-layer consistency check."""

from __future__ import annotations

import pytest

from vipsgen.errors import ConsistencyError
from vipsgen.generator.consistency import LayerConsistencyChecker, check_layers
from vipsgen.introspection import DiscoveryResult

RESIZE_C = (
    b"int vipsgen_resize(VipsImage *in, VipsImage **out, double scale)\n{\n}\n"
    b"int vipsgen_resize_with_options(VipsImage *in, VipsImage **out, double scale,\n"
    b"\tint kernel, double gap, double vscale)\n{\n}\n"
)
RESIZE_GO = (
    b"func vipsgenResize(in *C.VipsImage, scale float64) (*C.VipsImage, error) {\n}\n"
    b"func vipsgenResizeWithOptions(in *C.VipsImage, scale float64, kernel Kernel) (*C.VipsImage, error) {\n}\n"
)
RESIZE_METHOD = b"func (r *Image) Resize(scale float64, options *ResizeOptions) error {\n}\n"


def _ops(discovery: DiscoveryResult, *names: str):
    return [discovery.operations[name] for name in names]


def test_complete_layers_pass(discovery: DiscoveryResult) -> None:
    rendered = {
        "vips.h": b"int vipsgen_resize(VipsImage *in, VipsImage **out, double scale);\n",
        "vips.c": RESIZE_C + b"int vipsgen_invert(VipsImage *in, VipsImage **out)\n{\n}\n",
        "vips.go": RESIZE_GO + b"func vipsgenInvert(in *C.VipsImage) (*C.VipsImage, error) {\n}\n",
        "image.go": RESIZE_METHOD + b"func (r *Image) Invert() error {\n}\n",
    }

    check_layers(rendered, _ops(discovery, "resize", "invert"))


def test_missing_layer_b_is_reported(discovery: DiscoveryResult) -> None:
    rendered = {
        "vips.c": b"int vipsgen_resize(VipsImage *in, VipsImage **out, double scale)\n{\n}\n",
        "vips.go": RESIZE_GO,
        "image.go": RESIZE_METHOD,
    }

    with pytest.raises(ConsistencyError) as excinfo:
        check_layers(rendered, _ops(discovery, "resize"))

    assert excinfo.value.missing == {"Resize": ["vipsgen_resize_with_options"]}


def test_header_prototypes_do_not_count_as_definitions(discovery: DiscoveryResult) -> None:
    rendered = {
        "image.go": RESIZE_METHOD,
        "vips.h": b"int vipsgen_resize(VipsImage *in, VipsImage **out, double scale);\n"
        b"int vipsgen_resize_with_options(VipsImage *in, VipsImage **out, double scale,\n"
        b"\tint kernel);\n",
        "vips.go": RESIZE_GO,
    }

    missing = LayerConsistencyChecker().missing(rendered, _ops(discovery, "resize"))

    assert missing == {"Resize": ["vipsgen_resize", "vipsgen_resize_with_options"]}


def test_missing_go_wrappers_are_reported(discovery: DiscoveryResult) -> None:
    rendered = {"image.go": RESIZE_METHOD, "vips.c": RESIZE_C}

    missing = LayerConsistencyChecker().missing(rendered, _ops(discovery, "resize"))

    assert missing == {"Resize": ["vipsgenResize", "vipsgenResizeWithOptions"]}


def test_header_only_output_reports_every_low_level_symbol(discovery: DiscoveryResult) -> None:
    rendered = {
        "image.go": RESIZE_METHOD,
        "vips.h": b"int vipsgen_resize(...);\nint vipsgen_resize_with_options(...);\n",
    }

    assert LayerConsistencyChecker().missing(rendered, _ops(discovery, "resize")) == {
        "Resize": [
            "vipsgen_resize",
            "vipsgen_resize_with_options",
            "vipsgenResize",
            "vipsgenResizeWithOptions",
        ]
    }


def test_calls_do_not_count_as_definitions(discovery: DiscoveryResult) -> None:
    rendered = {
        "image.go": b"func Black(width int, height int, options *BlackOptions) (*Image, error) {\n"
        b"\tout, err := vipsgenBlack(width, height)\n}\n",
        "vips.go": b"func vipsgenBlack(width int, height int) (*C.VipsImage, error) {\n"
        b"\tif C.vipsgen_black(&out, C.int(width), C.int(height)) != 0 {\n\t}\n}\n",
    }

    missing = LayerConsistencyChecker().missing(rendered, _ops(discovery, "black"))

    assert missing == {"Black": ["vipsgen_black", "vipsgen_black_with_options", "vipsgenBlackWithOptions"]}


def test_operations_without_high_level_method_are_ignored(discovery: DiscoveryResult) -> None:
    rendered = {"vips.h": b"int vipsgen_invert(VipsImage *in, VipsImage **out);\n"}

    assert LayerConsistencyChecker().missing(rendered, _ops(discovery, "invert", "resize")) == {}


def test_patterns_are_configurable(discovery: DiscoveryResult) -> None:
    checker = LayerConsistencyChecker(
        high_level_pattern=r"^def {symbol}\(",
        low_level_pattern=r"^def {symbol}\(",
        go_wrapper_pattern=r"^def {symbol}\(",
    )
    rendered = {"api.py": b"def Invert(\ndef vipsgen_invert(\ndef vipsgenInvert(\n"}

    assert checker.missing(rendered, _ops(discovery, "invert")) == {}
