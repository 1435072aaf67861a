"""Tests for the layered binding contract."""

from __future__ import annotations

from vipsgen.generator.contract import (
    ParamRole,
    has_options,
    layer_a,
    layer_b,
    layer_c,
    optional_args,
    pascal_name,
    required_args,
)
from vipsgen.introspection import DiscoveryResult


def test_layer_a_is_strict_prefix_of_layer_b(discovery: DiscoveryResult) -> None:
    for operation in discovery.operations.values():
        a = layer_a(operation)
        if not has_options(operation):
            continue
        b = layer_b(operation)
        assert b.params[: len(a.params)] == a.params
        assert len(b.params) > len(a.params)
        assert [p.name for p in b.options] == [arg.name for arg in optional_args(operation)]


def test_layer_a_takes_required_arguments_in_order(discovery: DiscoveryResult) -> None:
    for operation in discovery.operations.values():
        assert layer_a(operation).param_names == tuple(arg.name for arg in required_args(operation))


def test_layer_c_options_are_the_optional_inputs(discovery: DiscoveryResult) -> None:
    for operation in discovery.operations.values():
        c = layer_c(operation)
        if has_options(operation):
            assert c.options_type == f"{pascal_name(operation.name)}Options"
            assert c.defaults_function == f"Default{pascal_name(operation.name)}Options"
        else:
            assert c.options_type is None
            assert c.defaults_function is None


def test_resize_layers(discovery: DiscoveryResult) -> None:
    resize = discovery.operations["resize"]

    a = layer_a(resize)
    b = layer_b(resize)
    c = layer_c(resize)

    assert a.symbol == "vipsgen_resize"
    assert a.param_names == ("in", "out", "scale")
    assert [p.role for p in a.params] == [ParamRole.INPUT, ParamRole.OUTPUT, ParamRole.INPUT]
    assert b.symbol == "vipsgen_resize_with_options"
    assert b.param_names == ("in", "out", "scale", "kernel", "gap", "vscale")
    assert c.symbol == "Resize"
    assert c.receiver is not None and c.receiver.name == "in"
    assert [p.name for p in c.params] == ["scale"]
    assert c.replaces_receiver is True
    assert c.results == ()


def test_layer_c_without_receiver_returns_outputs(discovery: DiscoveryResult) -> None:
    black = layer_c(discovery.operations["black"])
    avg = layer_c(discovery.operations["avg"])

    assert black.receiver is None
    assert [p.name for p in black.params] == ["width", "height"]
    assert [p.name for p in black.results] == ["out"]
    assert avg.receiver is not None
    assert avg.replaces_receiver is False
    assert [p.name for p in avg.results] == ["out"]


def test_layer_c_for_modified_image_has_no_results(discovery: DiscoveryResult) -> None:
    draw = layer_c(discovery.operations["draw_rect"])

    assert draw.receiver.name == "image"
    assert draw.results == ()
    assert draw.replaces_receiver is False


def test_pascal_name() -> None:
    assert pascal_name("resize") == "Resize"
    assert pascal_name("draw_rect") == "DrawRect"
    assert pascal_name("pngsave_buffer") == "PngsaveBuffer"
