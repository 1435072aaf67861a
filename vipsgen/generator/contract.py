"""Layered binding contract.

Every operation is exposed through three call surfaces that must behave
identically:

* Layer A, ``vipsgen_<op>``: the required arguments only, in normalised
  order (outputs sit where libvips declares them).
* Layer B, ``vipsgen_<op>_with_options``: Layer A's parameters followed by
  every optional input, so Layer A is always a prefix of Layer B.
* Layer C, ``<Op>``: the idiomatic method. It takes the required inputs
  (minus the receiver image) and an optional ``<Op>Options`` value whose
  fields are exactly the optional inputs at their normalised defaults.
  Without options it calls Layer A; with options it calls Layer B.

Layer B exists only for operations with optional inputs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Optional, Tuple

from ..models import Argument, Operation

LOW_LEVEL_PREFIX = "vipsgen_"
OPTIONS_SUFFIX = "_with_options"

_WORD_SPLIT = re.compile(r"[^0-9a-zA-Z]+")


class ParamRole(str, Enum):
    INPUT = "input"
    OUTPUT = "output"
    OPTION = "option"


@dataclass(frozen=True)
class LayerParam:
    name: str
    argument: Argument
    role: ParamRole

    @property
    def is_output(self) -> bool:
        return self.role is ParamRole.OUTPUT

    @property
    def is_option(self) -> bool:
        return self.role is ParamRole.OPTION


@dataclass(frozen=True)
class LayerSignature:
    """One call surface of an operation."""

    layer: str
    operation: str
    symbol: str
    params: Tuple[LayerParam, ...]
    receiver: Optional[LayerParam] = None
    options_type: Optional[str] = None
    defaults_function: Optional[str] = None
    results: Tuple[LayerParam, ...] = ()
    replaces_receiver: bool = False

    @property
    def inputs(self) -> Tuple[LayerParam, ...]:
        return tuple(param for param in self.params if param.role is ParamRole.INPUT)

    @property
    def outputs(self) -> Tuple[LayerParam, ...]:
        return tuple(param for param in self.params if param.role is ParamRole.OUTPUT)

    @property
    def options(self) -> Tuple[LayerParam, ...]:
        return tuple(param for param in self.params if param.role is ParamRole.OPTION)

    @property
    def param_names(self) -> Tuple[str, ...]:
        return tuple(param.name for param in self.params)


def pascal_name(name: str) -> str:
    return "".join(part[:1].upper() + part[1:] for part in _WORD_SPLIT.split(name) if part)


def has_options(operation: Operation) -> bool:
    return bool(operation.optional_inputs)


@lru_cache(maxsize=None)
def layer_a(operation: Operation) -> LayerSignature:
    params = tuple(
        LayerParam(
            name=arg.name,
            argument=arg,
            role=ParamRole.OUTPUT if arg.is_output else ParamRole.INPUT,
        )
        for arg in operation.arguments
        if arg.required
    )
    return LayerSignature(
        layer="A",
        operation=operation.name,
        symbol=f"{LOW_LEVEL_PREFIX}{operation.name}",
        params=params,
    )


@lru_cache(maxsize=None)
def layer_b(operation: Operation) -> LayerSignature:
    base = layer_a(operation)
    options = tuple(
        LayerParam(name=arg.name, argument=arg, role=ParamRole.OPTION)
        for arg in operation.optional_inputs
    )
    return LayerSignature(
        layer="B",
        operation=operation.name,
        symbol=f"{LOW_LEVEL_PREFIX}{operation.name}{OPTIONS_SUFFIX}",
        params=base.params + options,
    )


@lru_cache(maxsize=None)
def layer_c(operation: Operation) -> LayerSignature:
    pascal = pascal_name(operation.name)
    receiver_arg = operation.image_input
    receiver = (
        LayerParam(name=receiver_arg.name, argument=receiver_arg, role=ParamRole.INPUT)
        if receiver_arg is not None
        else None
    )
    params = tuple(
        LayerParam(name=arg.name, argument=arg, role=ParamRole.INPUT)
        for arg in operation.required_inputs
        if receiver_arg is None or arg.name != receiver_arg.name
    )
    outputs = tuple(
        LayerParam(name=arg.name, argument=arg, role=ParamRole.OUTPUT)
        for arg in operation.required_outputs
    )
    output_image = operation.output_image
    replaces_receiver = receiver is not None and output_image is not None
    if replaces_receiver:
        # the new image replaces the receiver instead of being returned
        results = tuple(param for param in outputs if param.name != output_image.name)
    else:
        results = outputs
    with_options = has_options(operation)
    return LayerSignature(
        layer="C",
        operation=operation.name,
        symbol=pascal,
        params=params,
        receiver=receiver,
        options_type=f"{pascal}Options" if with_options else None,
        defaults_function=f"Default{pascal}Options" if with_options else None,
        results=results,
        replaces_receiver=replaces_receiver,
    )


def required_args(operation: Operation) -> Tuple[Argument, ...]:
    return tuple(arg for arg in operation.arguments if arg.required)


def optional_args(operation: Operation) -> Tuple[Argument, ...]:
    return operation.optional_inputs


def input_args(operation: Operation) -> Tuple[Argument, ...]:
    return tuple(arg for arg in operation.arguments if arg.is_input)


def output_args(operation: Operation) -> Tuple[Argument, ...]:
    return operation.required_outputs


__all__ = [
    "LOW_LEVEL_PREFIX",
    "LayerParam",
    "LayerSignature",
    "OPTIONS_SUFFIX",
    "ParamRole",
    "has_options",
    "input_args",
    "layer_a",
    "layer_b",
    "layer_c",
    "optional_args",
    "output_args",
    "pascal_name",
    "required_args",
]
