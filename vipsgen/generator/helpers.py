"""Helper functions exposed to templates.

Templates stay thin skeletons; the naming, type mapping, default-literal
formatting and per-argument code fragments live here. Every helper is
total over the normalised model: any :class:`Argument` the normaliser can
produce has a defined rendering.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Sequence, Tuple

from ..models import Argument, ArgumentKind, EnumTypeInfo, Operation
from .contract import (
    LayerParam,
    LayerSignature,
    ParamRole,
    has_options,
    input_args,
    layer_a,
    layer_b,
    layer_c,
    optional_args,
    output_args,
    pascal_name,
    required_args,
)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_NON_WORD = re.compile(r"[^0-9a-zA-Z]+")

_GO_RESERVED = frozenset(
    {
        "break", "case", "chan", "const", "continue", "default", "defer", "else",
        "fallthrough", "for", "func", "go", "goto", "if", "import", "interface",
        "map", "package", "range", "return", "select", "struct", "switch", "type",
        "var", "append", "bool", "byte", "cap", "close", "copy", "delete", "error",
        "false", "float64", "imag", "int", "len", "make", "new", "nil", "panic",
        "real", "string", "true", "uintptr", "err", "options", "r",
    }
)

_C_RESERVED = frozenset(
    {
        "auto", "break", "case", "char", "const", "continue", "default", "do",
        "double", "else", "enum", "extern", "float", "for", "goto", "if", "inline",
        "int", "long", "register", "restrict", "return", "short", "signed",
        "sizeof", "static", "struct", "switch", "typedef", "union", "unsigned",
        "void", "volatile", "while", "operation",
    }
)

_C_SCALARS: Dict[str, str] = {
    "gint": "int",
    "guint": "guint",
    "gint64": "gint64",
    "guint64": "guint64",
    "gdouble": "double",
    "gfloat": "gfloat",
    "gboolean": "gboolean",
}

_CGO_SCALARS: Dict[str, str] = {
    "int": "C.int",
    "guint": "C.guint",
    "gint64": "C.gint64",
    "guint64": "C.guint64",
    "double": "C.double",
    "gfloat": "C.gfloat",
    "gboolean": "C.gboolean",
}


# ----------------------------------------------------------------------
# Casing


def snake_case(name: str) -> str:
    """``VipsForeignPngFilter`` -> ``vips_foreign_png_filter``; ``extract-area`` -> ``extract_area``."""
    spaced = _CAMEL_BOUNDARY.sub("_", name)
    return "_".join(part.lower() for part in _NON_WORD.split(spaced) if part)


def pascal_case(name: str) -> str:
    return pascal_name(name)


def camel_case(name: str) -> str:
    pascal = pascal_case(name)
    if not pascal:
        return pascal
    if pascal.isupper():
        return pascal.lower()
    return pascal[:1].lower() + pascal[1:]


def go_identifier(name: str) -> str:
    ident = camel_case(name)
    if not ident or ident[0].isdigit():
        ident = f"v{ident}"
    if ident in _GO_RESERVED:
        return f"{ident}Arg"
    return ident


def c_identifier(name: str) -> str:
    ident = snake_case(name) or "arg"
    if ident[0].isdigit():
        ident = f"v_{ident}"
    if ident in _C_RESERVED:
        return f"{ident}_"
    return ident


def go_field_name(argument: Argument) -> str:
    return pascal_case(argument.name)


def go_wrapper_name(signature: LayerSignature) -> str:
    """Name of the Go function that wraps a low-level C symbol."""
    return camel_case(signature.symbol)


# ----------------------------------------------------------------------
# Enums


def go_enum_type(enum_name: str) -> str:
    """``VipsKernel`` -> ``Kernel``."""
    stripped = enum_name[4:] if enum_name.startswith("Vips") and len(enum_name) > 4 else enum_name
    return pascal_case(stripped)


def go_enum_members(info: EnumTypeInfo) -> List[Dict[str, Any]]:
    """Go constant names for ``info``'s members, in registry order and unique."""
    type_name = go_enum_type(info.name)
    used: Dict[str, int] = {}
    members: List[Dict[str, Any]] = []
    for member in info.members:
        base = f"{type_name}{pascal_case(member.nick) or member.value}"
        count = used.get(base, 0)
        used[base] = count + 1
        go_name = base if count == 0 else f"{base}{count + 1}"
        members.append({"go_name": go_name, "nick": member.nick, "name": member.name, "value": member.value})
    return members


# ----------------------------------------------------------------------
# Type mapping


def c_type(argument: Argument) -> str:
    """C type of a single input value (arrays and blobs also take a length)."""
    kind = argument.kind
    if kind in (ArgumentKind.INTEGER, ArgumentKind.FLOAT, ArgumentKind.BOOLEAN):
        return _C_SCALARS.get(argument.native_type, "double" if kind is ArgumentKind.FLOAT else "int")
    if kind is ArgumentKind.STRING:
        return "const char *"
    if kind in (ArgumentKind.ENUM, ArgumentKind.FLAGS):
        return "int"
    if kind is ArgumentKind.ARRAY:
        if argument.element_kind is ArgumentKind.FLOAT:
            return "const double *"
        if argument.element_kind is ArgumentKind.INTEGER:
            return "const int *"
        return "VipsImage **"
    if kind is ArgumentKind.BLOB:
        return "const void *"
    return f"{argument.native_type} *"


def cgo_type(argument: Argument) -> str:
    """cgo spelling of :func:`c_type` for scalar and object values."""
    kind = argument.kind
    if kind in (ArgumentKind.INTEGER, ArgumentKind.FLOAT, ArgumentKind.BOOLEAN):
        return _CGO_SCALARS[c_type(argument)]
    if kind in (ArgumentKind.ENUM, ArgumentKind.FLAGS):
        return "C.int"
    if kind is ArgumentKind.STRING:
        return "*C.char"
    if kind is ArgumentKind.OBJECT:
        return f"*C.{argument.native_type}"
    if kind is ArgumentKind.ARRAY:
        if argument.element_kind is ArgumentKind.FLOAT:
            return "*C.double"
        if argument.element_kind is ArgumentKind.INTEGER:
            return "*C.int"
        return "**C.VipsImage"
    return "unsafe.Pointer"


def go_type(argument: Argument) -> str:
    """Go type used by the low-level (Layer A/B) wrappers."""
    kind = argument.kind
    if kind in (ArgumentKind.INTEGER, ArgumentKind.ENUM, ArgumentKind.FLAGS):
        return "int"
    if kind is ArgumentKind.FLOAT:
        return "float64"
    if kind is ArgumentKind.BOOLEAN:
        return "bool"
    if kind is ArgumentKind.STRING:
        return "string"
    if kind is ArgumentKind.ARRAY:
        if argument.element_kind is ArgumentKind.FLOAT:
            return "[]float64"
        if argument.element_kind is ArgumentKind.INTEGER:
            return "[]int"
        return "[]*C.VipsImage"
    if kind is ArgumentKind.BLOB:
        return "[]byte"
    return f"*C.{argument.native_type}"


def go_api_type(argument: Argument) -> str:
    """Go type used by the high-level (Layer C) API."""
    kind = argument.kind
    if kind in (ArgumentKind.ENUM, ArgumentKind.FLAGS) and argument.enum_type:
        return go_enum_type(argument.enum_type)
    if argument.is_image:
        return "*Image"
    if argument.is_image_array:
        return "[]*Image"
    return go_type(argument)


def go_zero(argument: Argument) -> str:
    kind = argument.kind
    if kind in (ArgumentKind.INTEGER, ArgumentKind.FLOAT, ArgumentKind.ENUM, ArgumentKind.FLAGS):
        return "0"
    if kind is ArgumentKind.BOOLEAN:
        return "false"
    if kind is ArgumentKind.STRING:
        return '""'
    return "nil"


# ----------------------------------------------------------------------
# Default-value literals


def _float_literal(value: float) -> str:
    text = repr(float(value))
    if "e" in text or "E" in text or "." in text:
        return text
    return f"{text}.0"


def go_literal(argument: Argument) -> str:
    """Go literal for an optional argument's normalised default."""
    value = argument.default_value
    kind = argument.kind
    if kind is ArgumentKind.INTEGER:
        return str(int(value or 0))
    if kind is ArgumentKind.FLOAT:
        return _float_literal(value or 0.0)
    if kind is ArgumentKind.BOOLEAN:
        return "true" if value else "false"
    if kind is ArgumentKind.STRING:
        return json.dumps(value or "")
    if kind in (ArgumentKind.ENUM, ArgumentKind.FLAGS):
        return f"{go_api_type(argument)}({int(value or 0)})"
    if kind is ArgumentKind.ARRAY and value and argument.element_kind is not ArgumentKind.OBJECT:
        if argument.element_kind is ArgumentKind.FLOAT:
            items = ", ".join(_float_literal(item) for item in value)
        else:
            items = ", ".join(str(int(item)) for item in value)
        return f"{go_api_type(argument)}{{{items}}}"
    return "nil"


def c_literal(argument: Argument) -> str:
    """C literal for an optional argument's normalised default."""
    value = argument.default_value
    kind = argument.kind
    if kind in (ArgumentKind.INTEGER, ArgumentKind.ENUM, ArgumentKind.FLAGS):
        return str(int(value or 0))
    if kind is ArgumentKind.FLOAT:
        return _float_literal(value or 0.0)
    if kind is ArgumentKind.BOOLEAN:
        return "TRUE" if value else "FALSE"
    if kind is ArgumentKind.STRING:
        return json.dumps(value) if value else "NULL"
    return "NULL"


# ----------------------------------------------------------------------
# C fragments


def _length_name(param: LayerParam) -> str:
    suffix = "len" if param.argument.kind is ArgumentKind.BLOB else "n"
    return f"{c_identifier(param.name)}_{suffix}"


def _has_length(argument: Argument) -> bool:
    return argument.kind in (ArgumentKind.ARRAY, ArgumentKind.BLOB)


def c_param_decls(param: LayerParam) -> List[str]:
    argument = param.argument
    name = c_identifier(param.name)
    if param.role is ParamRole.OUTPUT:
        if argument.kind is ArgumentKind.ARRAY:
            element = c_type(argument).replace("const ", "").rstrip(" *")
            pointer = "***" if element == "VipsImage" else "**"
            return [f"{element} {pointer}{name}", f"int *{_length_name(param)}"]
        if argument.kind is ArgumentKind.BLOB:
            return [f"void **{name}", f"size_t *{_length_name(param)}"]
        if argument.kind is ArgumentKind.STRING:
            return [f"char **{name}"]
        base = c_type(argument)
        if base.endswith("*"):
            return [f"{base}*{name}"]
        return [f"{base} *{name}"]
    base = c_type(argument)
    decl = f"{base}{name}" if base.endswith("*") else f"{base} {name}"
    if argument.kind is ArgumentKind.ARRAY:
        return [decl, f"int {_length_name(param)}"]
    if argument.kind is ArgumentKind.BLOB:
        return [decl, f"size_t {_length_name(param)}"]
    return [decl]


def c_params(signature: LayerSignature) -> str:
    decls: List[str] = []
    for param in signature.params:
        decls.extend(c_param_decls(param))
    return ", ".join(decls) if decls else "void"


def c_set_lines(param: LayerParam) -> List[str]:
    """Statements that set one input on ``operation``.

    Optional strings, arrays, objects and blobs are set only when supplied,
    since leaving them unset is how libvips expresses their default.
    """
    argument = param.argument
    name = c_identifier(param.name)
    native = json.dumps(argument.name.replace("_", "-"))
    kind = argument.kind
    if kind is ArgumentKind.ARRAY:
        element = {ArgumentKind.FLOAT: "double", ArgumentKind.INTEGER: "int"}.get(argument.element_kind, "image")
        statement = f"vipsgen_set_array_{element}(operation, {native}, {name}, {_length_name(param)});"
        guard = f"{_length_name(param)} > 0"
    elif kind is ArgumentKind.BLOB:
        statement = f"vipsgen_set_blob(operation, {native}, {name}, {_length_name(param)});"
        guard = f"{name} != NULL && {_length_name(param)} > 0"
    else:
        statement = f"g_object_set(operation, {native}, {name}, NULL);"
        if kind is ArgumentKind.STRING:
            guard = f"{name} != NULL && {name}[0] != '\\0'"
        elif kind is ArgumentKind.OBJECT:
            guard = f"{name} != NULL"
        else:
            guard = ""
    if param.role is ParamRole.OPTION and guard:
        return [f"if ({guard})", f"\t{statement}"]
    return [statement]


def c_get_lines(param: LayerParam) -> List[str]:
    argument = param.argument
    name = c_identifier(param.name)
    native = json.dumps(argument.name.replace("_", "-"))
    if argument.kind is ArgumentKind.ARRAY:
        element = {ArgumentKind.FLOAT: "double", ArgumentKind.INTEGER: "int"}.get(argument.element_kind, "image")
        return [f"vipsgen_get_array_{element}(operation, {native}, {name}, {_length_name(param)});"]
    if argument.kind is ArgumentKind.BLOB:
        return [f"vipsgen_get_blob(operation, {native}, {name}, {_length_name(param)});"]
    return [f"g_object_get(operation, {native}, {name}, NULL);"]


# ----------------------------------------------------------------------
# Go fragments


@dataclass
class GoCall:
    """Pieces of a low-level Go wrapper around one C symbol."""

    params: List[str] = field(default_factory=list)
    setup: List[str] = field(default_factory=list)
    declarations: List[str] = field(default_factory=list)
    args: List[str] = field(default_factory=list)
    result_types: List[str] = field(default_factory=list)
    zeros: List[str] = field(default_factory=list)
    returns: List[str] = field(default_factory=list)

    @property
    def results(self) -> str:
        types = self.result_types + ["error"]
        return types[0] if len(types) == 1 else f"({', '.join(types)})"


def go_call(signature: LayerSignature) -> GoCall:
    call = GoCall()
    for param in signature.params:
        argument = param.argument
        name = go_identifier(param.name)
        kind = argument.kind
        if param.role is ParamRole.OUTPUT:
            _go_output(call, param, name)
            continue
        call.params.append(f"{name} {go_type(argument)}")
        if kind is ArgumentKind.STRING:
            call.setup.append(f"c{pascal_case(name)} := C.CString({name})")
            call.setup.append(f"defer freeCString(c{pascal_case(name)})")
            call.args.append(f"c{pascal_case(name)}")
        elif kind is ArgumentKind.ARRAY:
            helper = {ArgumentKind.FLOAT: "cDoubleArray", ArgumentKind.INTEGER: "cIntArray"}.get(
                argument.element_kind, "cImageArray"
            )
            call.setup.append(f"c{pascal_case(name)}, n{pascal_case(name)} := {helper}({name})")
            call.args.extend([f"c{pascal_case(name)}", f"n{pascal_case(name)}"])
        elif kind is ArgumentKind.BLOB:
            call.setup.append(f"c{pascal_case(name)}, n{pascal_case(name)} := cBlob({name})")
            call.args.extend([f"c{pascal_case(name)}", f"n{pascal_case(name)}"])
        elif kind is ArgumentKind.BOOLEAN:
            call.args.append(f"C.gboolean(boolToInt({name}))")
        elif kind is ArgumentKind.OBJECT:
            call.args.append(name)
        else:
            call.args.append(f"{cgo_type(argument)}({name})")
    return call


def _go_output(call: GoCall, param: LayerParam, name: str) -> None:
    argument = param.argument
    kind = argument.kind
    call.result_types.append(go_type(argument))
    call.zeros.append(go_zero(argument))
    if kind is ArgumentKind.ARRAY:
        length = f"n{pascal_case(name)}"
        pointer = {ArgumentKind.FLOAT: "*C.double", ArgumentKind.INTEGER: "*C.int"}.get(
            argument.element_kind, "**C.VipsImage"
        )
        convert = {ArgumentKind.FLOAT: "fromDoubleArray", ArgumentKind.INTEGER: "fromIntArray"}.get(
            argument.element_kind, "fromImageArray"
        )
        call.declarations.extend([f"var {name} {pointer}", f"var {length} C.int"])
        call.args.extend([f"&{name}", f"&{length}"])
        call.returns.append(f"{convert}({name}, {length})")
    elif kind is ArgumentKind.BLOB:
        length = f"n{pascal_case(name)}"
        call.declarations.extend([f"var {name} unsafe.Pointer", f"var {length} C.size_t"])
        call.args.extend([f"&{name}", f"&{length}"])
        call.returns.append(f"fromBlob({name}, {length})")
    else:
        call.declarations.append(f"var {name} {cgo_type(argument)}")
        call.args.append(f"&{name}")
        if kind is ArgumentKind.BOOLEAN:
            call.returns.append(f"{name} != 0")
        elif kind is ArgumentKind.STRING:
            call.returns.append(f"fromCString({name})")
        elif kind is ArgumentKind.OBJECT:
            call.returns.append(name)
        else:
            call.returns.append(f"{go_type(argument)}({name})")


def go_api_params(signature: LayerSignature) -> str:
    params = [f"{go_identifier(param.name)} {go_api_type(param.argument)}" for param in signature.params]
    if signature.options_type:
        params.append(f"options *{signature.options_type}")
    return ", ".join(params)


def go_api_results(signature: LayerSignature) -> str:
    types = [go_api_type(param.argument) for param in signature.results] + ["error"]
    return types[0] if len(types) == 1 else f"({', '.join(types)})"


def go_api_zeros(signature: LayerSignature) -> str:
    return ", ".join([go_zero(param.argument) for param in signature.results] + ["err"])


def _to_low_level(argument: Argument, expression: str) -> str:
    if argument.is_image:
        return f"imagePtr({expression})"
    if argument.is_image_array:
        return f"imageArray({expression})"
    if argument.kind in (ArgumentKind.ENUM, ArgumentKind.FLAGS):
        return f"int({expression})"
    return expression


def _from_low_level(argument: Argument, expression: str) -> str:
    if argument.is_image:
        return f"newImage({expression})"
    if argument.is_image_array:
        return f"newImages({expression})"
    if argument.kind in (ArgumentKind.ENUM, ArgumentKind.FLAGS) and argument.enum_type:
        return f"{go_enum_type(argument.enum_type)}({expression})"
    return expression


def go_api_call(signature: LayerSignature, target: LayerSignature) -> Dict[str, Any]:
    """How a Layer C method calls the low-level ``target`` wrapper.

    Returns the call expression, the names bound to the wrapper's outputs,
    and the expressions the method returns on success.
    """
    args: List[str] = []
    outputs: List[str] = []
    for param in target.params:
        if param.role is ParamRole.OUTPUT:
            outputs.append(go_identifier(param.name))
            continue
        if signature.receiver is not None and param.name == signature.receiver.name:
            args.append("r.image")
        elif param.role is ParamRole.OPTION:
            args.append(_to_low_level(param.argument, f"options.{go_field_name(param.argument)}"))
        else:
            args.append(_to_low_level(param.argument, go_identifier(param.name)))
    returns = [_from_low_level(param.argument, go_identifier(param.name)) for param in signature.results]
    replaced = None
    if signature.replaces_receiver:
        output_names = {param.name for param in signature.results}
        for param in target.outputs:
            if param.argument.is_image and param.name not in output_names:
                replaced = go_identifier(param.name)
                break
    return {
        "call": f"{go_wrapper_name(target)}({', '.join(args)})",
        "outputs": outputs + ["err"],
        "returns": returns + ["nil"],
        "replaced": replaced,
    }


def comment_lines(text: str, prefix: str = "// ") -> List[str]:
    cleaned = " ".join((text or "").split())
    return [f"{prefix}{cleaned}"] if cleaned else []


def has_image_input(operation: Operation) -> bool:
    return operation.image_input is not None


def sort_by_name(items: Sequence[Any]) -> List[Any]:
    return sorted(items, key=lambda item: item.name)


TEMPLATE_FILTERS: Dict[str, Callable[..., Any]] = {
    "snake_case": snake_case,
    "camel_case": camel_case,
    "pascal_case": pascal_case,
    "go_identifier": go_identifier,
    "c_identifier": c_identifier,
    "go_field_name": go_field_name,
    "go_wrapper_name": go_wrapper_name,
    "go_enum_type": go_enum_type,
    "go_enum_members": go_enum_members,
    "go_type": go_type,
    "go_api_type": go_api_type,
    "c_type": c_type,
    "cgo_type": cgo_type,
    "go_literal": go_literal,
    "c_literal": c_literal,
    "c_params": c_params,
    "c_set_lines": c_set_lines,
    "c_get_lines": c_get_lines,
    "go_call": go_call,
    "go_api_params": go_api_params,
    "go_api_results": go_api_results,
    "go_api_zeros": go_api_zeros,
    "comment_lines": comment_lines,
    "sort_by_name": sort_by_name,
    "required_args": required_args,
    "optional_args": optional_args,
    "input_args": input_args,
    "output_args": output_args,
    "layer_a": layer_a,
    "layer_b": layer_b,
    "layer_c": layer_c,
}

TEMPLATE_GLOBALS: Dict[str, Callable[..., Any]] = {
    "layer_a": layer_a,
    "layer_b": layer_b,
    "layer_c": layer_c,
    "has_options": has_options,
    "has_image_input": has_image_input,
    "go_api_call": go_api_call,
}

TEMPLATE_TESTS: Dict[str, Callable[..., bool]] = {
    "with_options": has_options,
    "image_method": has_image_input,
}


def template_helpers() -> Tuple[Dict[str, Callable[..., Any]], Dict[str, Callable[..., Any]], Dict[str, Callable[..., bool]]]:
    """Return copies of the filter, global and test tables for a jinja2 environment."""
    return dict(TEMPLATE_FILTERS), dict(TEMPLATE_GLOBALS), dict(TEMPLATE_TESTS)


__all__ = [
    "GoCall",
    "TEMPLATE_FILTERS",
    "TEMPLATE_GLOBALS",
    "TEMPLATE_TESTS",
    "c_get_lines",
    "c_identifier",
    "c_literal",
    "c_param_decls",
    "c_params",
    "c_set_lines",
    "c_type",
    "camel_case",
    "cgo_type",
    "comment_lines",
    "go_api_call",
    "go_api_params",
    "go_api_results",
    "go_api_type",
    "go_call",
    "go_enum_members",
    "go_enum_type",
    "go_field_name",
    "go_identifier",
    "go_literal",
    "go_type",
    "go_wrapper_name",
    "go_zero",
    "pascal_case",
    "snake_case",
    "template_helpers",
]
