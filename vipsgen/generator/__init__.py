"""Template data, the layered binding contract, rendering and generation."""

from .consistency import LayerConsistencyChecker, check_layers
from .contract import LayerParam, LayerSignature, ParamRole, layer_a, layer_b, layer_c
from .driver import generate
from .loader import (
    DirectoryTemplateSource,
    EmbeddedTemplateSource,
    TemplateSource,
    TemplateUnit,
    extract_templates,
)
from .renderer import TemplateRenderer
from .templatedata import aggregate

__all__ = [
    "DirectoryTemplateSource",
    "EmbeddedTemplateSource",
    "LayerConsistencyChecker",
    "LayerParam",
    "LayerSignature",
    "ParamRole",
    "TemplateRenderer",
    "TemplateSource",
    "TemplateUnit",
    "aggregate",
    "check_layers",
    "extract_templates",
    "generate",
    "layer_a",
    "layer_b",
    "layer_c",
]
