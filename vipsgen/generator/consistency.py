"""Cross-layer consistency check of rendered output.

A high-level method is only correct when both low-level calls it may
dispatch to were generated alongside it: the C definition of each symbol
and the Go wrapper that calls it. The check runs on the rendered text,
before anything is written.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Mapping

from ..errors import ConsistencyError
from ..logging import get_logger
from ..models import Operation
from .contract import has_options, layer_a, layer_b, layer_c
from .helpers import go_wrapper_name

# ``func Name(`` or ``func (recv *T) Name(``
HIGH_LEVEL_PATTERN = r"^func (?:\([^)]*\) )?{symbol}\("
# ``int vipsgen_name(...)`` followed by a body; a ``;`` prototype does not count
LOW_LEVEL_PATTERN = r"^(?:[A-Za-z_][\w \t\*]*[ \t\*])?{symbol}\s*\([^;{{]*\)\s*\{{"
# ``func vipsgenName(``
GO_WRAPPER_PATTERN = r"^func {symbol}\("

_LOGGER = get_logger("generator.consistency")


class LayerConsistencyChecker:
    def __init__(
        self,
        *,
        high_level_pattern: str = HIGH_LEVEL_PATTERN,
        low_level_pattern: str = LOW_LEVEL_PATTERN,
        go_wrapper_pattern: str = GO_WRAPPER_PATTERN,
    ) -> None:
        self.high_level_pattern = high_level_pattern
        self.low_level_pattern = low_level_pattern
        self.go_wrapper_pattern = go_wrapper_pattern

    def missing(self, rendered: Mapping[str, bytes], operations: Iterable[Operation]) -> Dict[str, List[str]]:
        """Return ``{layer C symbol: [missing low-level symbols]}`` for every broken operation.

        C symbols are reported as ``vipsgen_name`` and Go wrappers as ``vipsgenName``.
        """
        text = "\n".join(
            rendered[name].decode("utf-8", errors="replace") for name in sorted(rendered)
        )
        missing: Dict[str, List[str]] = {}
        for operation in operations:
            high = layer_c(operation).symbol
            if not self._defines(self.high_level_pattern, high, text):
                continue
            signatures = [layer_a(operation)]
            if has_options(operation):
                signatures.append(layer_b(operation))
            absent = [
                signature.symbol
                for signature in signatures
                if not self._defines(self.low_level_pattern, signature.symbol, text)
            ]
            absent.extend(
                go_wrapper_name(signature)
                for signature in signatures
                if not self._defines(self.go_wrapper_pattern, go_wrapper_name(signature), text)
            )
            if absent:
                missing[high] = absent
        return missing

    def check(self, rendered: Mapping[str, bytes], operations: Iterable[Operation]) -> None:
        missing = self.missing(rendered, operations)
        if missing:
            raise ConsistencyError(missing)
        _LOGGER.debug("Layered API consistent across %d files", len(rendered))

    @staticmethod
    def _defines(pattern: str, symbol: str, text: str) -> bool:
        return re.search(pattern.format(symbol=re.escape(symbol)), text, re.MULTILINE) is not None


def check_layers(rendered: Mapping[str, bytes], operations: Iterable[Operation]) -> None:
    LayerConsistencyChecker().check(rendered, operations)


__all__ = [
    "GO_WRAPPER_PATTERN",
    "HIGH_LEVEL_PATTERN",
    "LOW_LEVEL_PATTERN",
    "LayerConsistencyChecker",
    "check_layers",
]
