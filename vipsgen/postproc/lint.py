"""Linting utilities for generated source."""

from __future__ import annotations

from typing import List


class SourceLinter:
    """Normalises line endings, trailing whitespace and blank-line runs."""

    def __init__(self, max_blank_lines: int = 1) -> None:
        self.max_blank_lines = max_blank_lines

    def lint(self, source: str) -> str:
        normalized = source.replace("\r\n", "\n").replace("\r", "\n")
        cleaned: List[str] = []
        blank_run = 0

        for line in normalized.split("\n"):
            stripped = line.rstrip()
            if not stripped:
                blank_run += 1
                # no leading blanks, and at most max_blank_lines in a row
                if not cleaned or blank_run > self.max_blank_lines:
                    continue
                cleaned.append("")
                continue
            blank_run = 0
            cleaned.append(stripped)

        while cleaned and cleaned[-1] == "":
            cleaned.pop()

        if not cleaned:
            return ""
        return "\n".join(cleaned) + "\n"


__all__ = ["SourceLinter"]
