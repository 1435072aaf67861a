"""Logging utilities for vipsgen commands.

Records about individual dropped arguments go to the ``vipsgen.mapping``
logger. A registry of several hundred operations produces dozens of them,
so the console only shows them with ``--verbose`` while a log file always
keeps them.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from .errors import ArgumentMappingWarning

_LOGGER_NAME = "vipsgen"
MAPPING_LOGGER = f"{_LOGGER_NAME}.mapping"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the vipsgen hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


class MappingRecordFilter(logging.Filter):
    """Rejects per-argument mapping records."""

    def filter(self, record: logging.LogRecord) -> bool:
        return not (record.name == MAPPING_LOGGER or record.name.startswith(MAPPING_LOGGER + "."))


def log_mapping_warnings(warnings: Iterable["ArgumentMappingWarning"]) -> int:
    """Log one record per dropped argument on the mapping logger; return the count."""
    logger = logging.getLogger(MAPPING_LOGGER)
    count = 0
    for warning in warnings:
        logger.info(
            "%s",
            warning.message(),
            extra={"operation": warning.operation, "argument": warning.argument},
        )
        count += 1
    return count


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Configure the vipsgen logger with console output and optional file sink."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter("[vipsgen] %(levelname)s %(message)s"))
    if not verbose:
        stream_handler.addFilter(MappingRecordFilter())
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


__all__ = [
    "MAPPING_LOGGER",
    "MappingRecordFilter",
    "configure_logging",
    "get_logger",
    "log_mapping_warnings",
]
