"""Configuration loading for vipsgen (.vipsgen.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigError
from .generator.loader import DEFAULT_SUFFIX, DEFAULT_TEST_SUFFIX

CONFIG_FILENAME = ".vipsgen.yml"


@dataclass
class TemplatesConfig:
    """Where templates come from and how units are named."""

    dir: Optional[Path] = None
    suffix: str = DEFAULT_SUFFIX
    test_suffix: str = DEFAULT_TEST_SUFFIX


@dataclass
class OutputConfig:
    dir: Optional[Path] = None


@dataclass
class GenerationConfig:
    """Rendering and write settings."""

    include_test: bool = False
    workers: int = 1
    deadline: Optional[float] = None
    check_consistency: bool = True


@dataclass
class RegistryConfig:
    snapshot: Optional[Path] = None


@dataclass
class VipsgenConfig:
    """Represents the settings defined in .vipsgen.yml."""

    root: Path
    templates: TemplatesConfig = field(default_factory=TemplatesConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    exclude_operations: List[str] = field(default_factory=list)


def load_config(config_path: Path) -> VipsgenConfig:
    """Load configuration from disk; a missing file yields the defaults.

    Relative paths in the file resolve against the file's directory.
    """
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return VipsgenConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file.name} must contain a mapping at the root")

    templates_data = _as_dict(data.get("templates"))
    templates = TemplatesConfig(
        dir=_as_path(root, templates_data.get("dir")),
        suffix=_as_str(templates_data.get("suffix")) or DEFAULT_SUFFIX,
        test_suffix=_as_str(templates_data.get("test_suffix")) or DEFAULT_TEST_SUFFIX,
    )

    output_data = _as_dict(data.get("output"))
    output = OutputConfig(dir=_as_path(root, output_data.get("dir")))

    generation_data = _as_dict(data.get("generation"))
    generation = GenerationConfig()
    if generation_data:
        include_test = _as_bool(generation_data.get("include_test"))
        check_consistency = _as_bool(generation_data.get("check_consistency"))
        workers = _as_int(generation_data.get("workers"))
        if workers is not None and workers < 1:
            raise ConfigError("generation.workers must be at least 1")
        deadline = _as_float(generation_data.get("deadline"))
        if deadline is not None and deadline <= 0:
            raise ConfigError("generation.deadline must be positive")
        generation = GenerationConfig(
            include_test=include_test if include_test is not None else False,
            workers=workers or 1,
            deadline=deadline,
            check_consistency=check_consistency if check_consistency is not None else True,
        )

    registry_data = _as_dict(data.get("registry"))
    registry = RegistryConfig(snapshot=_as_path(root, registry_data.get("snapshot")))

    return VipsgenConfig(
        root=root,
        templates=templates,
        output=output,
        generation=generation,
        registry=registry,
        exclude_operations=_as_str_list(data.get("exclude_operations")),
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = Path(config_path).expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_path(root: Path, value: Any) -> Optional[Path]:
    text = _as_str(value)
    if not text:
        return None
    return (root / Path(text).expanduser()).resolve()


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "GenerationConfig",
    "OutputConfig",
    "RegistryConfig",
    "TemplatesConfig",
    "VipsgenConfig",
    "load_config",
]
