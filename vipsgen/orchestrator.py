"""Pipeline orchestration: config, discovery, aggregation and generation."""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .config import CONFIG_FILENAME, VipsgenConfig, load_config
from .debug import write_debug_dump
from .errors import GenerationTimeout, wrap_stage
from .generator import (
    DirectoryTemplateSource,
    EmbeddedTemplateSource,
    TemplateRenderer,
    TemplateSource,
    aggregate,
    extract_templates,
    generate,
)
from .introspection import DiscoveryResult, discover
from .introspection.normalizer import DEFAULT_EXCLUDED_OPERATIONS
from .logging import get_logger
from .models import TemplateData
from .registry import TypeRegistry, open_registry

DEFAULT_OUTPUT_DIR = Path("vips")
DEFAULT_EXTRACT_DIR = Path("templates")


@dataclass
class GenerateOptions:
    """Per-run settings; ``None`` falls back to the config file."""

    output_dir: Optional[Path] = None
    templates_dir: Optional[Path] = None
    snapshot: Optional[Path] = None
    include_test: Optional[bool] = None
    workers: Optional[int] = None
    deadline: Optional[float] = None
    check_consistency: Optional[bool] = None
    debug_path: Optional[Path] = None


@dataclass
class GenerateOutcome:
    """Result of a generation run."""

    output_dir: Path
    files: List[Path]
    version: str
    operations: int
    warnings: int
    debug_path: Optional[Path] = None


class Orchestrator:
    """Coordinates the discovery and generation stages.

    The registry, template source and renderer can be injected; otherwise
    they are built from the options and ``.vipsgen.yml``.
    """

    def __init__(
        self,
        registry: TypeRegistry | None = None,
        template_source: TemplateSource | None = None,
        renderer: TemplateRenderer | None = None,
        config: VipsgenConfig | None = None,
    ) -> None:
        self.registry = registry
        self.template_source = template_source
        self.renderer = renderer
        self.config = config
        self.logger = get_logger("orchestrator")

    def run_generate(
        self,
        options: GenerateOptions | None = None,
        *,
        config_path: Path = Path(CONFIG_FILENAME),
    ) -> GenerateOutcome:
        """Discover libvips metadata and write one file per template unit."""
        options = options or GenerateOptions()
        started = time.monotonic()
        config = self._load_config(config_path)
        generation = config.generation
        output_dir = Path(options.output_dir or config.output.dir or DEFAULT_OUTPUT_DIR)
        deadline = options.deadline if options.deadline is not None else generation.deadline

        with wrap_stage("discovery"):
            registry = self._resolve_registry(options, config)
        excluded = set(DEFAULT_EXCLUDED_OPERATIONS).union(config.exclude_operations)
        result = discover(registry, excluded=excluded)

        debug_path = None
        if options.debug_path is not None:
            with wrap_stage("debug"):
                debug_path = write_debug_dump(result, options.debug_path)

        with wrap_stage("generation"):
            renderer = self._resolve_renderer(options, config)
            data = self._aggregate(result, options, config)
            remaining = None
            if deadline is not None:
                remaining = deadline - (time.monotonic() - started)
                if remaining <= 0:
                    raise GenerationTimeout(f"deadline of {deadline}s exceeded before generation")
            files = generate(
                renderer,
                data,
                output_dir,
                workers=options.workers or generation.workers,
                deadline=remaining,
                check_consistency=(
                    options.check_consistency
                    if options.check_consistency is not None
                    else generation.check_consistency
                ),
            )

        self.logger.info(
            "Generated %d files for %d operations into %s", len(files), len(data.operations), output_dir
        )
        return GenerateOutcome(
            output_dir=output_dir,
            files=files,
            version=result.version,
            operations=len(data.operations),
            warnings=len(result.warnings),
            debug_path=debug_path,
        )

    def run_extract(
        self,
        destination: Path | None = None,
        *,
        templates_dir: Path | None = None,
        config_path: Path = Path(CONFIG_FILENAME),
    ) -> List[Path]:
        """Copy the active templates to ``destination`` without touching the registry."""
        config = self._load_config(config_path)
        with wrap_stage("extract"):
            source = self._resolve_source(templates_dir, config)
            return extract_templates(source, Path(destination or DEFAULT_EXTRACT_DIR))

    def _load_config(self, config_path: Path) -> VipsgenConfig:
        if self.config is not None:
            return self.config
        with wrap_stage("config"):
            return load_config(config_path)

    def _resolve_registry(self, options: GenerateOptions, config: VipsgenConfig) -> TypeRegistry:
        if self.registry is not None:
            return self.registry
        snapshot = options.snapshot or config.registry.snapshot
        if snapshot is not None:
            self.logger.info("Reading registry snapshot %s", snapshot)
        return open_registry(snapshot=snapshot)

    def _resolve_source(self, templates_dir: Path | None, config: VipsgenConfig) -> TemplateSource:
        if self.template_source is not None:
            return self.template_source
        directory = templates_dir or config.templates.dir
        settings = config.templates
        if directory is not None:
            self.logger.info("Using templates from %s", directory)
            return DirectoryTemplateSource(
                Path(directory), suffix=settings.suffix, test_suffix=settings.test_suffix
            )
        return EmbeddedTemplateSource(suffix=settings.suffix, test_suffix=settings.test_suffix)

    def _resolve_renderer(self, options: GenerateOptions, config: VipsgenConfig) -> TemplateRenderer:
        if self.renderer is not None:
            return self.renderer
        return TemplateRenderer(self._resolve_source(options.templates_dir, config))

    @staticmethod
    def _aggregate(result: DiscoveryResult, options: GenerateOptions, config: VipsgenConfig) -> TemplateData:
        include_test = (
            options.include_test if options.include_test is not None else config.generation.include_test
        )
        return aggregate(
            result.operations,
            result.enum_types,
            result.image_types,
            result.version,
            include_test,
            warnings=result.warnings,
        )


__all__ = [
    "DEFAULT_EXTRACT_DIR",
    "DEFAULT_OUTPUT_DIR",
    "GenerateOptions",
    "GenerateOutcome",
    "Orchestrator",
]
