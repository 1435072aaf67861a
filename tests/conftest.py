from __future__ import annotations

import logging
from pathlib import Path

import pytest

from tests._fixtures.registry_builder import FakeRegistry, RegistryBuilder, standard_builder
from vipsgen.generator.templatedata import aggregate
from vipsgen.introspection import DiscoveryResult, discover
from vipsgen.models import TemplateData


@pytest.fixture
def registry_builder() -> RegistryBuilder:
    """Provide an empty registry builder."""
    return RegistryBuilder()


@pytest.fixture
def fake_registry() -> FakeRegistry:
    """Provide the standard in-memory registry."""
    return standard_builder().build()


@pytest.fixture
def discovery(fake_registry: FakeRegistry) -> DiscoveryResult:
    return discover(fake_registry)


@pytest.fixture
def template_data(discovery: DiscoveryResult) -> TemplateData:
    return aggregate(
        discovery.operations,
        discovery.enum_types,
        discovery.image_types,
        discovery.version,
        include_test=False,
        warnings=discovery.warnings,
    )


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """Provide an empty directory for external templates."""
    path = tmp_path / "templates"
    path.mkdir()
    return path


@pytest.fixture(autouse=True)
def _reset_vipsgen_logger():
    """Undo configure_logging() so caplog keeps seeing vipsgen records."""
    yield
    logger = logging.getLogger("vipsgen")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
