from __future__ import annotations

from pathlib import Path

import pytest

from intgen.catalog import CatalogRegistry
from tests._fixtures.project_builder import ProjectBuilder


@pytest.fixture
def project_builder(tmp_path: Path) -> ProjectBuilder:
    """Provide a reusable project builder rooted at the pytest tmp_path."""
    return ProjectBuilder(tmp_path)


@pytest.fixture
def registry() -> CatalogRegistry:
    """A fresh registry loaded from the built-in catalog."""
    return CatalogRegistry.builtin()
