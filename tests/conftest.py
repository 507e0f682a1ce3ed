"""Pytest configuration for repository test runs."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def pytest_sessionstart() -> None:
    """Add src directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    src_path = project_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


@pytest.fixture
def quarry_config():
    """Runtime config with an explicit project and no environment lookups."""
    from core.config import QuarryConfig

    return QuarryConfig(project_id="proj")


@pytest.fixture
def document_target():
    """Destination used by the export scenarios."""
    from core.types import DocumentTarget

    return DocumentTarget(
        project_id="proj",
        database_id="(default)",
        collection="exports",
        run_id="run-42",
    )
