"""Shared pytest fixtures for fargin tests."""

from __future__ import annotations

import logging
from collections.abc import Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from fargin.core import DevCycleConfig, init_project
from fargin.features import FeatureManager
from tests._helpers import python_command


@pytest.fixture(autouse=True)
def _reset_fargin_logger() -> Generator[None, None, None]:
    """Detach file handlers the CLI attached so tmp dirs are not held open."""
    yield
    logger = logging.getLogger("fargin")
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A tmp directory initialized as a fargin project named "demo".

    Returns the project root (parent of .fargin/).
    """
    init_project(tmp_path, "demo", "A demo project")
    return tmp_path


@pytest.fixture
def manager(project: Path) -> FeatureManager:
    return FeatureManager(project)


@pytest.fixture
def passing_dev_cycle() -> DevCycleConfig:
    """format/lint/test commands that print a line and exit 0."""
    return DevCycleConfig(
        format=python_command("print('fmt ok')"),
        lint=python_command("print('lint ok')"),
        test=python_command("print('tests ok')"),
    )


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()
