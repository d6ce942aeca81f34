"""Pytest configuration and fixtures for deltamerge tests."""

import sys
import tempfile
from pathlib import Path
from types import SimpleNamespace

import pytest
import yaml

from deltamerge.core.log import ConsoleSink, setup_logger

DEFAULTS = (
    Path(__file__).parent.parent
    / "src" / "deltamerge" / "defaults" / "default.yaml"
)


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Console-only debug logging for test runs, nothing sent anywhere."""
    setup_logger(
        log_root=Path(tempfile.gettempdir()) / "deltamerge-tests",
        run_name="test",
        console=ConsoleSink(level="debug"),
    )


@pytest.fixture(scope="session")
def default_commands():
    """Command templates shipped in the package defaults."""
    with open(DEFAULTS, encoding="utf-8") as f:
        return yaml.safe_load(f)["config"]["commands"]


@pytest.fixture
def config(tmp_path, default_commands):
    """Config rooted in a temporary repository and work root."""
    from deltamerge.core.config import Config
    from deltamerge.core.log import Logger

    repo = tmp_path / "repo"
    repo.mkdir()
    return Config(
        logger=Logger(console=ConsoleSink(level="debug")),
        log_root=tmp_path / "logs",
        source={"repo": repo},
        workdir={"root": tmp_path / "work"},
        commands=default_commands,
    )


@pytest.fixture
def mock_argv():
    """Neutral sys.argv so State does not parse pytest's arguments."""
    original = sys.argv.copy()
    sys.argv = ["deltamerge"]
    yield
    sys.argv = original


@pytest.fixture
def make_result():
    """Factory of stand-ins for invoke.Result."""

    def result(exited=0, stdout="", stderr=""):
        return SimpleNamespace(exited=exited, stdout=stdout, stderr=stderr)

    return result
