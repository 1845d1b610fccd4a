"""
Global test configuration and environment isolation.
"""

import logging
import os

import pytest

from courier.config import FrozenConfig


# --- Environment Isolation (Autouse) ---
@pytest.fixture(autouse=True)
def isolate_courier_env(request, monkeypatch):
    """Ensure a clean COURIER_* environment for each test.

    - Removes all COURIER_* variables and debug toggles before each test
    - Leaves other variables intact for stability

    Escape hatch: @pytest.mark.allow_env_pollution keeps the environment.
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return

    for key in list(os.environ.keys()):
        if key.startswith("COURIER_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("DEBUG", raising=False)


@pytest.fixture(autouse=True)
def neutral_home_config(monkeypatch, tmp_path):
    """Point the home-config path to an isolated temp file.

    Prevents reading a developer's real ~/.config/courier.toml during tests.
    """
    fake_home_dir = tmp_path / "home_config_isolated"
    fake_home_dir.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("COURIER_CONFIG_HOME", str(fake_home_dir / "courier.toml"))


# --- Logging Fixtures ---
@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Sets the log level for noisy external libraries to WARNING."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# --- Test Environment Markers ---
def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "contract: Behavioral guarantees of the pipeline and its stages",
        "allow_env_pollution: Keep COURIER_* environment variables for this test",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


# --- Core Fixtures ---


@pytest.fixture
def frozen_config():
    """A default configuration that never touches the environment or files."""
    return FrozenConfig()
