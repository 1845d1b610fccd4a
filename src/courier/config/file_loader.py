"""File-based configuration loading with profile support.

This module handles loading configuration from TOML files, supporting both
project-level (pyproject.toml ``[tool.courier]``) and home-level
(``~/.config/courier.toml``) configuration with named profiles.
"""

import os
from pathlib import Path
import tomllib
from typing import Any


class ConfigFileError(Exception):
    """Raised when configuration file loading fails."""

    def __init__(
        self, file_path: Path, message: str, cause: Exception | None = None
    ) -> None:
        """Initialize with file path, message, and optional cause.

        Args:
            file_path: The file that failed to load
            message: Human-readable error message
            cause: The underlying exception that caused the failure
        """
        self.file_path = file_path
        self.message = message
        self.cause = cause
        super().__init__(f"Config file error in {file_path}: {message}")


def _select_profile(
    path: Path, section: dict[str, Any], profile: str | None
) -> dict[str, Any]:
    if profile:
        profiles = section.get("profiles", {})
        if profile not in profiles:
            available = list(profiles.keys()) if profiles else []
            raise ConfigFileError(
                path,
                f"Profile '{profile}' not found. Available profiles: {available}",
            )
        return dict(profiles[profile])
    config = dict(section)
    config.pop("profiles", None)
    return config


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open(mode="rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigFileError(path, f"Failed to parse TOML: {e}", cause=e) from e


class FileConfigLoader:
    """Loads configuration from TOML files with profile support."""

    def load_project_config(
        self, project_root: Path | None = None, profile: str | None = None
    ) -> dict[str, Any]:
        """Load configuration from the nearest pyproject.toml.

        Args:
            project_root: Directory to search for pyproject.toml. If None,
                searches the current directory and its parents.
            profile: Optional profile name under ``[tool.courier.profiles]``.

        Returns:
            Configuration values; empty when there is no file or section.

        Raises:
            ConfigFileError: If the file cannot be parsed or the profile is missing.
        """
        pyproject_path = self._find_pyproject_toml(project_root)
        if not pyproject_path:
            return {}
        section = _read_toml(pyproject_path).get("tool", {}).get("courier", {})
        if not section:
            return {}
        return _select_profile(pyproject_path, section, profile)

    def load_home_config(self, profile: str | None = None) -> dict[str, Any]:
        """Load configuration from the home configuration file.

        Raises:
            ConfigFileError: If the file cannot be parsed or the profile is missing.
        """
        home_config_path = self._get_home_config_path()
        if not home_config_path.exists():
            return {}
        return _select_profile(home_config_path, _read_toml(home_config_path), profile)

    def _find_pyproject_toml(self, start_dir: Path | None = None) -> Path | None:
        current = Path(start_dir or Path.cwd()).resolve()
        while True:
            candidate = current / "pyproject.toml"
            if candidate.exists():
                return candidate
            if current == current.parent:
                return None
            current = current.parent

    def _get_home_config_path(self) -> Path:
        override = os.getenv("COURIER_CONFIG_HOME")
        if override:
            return Path(override)
        return Path.home() / ".config" / "courier.toml"
