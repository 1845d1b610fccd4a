"""Configuration resolution with precedence handling.

This module implements the resolution algorithm that merges configuration
from multiple sources according to the documented precedence order:
Programmatic > Environment > Project file > Home file > Defaults
"""

import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .file_loader import ConfigFileError, FileConfigLoader
from .schema import CourierSettings
from .types import FIELD_ORDER, ConfigOrigin, ResolvedConfig

log = logging.getLogger(__name__)


def _schema_defaults() -> dict[str, Any]:
    return {
        name: field.get_default(call_default_factory=True)
        for name, field in CourierSettings.model_fields.items()
    }


def _load_env_config() -> dict[str, Any]:
    """Collect the COURIER_* variables that are actually set."""
    env_values = {
        name: os.environ[f"COURIER_{name.upper()}"]
        for name in FIELD_ORDER
        if f"COURIER_{name.upper()}" in os.environ
    }
    if not env_values:
        return {}
    try:
        settings = CourierSettings(**env_values)
    except ValidationError as e:
        env_var_list = [f"COURIER_{name.upper()}" for name in env_values]
        raise ValueError(
            f"Invalid environment variable values in {', '.join(env_var_list)}. "
            f"Error: {e}"
        ) from e
    return {name: getattr(settings, name) for name in env_values}


class ConfigResolver:
    """Resolves configuration from multiple sources with proper precedence."""

    def __init__(self) -> None:
        """Initialize the configuration resolver."""
        self.file_loader = FileConfigLoader()

    def resolve(
        self,
        programmatic: dict[str, Any] | None = None,
        *,
        profile: str | None = None,
        project_root: Path | None = None,
    ) -> ResolvedConfig:
        """Resolve configuration from all sources with proper precedence.

        Args:
            programmatic: Programmatic overrides (highest precedence)
            profile: Profile name to load from files
            project_root: Directory to search for pyproject.toml

        Returns:
            ResolvedConfig with merged values and source tracking.

        Raises:
            ValueError: If validation fails.
            ConfigFileError: If the project configuration file is malformed.
        """
        origin: dict[str, ConfigOrigin] = {}
        merged: dict[str, Any] = {}

        if profile is None:
            profile = os.getenv("COURIER_PROFILE")

        def _apply(values: dict[str, Any], source: ConfigOrigin) -> None:
            for name, value in values.items():
                if name in FIELD_ORDER:  # Only override known fields
                    merged[name] = value
                    origin[name] = source

        _apply(_schema_defaults(), "default")

        try:
            _apply(self.file_loader.load_home_config(profile=profile), "file")
        except ConfigFileError as e:
            # Home config errors are non-fatal - just skip home config
            log.warning("Ignoring home configuration: %s", e)

        try:
            _apply(
                self.file_loader.load_project_config(
                    project_root=project_root, profile=profile
                ),
                "file",
            )
        except ConfigFileError:
            # Profile-specific errors can be skipped; base file errors cannot
            if profile is None:
                raise

        _apply(_load_env_config(), "env")
        _apply(programmatic or {}, "programmatic")

        try:
            validated = CourierSettings(**merged).to_dict()
        except ValidationError as e:
            raise ValueError(f"Configuration validation failed: {e}") from e

        validated["log_filter_headers"] = tuple(validated["log_filter_headers"])
        return ResolvedConfig(**validated, origin=origin)
