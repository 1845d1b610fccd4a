"""Configuration management for courier.

Resolve once, freeze, then flow: ``resolve_config()`` merges every source
into a ``ResolvedConfig`` (with per-field origins), and ``to_frozen()`` yields
the immutable ``FrozenConfig`` that clients and stages consume.
"""

from pathlib import Path
from typing import Any

from .file_loader import ConfigFileError, FileConfigLoader
from .resolver import ConfigResolver
from .schema import CourierSettings
from .types import ConfigOrigin, FrozenConfig, ResolvedConfig, SourceMap

# Global resolver instance for efficient reuse
_resolver = ConfigResolver()


def resolve_config(
    programmatic: dict[str, Any] | None = None,
    *,
    profile: str | None = None,
    project_root: Path | None = None,
) -> ResolvedConfig:
    """Resolve configuration from all sources with proper precedence.

    Precedence: Programmatic > Environment > Project file > Home file > Defaults

    Args:
        programmatic: Overrides with the highest precedence. Unknown keys are
            ignored.
        profile: Profile name to load from configuration files. If None,
            uses the COURIER_PROFILE environment variable if set.
        project_root: Directory to search for pyproject.toml. If None,
            searches the current directory and its parents.

    Returns:
        ResolvedConfig with merged values and source tracking for audit.

    Raises:
        ValueError: If validation fails or environment values are invalid.
        ConfigFileError: If the project configuration file is malformed.

    Example:
        config = resolve_config({"base_url": "https://api.example.com"})
        client = create_client([Logger], config=config.to_frozen())
    """
    return _resolver.resolve(programmatic, profile=profile, project_root=project_root)


__all__ = [
    "ConfigFileError",
    "ConfigOrigin",
    "ConfigResolver",
    "CourierSettings",
    "FileConfigLoader",
    "FrozenConfig",
    "ResolvedConfig",
    "SourceMap",
    "resolve_config",
]
