"""Core configuration data types.

This module defines the fundamental data structures used throughout the
configuration system, following the resolve-once, freeze-then-flow pattern.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Literal, NamedTuple

# --- Source Tracking Types ---

ConfigOrigin = Literal["programmatic", "env", "file", "default"]
SourceMap = Mapping[str, ConfigOrigin]

FIELD_ORDER: tuple[str, ...] = (
    "base_url",
    "timeout",
    "query_encoding",
    "log_format",
    "log_debug",
    "log_filter_headers",
    "disable_log_level_warning",
)

# --- Core Configuration Data ---


class ResolvedConfig(NamedTuple):
    """Configuration after resolution from all sources, before freezing.

    This represents the validated, merged result of combining programmatic
    overrides, environment variables, files, and defaults, plus the origin of
    every field for auditing.
    """

    base_url: str | None
    timeout: float
    query_encoding: str
    log_format: str | None
    log_debug: bool
    log_filter_headers: tuple[str, ...]
    disable_log_level_warning: bool

    # Audit metadata - tracks where each field value came from
    origin: SourceMap

    def to_frozen(self) -> "FrozenConfig":
        """Convert to the immutable configuration handed to clients and stages."""
        return FrozenConfig(**{name: getattr(self, name) for name in FIELD_ORDER})

    def with_overrides(self, **overrides: object) -> "ResolvedConfig":
        """Create a new ResolvedConfig with programmatic overrides applied.

        Unknown fields are ignored.
        """
        new_values = self._asdict()
        new_origin = dict(self.origin)

        for name, value in overrides.items():
            if name in FIELD_ORDER:
                new_values[name] = value
                new_origin[name] = "programmatic"

        new_values["origin"] = new_origin
        return ResolvedConfig(**new_values)

    def audit(self) -> str:
        """Return a report showing the origin of each field."""
        lines = []
        for name in FIELD_ORDER:
            if name not in self.origin:
                continue
            origin = self.origin[name]
            value = getattr(self, name)
            if origin == "env":
                lines.append(f"{name}: env:COURIER_{name.upper()}={value}")
            else:
                lines.append(f"{name}: {origin}:{value}")
        return "\n".join(lines)


@dataclass(frozen=True)
class FrozenConfig:
    """Immutable configuration consumed by clients and stage option hooks.

    Any attempt to modify this object will raise an exception.
    """

    base_url: str | None = None
    timeout: float = 30.0
    query_encoding: str = "www_form"
    log_format: str | None = None
    log_debug: bool = True
    log_filter_headers: tuple[str, ...] = field(default=())
    disable_log_level_warning: bool = False
