"""Configuration schema and validation using Pydantic.

This module defines the settings schema that validates and coerces configuration
values from various sources (environment, files, programmatic) into the correct
types with proper defaults.
"""

from typing import Annotated, Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class CourierSettings(BaseSettings):
    """Pydantic settings schema for courier configuration.

    This handles validation, type coercion, and default values for all
    configuration fields. It integrates with environment variables using
    the COURIER_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="COURIER_",
        env_file=None,
        case_sensitive=False,
        extra="ignore",  # Ignore unknown env vars for forward compatibility
    )

    # --- Client ---

    base_url: str | None = Field(
        default=None,
        description="Base URL applied by the BaseUrl stage to relative URLs",
    )

    timeout: float = Field(
        default=30.0,
        description="Transport timeout in seconds for the default httpx adapter",
        gt=0,
    )

    query_encoding: Literal["www_form", "rfc3986"] = Field(
        default="www_form",
        description="Default query string encoding",
    )

    # --- Logger stage defaults ---

    log_format: str | None = Field(
        default=None,
        description="Log line template for the Logger stage",
    )

    log_debug: bool = Field(
        default=True,
        description="Emit request/response dumps at DEBUG level",
    )

    log_filter_headers: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Header names redacted in debug dumps",
    )

    disable_log_level_warning: bool = Field(
        default=False,
        description="Silence the deprecation warning for the log_level option",
    )

    # --- Validation Rules ---

    @field_validator("base_url")
    @classmethod
    def check_base_url(cls, v: str | None) -> str | None:
        """Require an absolute http(s) base URL when one is given."""
        if v is None or v == "":
            return None
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid base_url: {v!r}. Must start with http:// or https://")
        return v

    @field_validator("log_filter_headers", mode="before")
    @classmethod
    def parse_filter_headers(cls, v: Any) -> Any:
        """Accept a comma-separated string as well as a list."""
        if isinstance(v, str):
            return [h.strip() for h in v.split(",") if h.strip()]
        return v

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary suitable for origin annotation.

        Returns:
            Dictionary with field names as keys and resolved values.
        """
        return {
            "base_url": self.base_url,
            "timeout": self.timeout,
            "query_encoding": self.query_encoding,
            "log_format": self.log_format,
            "log_debug": self.log_debug,
            "log_filter_headers": list(self.log_filter_headers),
            "disable_log_level_warning": self.disable_log_level_warning,
        }
