"""Prefix relative request URLs with a base URL."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from courier.core.exceptions import MiddlewareOptionsError
from courier.core.types import Env, Result
from courier.pipeline.runner import run

if TYPE_CHECKING:
    from courier.config import FrozenConfig
    from courier.pipeline.base import Next


def join_url(base_url: str, url: str) -> str:
    """Join ``url`` onto ``base_url`` unless it is already absolute."""
    if url.lower().startswith(("http://", "https://")):
        return url
    if not url:
        return base_url
    return f"{base_url.rstrip('/')}/{url.lstrip('/')}"


class BaseUrl:
    """Resolve relative URLs against ``options["base_url"]``."""

    stage_name = "BaseUrl"

    def default_options(self, config: FrozenConfig) -> dict[str, Any]:
        return {"base_url": config.base_url} if config.base_url else {}

    def validate_options(self, options: Mapping[str, Any]) -> None:
        if not isinstance(options.get("base_url"), str) or not options["base_url"]:
            raise MiddlewareOptionsError(
                "BaseUrl requires a base_url option (or a configured base_url)"
            )

    async def call(
        self, env: Env, next: Next, options: Mapping[str, Any]
    ) -> Result[Env, Any]:
        return await run(env.replace(url=join_url(options["base_url"], env.url)), next)
