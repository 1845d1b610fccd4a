"""Add static headers to every request."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from courier.core.types import Env, Result
from courier.pipeline.runner import run

if TYPE_CHECKING:
    from courier.pipeline.base import Next


class Headers:
    """Append ``options["headers"]`` to the request headers."""

    stage_name = "Headers"

    async def call(
        self, env: Env, next: Next, options: Mapping[str, Any]
    ) -> Result[Env, Any]:
        return await run(env.put_headers(options.get("headers", ())), next)
