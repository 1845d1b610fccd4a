"""Treat HTTP error statuses as failures.

The Result channel deliberately keeps any received response a Success. Add
``RaiseOnStatus`` to a chain to turn responses with ``status >= min_status``
(default 400) into ``Failure(HTTPStatusError)``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from courier.core.exceptions import HTTPStatusError
from courier.core.types import Env, Failure, Result, Success
from courier.pipeline.runner import run

if TYPE_CHECKING:
    from courier.pipeline.base import Next


class RaiseOnStatus:
    """Convert error-status responses into failures."""

    stage_name = "RaiseOnStatus"

    async def call(
        self, env: Env, next: Next, options: Mapping[str, Any]
    ) -> Result[Env, Any]:
        result = await run(env, next)
        min_status = options.get("min_status", 400)
        if isinstance(result, Success) and (result.value.status or 0) >= min_status:
            return Failure(HTTPStatusError(result.value))
        return result
