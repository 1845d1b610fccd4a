"""Retry stage with exponential backoff.

Each retry awaits ``next`` again with the original request, so every attempt
traverses the rest of the chain independently. Attempt state is local to
the call.

Options:
    delay: Base delay in milliseconds (default 50).
    max_retries: Retries after the first attempt (default 5).
    max_delay: Cap for a single backoff, in milliseconds (default 5000).
    jitter_factor: Fraction of the backoff randomized downward, 0..1
        (default 0.2).
    should_retry: Callable receiving the Result; defaults to retrying
        failures only.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
import logging
import random
from typing import TYPE_CHECKING, Any

from courier.core.exceptions import MiddlewareOptionsError
from courier.core.types import Env, Failure, Result
from courier.pipeline.runner import run

if TYPE_CHECKING:
    from courier.pipeline.base import Next

log = logging.getLogger(__name__)

DEFAULT_DELAY_MS = 50
DEFAULT_MAX_RETRIES = 5
DEFAULT_MAX_DELAY_MS = 5000
DEFAULT_JITTER_FACTOR = 0.2


def _retry_failures(result: Result[Env, Any]) -> bool:
    return isinstance(result, Failure)


def backoff_ms(
    attempt: int, delay: float, max_delay: float, jitter_factor: float
) -> float:
    """Return the wait before retry number ``attempt`` (0-based)."""
    capped = min(delay * (2**attempt), max_delay)
    return capped * (1 - jitter_factor * random.random())  # noqa: S311


class Retry:
    """Re-run the rest of the chain while ``should_retry`` says so."""

    stage_name = "Retry"

    def validate_options(self, options: Mapping[str, Any]) -> None:
        """Reject negative timings and out-of-range jitter at build time."""
        for key in ("delay", "max_delay", "max_retries"):
            value = options.get(key)
            if value is not None and (
                not isinstance(value, int | float) or isinstance(value, bool) or value < 0
            ):
                raise MiddlewareOptionsError(
                    f"{key} must be a non-negative number, got {value!r}"
                )
        jitter = options.get("jitter_factor", DEFAULT_JITTER_FACTOR)
        if not isinstance(jitter, int | float) or not 0 <= jitter <= 1:
            raise MiddlewareOptionsError(
                f"jitter_factor must be between 0 and 1, got {jitter!r}"
            )
        should_retry = options.get("should_retry")
        if should_retry is not None and not callable(should_retry):
            raise MiddlewareOptionsError("should_retry must be callable")

    async def call(
        self, env: Env, next: Next, options: Mapping[str, Any]
    ) -> Result[Env, Any]:
        max_retries = int(options.get("max_retries", DEFAULT_MAX_RETRIES))
        delay = options.get("delay", DEFAULT_DELAY_MS)
        max_delay = options.get("max_delay", DEFAULT_MAX_DELAY_MS)
        jitter_factor = options.get("jitter_factor", DEFAULT_JITTER_FACTOR)
        should_retry = options.get("should_retry", _retry_failures)

        attempt = 0
        while True:
            result = await run(env, next)
            if attempt >= max_retries or not should_retry(result):
                return result
            wait = backoff_ms(attempt, delay, max_delay, jitter_factor)
            log.debug(
                "Retrying %s %s (attempt %d of %d) in %.1f ms",
                env.method,
                env.url,
                attempt + 1,
                max_retries,
                wait,
            )
            attempt += 1
            await asyncio.sleep(wait / 1000)
