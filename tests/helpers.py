"""Reusable stages and adapters for pipeline tests."""

from collections.abc import Callable
from typing import Any

from courier.core.types import Env, Failure, Result, Success


class CountingAdapter:
    """Adapter returning scripted outcomes and counting calls.

    Outcomes are consumed in order; the last one repeats. An outcome that is
    not a Result is treated as a status code for a Success response.
    """

    stage_name = "CountingAdapter"

    def __init__(self, *outcomes: Any) -> None:
        self.outcomes = list(outcomes) or [200]
        self.calls = 0
        self.seen: list[Env] = []

    async def call(self, env: Env, next: Any, options: Any) -> Result[Env, Any]:  # noqa: ARG002
        outcome = self.outcomes[min(self.calls, len(self.outcomes) - 1)]
        self.calls += 1
        self.seen.append(env)
        if isinstance(outcome, Success | Failure):
            return outcome
        return Success(env.replace(status=outcome))


def tracing_stage(name: str) -> Callable[..., Any]:
    """Build a stage recording ``<name>-pre`` and ``<name>-post`` in opts.trace."""

    async def stage(env: Env, next: Any, options: Any) -> Result[Env, Any]:  # noqa: ARG001
        env = env.put_opt("trace", (*env.opts.get("trace", ()), f"{name}-pre"))
        result = await next(env)
        if isinstance(result, Success):
            response = result.value
            return Success(
                response.put_opt(
                    "trace", (*response.opts.get("trace", ()), f"{name}-post")
                )
            )
        return result

    stage.__name__ = f"trace_{name}"
    return stage


def trace_of(result: Result[Env, Any]) -> tuple[str, ...]:
    """Return the trace recorded on a successful result."""
    assert isinstance(result, Success)
    return tuple(result.value.opts.get("trace", ()))
