"""Composition of stage lists into a single awaitable chain.

The chain is built right-to-left: the adapter is the innermost callable and
each stage wraps everything after it. Building is purely structural; nothing
runs until the chain is awaited with an envelope. The closures capture only
immutable specs, so one chain can serve any number of concurrent calls.
"""

from __future__ import annotations

from collections.abc import Iterable
import logging
from typing import TYPE_CHECKING, Any

from courier._dev_flags import dev_validate_enabled
from courier.core.exceptions import InvalidPipelineError, InvariantViolationError
from courier.core.types import is_result
from courier.pipeline._erasure import StageSpec, erase

if TYPE_CHECKING:
    from collections.abc import Mapping

    from courier.config import FrozenConfig
    from courier.core.types import Env, Result
    from courier.pipeline.base import Next

log = logging.getLogger(__name__)


async def _end_of_chain(env: Env) -> Result[Env, Any]:
    """The ``next`` handed to adapters: nothing lies beyond them."""
    raise InvalidPipelineError(
        f"the adapter awaited next() for {env.method} {env.url}; "
        "adapters are terminal and must not call next"
    )


async def run(env: Env, next: Next) -> Result[Env, Any]:
    """Await the remainder of the chain for ``env``."""
    return await next(env)


def resolve_stages(
    descriptors: Iterable[Any],
    *,
    config: FrozenConfig | None = None,
    overrides: Mapping[str, Mapping[str, Any]] | None = None,
) -> tuple[StageSpec, ...]:
    """Resolve descriptors into immutable stage specs.

    Args:
        descriptors: Stage descriptors in outer-to-inner order.
        config: Configuration for stages with a ``default_options`` hook.
        overrides: Per-stage option overrides keyed by stage name.

    Raises:
        InvalidPipelineError: For invalid descriptors or override keys naming
            no stage in the list.
    """
    specs = tuple(erase(descriptor, config=config) for descriptor in descriptors)
    return apply_overrides(specs, overrides)


def apply_overrides(
    specs: Iterable[StageSpec],
    overrides: Mapping[str, Mapping[str, Any]] | None,
) -> tuple[StageSpec, ...]:
    """Return ``specs`` with per-stage option overrides applied.

    Only the named stages are rebuilt, reusing their stage objects; every
    other spec is returned as is.

    Raises:
        InvalidPipelineError: If an override names no stage in ``specs``.
        MiddlewareOptionsError: If a stage rejects its overridden options.
    """
    specs = tuple(specs)
    if not overrides:
        return specs
    unknown = set(overrides) - {s.name for s in specs}
    if unknown:
        raise InvalidPipelineError(
            f"option overrides name unknown stages: {sorted(unknown)}"
        )
    return tuple(
        erase((spec.stage, dict(spec.options)), overrides=overrides[spec.name])
        if spec.name in overrides
        else spec
        for spec in specs
    )


def _bind(spec: StageSpec, next: Next, *, validate: bool) -> Next:
    if not validate:

        async def _stage(env: Env) -> Result[Env, Any]:
            return await spec.call(env, next, spec.options)

        return _stage

    async def _validated_stage(env: Env) -> Result[Env, Any]:
        result = await spec.call(env, next, spec.options)
        if not is_result(result):
            raise InvariantViolationError(
                f"Stage returned {type(result).__name__}; expected Success|Failure.",
                stage_name=spec.name,
            )
        return result

    return _validated_stage


def compose(
    stages: Iterable[StageSpec], adapter: StageSpec, *, validate: bool = False
) -> Next:
    """Nest ``stages`` around ``adapter`` and return the outermost callable."""
    chain = _bind(adapter, _end_of_chain, validate=validate)
    for spec in reversed(tuple(stages)):
        chain = _bind(spec, chain, validate=validate)
    return chain


def build_chain(
    stages: Iterable[Any],
    adapter: Any,
    *,
    config: FrozenConfig | None = None,
    validate: bool | None = None,
) -> Next:
    """Build the full chain for ``stages`` ending in ``adapter``.

    An empty stage list yields a chain equivalent to calling the adapter
    directly.

    Args:
        stages: Stage descriptors in outer-to-inner order.
        adapter: The terminal stage (descriptor form accepted).
        config: Configuration for stages with a ``default_options`` hook.
        validate: Check every stage's return value (overrides
            COURIER_PIPELINE_VALIDATE).

    Returns:
        An async callable ``chain(env) -> Result``.
    """
    specs = resolve_stages(stages, config=config)
    adapter_spec = erase(adapter, config=config)
    enabled = dev_validate_enabled(override=validate)
    log.debug(
        "Built chain: %s -> %s (validate=%s)",
        " -> ".join(s.name for s in specs) or "(no stages)",
        adapter_spec.name,
        enabled,
    )
    return compose(specs, adapter_spec, validate=enabled)
