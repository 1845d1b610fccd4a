"""Normalization of stage descriptors into uniform, validated stage specs.

Callers describe a pipeline loosely: stage objects, stage classes, plain
coroutine functions, or ``(stage, options)`` pairs. ``erase`` turns each
descriptor into a ``StageSpec`` once, at build time, so the runner never has
to introspect anything per call.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import inspect
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from courier.core.exceptions import InvalidPipelineError

if TYPE_CHECKING:
    from courier.config import FrozenConfig
    from courier.pipeline.base import StageFunction


@dataclass(frozen=True, slots=True)
class StageSpec:
    """A stage paired with its resolved, read-only options."""

    call: StageFunction
    options: Mapping[str, Any]
    name: str
    stage: object


def _stage_name(stage: object) -> str:
    explicit = getattr(stage, "stage_name", None)
    if isinstance(explicit, str) and explicit:
        return explicit
    if inspect.isfunction(stage) or inspect.ismethod(stage):
        return stage.__name__
    return type(stage).__name__


def _require_stage_signature(fn: Any, name: str) -> None:
    """Validate ``fn`` is a coroutine function accepting (env, next, options)."""
    if not (
        inspect.iscoroutinefunction(fn)
        or inspect.iscoroutinefunction(getattr(fn, "__call__", None))
    ):
        raise InvalidPipelineError(
            "stage must be an async callable of (env, next, options)",
            stage_name=name,
        )
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        # Builtins without a signature are accepted unchecked.
        return
    try:
        sig.bind(None, None, None)
    except TypeError as e:
        raise InvalidPipelineError(
            f"stage must accept exactly (env, next, options): {e}",
            stage_name=name,
        ) from e


def _resolve_stage(stage: Any) -> tuple[StageFunction, object, str]:
    if inspect.isclass(stage):
        try:
            stage = stage()
        except TypeError as e:
            raise InvalidPipelineError(
                f"stage class could not be instantiated without arguments: {e}",
                stage_name=stage.__name__,
            ) from e
    name = _stage_name(stage)
    method = getattr(stage, "call", None)
    fn = method if method is not None and callable(method) else stage
    if not callable(fn):
        raise InvalidPipelineError(
            f"{stage!r} is neither a stage object nor a callable", stage_name=name
        )
    _require_stage_signature(fn, name)
    return fn, stage, name


def erase(
    descriptor: Any,
    *,
    config: FrozenConfig | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> StageSpec:
    """Resolve one stage descriptor into a ``StageSpec``.

    Args:
        descriptor: A stage object or class, an async function, or a
            ``(stage, options)`` pair.
        config: Frozen configuration handed to the stage's
            ``default_options`` hook, when it has one.
        overrides: Options that take precedence over the descriptor's own
            (used for per-call overrides).

    Raises:
        InvalidPipelineError: If the descriptor is not a valid stage.
        MiddlewareOptionsError: If the stage rejects its resolved options.
    """
    raw_options: Any = None
    if isinstance(descriptor, tuple):
        if len(descriptor) != 2:
            raise InvalidPipelineError(
                f"stage descriptor tuples must be (stage, options), got {len(descriptor)} items"
            )
        descriptor, raw_options = descriptor
        if raw_options is not None and not isinstance(raw_options, Mapping):
            raise InvalidPipelineError(
                f"options must be a mapping, got {type(raw_options).__name__}",
                stage_name=_stage_name(descriptor),
            )

    fn, stage, name = _resolve_stage(descriptor)

    options: dict[str, Any] = {}
    defaults_hook = getattr(stage, "default_options", None)
    if config is not None and callable(defaults_hook):
        options.update(defaults_hook(config))
    options.update(raw_options or {})
    options.update(overrides or {})

    validate_hook = getattr(stage, "validate_options", None)
    if callable(validate_hook):
        validate_hook(options)

    return StageSpec(call=fn, options=MappingProxyType(options), name=name, stage=stage)
