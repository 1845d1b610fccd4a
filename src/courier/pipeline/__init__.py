"""Stage protocols and chain composition."""

from courier.pipeline.base import Adapter, Middleware, Next
from courier.pipeline.runner import (
    apply_overrides,
    build_chain,
    compose,
    resolve_stages,
    run,
)

__all__ = [
    "Adapter",
    "Middleware",
    "Next",
    "apply_overrides",
    "build_chain",
    "compose",
    "resolve_stages",
    "run",
]
