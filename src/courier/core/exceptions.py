"""Exception taxonomy for courier.

Transport failures never appear here: adapters report them as ``Failure``
values. These exceptions cover misconfiguration, broken stage contracts and
test-double misses, all of which should fail loudly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from courier.core.types import Env


class CourierError(Exception):
    """Base exception for courier errors."""


class InvalidPipelineError(CourierError, TypeError):
    """Raised at build time when a stage descriptor is not a valid stage."""

    def __init__(self, message: str, *, stage_name: str | None = None) -> None:
        """Initialize with an optional offending stage name."""
        self.stage_name = stage_name
        if stage_name:
            message = f"{stage_name}: {message}"
        super().__init__(message)


class MiddlewareOptionsError(CourierError, ValueError):
    """Raised when stage options are invalid or mutually exclusive."""


class InvariantViolationError(CourierError):
    """Raised when a stage breaks the Result contract under dev validation."""

    def __init__(self, message: str, *, stage_name: str | None = None) -> None:
        """Initialize with the name of the stage that broke the contract."""
        self.stage_name = stage_name
        super().__init__(message)


class MockError(CourierError):
    """Raised by the mock adapter when no rule matches a request."""

    def __init__(self, env: Env) -> None:
        """Build a message naming the unmatched request."""
        self.env = env
        super().__init__(
            f"There is no mock set for {env.method} {env.url}. "
            "Return a response from the mock handler for this request."
        )


class HTTPStatusError(CourierError):
    """Failure reason for responses rejected by ``RaiseOnStatus``."""

    def __init__(self, env: Env) -> None:
        """Keep the rejected response so callers can still inspect it."""
        self.env = env
        self.status: Any = env.status
        super().__init__(f"{env.method} {env.url} returned HTTP {env.status}")
