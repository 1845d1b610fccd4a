"""Base protocols for pipeline stages and adapters."""

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol, runtime_checkable

from courier.core.types import Env, Result

type Next = Callable[[Env], Awaitable[Result[Env, Any]]]
"""The rest of the chain, starting from the next stage inward."""

type StageFunction = Callable[[Env, Next, Mapping[str, Any]], Awaitable[Result[Env, Any]]]


@runtime_checkable
class Middleware(Protocol):
    """Protocol for pipeline stages.

    A stage may transform the request before awaiting ``next``, skip ``next``
    entirely to short-circuit, await it more than once (retries), and
    transform the returned Result. A stage that does not handle a Result
    variant must return it unchanged.
    """

    async def call(
        self, env: Env, next: Next, options: Mapping[str, Any]
    ) -> Result[Env, Any]:
        """Process one request.

        Args:
            env: The request envelope as seen by this stage.
            next: Awaitable callable running the remainder of the chain.
            options: Read-only options resolved when the chain was built.

        Returns:
            A Success carrying the response envelope, or a Failure.
        """
        ...


class Adapter(Middleware, Protocol):
    """Terminal stage performing the actual transport I/O.

    Adapters receive a ``next`` that must not be awaited. They return a
    Success for any HTTP response, whatever its status, and a Failure for
    transport errors instead of raising.
    """
