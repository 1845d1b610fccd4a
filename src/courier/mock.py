"""Mock adapter for tests.

The mock is configured explicitly: build it with a handler and pass it to
the client as the adapter. The handler receives each request ``Env`` and
returns one of:

- an ``Env``: the response (request fields it leaves unset are inherited);
- a ``Success`` or ``Failure``: returned as is (a Success env inherits
  unset request fields);
- a ``(status, headers, body)`` tuple: shorthand for a response;
- ``None``: no rule matched, and ``MockError`` is raised;
- anything else: returned as ``Failure(value)``, e.g. ``"econnrefused"``.

Example:
    def handler(env):
        match (env.method, env.url):
            case ("GET", "/users"):
                return json([{"id": 1}])
            case ("GET", "/down"):
                return "econnrefused"

    client = create_client([JSON], adapter=MockAdapter(handler))
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping
import inspect
import json as _json
import threading
from typing import TYPE_CHECKING, Any

from courier.core.exceptions import MockError
from courier.core.types import Env, Failure, Result, Success

if TYPE_CHECKING:
    from courier.pipeline.base import Next

type MockHandler = Callable[[Env], Any] | Callable[[Env], Awaitable[Any]]


def json(
    data: Any, *, status: int = 200, headers: Iterable[tuple[str, str]] = ()
) -> Env:
    """Build a JSON response envelope for a mock handler."""
    return Env(
        status=status,
        headers=(("content-type", "application/json"), *tuple(headers)),
        body=_json.dumps(data),
    )


def _inherit(request: Env, response: Env) -> Env:
    """Fill fields the handler left at their defaults from the request."""
    defaults = Env()
    changes = {
        name: getattr(request, name)
        for name in ("method", "url", "query", "opts")
        if getattr(response, name) == getattr(defaults, name)
    }
    return response.replace(**changes) if changes else response


def _to_result(request: Env, outcome: Any) -> Result[Env, Any]:
    match outcome:
        case None:
            raise MockError(request)
        case Env():
            return Success(_inherit(request, outcome))
        case Success(value=Env() as response):
            return Success(_inherit(request, response))
        case Success() | Failure():
            return outcome
        case (int() as status, headers, body):
            return Success(request.replace(status=status, headers=headers, body=body))
        case _:
            return Failure(outcome)


class MockAdapter:
    """Adapter answering requests from a handler instead of the network.

    Calls are recorded (``calls``, ``call_count``) under a lock so the same
    mock can serve concurrent requests.
    """

    stage_name = "MockAdapter"

    def __init__(self, handler: MockHandler) -> None:
        if not callable(handler):
            raise TypeError("mock handler must be callable")
        self._handler = handler
        self._lock = threading.Lock()
        self._calls: list[Env] = []

    @property
    def calls(self) -> tuple[Env, ...]:
        """Requests received so far, in arrival order."""
        with self._lock:
            return tuple(self._calls)

    @property
    def call_count(self) -> int:
        """Number of requests received so far."""
        with self._lock:
            return len(self._calls)

    async def call(
        self, env: Env, next: Next, options: Mapping[str, Any]  # noqa: ARG002
    ) -> Result[Env, Any]:
        """Answer ``env`` from the handler."""
        with self._lock:
            self._calls.append(env)
        outcome = self._handler(env)
        if inspect.isawaitable(outcome):
            outcome = await outcome
        return _to_result(env, outcome)
