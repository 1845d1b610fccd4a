"""The primary user-facing entry point: clients built from a stage list.

A ``Client`` resolves its stage descriptors once, composes them around the
adapter, and reuses that chain for every request. Per-call option overrides
compose a fresh chain for that call only; the client itself never changes
after construction, so it can serve concurrent requests.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import logging
from types import TracebackType
from typing import TYPE_CHECKING, Any, Self

from courier._dev_flags import dev_validate_enabled
from courier.config import FrozenConfig, resolve_config
from courier.core.types import Env, Failure, Method, Result
from courier.pipeline._erasure import erase
from courier.pipeline.runner import apply_overrides, compose, resolve_stages
from courier.telemetry import TelemetryContext, TelemetryReporter

if TYPE_CHECKING:
    from courier.pipeline._erasure import StageSpec
    from courier.pipeline.base import Next

log = logging.getLogger(__name__)


class Client:
    """An HTTP client: an immutable stage list composed around an adapter.

    Args:
        config: Frozen configuration handed to stage option hooks.
        middleware: Stage descriptors, outermost first. Each is a stage
            object or class, an ``async (env, next, options)`` function, or a
            ``(stage, options)`` pair.
        adapter: The terminal stage performing transport I/O.
        validate: Check every stage's return value (overrides
            COURIER_PIPELINE_VALIDATE).
        reporters: Telemetry reporters; active only when telemetry is enabled.
    """

    def __init__(
        self,
        config: FrozenConfig,
        middleware: Iterable[Any],
        adapter: Any,
        *,
        validate: bool | None = None,
        reporters: Iterable[TelemetryReporter] = (),
    ) -> None:
        self.config = config
        self._adapter = adapter
        self._validate = dev_validate_enabled(override=validate)
        self._stages: tuple[StageSpec, ...] = resolve_stages(
            middleware, config=config
        )
        self._adapter_spec = erase(adapter, config=config)
        self._chain: Next = compose(
            self._stages, self._adapter_spec, validate=self._validate
        )
        self._telemetry = TelemetryContext(*reporters)
        log.debug(
            "Client ready: %s -> %s",
            " -> ".join(self.stage_names) or "(no stages)",
            self._adapter_spec.name,
        )

    @property
    def stage_names(self) -> tuple[str, ...]:
        """Stage names in execution order, adapter excluded."""
        return tuple(s.name for s in self._stages)

    @property
    def stages(self) -> tuple[StageSpec, ...]:
        """Resolved stages (with their read-only options) in execution order."""
        return self._stages

    @property
    def adapter(self) -> Any:
        """The adapter this client was built with."""
        return self._adapter

    def _chain_for(self, overrides: Mapping[str, Mapping[str, Any]] | None) -> Next:
        if not overrides:
            return self._chain
        stages = apply_overrides(self._stages, overrides)
        return compose(stages, self._adapter_spec, validate=self._validate)

    async def request(
        self,
        env: Env,
        *,
        overrides: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> Result[Env, Any]:
        """Run ``env`` through the chain.

        Unless ``env.opts`` already names one, the configured
        ``query_encoding`` is added to the per-call options.

        Args:
            env: The request envelope.
            overrides: Option overrides keyed by stage name; they take
                precedence over the options the stage was built with.

        Returns:
            ``Success`` with the response envelope, or ``Failure`` with the
            reason reported by a stage or the adapter.

        Raises:
            InvalidPipelineError: If ``overrides`` names an unknown stage.
            MiddlewareOptionsError: If overridden options are invalid.
        """
        chain = self._chain_for(overrides)
        if "query_encoding" not in env.opts:
            env = env.put_opt("query_encoding", self.config.query_encoding)
        with self._telemetry("courier.request", method=str(env.method)):
            result = await chain(env)
        if isinstance(result, Failure):
            self._telemetry.count("courier.request.failure", method=str(env.method))
        return result

    async def _send(
        self,
        method: Method,
        url: str,
        *,
        body: Any = None,
        query: Any = (),
        headers: Any = (),
        opts: Mapping[str, Any] | None = None,
        overrides: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> Result[Env, Any]:
        env = Env(
            method=method,
            url=url,
            query=query,
            headers=headers,
            body=body,
            opts=opts or {},
        )
        return await self.request(env, overrides=overrides)

    async def get(self, url: str, **kwargs: Any) -> Result[Env, Any]:
        """Send a GET request."""
        return await self._send(Method.GET, url, **kwargs)

    async def head(self, url: str, **kwargs: Any) -> Result[Env, Any]:
        """Send a HEAD request."""
        return await self._send(Method.HEAD, url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> Result[Env, Any]:
        """Send a DELETE request."""
        return await self._send(Method.DELETE, url, **kwargs)

    async def options(self, url: str, **kwargs: Any) -> Result[Env, Any]:
        """Send an OPTIONS request."""
        return await self._send(Method.OPTIONS, url, **kwargs)

    async def trace(self, url: str, **kwargs: Any) -> Result[Env, Any]:
        """Send a TRACE request."""
        return await self._send(Method.TRACE, url, **kwargs)

    async def post(self, url: str, body: Any = None, **kwargs: Any) -> Result[Env, Any]:
        """Send a POST request."""
        return await self._send(Method.POST, url, body=body, **kwargs)

    async def put(self, url: str, body: Any = None, **kwargs: Any) -> Result[Env, Any]:
        """Send a PUT request."""
        return await self._send(Method.PUT, url, body=body, **kwargs)

    async def patch(self, url: str, body: Any = None, **kwargs: Any) -> Result[Env, Any]:
        """Send a PATCH request."""
        return await self._send(Method.PATCH, url, body=body, **kwargs)

    async def aclose(self) -> None:
        """Close the adapter, when it holds resources."""
        close = getattr(self._adapter, "aclose", None)
        if callable(close):
            await close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()


def create_client(
    middleware: Iterable[Any] = (),
    adapter: Any = None,
    *,
    config: FrozenConfig | None = None,
    validate: bool | None = None,
    reporters: Iterable[TelemetryReporter] = (),
) -> Client:
    """Create a client from a stage list.

    If no configuration is provided, it is resolved from the environment and
    configuration files. This is the only place where ambient configuration
    is resolved.

    Args:
        middleware: Stage descriptors, outermost first.
        adapter: Terminal stage. Defaults to an ``HttpxAdapter`` using the
            configured timeout.
        config: Optional frozen configuration.
        validate: Enable dev-time result validation.
        reporters: Telemetry reporters.

    Raises:
        InvalidPipelineError: If a descriptor is not a valid stage.
        MiddlewareOptionsError: If a stage rejects its options.

    Example:
        client = create_client(
            [(BaseUrl, {"base_url": "https://api.example.com"}), JSON, Logger],
        )
        result = await client.get("/users")
    """
    final_config = config if config is not None else resolve_config().to_frozen()
    if adapter is None:
        from courier.adapters.httpx_adapter import HttpxAdapter

        adapter = HttpxAdapter(timeout=final_config.timeout)
    return Client(
        final_config, middleware, adapter, validate=validate, reporters=reporters
    )
