"""Request telemetry for clients.

Disabled unless ``COURIER_TELEMETRY=1`` (or ``DEBUG=1``) is set at import
time and the client was given reporters; the disabled context is a shared
no-op. Scope names nest through a context variable, so concurrent requests
each report their own path.
"""

from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
import logging
import os
import time
from typing import Any, Protocol, runtime_checkable

log = logging.getLogger(__name__)

_scopes: ContextVar[tuple[str, ...]] = ContextVar("courier_scopes", default=())

_TELEMETRY_ENABLED = (
    os.getenv("COURIER_TELEMETRY") == "1" or os.getenv("DEBUG") == "1"
)


@runtime_checkable
class TelemetryReporter(Protocol):
    """Receives request timings and counters."""

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None: ...  # noqa: D102
    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None: ...  # noqa: D102


@dataclass(frozen=True, slots=True)
class _DisabledTelemetry:
    @contextmanager
    def __call__(self, name: str, **metadata: Any) -> Iterator[None]:  # noqa: ARG002
        yield

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        pass


class _ReportingTelemetry:
    __slots__ = ("reporters",)

    def __init__(self, *reporters: TelemetryReporter) -> None:
        self.reporters = reporters

    def _emit(self, method: str, *args: Any, **metadata: Any) -> None:
        for reporter in self.reporters:
            try:
                getattr(reporter, method)(*args, **metadata)
            except Exception as e:
                # Reporters never break a request.
                log.error(
                    "Telemetry reporter '%s' failed: %s",
                    type(reporter).__name__,
                    e,
                    exc_info=True,
                )

    @contextmanager
    def __call__(self, name: str, **metadata: Any) -> Iterator[None]:
        """Time the enclosed block under ``name``, nested in the current scope."""
        parent = _scopes.get()
        token = _scopes.set((*parent, name))
        start = time.perf_counter()
        try:
            yield
        finally:
            duration = time.perf_counter() - start
            _scopes.reset(token)
            self._emit(
                "record_timing",
                ".".join((*parent, name)),
                duration,
                parent_scope=".".join(parent) or None,
                **metadata,
            )

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        """Report a counter increment under ``name``."""
        scope = ".".join((*_scopes.get(), name))
        self._emit("record_metric", scope, increment, metric_type="counter", **metadata)


type Telemetry = _DisabledTelemetry | _ReportingTelemetry

_DISABLED = _DisabledTelemetry()


def TelemetryContext(*reporters: TelemetryReporter) -> Telemetry:  # noqa: N802
    """Return a reporting context, or the shared no-op when disabled."""
    if _TELEMETRY_ENABLED and reporters:
        return _ReportingTelemetry(*reporters)
    return _DISABLED


class MemoryReporter:
    """Keeps the latest timings and metrics per scope in memory."""

    def __init__(self, max_entries_per_scope: int = 1000):
        self.max_entries = max_entries_per_scope
        self.timings: dict[str, deque[tuple[float, dict[str, Any]]]] = {}
        self.metrics: dict[str, deque[tuple[Any, dict[str, Any]]]] = {}

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None:
        self.timings.setdefault(scope, deque(maxlen=self.max_entries)).append(
            (duration, metadata)
        )

    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None:
        self.metrics.setdefault(scope, deque(maxlen=self.max_entries)).append(
            (value, metadata)
        )
