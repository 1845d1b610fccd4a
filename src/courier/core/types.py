"""Core data types that flow through the pipeline.

This module defines the envelope threaded through every stage and the
two-variant Result channel stages return. The envelope is immutable: stages
derive new values with the helper methods instead of mutating in place, so
one request can be replayed (e.g. by a retry stage) without interference.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import dataclasses
from enum import StrEnum
from types import MappingProxyType
import typing

# --- Minimal guard helpers (clarity > boilerplate) ---

T = typing.TypeVar("T")


def _freeze_mapping(
    m: dict[str, T] | typing.Mapping[str, T] | None,
) -> typing.Mapping[str, T]:
    """Return a read-only copy of ``m``; ``None`` becomes an empty view."""
    return MappingProxyType(dict(m or {}))


def _require(
    *,
    condition: bool,
    message: str,
    exc: type[Exception] = ValueError,
    field_name: str | None = None,
) -> None:
    """Centralized validation with optional field context for clearer errors."""
    if not condition:
        if field_name:
            enhanced_message = f"{field_name}: {message}"
            raise exc(enhanced_message)
        raise exc(message)


def _as_pairs(value: object, field_name: str) -> tuple[tuple[typing.Any, ...], ...]:
    """Normalize a mapping or an iterable of 2-tuples into a tuple of pairs."""
    if isinstance(value, Mapping):
        return tuple((k, v) for k, v in value.items())
    _require(
        condition=isinstance(value, Iterable) and not isinstance(value, str | bytes),
        message="must be a mapping or an iterable of (key, value) pairs",
        field_name=field_name,
        exc=TypeError,
    )
    pairs = tuple(tuple(p) for p in typing.cast("Iterable[Iterable[object]]", value))
    _require(
        condition=all(len(p) == 2 for p in pairs),
        message="every entry must be a (key, value) pair",
        field_name=field_name,
        exc=TypeError,
    )
    return pairs


# --- Result Monad for Robust Error Handling ---
# Every stage and adapter returns one of these two variants. An HTTP error
# status is still a Success; Failure is reserved for transport errors and
# stage-fabricated outcomes.

TSuccess = typing.TypeVar("TSuccess")
TFailure = typing.TypeVar("TFailure")


@dataclasses.dataclass(frozen=True, slots=True)
class Success[TSuccess]:
    """A completed exchange."""

    value: TSuccess


@dataclasses.dataclass(frozen=True, slots=True)
class Failure[TFailure]:
    """A failed exchange, carrying an opaque reason."""

    error: TFailure


Result = Success[TSuccess] | Failure[TFailure]


def is_result(value: object) -> bool:
    """Return True when ``value`` is a Success or a Failure."""
    return isinstance(value, Success | Failure)


# --- Envelope ---


class Method(StrEnum):
    """HTTP request methods."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    PATCH = "PATCH"
    TRACE = "TRACE"
    CONNECT = "CONNECT"


@dataclasses.dataclass(frozen=True, slots=True)
class Env:
    """Request/response envelope threaded through the pipeline.

    The same value type serves both phases: before a stage awaits ``next`` it
    holds the request; the ``Success`` value returned by ``next`` is the same
    request with ``status``, response ``headers`` and response ``body`` filled
    in by the adapter.

    Attributes:
        method: HTTP method. Strings are accepted case-insensitively.
        url: Absolute URL, or a path relative to a configured base.
        query: Ordered (key, value) pairs; duplicates allowed.
        headers: Ordered (name, value) pairs; names compare case-insensitively.
        body: None, bytes/str, structured data, a chunk stream or a Multipart.
        status: HTTP status, set only on completed responses.
        opts: Per-call options read by stages (e.g. ``query_encoding``).
    """

    method: Method = Method.GET
    url: str = ""
    query: tuple[tuple[str, typing.Any], ...] = ()
    headers: tuple[tuple[str, str], ...] = ()
    body: typing.Any = None
    status: int | None = None
    opts: typing.Mapping[str, typing.Any] = dataclasses.field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        """Normalize loose inputs and validate invariants."""
        method = self.method
        if not isinstance(method, Method):
            _require(
                condition=isinstance(method, str)
                and method.upper() in Method.__members__,
                message=f"unsupported HTTP method {method!r}",
                field_name="method",
            )
            object.__setattr__(self, "method", Method(str(method).upper()))
        _require(
            condition=isinstance(self.url, str),
            message="must be str",
            field_name="url",
            exc=TypeError,
        )
        if not isinstance(self.query, tuple) or any(
            not isinstance(p, tuple) for p in self.query
        ):
            object.__setattr__(self, "query", _as_pairs(self.query, "query"))
        if not isinstance(self.headers, tuple) or any(
            not isinstance(p, tuple) for p in self.headers
        ):
            object.__setattr__(self, "headers", _as_pairs(self.headers, "headers"))
        _require(
            condition=self.status is None
            or (isinstance(self.status, int) and not isinstance(self.status, bool)),
            message="must be an int or None",
            field_name="status",
            exc=TypeError,
        )
        _require(
            condition=isinstance(self.opts, Mapping),
            message="must be a mapping",
            field_name="opts",
            exc=TypeError,
        )
        object.__setattr__(self, "opts", _freeze_mapping(self.opts))

    # --- Functional updates ---

    def replace(self, **changes: typing.Any) -> Env:
        """Return a copy with ``changes`` applied."""
        return dataclasses.replace(self, **changes)

    def put_opt(self, key: str, value: typing.Any) -> Env:
        """Return a copy whose ``opts`` has ``key`` set to ``value``."""
        return self.replace(opts={**self.opts, key: value})

    def put_query(
        self, pairs: Iterable[tuple[str, typing.Any]] | Mapping[str, typing.Any]
    ) -> Env:
        """Return a copy with ``pairs`` appended to the query."""
        return self.replace(query=self.query + _as_pairs(pairs, "query"))

    # --- Headers ---

    def get_header(self, name: str) -> str | None:
        """Return the first value for ``name`` (case-insensitive), or None."""
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return None

    def get_headers(self, name: str) -> tuple[str, ...]:
        """Return every value for ``name`` (case-insensitive), in order."""
        wanted = name.lower()
        return tuple(v for k, v in self.headers if k.lower() == wanted)

    def put_header(self, name: str, value: str) -> Env:
        """Return a copy with ``name`` set to a single ``value``.

        The new pair takes the position of the first existing match so header
        order stays stable; other matches are dropped.
        """
        wanted = name.lower()
        headers: list[tuple[str, str]] = []
        placed = False
        for key, current in self.headers:
            if key.lower() != wanted:
                headers.append((key, current))
            elif not placed:
                headers.append((name, value))
                placed = True
        if not placed:
            headers.append((name, value))
        return self.replace(headers=tuple(headers))

    def put_headers(
        self, pairs: Iterable[tuple[str, str]] | Mapping[str, str]
    ) -> Env:
        """Return a copy with ``pairs`` appended; duplicates are kept."""
        return self.replace(headers=self.headers + _as_pairs(pairs, "headers"))

    def delete_header(self, name: str) -> Env:
        """Return a copy without any header named ``name`` (case-insensitive)."""
        wanted = name.lower()
        return self.replace(
            headers=tuple((k, v) for k, v in self.headers if k.lower() != wanted)
        )


__all__ = [
    "Env",
    "Failure",
    "Method",
    "Result",
    "Success",
    "is_result",
]
