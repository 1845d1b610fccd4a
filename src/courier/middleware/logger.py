"""Request logging stage.

With the default options it logs one line per request with the method, URL,
response status and elapsed time in milliseconds::

    GET https://example.com/users -> 200 (88.074 ms)

Options:
    format: Template string using ``$method``, ``$url``, ``$status``,
        ``$time`` and ``$query``, or a callable ``(request, result, time_ms)
        -> str``.
    level: Fixed level (``"info"``, ``"warning"``, ``logging.ERROR``...) or a
        callable receiving the Result and returning a level or ``"default"``.
    log_level: Deprecated. Callable receiving the response ``Env`` (or a
        fixed level); failures always log at ERROR. Cannot be combined with
        ``level``.
    filter_headers: Header names shown as ``[FILTERED]`` in debug dumps.
    debug: When true (default), dump request/response details at DEBUG.
    logger: Name of the logger to write to.

Default levels are ERROR for failures and 4xx/5xx responses, WARNING for 3xx
and INFO otherwise. The stage never alters the Result it receives.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Iterator, Mapping
import functools
import logging
import re
from time import perf_counter
from typing import TYPE_CHECKING, Any
import warnings

from courier.core.exceptions import MiddlewareOptionsError
from courier.core.multipart import Multipart
from courier.core.query import encode_pairs, encode_query
from courier.core.types import Env, Failure, Result, Success
from courier.pipeline.runner import run

if TYPE_CHECKING:
    from courier.config import FrozenConfig
    from courier.pipeline.base import Next

DEFAULT_FORMAT = "$method $url -> $status ($time ms)"
DEFAULT_LOGGER = "courier.middleware.logger"
FORMAT_KEYS = frozenset({"method", "url", "status", "time", "query"})

_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

type LogFormatFunction = Callable[[Env, Result[Env, Any], float], str]
type CompiledFormat = tuple[str, ...] | LogFormatFunction


# --- Formatter ---


@functools.lru_cache(maxsize=64)
def _compile_template(template: str) -> tuple[str, ...]:
    parts: list[str] = []
    for part in re.split(r"(\$[a-z]+)", template):
        if not part:
            continue
        if part.startswith("$"):
            key = part[1:]
            if key not in FORMAT_KEYS:
                raise MiddlewareOptionsError(f"${key} is an invalid format pattern.")
        parts.append(part)
    return tuple(parts)


def compile_format(fmt: str | LogFormatFunction | None) -> CompiledFormat:
    """Compile a log template into parts, or pass a format callable through.

    Raises:
        MiddlewareOptionsError: On an unknown ``$placeholder`` or a value that
            is neither a string nor a callable.
    """
    if fmt is None:
        return _compile_template(DEFAULT_FORMAT)
    if callable(fmt):
        return fmt
    if isinstance(fmt, str):
        return _compile_template(fmt)
    raise MiddlewareOptionsError(
        f"format must be a template string or a callable, got {type(fmt).__name__}"
    )


def _output(part: str, request: Env, result: Result[Env, Any], time_ms: float) -> str:
    match part:
        case "$method":
            return str(request.method).upper()
        case "$url":
            return request.url
        case "$status":
            if isinstance(result, Success):
                return str(result.value.status)
            return f"error: {result.error!r}"
        case "$time":
            return f"{time_ms:.3f}"
        case "$query":
            return encode_query(
                request.query, request.opts.get("query_encoding", "www_form")
            )
        case _:
            return part


def format_line(
    request: Env, result: Result[Env, Any], time_ms: float, fmt: CompiledFormat
) -> str:
    """Render the log line for one exchange."""
    if callable(fmt):
        return str(fmt(request, result, time_ms))
    return "".join(_output(part, request, result, time_ms) for part in fmt)


# --- Levels ---


def _coerce_level(level: Any) -> int:
    if isinstance(level, int) and not isinstance(level, bool):
        return level
    if isinstance(level, str) and level.lower() in _LEVELS:
        return _LEVELS[level.lower()]
    raise MiddlewareOptionsError(
        f"Invalid log level: {level!r}. Must be a logging level int or one of: {sorted(_LEVELS)}"
    )


def default_log_level(env: Env) -> int:
    """Return the default level for a completed exchange, based on status."""
    status = env.status or 0
    if status >= 400:
        return logging.ERROR
    if status >= 300:
        return logging.WARNING
    return logging.INFO


def _default_response_level(result: Result[Env, Any]) -> int:
    if isinstance(result, Failure):
        return logging.ERROR
    return default_log_level(result.value)


def _apply_level(result: Result[Env, Any], level: Any) -> int:
    if callable(level):
        chosen = level(result)
        if chosen == "default":
            return _default_response_level(result)
        return _coerce_level(chosen)
    return _coerce_level(level)


def _legacy_level(log_level: Any) -> Callable[[Result[Env, Any]], Any]:
    # Old-style functions received only the response env.
    def _wrapper(result: Result[Env, Any]) -> Any:
        if isinstance(result, Failure):
            return "error"
        return log_level(result.value) if callable(log_level) else log_level

    return _wrapper


def log_level(result: Result[Env, Any], options: Mapping[str, Any]) -> int:
    """Pick the level for ``result`` from the stage options."""
    if options.get("log_level") is not None:
        return _apply_level(result, _legacy_level(options["log_level"]))
    if options.get("level") is not None:
        return _apply_level(result, options["level"])
    return _default_response_level(result)


# --- Debug dump ---

_NO_QUERY = "(no query)"
_NO_HEADERS = "(no headers)"
_NO_BODY = "(no body)"
_STREAM = "[stream]"


def _debug_query(query: tuple[tuple[str, Any], ...]) -> str:
    if not query:
        return _NO_QUERY
    return "".join(f"Query: {k}: {v}\n" for k, v in encode_pairs(query))


def _debug_headers(
    headers: tuple[tuple[str, str], ...], filtered: frozenset[str]
) -> str:
    if not headers:
        return _NO_HEADERS
    return "".join(
        f"{k}: {'[FILTERED]' if k.lower() in filtered else v}\n" for k, v in headers
    )


def _debug_body(body: Any) -> str:
    if body is None or (isinstance(body, list) and not body):
        return _NO_BODY
    if isinstance(body, Iterator | AsyncIterator):
        return _STREAM
    if isinstance(body, Multipart):
        lines = [
            "[Multipart]",
            f"boundary: {body.boundary}",
            f"content_type_params: {body.content_type_params!r}",
            *(repr(part) for part in body.parts),
        ]
        return "\n".join(lines) + "\n"
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        return body
    return repr(body)


def debug_dump(
    request: Env, result: Result[Env, Any], filter_headers: Any = ()
) -> str:
    """Render the detailed request/response dump."""
    filtered = frozenset(h.lower() for h in filter_headers or ())
    lines = [
        "\n>>> REQUEST >>>\n",
        _debug_query(request.query),
        "\n",
        _debug_headers(request.headers, filtered),
        "\n",
        _debug_body(request.body),
        "\n",
    ]
    if isinstance(result, Success):
        lines += [
            "\n<<< RESPONSE <<<\n",
            _debug_headers(result.value.headers, filtered),
            "\n",
            _debug_body(result.value.body),
        ]
    else:
        lines += ["\n<<< RESPONSE ERROR <<<\n", repr(result.error)]
    return "".join(lines)


# --- Stage ---


class Logger:
    """Log every exchange passing through this point of the chain."""

    stage_name = "Logger"

    def __init__(self) -> None:
        self._warned_log_level = False

    def default_options(self, config: FrozenConfig) -> dict[str, Any]:
        """Derive default options from configuration."""
        defaults: dict[str, Any] = {
            "debug": config.log_debug,
            "filter_headers": tuple(config.log_filter_headers),
            "disable_log_level_warning": config.disable_log_level_warning,
        }
        if config.log_format is not None:
            defaults["format"] = config.log_format
        return defaults

    def validate_options(self, options: Mapping[str, Any]) -> None:
        """Reject invalid or conflicting options when the chain is built.

        Raises:
            MiddlewareOptionsError: If both ``level`` and ``log_level`` are
                given, the format is invalid, or a fixed level is unknown.
        """
        level = options.get("level")
        legacy = options.get("log_level")
        if level is not None and legacy is not None:
            raise MiddlewareOptionsError("cannot provide both log_level and level options")
        compile_format(options.get("format"))
        for fixed in (level, legacy):
            if fixed is not None and not callable(fixed):
                _coerce_level(fixed)
        if (
            legacy is not None
            and not options.get("disable_log_level_warning", False)
            and not self._warned_log_level
        ):
            self._warned_log_level = True
            warnings.warn(
                "log_level option is deprecated, use level option instead",
                DeprecationWarning,
                stacklevel=4,
            )

    async def call(
        self, env: Env, next: Next, options: Mapping[str, Any]
    ) -> Result[Env, Any]:
        """Time the rest of the chain and log the outcome."""
        start = perf_counter()
        result = await run(env, next)
        time_ms = (perf_counter() - start) * 1000

        logger = logging.getLogger(options.get("logger", DEFAULT_LOGGER))
        level = log_level(result, options)
        if logger.isEnabledFor(level):
            fmt = compile_format(options.get("format"))
            logger.log(level, "%s", format_line(env, result, time_ms, fmt))

        if options.get("debug", True) and logger.isEnabledFor(logging.DEBUG):
            logger.debug("%s", debug_dump(env, result, options.get("filter_headers")))

        return result
