"""Transport adapter backed by ``httpx.AsyncClient``.

The adapter is the innermost stage. It performs the request described by the
fully pre-processed envelope and reports:

- ``Success(env)`` for every received response, whatever its status, with
  ``status``, response ``headers`` (wire order) and raw ``body`` bytes set
  and every other field of the request preserved;
- ``Failure(exc)`` for request errors (connect errors, timeouts, protocol
  errors, undecodable bodies, too many redirects), where ``exc`` is the
  ``httpx.RequestError`` raised.

Body codecs are not applied here; a structured body reaching the adapter
means a codec stage is missing and raises ``TypeError``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator, Mapping
import logging
from types import TracebackType
from typing import TYPE_CHECKING, Any, Self

import httpx

from courier.core.multipart import Multipart
from courier.core.query import build_url
from courier.core.types import Env, Failure, Result, Success

if TYPE_CHECKING:
    from courier.pipeline.base import Next

log = logging.getLogger(__name__)


async def _aiter_chunks(chunks: Iterator[Any]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk if isinstance(chunk, bytes) else str(chunk).encode("utf-8")


def _request_content(env: Env) -> tuple[Any, Env]:
    """Return httpx request content and the env with any implied headers."""
    body = env.body
    if body is None:
        return None, env
    if isinstance(body, bytes | str):
        return body, env
    if isinstance(body, Multipart):
        if env.get_header("content-type") is None:
            env = env.put_header("content-type", body.content_type())
        return body.to_bytes(), env
    if isinstance(body, AsyncIterator):
        return body, env
    if isinstance(body, Iterator):
        return _aiter_chunks(body), env
    raise TypeError(
        f"Cannot send a {type(body).__name__} body for {env.method} {env.url}; "
        "add an encoding stage (e.g. JSON or FormUrlencoded) to the chain"
    )


class HttpxAdapter:
    """Send requests with an ``httpx.AsyncClient``.

    Args:
        client: Client to use. When omitted, the adapter creates (and owns)
            one configured with ``timeout``.
        timeout: Timeout in seconds for an owned client.
    """

    stage_name = "HttpxAdapter"

    def __init__(
        self, client: httpx.AsyncClient | None = None, *, timeout: float = 30.0
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def client(self) -> httpx.AsyncClient:
        """The underlying httpx client."""
        return self._client

    async def call(
        self, env: Env, next: Next, options: Mapping[str, Any]  # noqa: ARG002
    ) -> Result[Env, Any]:
        """Perform the request described by ``env``."""
        content, env = _request_content(env)
        url = build_url(env.url, env.query, env.opts.get("query_encoding", "www_form"))
        try:
            response = await self._client.request(
                str(env.method),
                url,
                headers=list(env.headers),
                content=content,
            )
        except httpx.RequestError as e:
            log.debug("Request error for %s %s: %r", env.method, url, e)
            return Failure(e)
        return Success(
            env.replace(
                status=response.status_code,
                headers=tuple(response.headers.multi_items()),
                body=response.content,
            )
        )

    async def aclose(self) -> None:
        """Close the httpx client if this adapter created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()
