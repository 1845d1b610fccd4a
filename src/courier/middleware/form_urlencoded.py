"""Form-urlencoded body codec stages.

``FormUrlencoded`` encodes structured request bodies as
``application/x-www-form-urlencoded`` and decodes response bodies carrying
that content type. ``EncodeFormUrlencoded`` and ``DecodeFormUrlencoded`` do
only one half each.

Options:
    encode: Callable turning the body into a string. Defaults to
        ``encode_query`` (nested mappings become ``key[sub]`` pairs).
    decode: Callable turning the response text into data. Defaults to an
        ordered dict built from ``urllib.parse.parse_qsl``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qsl

from courier.core.multipart import Multipart
from courier.core.query import encode_query
from courier.core.types import Env, Result, Success
from courier.pipeline.runner import run

if TYPE_CHECKING:
    from courier.pipeline.base import Next

CONTENT_TYPE = "application/x-www-form-urlencoded"


def decode_query(data: str | bytes) -> dict[str, str]:
    """Decode a query string into a dict; later keys win."""
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    return dict(parse_qsl(data, keep_blank_values=True))


def _encodable(env: Env) -> bool:
    return env.body is not None and not isinstance(env.body, Multipart)


def _decodable(env: Env) -> bool:
    body = env.body
    has_body = isinstance(body, str | bytes) and len(body) > 0
    content_type = env.get_header("content-type")
    return has_body and content_type is not None and content_type.startswith(CONTENT_TYPE)


def encode(env: Env, options: Mapping[str, Any]) -> Env:
    """Encode the request body, leaving raw strings and bytes untouched."""
    if not _encodable(env):
        return env
    body = env.body
    if not isinstance(body, str | bytes):
        encoder = options.get("encode", encode_query)
        body = encoder(body)
    return env.replace(body=body).put_header("content-type", CONTENT_TYPE)


def decode(env: Env, options: Mapping[str, Any]) -> Env:
    """Decode the response body when it is form-urlencoded."""
    if not _decodable(env):
        return env
    decoder = options.get("decode", decode_query)
    return env.replace(body=decoder(env.body))


class FormUrlencoded:
    """Encode requests and decode responses as form-urlencoded data."""

    stage_name = "FormUrlencoded"

    async def call(
        self, env: Env, next: Next, options: Mapping[str, Any]
    ) -> Result[Env, Any]:
        result = await run(encode(env, options), next)
        if isinstance(result, Success):
            return Success(decode(result.value, options))
        return result


class EncodeFormUrlencoded:
    """Only encode request bodies."""

    stage_name = "EncodeFormUrlencoded"

    async def call(
        self, env: Env, next: Next, options: Mapping[str, Any]
    ) -> Result[Env, Any]:
        return await run(encode(env, options), next)


class DecodeFormUrlencoded:
    """Only decode response bodies."""

    stage_name = "DecodeFormUrlencoded"

    async def call(
        self, env: Env, next: Next, options: Mapping[str, Any]
    ) -> Result[Env, Any]:
        result = await run(env, next)
        if isinstance(result, Success):
            return Success(decode(result.value, options))
        return result
