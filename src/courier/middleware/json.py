"""JSON body codec stage.

Options:
    encode: Callable serializing the body to ``str``/``bytes``. Defaults to
        compact ``json.dumps``.
    decode: Callable parsing response text. Defaults to ``json.loads``.
    decode_content_types: Extra content types to decode besides
        ``application/json`` and ``*+json``.

A response that claims to be JSON but cannot be parsed becomes a Failure
carrying the decode error.
"""

from __future__ import annotations

from collections.abc import Mapping
import json
from typing import TYPE_CHECKING, Any

from courier.core.types import Env, Failure, Result, Success
from courier.pipeline.runner import run

if TYPE_CHECKING:
    from courier.pipeline.base import Next

CONTENT_TYPE = "application/json"


def _dumps(data: Any) -> str:
    return json.dumps(data, separators=(",", ":"))


def _is_json_type(content_type: str | None, extra: tuple[str, ...]) -> bool:
    if content_type is None:
        return False
    mime = content_type.split(";", 1)[0].strip().lower()
    return mime == CONTENT_TYPE or mime.endswith("+json") or mime in extra


class JSON:
    """Encode structured request bodies and decode JSON responses."""

    stage_name = "JSON"

    def encode(self, env: Env, options: Mapping[str, Any]) -> Env:
        """Serialize mapping/list bodies and set the content type."""
        if not isinstance(env.body, Mapping | list | tuple):
            return env
        encoder = options.get("encode", _dumps)
        return env.replace(body=encoder(env.body)).put_header(
            "content-type", CONTENT_TYPE
        )

    def decode(self, env: Env, options: Mapping[str, Any]) -> Result[Env, Any]:
        """Parse the response body when its content type is JSON."""
        extra = tuple(t.lower() for t in options.get("decode_content_types", ()))
        body = env.body
        if not (
            isinstance(body, str | bytes)
            and body.strip()
            and _is_json_type(env.get_header("content-type"), extra)
        ):
            return Success(env)
        decoder = options.get("decode", json.loads)
        try:
            return Success(env.replace(body=decoder(body)))
        except ValueError as e:
            return Failure(e)

    async def call(
        self, env: Env, next: Next, options: Mapping[str, Any]
    ) -> Result[Env, Any]:
        result = await run(self.encode(env, options), next)
        if isinstance(result, Success):
            return self.decode(result.value, options)
        return result
