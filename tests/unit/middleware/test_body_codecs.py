import json

import pytest

from courier.core.multipart import Multipart
from courier.core.types import Env, Failure, Success
from courier.middleware import (
    JSON,
    DecodeFormUrlencoded,
    EncodeFormUrlencoded,
    FormUrlencoded,
)
from courier.pipeline.runner import build_chain


def responding(content_type, body):
    """Adapter echoing the request into ``opts`` and answering with ``body``."""

    async def adapter(env, next, options):  # noqa: ARG001
        return Success(
            env.replace(
                status=200,
                headers=[("content-type", content_type)] if content_type else [],
                body=body,
            ).put_opt("sent", env)
        )

    return adapter


@pytest.mark.unit
class TestFormUrlencoded:
    @pytest.mark.asyncio
    async def test_encodes_mapping_body_and_sets_content_type(self):
        chain = build_chain([FormUrlencoded], responding(None, None))

        result = await chain(Env(method="post", body={"user": {"name": "ann b"}, "n": 1}))

        sent = result.value.opts["sent"]
        assert sent.body == "user%5Bname%5D=ann+b&n=1"
        assert sent.get_header("content-type") == "application/x-www-form-urlencoded"

    @pytest.mark.asyncio
    async def test_raw_string_body_is_left_as_is(self):
        chain = build_chain([EncodeFormUrlencoded], responding(None, None))
        result = await chain(Env(method="post", body="a=1"))
        assert result.value.opts["sent"].body == "a=1"

    @pytest.mark.asyncio
    async def test_multipart_and_missing_bodies_are_untouched(self):
        chain = build_chain([EncodeFormUrlencoded], responding(None, None))
        mp = Multipart()

        sent_mp = (await chain(Env(method="post", body=mp))).value.opts["sent"]
        sent_none = (await chain(Env(method="post"))).value.opts["sent"]

        assert sent_mp.body is mp
        assert sent_mp.get_header("content-type") is None
        assert sent_none.get_header("content-type") is None

    @pytest.mark.asyncio
    async def test_decodes_matching_response(self):
        chain = build_chain(
            [FormUrlencoded],
            responding("application/x-www-form-urlencoded; charset=utf-8", b"a=1&b=two+words"),
        )
        result = await chain(Env())
        assert result.value.body == {"a": "1", "b": "two words"}

    @pytest.mark.asyncio
    async def test_other_content_types_are_not_decoded(self):
        chain = build_chain([DecodeFormUrlencoded], responding("text/plain", "a=1"))
        assert (await chain(Env())).value.body == "a=1"

    @pytest.mark.asyncio
    async def test_custom_encoder_and_decoder(self):
        chain = build_chain(
            [
                (
                    FormUrlencoded,
                    {
                        "encode": lambda data: "custom",
                        "decode": lambda text: {"raw": text},
                    },
                )
            ],
            responding("application/x-www-form-urlencoded", "x=y"),
        )
        result = await chain(Env(method="post", body={"a": 1}))
        assert result.value.opts["sent"].body == "custom"
        assert result.value.body == {"raw": "x=y"}

    @pytest.mark.asyncio
    async def test_failures_pass_through(self):
        async def failing(env, next, options):  # noqa: ARG001
            return Failure("closed")

        chain = build_chain([FormUrlencoded], failing)
        assert await chain(Env(body={"a": 1})) == Failure("closed")


@pytest.mark.unit
class TestJSON:
    @pytest.mark.asyncio
    async def test_encodes_structured_body(self):
        chain = build_chain([JSON], responding(None, None))

        result = await chain(Env(method="post", body={"a": [1, 2]}))

        sent = result.value.opts["sent"]
        assert sent.body == '{"a":[1,2]}'
        assert sent.get_header("content-type") == "application/json"

    @pytest.mark.asyncio
    async def test_string_body_is_not_reencoded(self):
        chain = build_chain([JSON], responding(None, None))
        sent = (await chain(Env(method="post", body='{"a":1}'))).value.opts["sent"]
        assert sent.body == '{"a":1}'
        assert sent.get_header("content-type") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "content_type",
        ["application/json", "application/json; charset=utf-8", "application/problem+json"],
    )
    async def test_decodes_json_responses(self, content_type):
        chain = build_chain([JSON], responding(content_type, b'{"ok": true}'))
        assert (await chain(Env())).value.body == {"ok": True}

    @pytest.mark.asyncio
    async def test_extra_decode_content_types(self):
        chain = build_chain(
            [(JSON, {"decode_content_types": ["text/javascript"]})],
            responding("text/javascript", "[1]"),
        )
        assert (await chain(Env())).value.body == [1]

    @pytest.mark.asyncio
    async def test_empty_and_non_json_bodies_are_left_alone(self):
        empty = build_chain([JSON], responding("application/json", ""))
        html = build_chain([JSON], responding("text/html", "<p>"))
        assert (await empty(Env())).value.body == ""
        assert (await html(Env())).value.body == "<p>"

    @pytest.mark.asyncio
    async def test_invalid_json_becomes_failure(self):
        chain = build_chain([JSON], responding("application/json", "{nope"))
        result = await chain(Env())
        assert isinstance(result, Failure)
        assert isinstance(result.error, json.JSONDecodeError)
