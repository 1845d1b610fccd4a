import httpx
import pytest

from courier.adapters import HttpxAdapter
from courier.core.multipart import Multipart
from courier.core.types import Env, Failure, Success


def adapter_for(handler):
    return HttpxAdapter(httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.mark.unit
class TestHttpxAdapter:
    @pytest.mark.asyncio
    async def test_success_carries_status_headers_and_raw_body(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(
                404,
                headers=[("x-dup", "1"), ("x-dup", "2")],
                content=b"missing",
            )

        env = Env(
            method="get",
            url="https://example.test/items",
            headers=[("Accept", "text/plain")],
            opts={"tag": "kept"},
        )
        result = await adapter_for(handler).call(env, None, {})

        assert isinstance(result, Success)
        response = result.value
        assert response.status == 404
        assert response.get_headers("x-dup") == ("1", "2")
        assert response.body == b"missing"
        assert response.url == env.url
        assert response.opts["tag"] == "kept"
        assert seen[0].method == "GET"
        assert seen[0].headers["accept"] == "text/plain"

    @pytest.mark.asyncio
    async def test_transport_error_becomes_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = await adapter_for(handler).call(Env(url="https://example.test/"), None, {})

        assert isinstance(result, Failure)
        assert isinstance(result.error, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_undecodable_body_becomes_failure(self):
        def handler(request):
            return httpx.Response(
                200, headers={"content-encoding": "gzip"}, content=b"not gzip"
            )

        result = await adapter_for(handler).call(Env(url="https://example.test/x"), None, {})

        assert isinstance(result, Failure)
        assert isinstance(result.error, httpx.DecodingError)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("encoding", "expected"),
        [("www_form", "q=a+b&tag=x"), ("rfc3986", "q=a%20b&tag=x")],
    )
    async def test_query_is_encoded_onto_the_url(self, encoding, expected):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200)

        env = Env(
            url="https://example.test/search",
            query=[("q", "a b"), ("tag", "x")],
            opts={"query_encoding": encoding},
        )
        await adapter_for(handler).call(env, None, {})

        assert seen[0].url.query.decode() == expected

    @pytest.mark.asyncio
    async def test_string_body_is_sent(self):
        seen = []

        def handler(request):
            seen.append(request.content)
            return httpx.Response(201)

        await adapter_for(handler).call(
            Env(method="post", url="https://example.test/", body="hello"), None, {}
        )
        assert seen == [b"hello"]

    @pytest.mark.asyncio
    async def test_multipart_body_sets_content_type(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200)

        mp = Multipart(boundary="B0").add_field("name", "value")
        await adapter_for(handler).call(
            Env(method="post", url="https://example.test/upload", body=mp), None, {}
        )

        assert seen[0].headers["content-type"] == "multipart/form-data; boundary=B0"
        assert seen[0].content == mp.to_bytes()

    @pytest.mark.asyncio
    async def test_structured_body_requires_a_codec_stage(self):
        adapter = adapter_for(lambda request: httpx.Response(200))
        with pytest.raises(TypeError, match="encoding stage"):
            await adapter.call(
                Env(method="post", url="https://example.test/", body={"a": 1}), None, {}
            )

    @pytest.mark.asyncio
    async def test_borrowed_client_is_not_closed(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        async with HttpxAdapter(client):
            pass
        assert not client.is_closed
        await client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_is_closed(self):
        adapter = HttpxAdapter(timeout=1.0)
        await adapter.aclose()
        assert adapter.client.is_closed
