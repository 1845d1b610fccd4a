"""Behavioral contracts of the composed chain.

These tests pin the dispatch protocol every stage relies on: ordering,
short-circuiting, pass-through of untouched results, repeated ``next``
invocation and safe concurrent reuse of one chain.
"""

import asyncio
import logging

import pytest

from courier.core.types import Env, Failure, Success
from courier.middleware import Logger, Retry
from courier.pipeline.runner import build_chain
from tests.helpers import CountingAdapter, trace_of, tracing_stage


@pytest.mark.contract
@pytest.mark.asyncio
async def test_empty_stage_list_is_identical_to_the_adapter():
    env = Env(url="/items", opts={"k": "v"})
    direct = CountingAdapter(204)
    chained = CountingAdapter(204)

    expected = await direct.call(env, None, {})
    actual = await build_chain([], chained)(env)

    assert actual == expected
    assert chained.seen == [env]


@pytest.mark.contract
@pytest.mark.asyncio
async def test_pre_processing_in_list_order_post_processing_in_reverse():
    chain = build_chain([tracing_stage("s1"), tracing_stage("s2")], CountingAdapter())

    result = await chain(Env(url="/"))

    assert trace_of(result) == ("s1-pre", "s2-pre", "s2-post", "s1-post")


@pytest.mark.contract
@pytest.mark.asyncio
async def test_short_circuit_never_reaches_the_adapter():
    adapter = CountingAdapter()

    async def blocker(env, next, options):  # noqa: ARG001
        return Failure("blocked")

    chain = build_chain([tracing_stage("outer"), blocker, tracing_stage("inner")], adapter)

    assert await chain(Env(url="/")) == Failure("blocked")
    assert adapter.calls == 0


@pytest.mark.contract
@pytest.mark.asyncio
@pytest.mark.parametrize("position", [0, 1, 2])
async def test_unrelated_stage_passes_adapter_failure_through(position):
    stages = [tracing_stage("a"), tracing_stage("b")]
    stages.insert(position, tracing_stage("unrelated"))
    chain = build_chain(stages, CountingAdapter(Failure("timeout")))

    assert await chain(Env(url="/")) == Failure("timeout")


@pytest.mark.contract
@pytest.mark.asyncio
async def test_stage_may_invoke_next_more_than_once():
    adapter = CountingAdapter(Failure("first"), 200)

    async def twice(env, next, options):  # noqa: ARG001
        await next(env)
        return await next(env)

    result = await build_chain([twice, tracing_stage("inner")], adapter)(Env(url="/"))

    assert adapter.calls == 2
    # Each invocation traverses the inner stage independently.
    assert trace_of(result) == ("inner-pre", "inner-post")


@pytest.mark.contract
@pytest.mark.asyncio
async def test_composition_does_not_invoke_stages():
    invoked = []

    async def spy(env, next, options):  # noqa: ARG001
        invoked.append(env.url)
        return await next(env)

    chain = build_chain([spy, spy], CountingAdapter())
    assert invoked == []

    await chain(Env(url="/once"))
    assert invoked == ["/once", "/once"]


@pytest.mark.contract
@pytest.mark.asyncio
async def test_concurrent_calls_do_not_share_traces():
    async def yielding(env, next, options):  # noqa: ARG001
        await asyncio.sleep(0)
        return await next(env)

    chain = build_chain(
        [tracing_stage("s1"), yielding, tracing_stage("s2")], CountingAdapter()
    )
    envs = [Env(url=f"/{i}", opts={"trace": (f"start-{i}",)}) for i in range(50)]

    results = await asyncio.gather(*(chain(env) for env in envs))

    for i, result in enumerate(results):
        assert isinstance(result, Success)
        assert result.value.url == f"/{i}"
        assert trace_of(result) == (f"start-{i}", "s1-pre", "s2-pre", "s2-post", "s1-post")


@pytest.mark.contract
@pytest.mark.asyncio
async def test_logger_outside_retry_logs_only_the_final_outcome(caplog):
    adapter = CountingAdapter(Failure("econnrefused"), Failure("econnrefused"), 200)
    chain = build_chain(
        [(Logger, {"debug": False}), (Retry, {"max_retries": 2, "delay": 0})],
        adapter,
    )

    with caplog.at_level(logging.DEBUG, logger="courier.middleware.logger"):
        result = await chain(Env(url="https://example.com/flaky"))

    assert isinstance(result, Success)
    assert result.value.status == 200
    assert adapter.calls == 3
    records = [r for r in caplog.records if r.name == "courier.middleware.logger"]
    assert len(records) == 1
    assert records[0].levelno == logging.INFO
    assert "GET https://example.com/flaky -> 200" in records[0].getMessage()
