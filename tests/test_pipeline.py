import asyncio

import pytest

from pipewise import AsyncStep, CancellationToken, ContextualStep, Env, Option, Pipeline, Result, SyncStep
from pipewise.memory import goal_from_branch
from fakes import make_branch, make_engine


def shout(text: str) -> str:
    if "error" in text:
        raise ValueError("refusing to shout errors")
    return text.upper()


@pytest.mark.asyncio
async def test_empty_pipeline_is_identity() -> None:
    assert await Pipeline().run(5) == Result.Success(5)


@pytest.mark.asyncio
async def test_builder_is_immutable() -> None:
    base = Pipeline().then(SyncStep(str.strip))
    longer = base.then(SyncStep(shout))

    assert await base.run(" a ") == Result.Success("a")
    assert await longer.run(" a ") == Result.Success("A")


@pytest.mark.asyncio
async def test_uncaught_failure_is_reported(caplog) -> None:
    pipeline = Pipeline().then(SyncStep(str.strip)).then(SyncStep(shout)).map(len)

    with caplog.at_level("ERROR", logger="pipewise.pipeline.builder"):
        result = await pipeline.run("error input")

    error = result.match(lambda _: None, lambda e: e)
    assert error.kind == "execution"
    assert error.step == "shout"
    assert "error input" in error.input_snapshot
    assert "shout" in caplog.text


@pytest.mark.asyncio
async def test_try_result_and_bind_in_pipeline() -> None:
    pipeline = Pipeline().then(SyncStep(shout)).try_result().bind(SyncStep(len))

    assert await pipeline.run("abc") == Result.Success(Result.Success(3))
    inner = (await pipeline.run("error")).get_or_default(None)
    assert inner.is_failure


@pytest.mark.asyncio
async def test_try_option_in_pipeline() -> None:
    pipeline = Pipeline().then(SyncStep({"a": "x"}.get)).try_option()

    assert await pipeline.run("a") == Result.Success(Option.Some("x"))
    assert await pipeline.run("b") == Result.Success(Option.Nothing())


@pytest.mark.asyncio
async def test_branch_pipeline_records_events() -> None:
    seen: list[int] = []
    pipeline = (
        Pipeline.from_branch(make_branch())
        .record("goal", goal="Implement authentication")
        .record("draft", text="add login form")
        .tap(lambda branch: seen.append(len(branch.events)))
    )

    branch = (await pipeline.run()).get_or_default(None)

    assert [event.kind for event in branch.events] == ["goal", "draft"]
    assert seen == [2]


@pytest.mark.asyncio
async def test_record_accepts_kind_as_event_info() -> None:
    pipeline = Pipeline.from_branch(make_branch()).record("classified", kind="bug")

    branch = (await pipeline.run()).get_or_default(None)

    assert branch.events[0].kind == "classified"
    assert branch.events[0].info["kind"] == "bug"


@pytest.mark.asyncio
async def test_pipeline_with_memory() -> None:
    engine = make_engine()
    branch = make_branch().record("goal", goal="Implement authentication")
    pipeline = Pipeline.from_branch(branch).record("draft", text="add login form").with_memory(engine, goal_from_branch)

    result = await pipeline.run()

    assert [event.kind for event in result.get_or_default(branch).events] == ["goal", "draft"]
    episodes = [episode async for episode in engine.store.scan()]
    assert [episode.goal for episode in episodes] == ["Implement authentication"]


@pytest.mark.asyncio
async def test_run_traced_returns_logs() -> None:
    pipeline = Pipeline().then(ContextualStep.lift_pure(str.upper, "upper")).then(SyncStep(len))

    assert await pipeline.run_traced("ab") == Result.Success((2, ("upper",)))
    assert await pipeline.run("ab") == Result.Success(2)


@pytest.mark.asyncio
async def test_cancelled_run_is_reported_as_cancelled() -> None:
    token = CancellationToken()
    started = asyncio.Event()

    async def hang(value):
        started.set()
        await asyncio.Event().wait()

    async def cancel_when_started():
        await started.wait()
        token.cancel("shutdown")

    pipeline = Pipeline().then(AsyncStep.of(hang, name="hang"))
    canceller = asyncio.create_task(cancel_when_started())
    result = await pipeline.run("x", Env(cancel=token))
    await canceller

    error = result.match(lambda _: None, lambda e: e)
    assert error.kind == "cancelled"
    assert error.step == "hang"
    assert "shutdown" in error.message


@pytest.mark.asyncio
async def test_run_without_input_is_an_error() -> None:
    with pytest.raises(ValueError):
        await Pipeline().run()
