import asyncio

import pytest

from nagare.executors.asyncio import AsyncIOExecutor


def func():
    pass


def func2():
    return []


def gen():
    yield


async def coroutine():
    return "smiting"


def calls_counter():
    calls = []

    def fn(value):
        calls.append(value)
        return value

    return fn, calls


@pytest.mark.asyncio
async def test_awaitable_check__async_only():
    executor = AsyncIOExecutor(deny_sync=True)

    with pytest.raises(TypeError) as func_err:
        await executor.submit(func)
    func_err.match("returned non-awaitable object")

    with pytest.raises(TypeError) as func2_err:
        await executor.submit(func2)
    func2_err.match("returned non-awaitable object")

    with pytest.raises(TypeError) as gen_err:
        await executor.submit(gen)
    gen_err.match("returned non-awaitable object")

    assert (await executor.submit(coroutine)) == "smiting"


@pytest.mark.asyncio
async def test_awaitable_check__sync_async():
    executor = AsyncIOExecutor()

    assert await executor.submit(func) is None
    assert await executor.submit(func2) == []
    assert await executor.submit(coroutine) == "smiting"


@pytest.mark.asyncio
async def test_sync_function_is_called_once():
    executor = AsyncIOExecutor()
    fn, calls = calls_counter()

    assert await executor.submit(fn, 5) == 5
    assert calls == [5]


@pytest.mark.asyncio
async def test_submit_returns_task():
    executor = AsyncIOExecutor()
    task = executor.submit(asyncio.sleep, 10)
    assert isinstance(task, asyncio.Task)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
