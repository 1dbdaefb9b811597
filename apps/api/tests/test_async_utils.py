import asyncio

import anyio
import pytest

from caseops.core.async_utils import gather_ordered, run_async


async def _sample() -> str:
    await anyio.sleep(0)
    return "ok"


@pytest.mark.asyncio
async def test_run_async_avoids_asyncio_run_in_worker_thread(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def _fail_run(*_args: object, **_kwargs: object) -> None:
        pytest.fail("asyncio.run should not be used in request threads")

    monkeypatch.setattr(asyncio, "run", _fail_run)

    def _call() -> str:
        return run_async(_sample())

    result = await anyio.to_thread.run_sync(_call)
    assert result == "ok"


@pytest.mark.asyncio
async def test_run_async_refuses_running_loop() -> None:
    coro = _sample()
    with pytest.raises(RuntimeError):
        run_async(coro)
    coro.close()


@pytest.mark.asyncio
async def test_gather_ordered_keeps_input_order_not_completion_order() -> None:
    async def _delayed(value: int, delay: float) -> int:
        await anyio.sleep(delay)
        return value

    calls = [
        lambda: _delayed(1, 0.03),
        lambda: _delayed(2, 0.0),
        lambda: _delayed(3, 0.01),
    ]
    assert await gather_ordered(calls) == [1, 2, 3]


@pytest.mark.asyncio
async def test_gather_ordered_empty() -> None:
    assert await gather_ordered([]) == []
