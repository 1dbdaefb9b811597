from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Coroutine, TypeVar

import anyio

T = TypeVar("T")


def run_async(coro: Coroutine[object, object, T], *, timeout: float | None = None) -> T:
    """
    Run an async coroutine from sync code (CLI commands).

    Raises if called from an async context in the same thread (use await instead).
    """

    async def _runner() -> T:
        if timeout is not None:
            with anyio.fail_after(timeout):
                return await coro
        return await coro

    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return anyio.run(_runner)
    raise RuntimeError("run_async called from async context; use await instead")


async def gather_ordered(
    calls: list[Callable[[], Awaitable[T]]],
) -> list[T]:
    """
    Run zero-arg async callables concurrently and return results in input order.

    Callables must handle their own errors: one raising cancels the group.
    """
    results: list[T | None] = [None] * len(calls)

    async def _run(index: int, call: Callable[[], Awaitable[T]]) -> None:
        results[index] = await call()

    async with anyio.create_task_group() as tg:
        for index, call in enumerate(calls):
            tg.start_soon(_run, index, call)
    return results  # type: ignore[return-value]
