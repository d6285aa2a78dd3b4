from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable


async def run_indexed_tasks_fail_fast(
    tasks: list[tuple[int, Callable[[], Awaitable[Any]]]],
    *,
    max_workers: int,
) -> list[tuple[int, Any]]:
    if not tasks:
        return []
    if max_workers <= 1 or len(tasks) == 1:
        return [(index, await task()) for index, task in tasks]

    semaphore = asyncio.Semaphore(max_workers)

    async def _bounded(task: Callable[[], Awaitable[Any]]) -> Any:
        async with semaphore:
            return await task()

    future_to_index = {
        asyncio.ensure_future(_bounded(task)): index for index, task in tasks
    }
    done, pending = await asyncio.wait(
        future_to_index, return_when=asyncio.FIRST_EXCEPTION
    )
    if pending:
        for future in pending:
            future.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    ordered = sorted(done, key=future_to_index.__getitem__)
    errors = [future.exception() for future in ordered if not future.cancelled()]
    first_error = next((error for error in errors if error is not None), None)
    if first_error is not None:
        raise first_error

    results: dict[int, Any] = {}
    for future in ordered:
        results[future_to_index[future]] = future.result()

    return [(index, results[index]) for index in sorted(results)]
