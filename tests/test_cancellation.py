from __future__ import annotations

import asyncio

import pytest

from core.cancellation import CancelToken
from core.errors import Cancelled


def test_raise_if_cancelled() -> None:
    token = CancelToken()
    token.raise_if_cancelled()
    token.cancel()
    assert token.cancelled
    with pytest.raises(Cancelled):
        token.raise_if_cancelled()


def test_guard_returns_result() -> None:
    async def _value() -> int:
        return 42

    assert asyncio.run(CancelToken().guard(_value())) == 42


def test_cancel_aborts_in_flight_call() -> None:
    async def _scenario() -> bool:
        token = CancelToken()
        finished = False

        async def _slow() -> None:
            nonlocal finished
            await asyncio.sleep(10)
            finished = True

        async def _cancel_soon() -> None:
            await asyncio.sleep(0.01)
            token.cancel()

        canceller = asyncio.ensure_future(_cancel_soon())
        with pytest.raises(Cancelled):
            await token.guard(_slow())
        await canceller
        return finished

    assert asyncio.run(_scenario()) is False


def test_guard_refuses_to_start_after_cancel() -> None:
    async def _scenario() -> None:
        token = CancelToken()
        token.cancel()
        coro = asyncio.sleep(0)
        try:
            with pytest.raises(Cancelled):
                await token.guard(coro)
        finally:
            coro.close()

    asyncio.run(_scenario())
