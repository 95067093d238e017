"""
Tests for the sign-in completion signal
"""

import asyncio

import pytest

from aad_token_engine.auth import AuthCompletion


@pytest.mark.unit
class TestAuthCompletion:
    async def test_resolve_wakes_waiter(self):
        completion = AuthCompletion()
        waiter = asyncio.create_task(completion.wait())

        assert completion.resolve("account") is True
        assert await waiter == "account"
        assert completion.done is True
        assert completion.failed is False

    async def test_reject_raises_in_waiter(self):
        completion = AuthCompletion()
        completion.reject(ValueError("no"))

        with pytest.raises(ValueError):
            await completion.wait()
        assert completion.failed is True

    async def test_settles_only_once(self):
        completion = AuthCompletion()

        assert completion.resolve(1) is True
        assert completion.resolve(2) is False
        assert completion.reject(RuntimeError()) is False
        assert await completion.wait() == 1
