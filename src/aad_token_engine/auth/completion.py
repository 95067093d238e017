"""
One-shot completion signal for interactive sign-in.

A login flow hands an ``AuthCompletion`` back with its token response so a
separate waiter (a progress UI, a CLI spinner) can observe when the whole
sign-in, including account hydration, has finished.
"""

import asyncio
from typing import Any, Optional


class AuthCompletion:
    """Settles exactly once, with a value or with an error. Later calls are ignored."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._value: Any = None
        self._error: Optional[BaseException] = None

    @property
    def done(self) -> bool:
        return self._event.is_set()

    @property
    def failed(self) -> bool:
        return self._error is not None

    def resolve(self, value: Any = None) -> bool:
        """Settle successfully. Returns False if already settled."""
        if self._event.is_set():
            return False
        self._value = value
        self._event.set()
        return True

    def reject(self, error: BaseException) -> bool:
        """Settle with an error. Returns False if already settled."""
        if self._event.is_set():
            return False
        self._error = error
        self._event.set()
        return True

    async def wait(self) -> Any:
        """Wait for settlement; re-raises the rejection error"""
        await self._event.wait()
        if self._error is not None:
            raise self._error
        return self._value
