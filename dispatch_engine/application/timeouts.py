"""Bounded store calls — no engine operation waits on a store forever."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from dispatch_engine.application.errors import StoreTimeoutError

T = TypeVar("T")

DEFAULT_STORE_TIMEOUT_SECONDS = 5.0


class BoundedCall:
    """Await a store coroutine with a fixed deadline.

    Raises StoreTimeoutError (an InfrastructureError) when the deadline passes.
    """

    def __init__(self, timeout_seconds: float = DEFAULT_STORE_TIMEOUT_SECONDS):
        self.timeout_seconds = timeout_seconds

    async def __call__(self, awaitable: Awaitable[T], operation: str) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise StoreTimeoutError(operation, self.timeout_seconds) from e
