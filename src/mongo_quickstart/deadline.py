"""
Deadline - the single time budget shared by every store call of a run.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, TypeVar

from pymongo.errors import PyMongoError

from .types import DeadlineExceeded

__all__ = ["DEFAULT_TIMEOUT", "Deadline"]

DEFAULT_TIMEOUT = 10.0

T = TypeVar("T")


class Deadline:
    """
    Overall deadline measured on the monotonic clock.

    The budget starts when the deadline is created and is never reset; each
    store call gets whatever is left of it.

    Example:
        deadline = Deadline(10.0)
        await deadline.run(collection.insert_one(doc), "insert_one")
    """

    __slots__ = ("_timeout", "_expires_at")

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout!r}")
        self._timeout = timeout
        self._expires_at = time.monotonic() + timeout

    @property
    def timeout(self) -> float:
        """Get the total budget in seconds."""
        return self._timeout

    def remaining(self) -> float:
        """Seconds left before the deadline, never negative."""
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0

    def check(self, operation: str = "operation") -> None:
        """
        Raise if the budget is already used up.

        Raises:
            DeadlineExceeded: If no time is left.
        """
        if self.expired:
            raise DeadlineExceeded(f"{operation}: deadline of {self._timeout}s exceeded")

    async def run(self, awaitable: Awaitable[T], operation: str = "operation") -> T:
        """
        Await a store call bounded by the remaining budget.

        Args:
            awaitable: The store call to await.
            operation: Name used in the error message.

        Returns:
            Whatever the awaitable returns.

        Raises:
            DeadlineExceeded: If the budget runs out before or during the call,
                or the driver reports a client-side timeout.
        """
        if self.expired:
            # Never started; close it so it is not reported as un-awaited
            close = getattr(awaitable, "close", None)
            if close is not None:
                close()
            self.check(operation)
        try:
            return await asyncio.wait_for(awaitable, timeout=self.remaining())
        except asyncio.TimeoutError as e:
            raise DeadlineExceeded(
                f"{operation}: deadline of {self._timeout}s exceeded"
            ) from e
        except PyMongoError as e:
            if e.timeout:
                raise DeadlineExceeded(f"{operation}: {e}") from e
            raise

    def __repr__(self) -> str:
        return f"Deadline({self._timeout!r}, remaining={self.remaining():.3f})"
