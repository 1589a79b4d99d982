"""Cooperative deadline shared by every phase of an invocation."""

import time
from typing import Callable, Optional


class Deadline:
    """A wall-clock budget measured on a monotonic clock.

    Components do not get interrupted when the budget runs out. They
    check ``expired`` between units of work and use ``clamp`` to bound
    their own timeouts so no single await can outlive the budget.

    Example:
        deadline = Deadline(270.0)
        timeout = deadline.clamp(240.0)
        result = await asyncio.wait_for(call(), timeout=timeout)
    """

    def __init__(
        self,
        seconds: Optional[float],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the deadline.

        Args:
            seconds: Budget from now, or None for no limit
            clock: Monotonic clock, injectable for tests
        """
        self._clock = clock
        self._started = clock()
        self._expires_at = None if seconds is None else self._started + seconds

    @classmethod
    def unbounded(cls) -> "Deadline":
        """A deadline that never expires."""
        return cls(None)

    @property
    def elapsed(self) -> float:
        """Seconds since the deadline was created."""
        return self._clock() - self._started

    @property
    def elapsed_ms(self) -> int:
        return int(self.elapsed * 1000)

    def remaining(self) -> Optional[float]:
        """Seconds left, never negative; None when unbounded."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def clamp(self, timeout: Optional[float]) -> Optional[float]:
        """Bound a component timeout by what is left of this deadline."""
        remaining = self.remaining()
        if remaining is None:
            return timeout
        if timeout is None:
            return remaining
        return min(timeout, remaining)
