"""Rate limiter interfaces.

The dispatcher should depend on this abstraction (not the concrete
implementation) so the window state can move to another store later.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ThrottleResult:
    """Outcome of accounting one forwarded message.

    Attributes:
        sent_count: Messages counted in the current window after this call
            (0 when the call closed the window).
        ceiling: Ceiling used for the check, or None when it was not read
            (first message of a window, or the read failed).
        slept_seconds: Time the caller was blocked to honor the ceiling.
        window_closed: Whether this call reached the ceiling and reset the count.
    """

    sent_count: int
    ceiling: int | None
    slept_seconds: float
    window_closed: bool


class AbstractRateLimiter(ABC):
    """Interface for outbound throttles."""

    @abstractmethod
    def record_sent(self) -> ThrottleResult:
        """Account for one successfully forwarded message.

        May block the calling thread until the current window allows more
        messages.

        Returns:
            ThrottleResult describing what the call did.
        """
        raise NotImplementedError
