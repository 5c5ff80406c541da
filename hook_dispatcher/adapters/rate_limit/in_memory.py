"""In-memory one-second window throttle.

Notes:
- Per-process only: running several dispatcher replicas multiplies the
  effective throughput.
- Thread-safe: one lock covers the whole count-check-sleep-reset sequence, so
  concurrent deliveries queue behind a sleeping caller.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from hook_dispatcher.adapters.rate_limit.base import AbstractRateLimiter, ThrottleResult
from hook_dispatcher.core.errors import ConfigReadAppError

logger = logging.getLogger(__name__)


class InMemoryWindowThrottle(AbstractRateLimiter):
    """Throttle allowing bursts of ``ceiling`` forwards per window.

    The window opens on the first message after a reset, not on a clock tick.
    Once the count reaches the ceiling the caller sleeps until one window
    length after the window opened, then the count starts over. A ceiling of
    zero or less disables throttling.
    """

    def __init__(
        self,
        *,
        ceiling_source: Callable[[], int],
        window_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the throttle.

        Args:
            ceiling_source: Returns the live ceiling; may raise ConfigReadAppError.
            window_seconds: Window length in seconds.
            clock: Monotonic time source in seconds.
            sleep: Blocking sleep function.

        Raises:
            ValueError: If window_seconds is not positive.
        """
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self._ceiling_source = ceiling_source
        self._window_seconds = window_seconds
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._sent_count = 0
        self._window_start: float | None = None

    def snapshot(self) -> tuple[int, float | None]:
        """Return ``(sent_count, window_start)`` for inspection."""
        with self._lock:
            return self._sent_count, self._window_start

    def record_sent(self) -> ThrottleResult:
        """Count one forwarded message and enforce the ceiling.

        Returns:
            ThrottleResult with the post-call count and any sleep performed.
        """
        with self._lock:
            self._sent_count += 1

            if self._sent_count == 1:
                self._window_start = self._clock()
                return ThrottleResult(
                    sent_count=1, ceiling=None, slept_seconds=0.0, window_closed=False
                )

            try:
                ceiling = self._ceiling_source()
            except ConfigReadAppError as exc:
                logger.error(
                    "rate_limit.ceiling_unavailable",
                    extra={"error_code": exc.code, "error_message": exc.message},
                )
                return ThrottleResult(
                    sent_count=self._sent_count,
                    ceiling=None,
                    slept_seconds=0.0,
                    window_closed=False,
                )

            if ceiling <= 0 or self._sent_count < ceiling:
                return ThrottleResult(
                    sent_count=self._sent_count,
                    ceiling=ceiling,
                    slept_seconds=0.0,
                    window_closed=False,
                )

            return self._close_window(ceiling)

    def _close_window(self, ceiling: int) -> ThrottleResult:
        """Wait out the rest of the window and reset the count (lock held)."""
        sent = self._sent_count
        now = self._clock()
        window_start = self._window_start if self._window_start is not None else now
        deadline = window_start + self._window_seconds

        slept = 0.0
        if deadline > now:
            slept = deadline - now
            logger.debug(
                "rate_limit.sleep",
                extra={"sleep_s": round(slept, 6), "sent": sent, "ceiling": ceiling},
            )
            self._sleep(slept)
        else:
            logger.debug(
                "rate_limit.window_elapsed",
                extra={
                    "elapsed_s": round(now - window_start, 6),
                    "sent": sent,
                    "ceiling": ceiling,
                },
            )

        self._sent_count = 0
        return ThrottleResult(
            sent_count=0, ceiling=ceiling, slept_seconds=slept, window_closed=True
        )
