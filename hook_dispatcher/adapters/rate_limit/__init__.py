"""Rate limiting adapters.

This package keeps the dispatcher depending on an abstract throttle so the
in-process window can later be replaced by a shared store (e.g., Redis) when
several dispatcher replicas must share one ceiling.
"""

from hook_dispatcher.adapters.rate_limit.base import AbstractRateLimiter, ThrottleResult
from hook_dispatcher.adapters.rate_limit.in_memory import InMemoryWindowThrottle

__all__ = [
    "AbstractRateLimiter",
    "InMemoryWindowThrottle",
    "ThrottleResult",
]
