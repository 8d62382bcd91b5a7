"""
Reliability Utilities.

Includes the Circuit Breaker used around the partner manifest API and
deadline helpers for single-entity operations.
"""

import time
import asyncio
from typing import Awaitable, Callable, Any, Optional, TypeVar

from backend.app.core.config import settings
from backend.app.core.exceptions import OperationTimeoutError

T = TypeVar("T")


class CircuitOpenError(Exception):
    pass


class CircuitBreaker:
    """
    Simple Circuit Breaker implementation.
    If 'failure_threshold' failures occur within 'reset_timeout',
    the circuit opens and rejects calls for 'reset_timeout' seconds.
    """
    def __init__(self, failure_threshold: int = 5, reset_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.failures = 0
        self.last_failure_time = 0
        self.state = "CLOSED" # CLOSED, OPEN, HALF_OPEN

    async def call(self, func: Callable, *args, **kwargs) -> Any:
        if self.state == "OPEN":
            if time.time() - self.last_failure_time > self.reset_timeout:
                self.state = "HALF_OPEN"
            else:
                raise CircuitOpenError("Circuit is OPEN")

        try:
            result = await func(*args, **kwargs)
            if self.state == "HALF_OPEN":
                self.reset_state()
            return result
        except Exception:
            self.record_failure()
            raise

    def record_failure(self):
        self.failures += 1
        self.last_failure_time = time.time()
        if self.failures >= self.failure_threshold:
            self.state = "OPEN"

    def reset_state(self):
        self.failures = 0
        self.state = "CLOSED"


# Shared breaker for the partner manifest API
partner_circuit_breaker = CircuitBreaker(
    failure_threshold=settings.partner_failure_threshold,
    reset_timeout=settings.partner_reset_timeout_seconds,
)


def deadline_from_timeout(timeout_seconds: Optional[float]) -> Optional[float]:
    """Convert a relative timeout into a monotonic deadline (None means unbounded)."""
    if timeout_seconds is None:
        return None
    return time.monotonic() + timeout_seconds


def deadline_passed(deadline: Optional[float]) -> bool:
    return deadline is not None and time.monotonic() >= deadline


async def run_with_timeout(awaitable: Awaitable[T], timeout_seconds: float, operation: str) -> T:
    """
    Await a single-entity operation with a timeout.

    Rows already committed by the operation stay committed when the
    timeout fires.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_seconds)
    except asyncio.TimeoutError:
        raise OperationTimeoutError(operation, timeout_seconds)
