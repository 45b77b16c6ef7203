"""
Async circuit breaker guarding each upstream host.

When an upstream keeps failing, an analysis should fail fast with
``UpstreamUnavailable`` instead of burning its whole retry budget on
every page or wallet.

States
------
CLOSED    : calls pass through; consecutive failures are counted.
OPEN      : calls are rejected without touching the upstream.
HALF_OPEN : after ``recovery_timeout`` one trial call is let through;
            success closes the circuit, failure re-opens it.
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(Exception):
    """Raised when a call is attempted against an open circuit."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Circuit '{name}' is OPEN – request blocked")
        self.circuit_name = name


class CircuitBreaker:
    """Consecutive-failure circuit breaker for async callables.

    Parameters
    ----------
    name:
        Upstream name used in logs and errors.
    failure_threshold:
        Consecutive failures that open the circuit.
    recovery_timeout:
        Seconds spent OPEN before a trial call is allowed.
    ignored_exceptions:
        Exception types that prove the upstream answered (e.g. a rejected
        request); they are re-raised without counting as failures.
    """

    def __init__(
        self,
        name: str,
        *,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        ignored_exceptions: tuple[type[Exception], ...] = (),
    ) -> None:
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.ignored_exceptions = ignored_exceptions

        self._state = CircuitState.CLOSED
        self._failures = 0
        self._opened_at: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        return self._state

    def is_rejecting(self) -> bool:
        """True while OPEN and still inside the recovery timeout."""
        if self._state != CircuitState.OPEN:
            return False
        return time.monotonic() - (self._opened_at or 0.0) < self.recovery_timeout

    async def call(
        self,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        """Run *func* unless the circuit is OPEN.

        Raises ``CircuitOpenError`` when rejected; otherwise re-raises
        whatever *func* raised after recording the failure.
        """
        async with self._lock:
            if self._state == CircuitState.OPEN:
                if self.is_rejecting():
                    raise CircuitOpenError(self.name)
                self._set_state(CircuitState.HALF_OPEN)

        try:
            result = await func(*args, **kwargs)
        except self.ignored_exceptions:
            await self._record_success()
            raise
        except Exception:
            await self._record_failure()
            raise
        await self._record_success()
        return result

    async def _record_success(self) -> None:
        async with self._lock:
            self._failures = 0
            if self._state != CircuitState.CLOSED:
                self._set_state(CircuitState.CLOSED)

    async def _record_failure(self) -> None:
        async with self._lock:
            self._failures += 1
            if (
                self._state == CircuitState.HALF_OPEN
                or self._failures >= self.failure_threshold
            ):
                self._opened_at = time.monotonic()
                self._set_state(CircuitState.OPEN)

    def _set_state(self, new_state: CircuitState) -> None:
        if new_state != self._state:
            logger.warning(
                "CircuitBreaker '%s': %s → %s (failures=%d)",
                self.name,
                self._state.value,
                new_state.value,
                self._failures,
            )
            self._state = new_state
