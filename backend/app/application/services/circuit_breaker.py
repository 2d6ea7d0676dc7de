"""Circuit breaker — stops calling a failing upstream service until it recovers.

States:
    closed     calls pass through; consecutive failures are counted
    open       calls are rejected immediately without reaching upstream
    half_open  after the cool-down, trial calls decide whether to close or reopen
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import TypeVar

from app.domain.exceptions import CircuitBreakerOpenError, CircuitBreakerTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerConfig:
    """Tuning knobs for one breaker."""

    name: str
    failure_threshold: int = 5
    reset_timeout_seconds: float = 30.0
    request_timeout_seconds: float = 10.0
    success_threshold: int = 2
    should_record_failure: Callable[[Exception], bool] | None = None


@dataclass
class CircuitBreakerMetrics:
    """Point-in-time snapshot of a breaker's counters."""

    name: str
    state: CircuitState
    failures: int
    consecutive_failures: int
    total_requests: int
    total_failures: int
    total_timeouts: int
    total_rejections: int
    last_failure_time: datetime | None


class CircuitBreaker:
    """Guards calls to one upstream service.

    One instance is shared by every caller of that service within the
    process; all state changes happen under an ``asyncio.Lock`` so
    concurrent callers observe consistent transitions.

    Usage:
        breaker = CircuitBreaker(CircuitBreakerConfig(name="tavily", failure_threshold=3))
        urls = await breaker.execute(lambda: client.map_site(url))
    """

    def __init__(self, config: CircuitBreakerConfig):
        self._config = config
        self._lock = asyncio.Lock()

        self._state = CircuitState.CLOSED
        self._failures = 0
        self._consecutive_failures = 0
        self._half_open_successes = 0
        self._opened_at: float | None = None
        self._last_failure_time: datetime | None = None

        self._total_requests = 0
        self._total_failures = 0
        self._total_timeouts = 0
        self._total_rejections = 0

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def state(self) -> CircuitState:
        """Current state, moving open → half_open once the cool-down elapsed."""
        if self._state == CircuitState.OPEN and self._cooldown_elapsed():
            self._transition(CircuitState.HALF_OPEN)
        return self._state

    # ── Execution ────────────────────────────────────────────────────

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run *operation* through the breaker.

        Raises:
            CircuitBreakerOpenError: The circuit is open; upstream was not called.
            CircuitBreakerTimeoutError: The call exceeded the request timeout.
            Exception: Whatever the operation raised.
        """
        async with self._lock:
            self._total_requests += 1
            if self._state == CircuitState.OPEN:
                if self._cooldown_elapsed():
                    self._transition(CircuitState.HALF_OPEN)
                else:
                    self._total_rejections += 1
                    raise CircuitBreakerOpenError(self.name, self._retry_after())

        try:
            result = await asyncio.wait_for(
                operation(), timeout=self._config.request_timeout_seconds
            )
        except asyncio.TimeoutError:
            async with self._lock:
                self._total_timeouts += 1
                self._record_failure()
            raise CircuitBreakerTimeoutError(
                self.name, self._config.request_timeout_seconds
            )
        except Exception as exc:
            async with self._lock:
                if self._counts_as_failure(exc):
                    self._record_failure()
            raise

        async with self._lock:
            self._record_success()
        return result

    async def execute_with_fallback(
        self,
        operation: Callable[[], Awaitable[T]],
        fallback: Callable[[Exception], Awaitable[T]],
    ) -> T:
        """Run *operation*; on any error (including rejection) return *fallback(error)*."""
        try:
            return await self.execute(operation)
        except Exception as exc:
            logger.warning("Circuit '%s' fallback used: %s", self.name, exc)
            return await fallback(exc)

    # ── Manual control ───────────────────────────────────────────────

    def reset(self) -> None:
        """Force the breaker closed and clear failure counters."""
        self._failures = 0
        self._consecutive_failures = 0
        self._half_open_successes = 0
        self._opened_at = None
        self._transition(CircuitState.CLOSED)

    def trip(self) -> None:
        """Force the breaker open."""
        self._opened_at = time.monotonic()
        self._transition(CircuitState.OPEN)

    def get_metrics(self) -> CircuitBreakerMetrics:
        return CircuitBreakerMetrics(
            name=self.name,
            state=self.state,
            failures=self._failures,
            consecutive_failures=self._consecutive_failures,
            total_requests=self._total_requests,
            total_failures=self._total_failures,
            total_timeouts=self._total_timeouts,
            total_rejections=self._total_rejections,
            last_failure_time=self._last_failure_time,
        )

    # ── Internals (call with the lock held) ──────────────────────────

    def _counts_as_failure(self, exc: Exception) -> bool:
        predicate = self._config.should_record_failure
        return predicate(exc) if predicate else True

    def _record_failure(self) -> None:
        self._failures += 1
        self._consecutive_failures += 1
        self._total_failures += 1
        self._last_failure_time = datetime.now(timezone.utc)

        if self._state == CircuitState.HALF_OPEN:
            self._open()
        elif (
            self._state == CircuitState.CLOSED
            and self._consecutive_failures >= self._config.failure_threshold
        ):
            self._open()

    def _record_success(self) -> None:
        self._consecutive_failures = 0
        if self._state == CircuitState.HALF_OPEN:
            self._half_open_successes += 1
            if self._half_open_successes >= self._config.success_threshold:
                self._failures = 0
                self._transition(CircuitState.CLOSED)

    def _open(self) -> None:
        self._opened_at = time.monotonic()
        self._transition(CircuitState.OPEN)

    def _cooldown_elapsed(self) -> bool:
        if self._opened_at is None:
            return True
        return time.monotonic() - self._opened_at >= self._config.reset_timeout_seconds

    def _retry_after(self) -> float:
        if self._opened_at is None:
            return 0.0
        elapsed = time.monotonic() - self._opened_at
        return max(0.0, self._config.reset_timeout_seconds - elapsed)

    def _transition(self, new_state: CircuitState) -> None:
        if new_state == self._state:
            return
        old_state = self._state
        self._state = new_state
        if new_state == CircuitState.HALF_OPEN:
            self._half_open_successes = 0
        log = logger.warning if new_state == CircuitState.OPEN else logger.info
        log(
            "Circuit '%s' %s → %s (consecutive_failures=%d)",
            self.name,
            old_state.value,
            new_state.value,
            self._consecutive_failures,
        )
