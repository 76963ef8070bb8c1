"""
Backend Coordinator - Failure tracking and divergence bookkeeping.

The coordinator decides whether the resilient store should try the
durable backend on the next call, and records every entity that only
exists in the volatile backend because a write fell back.

State machine for the durable backend:
- healthy:     last call succeeded
- degraded:    1..threshold-1 consecutive failures, every call still tries
- unavailable: threshold reached, calls skip the durable backend until
               the cooldown has elapsed, then one call probes it again
"""
from collections import defaultdict
from typing import Any, Callable, Dict, Optional, Set
import threading
import time

from docvault.core.logging_config import get_logger
from docvault.models.health import HealthState, StoreHealth

logger = get_logger(__name__)


class BackendCoordinator:
    """
    Tracks durable backend failures and volatile-only entities.

    Example:
        >>> coordinator = BackendCoordinator(failure_threshold=2)
        >>> coordinator.record_failure("get_user", "timeout")
        >>> coordinator.state
        <HealthState.DEGRADED: 'degraded'>
    """

    def __init__(
        self,
        failure_threshold: int = 3,
        retry_cooldown_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the coordinator.

        Args:
            failure_threshold: Consecutive failures before durable calls are skipped
            retry_cooldown_seconds: Time to wait before probing the durable backend again
            clock: Monotonic time source, replaceable in tests
        """
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")

        self.failure_threshold = failure_threshold
        self.retry_cooldown_seconds = retry_cooldown_seconds
        self._clock = clock

        self.consecutive_failures = 0
        self.total_failures = 0
        self.total_fallbacks = 0
        self.last_error: Optional[str] = None
        self.last_failed_operation: Optional[str] = None
        self._last_failure_at: Optional[float] = None

        self._diverged: Dict[str, Set[Any]] = defaultdict(set)
        self._lock = threading.RLock()

    # ==================== FAILURE TRACKING ====================

    @property
    def state(self) -> HealthState:
        if self.consecutive_failures == 0:
            return HealthState.HEALTHY
        if self.consecutive_failures < self.failure_threshold:
            return HealthState.DEGRADED
        return HealthState.UNAVAILABLE

    def should_attempt_durable(self) -> bool:
        """Whether the next call should try the durable backend."""
        with self._lock:
            if self.consecutive_failures < self.failure_threshold:
                return True
            elapsed = self._clock() - (self._last_failure_at or 0.0)
            return elapsed >= self.retry_cooldown_seconds

    def record_success(self, operation: str) -> None:
        with self._lock:
            if self.consecutive_failures:
                logger.info(
                    f"[STORE] Durable backend recovered on {operation} "
                    f"after {self.consecutive_failures} consecutive failures"
                )
            self.consecutive_failures = 0

    def record_failure(self, operation: str, reason: str) -> None:
        with self._lock:
            self.consecutive_failures += 1
            self.total_failures += 1
            self.last_error = reason
            self.last_failed_operation = operation
            self._last_failure_at = self._clock()

            if self.consecutive_failures == self.failure_threshold:
                logger.warning(
                    f"[STORE] Durable backend marked unavailable after "
                    f"{self.consecutive_failures} consecutive failures; "
                    f"next probe in {self.retry_cooldown_seconds}s"
                )

    def record_fallback(self) -> None:
        with self._lock:
            self.total_fallbacks += 1

    # ==================== DIVERGENCE ====================

    def mark_diverged(self, kind: str, key: Any) -> None:
        """Record an entity that exists only in the volatile backend."""
        with self._lock:
            if key not in self._diverged[kind]:
                logger.warning(f"[STORE] {kind} {key} exists only in the volatile backend")
            self._diverged[kind].add(key)

    def is_diverged(self, kind: str, key: Any) -> bool:
        with self._lock:
            return key in self._diverged.get(kind, ())

    def forget(self, kind: str, key: Any) -> None:
        with self._lock:
            self._diverged.get(kind, set()).discard(key)

    def diverged_ids(self, kind: str) -> Set[Any]:
        with self._lock:
            return set(self._diverged.get(kind, ()))

    @property
    def diverged(self) -> bool:
        with self._lock:
            return any(self._diverged.values())

    # ==================== REPORTING ====================

    def snapshot(self, volatile_entities: Optional[Dict[str, int]] = None) -> StoreHealth:
        """Build an observable health snapshot."""
        with self._lock:
            return StoreHealth(
                state=self.state,
                durable_attempts_allowed=self.should_attempt_durable(),
                diverged=self.diverged,
                consecutive_failures=self.consecutive_failures,
                total_failures=self.total_failures,
                total_fallbacks=self.total_fallbacks,
                diverged_entities={
                    kind: len(keys) for kind, keys in self._diverged.items() if keys
                },
                last_error=self.last_error,
                last_failed_operation=self.last_failed_operation,
                volatile_entities=volatile_entities or {},
            )
