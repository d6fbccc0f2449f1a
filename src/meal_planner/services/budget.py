"""Per-user and global admission control for generation calls."""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from meal_planner.domain.budget import (
    Admission,
    BudgetBucket,
    BudgetScope,
    BudgetSnapshot,
)

_logger = logging.getLogger(__name__)


@dataclass
class _LockedBucket:
    bucket: BudgetBucket
    lock: threading.Lock = field(default_factory=threading.Lock)


@dataclass
class BudgetGuard:
    """Rolling-window call ceilings per user and across all users.

    Buckets live in a keyed store owned by the guard. Every admit runs its
    check-then-increment under the user bucket lock and then the global
    bucket lock, always in that order.
    """

    window_ms: int = 60_000
    user_limit: int = 60
    global_limit: int = 1000
    clock: Callable[[], float] = time.monotonic
    _user_buckets: dict[str, _LockedBucket] = field(
        default_factory=dict, init=False, repr=False
    )
    _registry_lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )
    _global: _LockedBucket = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.window_ms <= 0 or self.user_limit <= 0 or self.global_limit <= 0:
            raise ValueError("Budget window and limits must be positive")
        self._global = _LockedBucket(
            BudgetBucket(count=0, reset_at=self.clock() + self._window_seconds)
        )

    @property
    def _window_seconds(self) -> float:
        return self.window_ms / 1000

    def admit(self, user_id: str) -> Admission:
        """Admit one generation call for the user, or report which ceiling is hit."""
        user = self._user_bucket(user_id)
        with user.lock, self._global.lock:
            now = self.clock()
            self._roll(user.bucket, now)
            self._roll(self._global.bucket, now)

            if self._global.bucket.count >= self.global_limit:
                return self._reject(
                    BudgetScope.GLOBAL, self._global.bucket, now, user_id
                )
            if user.bucket.count >= self.user_limit:
                return self._reject(BudgetScope.USER, user.bucket, now, user_id)

            user.bucket.count += 1
            self._global.bucket.count += 1
            return Admission(allowed=True)

    def snapshot(self) -> BudgetSnapshot:
        """Return the current global bucket state."""
        with self._global.lock:
            now = self.clock()
            self._roll(self._global.bucket, now)
            global_count = self._global.bucket.count
            remaining = max(self._global.bucket.reset_at - now, 0.0)
        with self._registry_lock:
            tracked_users = len(self._user_buckets)
        return BudgetSnapshot(
            global_count=global_count,
            global_limit=self.global_limit,
            user_limit=self.user_limit,
            window_ms=self.window_ms,
            seconds_until_reset=remaining,
            tracked_users=tracked_users,
        )

    def _user_bucket(self, user_id: str) -> _LockedBucket:
        with self._registry_lock:
            entry = self._user_buckets.get(user_id)
            if entry is None:
                entry = _LockedBucket(
                    BudgetBucket(count=0, reset_at=self.clock() + self._window_seconds)
                )
                self._user_buckets[user_id] = entry
            return entry

    def _roll(self, bucket: BudgetBucket, now: float) -> None:
        if now >= bucket.reset_at:
            bucket.count = 0
            bucket.reset_at = now + self._window_seconds

    def _reject(
        self, scope: BudgetScope, bucket: BudgetBucket, now: float, user_id: str
    ) -> Admission:
        retry_after = max(bucket.reset_at - now, 0.0)
        _logger.info(
            "Generation budget exceeded: scope=%s user=%s retry_after=%.1fs",
            scope.value,
            user_id,
            retry_after,
        )
        return Admission(allowed=False, scope=scope, retry_after_seconds=retry_after)
