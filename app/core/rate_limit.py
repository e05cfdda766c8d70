"""Lockout of login attempts after repeated password failures."""

import math
import time
from collections import deque
from collections.abc import Callable
from threading import Lock

AttemptKey = tuple[str, str]


class LoginLockedError(Exception):
    def __init__(self, retry_after: int):
        super().__init__(f"Login locked for {retry_after} seconds")
        self.retry_after = retry_after


class LoginRateLimiter:
    """
    Tracks failed logins per (identifier, client address). Once
    ``max_attempts`` failures fall inside ``window_seconds`` the pair is locked
    for ``lock_seconds``. A successful login forgets the pair.
    """

    def __init__(
        self,
        *,
        max_attempts: int,
        window_seconds: int,
        lock_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.lock_seconds = lock_seconds
        self._clock = clock
        self._failures: dict[AttemptKey, deque[float]] = {}
        self._locked_until: dict[AttemptKey, float] = {}
        self._lock = Lock()

    @staticmethod
    def key_for(identifier: str, client_address: str) -> AttemptKey:
        return identifier.strip().lower(), client_address

    def ensure_allowed(self, key: AttemptKey) -> None:
        with self._lock:
            remaining = self._locked_until.get(key, 0.0) - self._clock()
            if remaining > 0:
                raise LoginLockedError(math.ceil(remaining))
            self._locked_until.pop(key, None)

    def record_failure(self, key: AttemptKey) -> None:
        now = self._clock()
        with self._lock:
            attempts = self._failures.setdefault(key, deque())
            attempts.append(now)
            while attempts[0] < now - self.window_seconds:
                attempts.popleft()
            if len(attempts) >= self.max_attempts:
                self._locked_until[key] = now + self.lock_seconds
                del self._failures[key]

    def record_success(self, key: AttemptKey) -> None:
        with self._lock:
            self._failures.pop(key, None)
            self._locked_until.pop(key, None)

    def reset(self) -> None:
        with self._lock:
            self._failures.clear()
            self._locked_until.clear()
