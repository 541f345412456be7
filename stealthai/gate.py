"""
gate.py — Execution gate around one pipeline run.

A run is admitted only when no other run is active and at least
`debounce` seconds have passed since the previous run *started*.
Rejected triggers are dropped, never queued.
"""

import threading
import time

from .errors import GateRejected

DEBOUNCE_SECONDS = 3.0


class RunGate:
    def __init__(self, debounce: float = DEBOUNCE_SECONDS, clock=time.monotonic):
        self.debounce    = debounce
        self._clock      = clock
        self._lock       = threading.Lock()
        self._active     = False
        self._last_start = None
        self.last_reason = ""

    @property
    def active(self) -> bool:
        return self._active

    @property
    def last_start(self):
        return self._last_start

    def try_enter(self) -> bool:
        """Atomically claim the gate. Returns False (and does nothing) if refused."""
        with self._lock:
            now = self._clock()
            if self._active:
                self.last_reason = "[LOCKED] Action already running"
                return False
            if self._last_start is not None:
                elapsed = now - self._last_start
                if elapsed < self.debounce:
                    self.last_reason = (
                        f"[DEBOUNCE] Last run was {round(elapsed * 1000)}ms ago"
                    )
                    return False
            self._active     = True
            self._last_start = now
            self.last_reason = ""
            return True

    def enter_or_raise(self):
        if not self.try_enter():
            raise GateRejected(self.last_reason)

    def exit(self):
        # Idempotent: safe to call from every exit path.
        with self._lock:
            self._active = False

    def __enter__(self):
        self.enter_or_raise()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.exit()
        return False
