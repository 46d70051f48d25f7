"""
Translation Controller Module

Cooperative pause/resume/cancel shared between a running translation and the
code that started it (a web job, a CLI). Checks happen between units of work:
a unit already sent to the provider always finishes.
"""

import threading
from typing import Optional


class TranslationController:
    """Thread-safe pause/resume/cancel flags."""

    def __init__(self):
        self._lock = threading.Lock()
        self._running = threading.Event()
        self._running.set()
        self._cancelled = False

    def pause(self):
        with self._lock:
            if not self._cancelled:
                self._running.clear()

    def resume(self):
        with self._lock:
            self._running.set()

    def cancel(self):
        """Stop issuing new work. Also releases anyone waiting in wait_if_paused."""
        with self._lock:
            self._cancelled = True
            self._running.set()

    def wait_if_paused(self, timeout: Optional[float] = None) -> bool:
        """
        Block while paused.

        Returns:
            False if the translation was cancelled (or the wait timed out
            while still paused), True when work may continue
        """
        released = self._running.wait(timeout)
        return released and not self.cancelled

    @property
    def paused(self) -> bool:
        return not self._running.is_set()

    @property
    def cancelled(self) -> bool:
        with self._lock:
            return self._cancelled

    def reset(self):
        """Make the controller reusable for a new run."""
        with self._lock:
            self._cancelled = False
            self._running.set()
