"""Cooperative cancellation and progress reporting."""

import threading
from typing import Optional


class CancelledError(Exception):
    """Raised by ``check_cancelled`` once cancellation was requested."""


class TaskMonitor:
    """Progress counter plus a cancellation flag.

    ``cancel()`` may be called from another thread (e.g. a signal handler);
    the worker notices it at its next ``check_cancelled()``.
    """
    def __init__(self):
        self._cancelled = threading.Event()
        self.message = ""
        self.progress = 0
        self.total = 0
        self.indeterminate = False

    def cancel(self):
        self._cancelled.set()

    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def check_cancelled(self):
        if self._cancelled.is_set():
            raise CancelledError(self.message or "cancelled")

    def initialize(self, total: int, message: Optional[str] = None):
        self.total = total
        self.progress = 0
        self.indeterminate = False
        if message is not None:
            self.set_message(message)

    def set_indeterminate(self, indeterminate: bool):
        self.indeterminate = indeterminate
        self._update()

    def set_message(self, message: str):
        self.message = message
        self._update()

    def increment(self, n: int = 1):
        self.progress += n
        self._update()

    def _update(self):
        pass


class SpinnerMonitor(TaskMonitor):
    """TaskMonitor that mirrors its state into a yaspin spinner's text."""
    def __init__(self, spinner, every: int = 500):
        super().__init__()
        self.spinner = spinner
        self.every = every

    def _update(self):
        if self.progress % self.every and self.progress != self.total:
            return
        if self.indeterminate or not self.total:
            self.spinner.text = f"[~] {self.message}"
        else:
            self.spinner.text = f"[~] {self.message} {self.progress}/{self.total}"
