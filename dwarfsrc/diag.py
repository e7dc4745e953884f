"""Diagnostic sinks and the capped warning/error budget."""

import sys
from typing import Optional, TextIO

from dwarfsrc.common import Bookmark

BOOKMARK_CATEGORY = "DWARF"


class LogSink:
    """Print diagnostics with gttrace-style status prefixes."""
    PREFIXES = {"info": "[+]", "warning": "[!]", "error": "[-]"}

    def __init__(self, out: Optional[TextIO] = None):
        self.out = out

    def _emit(self, kind: str, msg: str):
        out = self.out if self.out is not None else sys.stderr
        print(f"{self.PREFIXES[kind]} {msg}", file=out, flush=True)

    def info(self, msg: str):
        self._emit("info", msg)

    def warning(self, msg: str, address: Optional[int] = None):
        self._emit("warning", msg)

    def error(self, msg: str, address: Optional[int] = None):
        self._emit("error", msg)


class BookmarkSink(LogSink):
    """Pin address-bound diagnostics as bookmarks instead of printing them.

    Messages without an address (rollups, summaries) still go to the log.
    """
    def __init__(self, out: Optional[TextIO] = None):
        super().__init__(out)
        self.bookmarks: list[Bookmark] = []

    def warning(self, msg: str, address: Optional[int] = None):
        if address is None:
            super().warning(msg)
            return
        self.bookmarks.append(Bookmark(address, "Warning", BOOKMARK_CATEGORY, msg))

    def error(self, msg: str, address: Optional[int] = None):
        if address is None:
            super().error(msg)
            return
        self.bookmarks.append(Bookmark(address, "Error", BOOKMARK_CATEGORY, msg))


class DiagnosticBudget:
    """Caps how many warnings and errors are reported individually.

    Every diagnostic is counted; only the first ``max_warnings`` warnings
    and ``max_errors`` errors reach the sink. ``report_suppressed`` writes
    one rollup line per class that went over its cap.
    """
    def __init__(self, sink: LogSink, max_warnings: int = 200, max_errors: int = 200):
        self.sink = sink
        self.max_warnings = max_warnings
        self.max_errors = max_errors
        self.warnings = 0
        self.errors = 0

    def warn(self, msg: str, address: Optional[int] = None) -> bool:
        self.warnings += 1
        if self.warnings > self.max_warnings:
            return False
        self.sink.warning(msg, address)
        return True

    def error(self, msg: str, address: Optional[int] = None) -> bool:
        self.errors += 1
        if self.errors > self.max_errors:
            return False
        self.sink.error(msg, address)
        return True

    @property
    def suppressed_warnings(self) -> int:
        return max(0, self.warnings - self.max_warnings)

    @property
    def suppressed_errors(self) -> int:
        return max(0, self.errors - self.max_errors)

    def report_suppressed(self):
        if self.suppressed_warnings:
            self.sink.warning("Additional warnings suppressed: %d (%d total warnings)"
                              % (self.suppressed_warnings, self.warnings))
        if self.suppressed_errors:
            self.sink.error("Additional errors suppressed: %d (%d total errors)"
                            % (self.suppressed_errors, self.errors))
