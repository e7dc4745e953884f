"""Build source map entries from DWARF line records.

Line records are pooled across compilation units, sorted by unsigned
address, and each record (except the last) becomes one entry covering the
addresses up to the next record with a different address.
"""

import posixpath
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Protocol

from dwarfsrc.common import LineRecord, SourceFile, SourceFileIdType
from dwarfsrc.diag import DiagnosticBudget
from dwarfsrc.lines import run_length, sort_records, u64
from dwarfsrc.monitor import TaskMonitor
from dwarfsrc.paths import fix_dwarf_relative_path
from dwarfsrc.store import AddressRanges, SourceMapStore

DEFAULT_COMPILATION_DIR = "DWARF_DEFAULT_COMP_DIR"


class CompUnit(Protocol):
    def get_all_line_records(self) -> list[LineRecord]:
        ...


@dataclass
class SourceMapStats:
    """Outcome of one source map build."""
    entries: int = 0
    source_files: int = 0
    records: int = 0
    warnings: int = 0
    errors: int = 0
    suppressed_warnings: int = 0
    suppressed_errors: int = 0


class SourceMapBuilder:
    """Register source map entries for a program's line records.

    Args:
        store: Receives source files and entries.
        executable: Address ranges holding code; other addresses are skipped.
        budget: Caps the warnings and errors reported along the way.
        monitor: Cancellation and progress.
        max_length: Longer ranges are registered with length 0 instead.
        ignore: File names (full or base name) never mapped.
        base_dir: Label relative paths are placed under.
        code_address: Maps a raw DWARF address to a program address.
    """
    def __init__(self, store: SourceMapStore, executable: AddressRanges,
                 budget: DiagnosticBudget, monitor: TaskMonitor,
                 max_length: int = 2000,
                 ignore: Iterable[str] = (),
                 base_dir: str = DEFAULT_COMPILATION_DIR,
                 code_address: Optional[Callable[[int], int]] = None):
        self.store = store
        self.executable = executable
        self.budget = budget
        self.monitor = monitor
        self.max_length = max_length
        self.ignore = frozenset(ignore)
        self.base_dir = base_dir
        self.code_address = code_address or u64

        self._source_files: dict[tuple[str, Optional[bytes]], SourceFile] = {}
        self._bad_keys: set[tuple[str, Optional[bytes]]] = set()
        self._warned: set[int] = set()

    def _is_ignored(self, file_name: str) -> bool:
        return file_name in self.ignore or posixpath.basename(file_name.replace("\\", "/")) in self.ignore

    def collect(self, cus: list[CompUnit]) -> list[LineRecord]:
        self.monitor.initialize(len(cus), "DWARF: Reading Source Map Info")
        records = []
        for cu in cus:
            self.monitor.check_cancelled()
            self.monitor.increment()
            records.extend(cu.get_all_line_records())
        return records

    def build(self, cus: list[CompUnit]) -> SourceMapStats:
        """Register entries for all line records of ``cus``.

        Raises CancelledError when the monitor is cancelled; everything
        registered up to that point stays in the store.
        """
        records = self.collect(cus)

        self.monitor.set_indeterminate(True)
        self.monitor.set_message(f"Sorting {len(records)} entries")
        records = sort_records(records)
        self.monitor.initialize(len(records), "DWARF: Applying Source Map Info")

        stats = SourceMapStats(records=len(records))
        for i in range(len(records) - 1):
            self.monitor.check_cancelled()
            self.monitor.increment()
            if self._apply(records, i):
                stats.entries += 1

        self.budget.report_suppressed()
        self.budget.sink.info(f"Added {stats.entries} source map entries")

        stats.source_files = len(set(self._source_files.values()))
        stats.warnings = self.budget.warnings
        stats.errors = self.budget.errors
        stats.suppressed_warnings = self.budget.suppressed_warnings
        stats.suppressed_errors = self.budget.suppressed_errors
        return stats

    def _apply(self, records: list[LineRecord], i: int) -> bool:
        rec = records[i]
        if rec.file_name is None or rec.is_end_sequence or self._is_ignored(rec.file_name):
            return False
        key = (rec.file_name, rec.md5)
        if key in self._bad_keys:
            return False

        addr = self.code_address(rec.address)
        if addr in self._warned:
            return False
        if not self.executable.contains(addr):
            self.budget.warn("entry for non-executable address; skipping: file %s line %d address: %#x"
                             % (rec.file_name, rec.line_num, addr), addr)
            self._warned.add(addr)
            return False

        length = run_length(records, i)
        if length < 0:
            self.budget.warn("Error calculating entry length for file %s line %d address %#x; "
                             "replacing with length 0 entry" % (rec.file_name, rec.line_num, addr), addr)
            length = 0
        if length > self.max_length:
            self.budget.warn("entry for file %s line %d address: %#x length %d too large, "
                             "replacing with length 0 entry" % (rec.file_name, rec.line_num, addr, length), addr)
            length = 0

        source = self._source_files.get(key)
        if source is None:
            path = fix_dwarf_relative_path(rec.file_name, self.base_dir)
            id_type = SourceFileIdType.NONE if rec.md5 is None else SourceFileIdType.MD5
            try:
                source = self.store.add_source_file(path, id_type, rec.md5)
            except ValueError as e:
                self.budget.error(f"Exception creating source file: {e}", addr)
                self._bad_keys.add(key)
                return False
            self._source_files[key] = source

        try:
            self.store.add_source_map_entry(source, rec.line_num, addr, length)
        except ValueError as e:
            self.budget.error("%s for source map entry %s %d %#x %d: %s"
                              % (type(e).__name__, source.filename, rec.line_num, addr, length, e), addr)
            return False
        return True
