"""Import orchestration: type reorganization, then source line info."""

import json
import time
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Optional, Protocol

from dwarfsrc.catpath import CategoryPath, DataTypePath
from dwarfsrc.categories import CategoryStore
from dwarfsrc.diag import BookmarkSink, DiagnosticBudget, LogSink
from dwarfsrc.monitor import TaskMonitor
from dwarfsrc.organizer import CategoryTreeEditor
from dwarfsrc.srcmap import DEFAULT_COMPILATION_DIR, CompUnit, SourceMapBuilder
from dwarfsrc.store import AddressRanges, LockError, SourceMapStore

GOLANG_AUTOGENERATED_FILENAME = "<autogenerated>"


@dataclass(frozen=True)
class ImportOptions:
    """Knobs for a DWARF import run.

    Attributes:
        organize_types_by_source_file: Run the type reorganization pass.
        output_source_line_info: Run the source line pass.
        use_bookmarks: Pin per-address diagnostics as bookmarks instead of logging them.
        max_source_map_entry_length: Longer entries are registered with length 0.
        source_file_ignore: File names whose line records are never mapped.
        default_comp_dir: Directory label relative source paths are placed under.
        max_warning_reports: Warnings reported individually before suppression.
        max_error_reports: Errors reported individually before suppression.
        root_category: Root of the per-source-file folders.
        uncategorized_category: Folder types without a home were imported into.
    """
    organize_types_by_source_file: bool = True
    output_source_line_info: bool = True
    use_bookmarks: bool = False
    max_source_map_entry_length: int = 2000
    source_file_ignore: frozenset = frozenset({GOLANG_AUTOGENERATED_FILENAME})
    default_comp_dir: str = DEFAULT_COMPILATION_DIR
    max_warning_reports: int = 200
    max_error_reports: int = 200
    root_category: str = "/DWARF"
    uncategorized_category: str = "/DWARF/_UNCATEGORIZED_"

    @classmethod
    def from_dict(cls, raw: dict) -> "ImportOptions":
        """Build options from a JSON-style dict; raises ValueError on bad keys."""
        known = {f.name: f for f in fields(cls)}
        kwargs = {}
        for key, value in raw.items():
            if key not in known:
                raise ValueError(f"unknown option: {key}")
            default = known[key].default
            if isinstance(default, frozenset):
                if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                    raise ValueError(f"option {key} must be a list of strings")
                value = frozenset(value)
            elif isinstance(default, bool):
                if not isinstance(value, bool):
                    raise ValueError(f"option {key} must be a boolean")
            elif isinstance(default, int):
                if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                    raise ValueError(f"option {key} must be a non-negative integer")
            elif not isinstance(value, str):
                raise ValueError(f"option {key} must be a string")
            kwargs[key] = value
        opts = cls(**kwargs)
        opts.root_cp()
        opts.uncategorized_cp()
        return opts

    @classmethod
    def from_json(cls, path: str) -> "ImportOptions":
        with Path(path).open() as f:
            raw = json.load(f)
        if not isinstance(raw, dict):
            raise ValueError(f"{path}: options must be a JSON object")
        return cls.from_dict(raw)

    def with_overrides(self, **overrides) -> "ImportOptions":
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def root_cp(self) -> CategoryPath:
        return CategoryPath.parse(self.root_category)

    def uncategorized_cp(self) -> CategoryPath:
        return CategoryPath.parse(self.uncategorized_category)


@dataclass
class ImportSummary:
    types_moved: int = 0
    type_move_failures: int = 0
    source_map_entries: int = 0
    source_files: int = 0
    warnings: int = 0
    errors: int = 0
    types_elapsed_ms: int = 0
    lines_elapsed_ms: int = 0
    total_elapsed_ms: int = 0
    skipped: list[str] = field(default_factory=list)


class Program(Protocol):
    """What the importer needs from the program being annotated."""

    def has_line_info(self) -> bool:
        ...

    def compilation_units(self) -> list[CompUnit]:
        ...

    def code_address(self, addr: int) -> int:
        ...

    def executable_ranges(self) -> AddressRanges:
        ...


def _ms_since(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class DwarfImporter:
    """Run the enabled import passes over a program.

    Args:
        program: Source of compilation units and executable ranges.
        options: Import configuration.
        monitor: Cancellation and progress, shared by both passes.
        types: Category tree to reorganize, None to skip that pass.
        imported: Locators of the types the DWARF type import produced.
        source_map: Store receiving source files and entries.
        log: Where diagnostics go; a BookmarkSink is created when
            ``options.use_bookmarks`` is set and none is given.
    """
    def __init__(self, program: Optional[Program], options: ImportOptions, monitor: TaskMonitor,
                 types: Optional[CategoryStore] = None,
                 imported: Optional[list[DataTypePath]] = None,
                 source_map: Optional[SourceMapStore] = None,
                 log: Optional[LogSink] = None):
        self.program = program
        self.options = options
        self.monitor = monitor
        self.types = types
        self.imported = imported or []
        self.source_map = source_map if source_map is not None else SourceMapStore()
        if log is None:
            log = BookmarkSink() if options.use_bookmarks else LogSink()
        self.log = log

    def perform_import(self) -> ImportSummary:
        """Run the passes. CancelledError propagates; finished work is kept."""
        summary = ImportSummary()
        start = time.monotonic()

        if self.options.organize_types_by_source_file:
            if self.types is None:
                summary.skipped.append("types")
            else:
                self._move_types(summary)
                summary.types_elapsed_ms = _ms_since(start)

        if self.options.output_source_line_info:
            lines_start = time.monotonic()
            if not self.source_map.has_exclusive_access():
                self.log.error("Unable to add source map info: "
                               "exclusive access to the program is required to add source map info")
                summary.skipped.append("lines")
            else:
                try:
                    self._add_source_line_info(summary)
                except LockError as e:
                    raise AssertionError("LockError after exclusive access verified") from e
                summary.lines_elapsed_ms = _ms_since(lines_start)

        summary.total_elapsed_ms = _ms_since(start)
        return summary

    def _move_types(self, summary: ImportSummary):
        editor = CategoryTreeEditor(self.types, self.monitor, self.log)
        try:
            editor.reorganize_by_source_file(self.imported, self.options.root_cp(),
                                             self.options.uncategorized_cp())
        finally:
            summary.types_moved = editor.moved
            summary.type_move_failures = editor.failed

    def _add_source_line_info(self, summary: ImportSummary):
        if self.program is None or not self.program.has_line_info():
            self.log.warning("Can't add source line info - reader is null")
            summary.skipped.append("lines")
            return

        budget = DiagnosticBudget(self.log, self.options.max_warning_reports,
                                  self.options.max_error_reports)
        builder = SourceMapBuilder(
            self.source_map,
            self.program.executable_ranges(),
            budget,
            self.monitor,
            max_length=self.options.max_source_map_entry_length,
            ignore=self.options.source_file_ignore,
            base_dir=self.options.default_comp_dir,
            code_address=self.program.code_address,
        )
        stats = builder.build(self.program.compilation_units())
        summary.source_map_entries = stats.entries
        summary.source_files = stats.source_files
        summary.warnings = stats.warnings
        summary.errors = stats.errors
