#!/bin/env python3
"""CLI entrypoint for the DWARF source map importer.

Reads the line tables of an ELF file, registers source map entries for
them, and optionally reorganizes an exported type tree into per-source-file
folders. The result is written as JSON.
"""

import argparse
import json
import signal
import sys
from contextlib import nullcontext
from pathlib import Path

from elftools.common.exceptions import ELFError
from yaspin import yaspin

from dwarfsrc.catpath import DataTypePath
from dwarfsrc.diag import BookmarkSink, LogSink
from dwarfsrc.elfprog import ElfProgram
from dwarfsrc.importer import DwarfImporter, ImportOptions
from dwarfsrc.monitor import CancelledError, SpinnerMonitor, TaskMonitor
from dwarfsrc.store import SourceMapStore
from dwarfsrc.typesio import decompose_type_tree, dump_type_tree


def parse_args(argv=None) -> argparse.Namespace:
    """Define and parse CLI arguments for the importer."""
    p = argparse.ArgumentParser(
        description="Apply DWARF source line info and organize imported types by source file"
    )
    p.add_argument("elf", help="Path to ELF file with DWARF info")
    p.add_argument("--types", help="JSON type tree to reorganize")
    p.add_argument("--config", help="JSON file with import options")
    p.add_argument("--out", help="Output JSON file. Default: stdout")
    p.add_argument(
        "--max-length",
        type=int,
        default=None,
        help="Largest source map entry length; longer entries get length 0",
    )
    p.add_argument(
        "--ignore",
        action="append",
        default=None,
        help="Source file name to ignore (repeatable); added to the configured set",
    )
    p.add_argument(
        "--bookmarks",
        action="store_true",
        help="Record per-address diagnostics as bookmarks in the output",
    )
    p.add_argument("--no-types", action="store_true", help="Skip type reorganization")
    p.add_argument("--no-lines", action="store_true", help="Skip source line info")
    return p.parse_args(argv)


def build_options(args: argparse.Namespace) -> ImportOptions:
    opts = ImportOptions.from_json(args.config) if args.config else ImportOptions()
    ignore = None
    if args.ignore:
        ignore = opts.source_file_ignore | frozenset(args.ignore)
    return opts.with_overrides(
        max_source_map_entry_length=args.max_length,
        source_file_ignore=ignore,
        use_bookmarks=True if args.bookmarks else None,
        organize_types_by_source_file=False if args.no_types else None,
        output_source_line_info=False if args.no_lines else None,
    )


def render_result(summary, source_map: SourceMapStore, log: LogSink, types=None) -> dict:
    res = {
        "summary": vars(summary),
        "source_files": [
            {
                "path": sf.path,
                "id_type": sf.id_type.value,
                "identifier": sf.identifier.hex() if sf.identifier else None,
            }
            for sf in source_map.source_files
        ],
        "entries": [
            {"file": e.source_file.path, "line": e.line_num, "address": e.address, "length": e.length}
            for e in source_map.entries
        ],
    }
    if isinstance(log, BookmarkSink):
        res["bookmarks"] = [
            {"address": b.address, "kind": b.kind, "category": b.category, "text": b.text}
            for b in log.bookmarks
        ]
    if types is not None:
        res["types"] = dump_type_tree(types)
    return res


def load_program(path: str) -> ElfProgram:
    return ElfProgram(path)


def main(argv=None):
    """Run the import, write JSON, and report a cancelled run with status 130."""
    args = parse_args(argv)

    elf_path = Path(args.elf)
    if not elf_path.exists():
        print(f"[!] ELF file does not exist: {elf_path}")
        return 1

    try:
        opts = build_options(args)
    except (OSError, ValueError) as e:
        print(f"[!] bad config: {e}")
        return 1

    types = None
    imported: list[DataTypePath] = []
    if args.types:
        types_path = Path(args.types)
        if not types_path.exists():
            print(f"[!] types file does not exist: {types_path}")
            return 1
        try:
            with types_path.open() as f:
                types, imported = decompose_type_tree(json.load(f))
        except (OSError, ValueError) as e:
            print(f"[!] bad types file: {e}")
            return 1

    log = BookmarkSink() if opts.use_bookmarks else LogSink()
    source_map = SourceMapStore()

    program = load_program(str(elf_path))
    try:
        program.open()
    except (ELFError, OSError) as e:
        print(f"[!] not an ELF file: {elf_path} ({e})")
        return 1

    # the spinner draws on stdout, which carries the JSON result without --out
    spinner = yaspin(text="[~] importing", color="cyan") if args.out else nullcontext()
    with program, spinner as sp:
        monitor = SpinnerMonitor(sp) if sp is not None else TaskMonitor()

        def sigint_handler(_sig, _frame):
            monitor.cancel()

        prev = signal.signal(signal.SIGINT, sigint_handler)
        importer = DwarfImporter(program, opts, monitor, types, imported, source_map, log)
        try:
            summary = importer.perform_import()
        except CancelledError:
            if sp is not None:
                sp.fail("[!] cancelled")
            else:
                print("[!] cancelled", file=sys.stderr)
            return 130
        finally:
            signal.signal(signal.SIGINT, prev)
        if sp is not None:
            sp.ok("[+]")

    res = render_result(summary, source_map, log, types)
    if args.out:
        with open(args.out, "w") as f:
            json.dump(res, f, indent=2)
        print(f"[+] Saved to: {args.out}", file=sys.stderr)
    else:
        json.dump(res, sys.stdout, indent=2)
        print()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
