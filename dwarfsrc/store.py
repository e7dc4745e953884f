"""In-memory source map store: registered source files and address mappings."""

from bisect import bisect_left, bisect_right
from typing import Iterable, Optional

from dwarfsrc.common import MappingEntry, SourceFile, SourceFileIdType
from dwarfsrc.lines import U64_MASK

_INVALID_PATH_CHARS = set(chr(c) for c in range(0x20)) | {"\x7f"}


class LockError(Exception):
    """The store was modified without exclusive access."""


class AddressOverflowError(ValueError):
    """A mapping range runs past the end of the 64-bit address space."""


class AddressRanges:
    """Sorted set of disjoint half-open ``[start, end)`` address ranges."""
    def __init__(self, ranges: Iterable[tuple[int, int]] = ()):
        self.starts = []
        self.ends = []
        for start, end in ranges:
            self.add(start, end)

    def add(self, start: int, end: int):
        """Insert a range, merging it with any range it touches."""
        if start >= end:
            return
        i = bisect_right(self.ends, start - 1)
        # ranges i..j-1 overlap or touch [start, end)
        j = i
        while j < len(self.starts) and self.starts[j] <= end:
            start = min(start, self.starts[j])
            end = max(end, self.ends[j])
            j += 1
        self.starts[i:j] = [start]
        self.ends[i:j] = [end]

    def contains(self, addr: int) -> bool:
        i = bisect_right(self.starts, addr) - 1
        return i >= 0 and addr < self.ends[i]

    def __len__(self):
        return len(self.starts)

    def __iter__(self):
        return iter(zip(self.starts, self.ends))


class SourceMapStore:
    """Source files and source map entries of one program.

    Mutations require exclusive access; the owner grants it by passing
    ``exclusive=True`` (the CLI always does, it is the only writer).
    """
    def __init__(self, exclusive: bool = True):
        self.exclusive = exclusive
        self._files: dict[tuple[str, SourceFileIdType, Optional[bytes]], SourceFile] = {}
        self._entries: list[MappingEntry] = []
        self._by_address: dict[int, list[MappingEntry]] = {}
        # non-zero-length entries sorted by start, for overlap checks
        self._starts: list[int] = []
        self._ranged: list[MappingEntry] = []

    def has_exclusive_access(self) -> bool:
        return self.exclusive

    def _check_lock(self):
        if not self.exclusive:
            raise LockError("exclusive access required")

    @staticmethod
    def _validate_path(path: str):
        if not path or not path.startswith("/"):
            raise ValueError(f"source file path must be absolute: {path!r}")
        if path.endswith("/"):
            raise ValueError(f"source file path has no file name: {path!r}")
        bad = _INVALID_PATH_CHARS.intersection(path)
        if bad:
            raise ValueError(f"invalid characters in source file path: {path!r}")

    def add_source_file(self, path: str, id_type: SourceFileIdType = SourceFileIdType.NONE,
                        identifier: Optional[bytes] = None) -> SourceFile:
        """Register (or look up) a source file. Raises ValueError on a bad path."""
        self._check_lock()
        self._validate_path(path)
        if id_type is SourceFileIdType.NONE:
            identifier = None
        elif not identifier:
            raise ValueError(f"{id_type.value} identifier missing for {path}")
        key = (path, id_type, identifier)
        sf = self._files.get(key)
        if sf is None:
            sf = SourceFile(path, id_type, identifier)
            self._files[key] = sf
        return sf

    def add_source_map_entry(self, source_file: SourceFile, line_num: int,
                             address: int, length: int) -> MappingEntry:
        """Map ``[address, address + length)`` to a source line.

        A range may repeat an existing range exactly (several lines can
        share the same instructions) but must not partially overlap one.
        Zero-length entries mark a single address and never conflict.
        """
        self._check_lock()
        if line_num < 0:
            raise ValueError(f"negative line number {line_num}")
        if length < 0:
            raise ValueError(f"negative length {length}")
        if address < 0 or address > U64_MASK:
            raise ValueError(f"address out of range: {address:#x}")
        if length and address + length - 1 > U64_MASK:
            raise AddressOverflowError(f"{address:#x} + {length:#x} overflows")
        if self._files.get((source_file.path, source_file.id_type, source_file.identifier)) != source_file:
            raise ValueError(f"unregistered source file {source_file.path}")

        entry = MappingEntry(source_file, line_num, address, length)
        if length:
            self._check_overlap(entry)
        at = self._by_address.setdefault(address, [])
        if entry in at:
            return entry

        at.append(entry)
        self._entries.append(entry)
        if length:
            i = bisect_right(self._starts, address)
            self._starts.insert(i, address)
            self._ranged.insert(i, entry)
        return entry

    def _check_overlap(self, entry: MappingEntry):
        end = entry.address + entry.length
        i = bisect_left(self._starts, entry.address)
        # the previous range may reach into ours
        if i > 0:
            prev = self._ranged[i - 1]
            if prev.address + prev.length > entry.address:
                raise ValueError(f"range {entry.address:#x}:{end:#x} overlaps {prev.address:#x}")
        while i < len(self._starts) and self._starts[i] < end:
            other = self._ranged[i]
            if other.address != entry.address or other.length != entry.length:
                raise ValueError(f"range {entry.address:#x}:{end:#x} overlaps {other.address:#x}")
            i += 1

    @property
    def source_files(self) -> list[SourceFile]:
        return list(self._files.values())

    @property
    def entries(self) -> list[MappingEntry]:
        return list(self._entries)

