"""Shared value objects for dwarfsrc."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class LineRecord:
    """One row of a DWARF line program.

    Attributes:
        address: Unsigned 64-bit code address.
        file_name: Source file name, None when the row has no file.
        line_num: Source line number.
        md5: Content hash of the source file, when the producer has one.
        is_end_sequence: Marks the end of a contiguous instruction range.
    """
    address: int
    file_name: Optional[str]
    line_num: int
    md5: Optional[bytes] = None
    is_end_sequence: bool = False


class SourceFileIdType(Enum):
    NONE = "none"
    MD5 = "md5"


@dataclass(frozen=True)
class SourceFile:
    """A source file registered with a source map store."""
    path: str
    id_type: SourceFileIdType = SourceFileIdType.NONE
    identifier: Optional[bytes] = None

    @property
    def filename(self) -> str:
        return self.path.rsplit("/", 1)[-1]


@dataclass(frozen=True)
class MappingEntry:
    """An address range attributed to a source line."""
    source_file: SourceFile
    line_num: int
    address: int
    length: int


@dataclass(frozen=True)
class Bookmark:
    """Diagnostic pinned to a program address."""
    address: int
    kind: str
    category: str
    text: str
