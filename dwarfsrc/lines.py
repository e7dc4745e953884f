"""Helpers over address-sorted DWARF line records."""

from typing import Iterable, Sequence

from dwarfsrc.common import LineRecord

U64_MASK = (1 << 64) - 1


def u64(value: int) -> int:
    """Interpret ``value`` as an unsigned 64-bit address.

    Producers that hand out signed 64-bit values (e.g. -1 for 0xffff...)
    are folded back into the unsigned range.
    """
    return value & U64_MASK


def sort_records(records: Iterable[LineRecord]) -> list[LineRecord]:
    """Stable sort by unsigned address."""
    return sorted(records, key=lambda r: u64(r.address))


def run_length(records: Sequence[LineRecord], i: int) -> int:
    """Length of the address range starting at ``records[i]``.

    DWARF only emits a row when the line state changes, so the range runs
    until the next row with a different address. End-of-sequence rows
    carry the address of the last byte of the sequence, hence the ``+ 1``.
    Returns -1 when neither is found.
    """
    start = u64(records[i].address)
    for j in range(i + 1, len(records)):
        cur = records[j]
        addr = u64(cur.address)
        if cur.is_end_sequence:
            return addr + 1 - start
        if addr != start:
            return addr - start
    return -1
