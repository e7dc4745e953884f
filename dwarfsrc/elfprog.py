"""ELF/DWARF line record source built on pyelftools."""

from pathlib import Path
from typing import Optional

from elftools.elf.constants import P_FLAGS, SH_FLAGS
from elftools.elf.elffile import ELFFile

from dwarfsrc.common import LineRecord
from dwarfsrc.store import AddressRanges


def _decode(value) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", "replace")
    return value


class ElfCompUnit:
    """Line records of one compilation unit.

    Addressing model:
        * Row addresses are ELF virtual addresses, used as-is.
        * End-of-sequence rows are reported at the last byte of the
          sequence (state address - 1); consumers add 1 back when
          computing range lengths.
    """
    def __init__(self, dwarf, cu):
        self._dwarf = dwarf
        self._cu = cu
        self.name = None
        top = cu.get_top_DIE()
        if "DW_AT_name" in top.attributes:
            self.name = _decode(top.attributes["DW_AT_name"].value)

    def _file_name(self, lp, file_idx: int) -> Optional[str]:
        """Resolve a line program file index to a path.

        DWARF 5 indexes files and directories from 0, earlier versions
        from 1 with directory 0 meaning the compilation directory.
        """
        version = lp.header.get("version", 4)
        include_dirs = [_decode(d) for d in lp.header.get("include_directory", [])]
        file_entries = lp.header.get("file_entry", [])

        idx = file_idx if version >= 5 else file_idx - 1
        if idx < 0 or idx >= len(file_entries):
            return None
        fe = file_entries[idx]
        fn = _decode(fe.name)
        if fn.startswith("/"):
            return fn

        dir_idx = int(getattr(fe, "dir_index", 0))
        if version < 5:
            if dir_idx == 0:
                return fn
            dir_idx -= 1
        if dir_idx >= len(include_dirs):
            return fn
        return include_dirs[dir_idx].rstrip("/") + "/" + fn

    def _md5(self, lp, file_idx: int) -> Optional[bytes]:
        if lp.header.get("version", 4) < 5:
            return None
        file_entries = lp.header.get("file_entry", [])
        if file_idx < 0 or file_idx >= len(file_entries):
            return None
        md5 = getattr(file_entries[file_idx], "MD5", None)
        return bytes(md5) if md5 else None

    def get_all_line_records(self) -> list[LineRecord]:
        lp = self._dwarf.line_program_for_CU(self._cu)
        if lp is None:
            return []

        names = {}
        records = []
        for entry in lp.get_entries():
            state = entry.state
            if state is None:
                continue
            file_idx = int(state.file)
            if file_idx not in names:
                names[file_idx] = (self._file_name(lp, file_idx), self._md5(lp, file_idx))
            file_name, md5 = names[file_idx]
            addr = int(state.address)
            if state.end_sequence:
                addr -= 1
            records.append(LineRecord(
                address=addr,
                file_name=file_name,
                line_num=int(state.line or 0),
                md5=md5,
                is_end_sequence=bool(state.end_sequence),
            ))
        return records


class ElfProgram:
    """An ELF file opened for DWARF import.

    Use as a context manager; compilation units read from the underlying
    stream lazily, so it must stay open while they are used.
    """
    def __init__(self, path: str):
        self.path = path
        self.name = Path(path).name
        self._f = None
        self._elf = None

    def open(self):
        """Open and parse the ELF header; raises ELFError for non-ELF input."""
        if self._f is not None:
            return self
        f = open(self.path, "rb")
        try:
            self._elf = ELFFile(f)
        except Exception:
            f.close()
            raise
        self._f = f
        return self

    def __enter__(self):
        return self.open()

    def __exit__(self, *exc):
        self.close()

    def close(self):
        if self._f is not None:
            self._f.close()
            self._f = None
            self._elf = None

    def has_line_info(self) -> bool:
        """True when the file carries a .debug_line section."""
        if not self._elf.has_dwarf_info():
            return False
        return self._elf.get_section_by_name(".debug_line") is not None

    def compilation_units(self) -> list[ElfCompUnit]:
        if not self._elf.has_dwarf_info():
            return []
        dwarf = self._elf.get_dwarf_info()
        return [ElfCompUnit(dwarf, cu) for cu in dwarf.iter_CUs()]

    def code_address(self, addr: int) -> int:
        return addr & ((1 << 64) - 1)

    def executable_ranges(self) -> AddressRanges:
        """Executable address ranges: PF_X segments, or SHF_EXECINSTR
        sections for files without program headers (relocatable objects)."""
        ranges = AddressRanges()
        for seg in self._elf.iter_segments():
            if seg.header.p_type == "PT_LOAD" and seg.header.p_flags & P_FLAGS.PF_X:
                start = int(seg.header.p_vaddr)
                ranges.add(start, start + int(seg.header.p_memsz))
        if len(ranges):
            return ranges

        for sec in self._elf.iter_sections():
            if sec.header.sh_flags & SH_FLAGS.SHF_EXECINSTR:
                start = int(sec.header.sh_addr)
                ranges.add(start, start + int(sec.header.sh_size))
        return ranges
