"""Normalization of source file paths found in DWARF line tables."""

import posixpath
import re

_WIN_DRIVE = re.compile(r"^[A-Za-z]:/")


def fix_dwarf_relative_path(path: str, base_dir: str) -> str:
    """Turn a DWARF file name into an absolute, normalized path.

    Absolute paths are only normalized. Relative paths lose their leading
    ``./`` and ``../`` segments and are placed under ``/<base_dir>/`` so
    relative names coming from different compilation units share one root.
    Windows paths become ``/C:/...``.
    """
    path = path.replace("\\", "/")
    if _WIN_DRIVE.match(path):
        path = "/" + path

    normalized = posixpath.normpath(path) if path else ""
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    if normalized.startswith("/"):
        return normalized

    parts = normalized.split("/")
    while parts and parts[0] in (".", ".."):
        parts.pop(0)
    return "/" + base_dir + "/" + "/".join(parts)
