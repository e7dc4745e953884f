"""Hierarchical category paths and subtree rehoming.

A category path is a tuple of name segments. Its string form is the
segments joined with ``/`` and prefixed by ``/``; a ``/`` inside a segment
is escaped as ``\\/`` so that file names like ``include/foo.h`` stay a
single segment.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

DELIMITER = "/"
ESCAPED_DELIMITER = "\\/"


def _escape(segment: str) -> str:
    return segment.replace(DELIMITER, ESCAPED_DELIMITER)


def _split(path: str) -> list[str]:
    """Split a path string on unescaped delimiters."""
    parts = []
    cur = []
    i = 0
    while i < len(path):
        if path.startswith(ESCAPED_DELIMITER, i):
            cur.append(DELIMITER)
            i += 2
            continue
        ch = path[i]
        if ch == DELIMITER:
            parts.append("".join(cur))
            cur = []
        else:
            cur.append(ch)
        i += 1
    parts.append("".join(cur))
    return parts


@dataclass(frozen=True)
class CategoryPath:
    """Immutable address of a node in the category tree."""
    segments: tuple[str, ...] = ()

    ROOT = None  # assigned below

    def __post_init__(self):
        for seg in self.segments:
            if not seg:
                raise ValueError(f"empty segment in category path {self.segments!r}")

    @classmethod
    def parse(cls, path: str) -> "CategoryPath":
        """Build a path from its ``/a/b/c`` string form."""
        if not path.startswith(DELIMITER):
            raise ValueError(f"category path must start with '/': {path!r}")
        if path == DELIMITER:
            return cls.ROOT
        return cls(tuple(_split(path[1:])))

    def child(self, *names: str) -> "CategoryPath":
        return CategoryPath(self.segments + tuple(names))

    def extend(self, names: Iterable[str]) -> "CategoryPath":
        return CategoryPath(self.segments + tuple(names))

    @property
    def is_root(self) -> bool:
        return not self.segments

    @property
    def name(self) -> str:
        return self.segments[-1] if self.segments else ""

    @property
    def parent(self) -> Optional["CategoryPath"]:
        if self.is_root:
            return None
        return CategoryPath(self.segments[:-1])

    @property
    def path(self) -> str:
        return DELIMITER + DELIMITER.join(_escape(s) for s in self.segments)

    def is_descendant_of(self, ancestor: "CategoryPath") -> bool:
        """True when ``ancestor``'s segments are a prefix of this path's."""
        n = len(ancestor.segments)
        return len(self.segments) >= n and self.segments[:n] == ancestor.segments

    def __str__(self) -> str:
        return self.path


CategoryPath.ROOT = CategoryPath()


@dataclass(frozen=True)
class DataTypePath:
    """Locates a named data type: its category plus its name."""
    category_path: CategoryPath
    name: str

    @property
    def path(self) -> str:
        if self.category_path.is_root:
            return DELIMITER + _escape(self.name)
        return self.category_path.path + DELIMITER + _escape(self.name)

    def __str__(self) -> str:
        return self.path


def rehome(old_root: CategoryPath, new_root: CategoryPath, path: CategoryPath) -> Optional[CategoryPath]:
    """Move ``path`` from under ``old_root`` to the same place under ``new_root``.

    Returns None when ``path`` is not inside the ``old_root`` subtree.
    """
    if path == old_root:
        return new_root
    if not path.is_descendant_of(old_root):
        return None
    return new_root.extend(path.segments[len(old_root.segments):])
