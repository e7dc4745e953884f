"""Category tree holding imported data types.

The organizer only talks to the tree through ``CategoryStore``; the
in-memory ``DataTypeTree`` implements it for the CLI and the tests.
"""

from dataclasses import dataclass, field
from typing import Iterator, Optional, Protocol

from dwarfsrc.catpath import CategoryPath, DataTypePath

COMPOSITE_KINDS = ("struct", "union")
DERIVED_KINDS = ("pointer", "array")


class DuplicateNameError(Exception):
    """A data type with the same name already lives in the target category."""


@dataclass(eq=False)
class Component:
    """A defined member field of a composite."""
    name: str
    data_type: "DataType"


@dataclass(eq=False)
class DataType:
    """A data type definition.

    Attributes:
        name: Type name, unique inside its category.
        category_path: Category the type currently lives in.
        kind: One of struct, union, enum, typedef, base, function, pointer, array.
        base: Referenced type for pointers and arrays.
        components: Defined member fields for composites.
        source_file: Originating source file name, if DWARF recorded one.
    """
    name: str
    category_path: CategoryPath
    kind: str = "typedef"
    base: Optional["DataType"] = None
    components: list[Component] = field(default_factory=list)
    source_file: Optional[str] = None

    @property
    def is_composite(self) -> bool:
        return self.kind in COMPOSITE_KINDS

    @property
    def is_derived(self) -> bool:
        return self.kind in DERIVED_KINDS

    @property
    def data_type_path(self) -> DataTypePath:
        return DataTypePath(self.category_path, self.name)

    def __repr__(self) -> str:
        return f"DataType({self.data_type_path}, {self.kind})"


def named_base(dt: DataType) -> DataType:
    """Follow pointers and arrays down to the named type they refer to."""
    while dt.is_derived and dt.base is not None:
        dt = dt.base
    return dt


@dataclass(eq=False)
class Category:
    """Node of the category tree."""
    path: CategoryPath
    types: dict[str, DataType] = field(default_factory=dict)
    children: dict[str, "Category"] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.path.name

    def is_empty(self) -> bool:
        return not self.types and not self.children


class CategoryStore(Protocol):
    """Capabilities the organizer needs from whoever owns the type tree."""

    def get_data_type(self, dtp: DataTypePath) -> Optional[DataType]:
        ...

    def get_category(self, path: CategoryPath) -> Optional[Category]:
        ...

    def set_category_path(self, dt: DataType, path: CategoryPath) -> None:
        """Move ``dt``; raises DuplicateNameError on a name clash."""
        ...

    def remove_empty_category(self, path: CategoryPath) -> bool:
        """Delete an empty category; False if it is missing or not empty."""
        ...

    def get_source_file(self, dt: DataType) -> Optional[str]:
        ...


class DataTypeTree:
    """In-memory category tree.

    Pointer and array types are not stored in categories: they exist only
    through the named type they reference, so moving the base moves them.
    """

    def __init__(self):
        self.root = Category(CategoryPath.ROOT)

    def get_category(self, path: CategoryPath) -> Optional[Category]:
        cat = self.root
        for seg in path.segments:
            cat = cat.children.get(seg)
            if cat is None:
                return None
        return cat

    def create_category(self, path: CategoryPath) -> Category:
        cat = self.root
        for seg in path.segments:
            nxt = cat.children.get(seg)
            if nxt is None:
                nxt = Category(cat.path.child(seg))
                cat.children[seg] = nxt
            cat = nxt
        return cat

    def add(self, dt: DataType) -> DataType:
        """Register a named type in its category."""
        if dt.is_derived:
            raise ValueError(f"{dt.kind} types are not stored in categories")
        cat = self.create_category(dt.category_path)
        if dt.name in cat.types:
            raise DuplicateNameError(f"{dt.data_type_path} already exists")
        cat.types[dt.name] = dt
        return dt

    def get_data_type(self, dtp: DataTypePath) -> Optional[DataType]:
        cat = self.get_category(dtp.category_path)
        if cat is None:
            return None
        return cat.types.get(dtp.name)

    def set_category_path(self, dt: DataType, path: CategoryPath) -> None:
        if path == dt.category_path:
            return
        dest = self.get_category(path)
        if dest is not None and dt.name in dest.types:
            raise DuplicateNameError(f"{DataTypePath(path, dt.name)} already exists")

        src = self.get_category(dt.category_path)
        if src is not None and src.types.get(dt.name) is dt:
            del src.types[dt.name]
        dest = self.create_category(path)
        dest.types[dt.name] = dt
        dt.category_path = path

    def remove_empty_category(self, path: CategoryPath) -> bool:
        if path.is_root:
            return False
        parent = self.get_category(path.parent)
        if parent is None:
            return False
        cat = parent.children.get(path.name)
        if cat is None or not cat.is_empty():
            return False
        del parent.children[path.name]
        return True

    def get_source_file(self, dt: DataType) -> Optional[str]:
        return dt.source_file

    def iter_categories(self) -> Iterator[Category]:
        """Walk all categories depth first, parents before children."""
        stack = [self.root]
        while stack:
            cat = stack.pop()
            yield cat
            stack.extend(sorted(cat.children.values(), key=lambda c: c.name, reverse=True))

    def iter_types(self) -> Iterator[DataType]:
        for cat in self.iter_categories():
            yield from cat.types.values()
