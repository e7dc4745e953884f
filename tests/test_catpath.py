import pytest

from dwarfsrc.catpath import CategoryPath, DataTypePath, rehome

UNCAT = CategoryPath.parse("/DWARF/_UNCATEGORIZED_")
DEST = CategoryPath.parse("/DWARF/foo.c")


def test_parse_and_render():
    cp = CategoryPath.parse("/a/b/c")
    assert cp.segments == ("a", "b", "c")
    assert cp.path == "/a/b/c"
    assert cp.parent == CategoryPath.parse("/a/b")
    assert cp.name == "c"


def test_root():
    assert CategoryPath.parse("/") is CategoryPath.ROOT
    assert CategoryPath.ROOT.is_root
    assert CategoryPath.ROOT.path == "/"
    assert CategoryPath.ROOT.parent is None


def test_escaped_delimiter_stays_one_segment():
    cp = CategoryPath.ROOT.child("DWARF", "include/foo.h")
    assert cp.path == "/DWARF/include\\/foo.h"
    assert CategoryPath.parse(cp.path) == cp


def test_parse_rejects_relative_and_empty_segments():
    with pytest.raises(ValueError):
        CategoryPath.parse("a/b")
    with pytest.raises(ValueError):
        CategoryPath.parse("/a//b")


def test_data_type_path():
    assert DataTypePath(UNCAT, "foo").path == "/DWARF/_UNCATEGORIZED_/foo"
    assert DataTypePath(CategoryPath.ROOT, "int").path == "/int"


def test_is_descendant_of():
    assert UNCAT.child("x").is_descendant_of(UNCAT)
    assert UNCAT.is_descendant_of(UNCAT)
    assert UNCAT.is_descendant_of(CategoryPath.ROOT)
    assert not CategoryPath.parse("/DWARF/_UNCATEGORIZED_2").is_descendant_of(UNCAT)
    assert not CategoryPath.parse("/DWARF").is_descendant_of(UNCAT)


def test_rehome_root_itself():
    assert rehome(UNCAT, DEST, UNCAT) == DEST


def test_rehome_descendant_keeps_relative_structure():
    assert rehome(UNCAT, DEST, UNCAT.child("ns", "inner")) == DEST.child("ns", "inner")


@pytest.mark.parametrize("path", ["/DWARF", "/other/_UNCATEGORIZED_/x", "/DWARF/_UNCATEGORIZED_x", "/"])
def test_rehome_outside_subtree_is_none(path):
    assert rehome(UNCAT, DEST, CategoryPath.parse(path)) is None


def test_rehome_round_trip():
    path = UNCAT.child("a", "b")
    moved = rehome(UNCAT, DEST, path)
    assert moved.is_descendant_of(DEST)
    assert rehome(DEST, UNCAT, moved) == path
