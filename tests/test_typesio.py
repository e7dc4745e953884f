import pytest

from dwarfsrc.catpath import CategoryPath, DataTypePath
from dwarfsrc.typesio import decompose_type_tree, dump_type_tree, parse_data_type_path

DOC = {
    "types": [
        {"path": "/DWARF/_UNCATEGORIZED_", "name": "outer", "kind": "struct", "source": "outer.c",
         "components": [
             {"name": "u", "type": "/DWARF/_UNCATEGORIZED_/outer/anon_union_1"},
             {"name": "next", "type": "/DWARF/_UNCATEGORIZED_/outer", "pointer": 1},
             {"name": "buf", "type": "/DWARF/_UNCATEGORIZED_/outer/anon_union_1", "array": 4},
             {"name": "lost", "type": "/nowhere/x"},
         ]},
        {"path": "/DWARF/_UNCATEGORIZED_/outer", "name": "anon_union_1", "kind": "union"},
        {"path": "/DWARF/_UNCATEGORIZED_", "name": "bad", "kind": "class"},
    ],
}


def test_parse_data_type_path():
    assert parse_data_type_path("/a/b/foo") == DataTypePath(CategoryPath.parse("/a/b"), "foo")


def test_decompose_builds_tree_and_defaults_imported(capsys):
    tree, imported = decompose_type_tree(DOC)
    outer = tree.get_data_type(parse_data_type_path("/DWARF/_UNCATEGORIZED_/outer"))

    assert outer.source_file == "outer.c"
    assert [c.name for c in outer.components] == ["u", "next", "buf"]
    assert outer.components[1].data_type.kind == "pointer"
    assert outer.components[1].data_type.base is outer
    assert outer.components[2].data_type.kind == "array"
    assert [p.path for p in imported] == ["/DWARF/_UNCATEGORIZED_/outer",
                                          "/DWARF/_UNCATEGORIZED_/outer/anon_union_1"]
    out = capsys.readouterr().out
    assert "[-] invalid type entry" in out
    assert "[-] unresolved component type '/nowhere/x'" in out


def test_explicit_imported_list():
    doc = dict(DOC, imported=["/DWARF/_UNCATEGORIZED_/outer", "nope"])
    _, imported = decompose_type_tree(doc)
    assert [p.path for p in imported] == ["/DWARF/_UNCATEGORIZED_/outer"]


def test_dump_round_trips_components():
    tree, _ = decompose_type_tree(DOC)
    dumped = dump_type_tree(tree)
    outer = next(t for t in dumped["types"] if t["name"] == "outer")
    assert outer["components"][1] == {"name": "next", "type": "/DWARF/_UNCATEGORIZED_/outer", "pointer": 1}
    assert outer["components"][2] == {"name": "buf", "type": "/DWARF/_UNCATEGORIZED_/outer/anon_union_1",
                                      "array": 4}
    assert dumped["categories"] == ["/DWARF", "/DWARF/_UNCATEGORIZED_", "/DWARF/_UNCATEGORIZED_/outer"]


@pytest.mark.parametrize("doc", [
    [{"path": "/DWARF", "name": "foo"}],
    {"types": {"path": "/DWARF", "name": "foo"}},
    {"types": [], "imported": "/DWARF/foo"},
])
def test_malformed_document_is_rejected(doc):
    with pytest.raises(ValueError):
        decompose_type_tree(doc)


def test_non_dict_entries_are_skipped(capsys):
    tree, imported = decompose_type_tree({"types": [
        "foo", None,
        {"path": "/DWARF", "name": "bar", "kind": "struct", "components": [3, {"name": "x"}]},
    ], "imported": ["/DWARF/bar", 5]})
    out = capsys.readouterr().out

    bar = tree.get_data_type(DataTypePath(CategoryPath.parse("/DWARF"), "bar"))
    assert bar.components == []
    assert imported == [bar.data_type_path]
    assert "[-] invalid type entry: 'foo'" in out
    assert "[-] invalid component in /DWARF/bar: 3" in out
    assert "[-] invalid imported type path" in out
