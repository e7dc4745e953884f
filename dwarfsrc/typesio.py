"""JSON encoding of the imported type tree.

Input document::

    {
      "types": [
        {"path": "/DWARF/_UNCATEGORIZED_", "name": "foo", "kind": "struct",
         "source": "foo.c",
         "components": [{"name": "u", "type": "/DWARF/_UNCATEGORIZED_/foo/anon_union_1"},
                        {"name": "next", "type": "/DWARF/_UNCATEGORIZED_/foo", "pointer": 1}]}
      ],
      "imported": ["/DWARF/_UNCATEGORIZED_/foo"]
    }

``imported`` defaults to every type in the document.
"""

from typing import Optional

from dwarfsrc.catpath import CategoryPath, DataTypePath
from dwarfsrc.categories import DERIVED_KINDS, Component, DataType, DataTypeTree, DuplicateNameError

KINDS = ("struct", "union", "enum", "typedef", "base", "function")


def parse_data_type_path(path: str) -> DataTypePath:
    cp = CategoryPath.parse(path)
    if cp.is_root:
        raise ValueError(f"data type path has no name: {path!r}")
    return DataTypePath(cp.parent, cp.name)


def decompose_type(payload) -> Optional[DataType]:
    """Convert a type dict into a DataType without its components.

    Returns None when the payload is missing required fields.
    """
    if not isinstance(payload, dict):
        print(f"[-] invalid type entry: {payload!r}")
        return None
    path = payload.get("path")
    name = payload.get("name")
    kind = payload.get("kind", "typedef")
    if not path or not name or kind not in KINDS:
        print(f"[-] invalid type entry: {payload}")
        return None
    try:
        cp = CategoryPath.parse(path)
    except ValueError as e:
        print(f"[-] invalid type entry: {e}")
        return None
    return DataType(name, cp, kind=kind, source_file=payload.get("source"))


def _wrap(dt: DataType, payload) -> DataType:
    """Wrap ``dt`` in the pointer/array layers a component asks for."""
    if payload.get("array"):
        dt = DataType(f"{dt.name}[{payload['array']}]", dt.category_path, kind="array", base=dt)
    for _ in range(int(payload.get("pointer", 0) or 0)):
        dt = DataType(f"{dt.name} *", dt.category_path, kind="pointer", base=dt)
    return dt


def decompose_type_tree(doc) -> tuple[DataTypeTree, list[DataTypePath]]:
    """Build a DataTypeTree and the list of imported locators from a JSON document.

    Raises ValueError when the document itself has the wrong shape.
    """
    if not isinstance(doc, dict):
        raise ValueError("types document must be a JSON object")
    entries = doc.get("types") or []
    if not isinstance(entries, list):
        raise ValueError("\"types\" must be a list")
    if not isinstance(doc.get("imported", []), list):
        raise ValueError("\"imported\" must be a list")
    tree = DataTypeTree()

    added = []
    for payload in entries:
        dt = decompose_type(payload)
        if dt is None:
            continue
        try:
            tree.add(dt)
        except DuplicateNameError as e:
            print(f"[-] duplicate type entry: {e}")
            continue
        added.append((dt, payload))

    for dt, payload in added:
        for comp in payload.get("components") or []:
            if not isinstance(comp, dict):
                print(f"[-] invalid component in {dt.data_type_path}: {comp!r}")
                continue
            ref = comp.get("type")
            member = None
            if ref:
                try:
                    member = tree.get_data_type(parse_data_type_path(ref))
                except ValueError:
                    member = None
            if member is None:
                print(f"[-] unresolved component type {ref!r} in {dt.data_type_path}")
                continue
            dt.components.append(Component(comp.get("name", ""), _wrap(member, comp)))

    if "imported" in doc:
        imported = []
        for path in doc["imported"]:
            try:
                imported.append(parse_data_type_path(path))
            except (TypeError, ValueError, AttributeError) as e:
                print(f"[-] invalid imported type path: {e}")
    else:
        imported = [dt.data_type_path for dt, _ in added]
    return tree, imported


def _dump_component(comp: Component) -> dict:
    out = {"name": comp.name}
    dt = comp.data_type
    pointers = 0
    array = None
    while dt.kind in DERIVED_KINDS and dt.base is not None:
        if dt.kind == "pointer":
            pointers += 1
        else:
            array = dt.name[dt.name.rfind("[") + 1:-1]
        dt = dt.base
    out["type"] = dt.data_type_path.path
    if pointers:
        out["pointer"] = pointers
    if array is not None:
        out["array"] = int(array) if array.isdigit() else array
    return out


def dump_type_tree(tree: DataTypeTree) -> dict:
    """Inverse of decompose_type_tree (without the imported list)."""
    types = []
    for dt in tree.iter_types():
        item = {"path": dt.category_path.path, "name": dt.name, "kind": dt.kind}
        if dt.source_file is not None:
            item["source"] = dt.source_file
        if dt.components:
            item["components"] = [_dump_component(c) for c in dt.components]
        types.append(item)
    categories = [cat.path.path for cat in tree.iter_categories() if not cat.path.is_root]
    return {"types": types, "categories": categories}
