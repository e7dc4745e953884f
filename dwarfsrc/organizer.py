"""Move imported types out of the uncategorized folder into per-source-file folders.

Types land at ``<root>/<source file>/...``, keeping whatever sub-path they
had under the uncategorized folder. Only named types are moved: pointers
and arrays follow the type they reference.
"""

from typing import Iterable

from dwarfsrc.catpath import CategoryPath, DataTypePath, rehome
from dwarfsrc.categories import CategoryStore, DataType, DuplicateNameError, named_base
from dwarfsrc.diag import LogSink
from dwarfsrc.monitor import TaskMonitor


def delete_empty_category_paths(store: CategoryStore, path: CategoryPath, log: LogSink) -> int:
    """Remove ``path`` and then each parent while they are empty.

    Stops at the root, at a missing category, at the first category that
    still holds something, or when a deletion fails. Returns how many
    categories were removed.
    """
    removed = 0
    while not path.is_root:
        cat = store.get_category(path)
        parent = store.get_category(path.parent)
        if cat is None or parent is None:
            break
        if not cat.is_empty():
            break
        if not store.remove_empty_category(path):
            log.error(f"Failed to delete empty category {path}")
            break
        removed += 1
        path = path.parent
    return removed


class CategoryTreeEditor:
    """Rehome imported types by their DWARF source file."""
    def __init__(self, store: CategoryStore, monitor: TaskMonitor, log: LogSink):
        self.store = store
        self.monitor = monitor
        self.log = log
        self.moved = 0
        self.failed = 0

    def reorganize_by_source_file(self, imported: Iterable[DataTypePath],
                                  root: CategoryPath, uncategorized: CategoryPath) -> int:
        """Move every attributed type found under ``uncategorized`` below ``root``.

        Returns the number of types moved. Raises CancelledError when the
        monitor is cancelled; moves already made are kept.
        """
        # clustering by category keeps consecutive lookups in the same folder
        locators = sorted(imported, key=lambda dtp: dtp.category_path.path)

        self.monitor.initialize(len(locators), "DWARF Move Types")
        for dtp in locators:
            self.monitor.check_cancelled()
            self.monitor.increment()

            dt = self.store.get_data_type(dtp)
            if dt is None or dt.is_derived:
                continue
            source_file = self.store.get_source_file(dt)
            if source_file is None:
                continue

            orig_cp = dt.category_path
            new_cp = rehome(uncategorized, root.child(source_file), orig_cp)
            if new_cp is None:
                continue
            self._move(dt, orig_cp, new_cp)

        self.monitor.set_message("DWARF Move Types - Done")
        return self.moved

    def _move(self, dt: DataType, orig_cp: CategoryPath, new_cp: CategoryPath):
        try:
            self.store.set_category_path(dt, new_cp)
        except DuplicateNameError:
            # the type stays where it was under the uncategorized folder
            self.failed += 1
            self.log.error(f"Failed to move {DataTypePath(orig_cp, dt.name)} to {new_cp}")
            return
        self.moved += 1
        if dt.is_composite:
            self._fixup_anon_members(dt, orig_cp, new_cp)
        delete_empty_category_paths(self.store, orig_cp, self.log)

    def _fixup_anon_members(self, composite: DataType, orig_cp: CategoryPath, new_cp: CategoryPath):
        """Bring along member types that were nested under the composite's name.

        Anonymous structs/unions are named after their owner and have no
        source file of their own, so nothing else would ever move them. A
        member that collides at the destination is logged and left behind;
        the owner keeps its new location.
        """
        orig_ns = orig_cp.child(composite.name)
        dest_ns = new_cp.child(composite.name)
        for comp in composite.components:
            member_dt = named_base(comp.data_type)
            if member_dt.category_path == orig_ns and self.store.get_source_file(member_dt) is None:
                try:
                    self.store.set_category_path(member_dt, dest_ns)
                except DuplicateNameError:
                    self.log.error(f"Failed to move {DataTypePath(orig_ns, member_dt.name)} to {dest_ns}")
        delete_empty_category_paths(self.store, orig_ns, self.log)
