import pytest

from dwarfsrc.monitor import CancelledError, SpinnerMonitor, TaskMonitor


class FakeSpinner:
    text = ""


def test_check_cancelled():
    monitor = TaskMonitor()
    monitor.check_cancelled()
    monitor.cancel()
    assert monitor.is_cancelled()
    with pytest.raises(CancelledError):
        monitor.check_cancelled()


def test_progress_counts():
    monitor = TaskMonitor()
    monitor.initialize(10, "work")
    monitor.increment()
    monitor.increment(4)
    assert (monitor.progress, monitor.total, monitor.message) == (5, 10, "work")
    monitor.initialize(3)
    assert monitor.progress == 0
    assert monitor.message == "work"


def test_spinner_text():
    sp = FakeSpinner()
    monitor = SpinnerMonitor(sp, every=2)
    monitor.initialize(3, "DWARF Move Types")
    assert sp.text == "[~] DWARF Move Types 0/3"
    monitor.increment()
    assert sp.text == "[~] DWARF Move Types 0/3"
    monitor.increment()
    assert sp.text == "[~] DWARF Move Types 2/3"
    monitor.increment()
    assert sp.text == "[~] DWARF Move Types 3/3"
    monitor.set_indeterminate(True)
    assert sp.text == "[~] DWARF Move Types"
