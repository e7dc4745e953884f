import io

from dwarfsrc.diag import BookmarkSink, DiagnosticBudget, LogSink


def test_log_sink_prefixes():
    out = io.StringIO()
    sink = LogSink(out)
    sink.info("hello")
    sink.warning("careful", 0x10)
    sink.error("broken")
    assert out.getvalue().splitlines() == ["[+] hello", "[!] careful", "[-] broken"]


def test_warning_cap_and_rollup(sink):
    budget = DiagnosticBudget(sink, max_warnings=3, max_errors=10)
    emitted = [budget.warn(f"w{i}", i) for i in range(8)]
    budget.report_suppressed()

    assert emitted == [True] * 3 + [False] * 5
    assert [m for m, _ in sink.warnings] == ["w0", "w1", "w2",
                                             "Additional warnings suppressed: 5 (8 total warnings)"]
    assert sink.errors == []
    assert budget.suppressed_warnings == 5


def test_caps_are_independent(sink):
    budget = DiagnosticBudget(sink, max_warnings=1, max_errors=2)
    for i in range(3):
        budget.warn("w")
        budget.error("e")
    budget.report_suppressed()
    assert len(sink.warnings) == 1 + 1
    assert len(sink.errors) == 2 + 1
    assert sink.errors[-1][0] == "Additional errors suppressed: 1 (3 total errors)"


def test_no_rollup_at_exactly_cap(sink):
    budget = DiagnosticBudget(sink, max_warnings=2)
    budget.warn("a")
    budget.warn("b")
    budget.report_suppressed()
    assert len(sink.warnings) == 2


def test_bookmark_sink_pins_addressed_messages():
    out = io.StringIO()
    sink = BookmarkSink(out)
    sink.warning("non-exec", 0x400000)
    sink.error("bad file", 0x400010)
    sink.warning("rollup")
    sink.info("done")

    assert [(b.address, b.kind, b.category, b.text) for b in sink.bookmarks] == [
        (0x400000, "Warning", "DWARF", "non-exec"),
        (0x400010, "Error", "DWARF", "bad file"),
    ]
    assert out.getvalue().splitlines() == ["[!] rollup", "[+] done"]
