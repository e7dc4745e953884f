import pytest

from dwarfsrc.common import LineRecord
from dwarfsrc.diag import LogSink


class FakeCU:
    def __init__(self, records):
        self.records = list(records)

    def get_all_line_records(self):
        return list(self.records)


class RecordingSink(LogSink):
    """Keeps every diagnostic instead of printing it."""
    def __init__(self):
        super().__init__()
        self.infos = []
        self.warnings = []
        self.errors = []

    def info(self, msg):
        self.infos.append(msg)

    def warning(self, msg, address=None):
        self.warnings.append((msg, address))

    def error(self, msg, address=None):
        self.errors.append((msg, address))


def rec(address, file_name="a.c", line=1, md5=None, end=False):
    return LineRecord(address, file_name, line, md5, end)


@pytest.fixture
def sink():
    return RecordingSink()
