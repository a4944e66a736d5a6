"""Shared test fixtures for the todo bot tests."""

import re
import sys
from pathlib import Path

import pytest

# Ensure the bots directory and the repo root are importable
sys.path.insert(0, str(Path(__file__).parent.parent / "bots"))
sys.path.insert(0, str(Path(__file__).parent.parent))

from pkg.todos.dispatcher import TodoDispatcher
from pkg.todos.schema import HEADER
from pkg.todos.sheets import StoreError
from pkg.todos.store import TodoStore

A1 = re.compile(r"^([A-Z])(\d*)(?::([A-Z])(\d*))?$")


class FakeSheet:
    """
    In-memory stand-in for SheetsClient.

    Mimics the Sheets API shapes: trailing empty cells and trailing empty
    rows are dropped on read, interior blank rows come back as [].
    Put an operation name ("read", "write", "append", "clear") in
    fail_on to make it raise StoreError.
    """

    def __init__(self):
        self.grid = [list(HEADER)]
        self.fail_on = set()
        self.calls = []

    def seed(self, *rows):
        for row in rows:
            self.grid.append([str(c) for c in row])
        return self

    @property
    def data_rows(self):
        return self.grid[1:]

    # -- range operations --

    def read_range(self, a1):
        self._check("read", a1)
        c1, r1, c2, r2 = self._parse(a1)
        last = len(self.grid) if r2 is None else min(r2, len(self.grid))
        out = []
        for row in self.grid[r1 - 1:last]:
            cells = (row + [""] * (c2 + 1))[c1:c2 + 1]
            while cells and cells[-1] == "":
                cells.pop()
            out.append(cells)
        while out and not out[-1]:
            out.pop()
        return out

    def write_range(self, a1, values):
        self._check("write", a1)
        c1, r1, _, _ = self._parse(a1)
        for i, vals in enumerate(values):
            row = self._row(r1 + i)
            for j, value in enumerate(vals):
                self._set(row, c1 + j, value)

    def append_row(self, values):
        self._check("append", None)
        used = [i for i, row in enumerate(self.grid) if any(row)]
        row = self._row((used[-1] if used else 0) + 2)
        for j, value in enumerate(values):
            self._set(row, j, value)

    def clear_range(self, a1):
        self._check("clear", a1)
        c1, r1, c2, r2 = self._parse(a1)
        for number in range(r1, (r2 or len(self.grid)) + 1):
            if number > len(self.grid):
                break
            row = self.grid[number - 1]
            for j in range(c1, min(c2 + 1, len(row))):
                row[j] = ""

    # -- helpers --

    def _check(self, op, a1):
        self.calls.append((op, a1))
        if op in self.fail_on:
            raise StoreError(op, OSError("connection reset"))

    @staticmethod
    def _parse(a1):
        m = A1.match(a1)
        assert m, f"unsupported range {a1}"
        c1 = ord(m.group(1)) - ord("A")
        r1 = int(m.group(2)) if m.group(2) else 1
        if m.group(3):
            c2 = ord(m.group(3)) - ord("A")
            r2 = int(m.group(4)) if m.group(4) else None
        else:
            c2, r2 = c1, r1
        return c1, r1, c2, r2

    def _row(self, number):
        while len(self.grid) < number:
            self.grid.append([])
        return self.grid[number - 1]

    @staticmethod
    def _set(row, index, value):
        while len(row) <= index:
            row.append("")
        row[index] = value


@pytest.fixture
def sheet():
    return FakeSheet()


@pytest.fixture
def store(sheet):
    return TodoStore(sheet)


@pytest.fixture
def dispatcher(store):
    return TodoDispatcher(store)


@pytest.fixture
def credentials_file(tmp_path):
    path = tmp_path / "service-account.json"
    path.write_text("{}")
    return path


@pytest.fixture
def env(monkeypatch, credentials_file):
    """Required bot environment variables, set for the test only."""
    monkeypatch.setenv("BOT_TOKEN", "fake-token")
    monkeypatch.setenv("SPREADSHEET_ID", "sheet123")
    monkeypatch.setenv("GOOGLE_APPLICATION_CREDENTIALS", str(credentials_file))
    return monkeypatch


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "todo_bot.yaml"
    path.write_text(
        "global:\n"
        f"  audit_log: {tmp_path / 'audit.jsonl'}\n"
    )
    return path
