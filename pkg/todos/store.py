"""
Todo storage on top of a row store (normally SheetsClient).

Every operation re-reads the sheet; nothing is cached between calls.
Rows are matched on the (id, owner) pair, never on position alone.
"""
import logging
from typing import List, Optional, Tuple

from .schema import COL_COMPLETED, HEADER, Todo, parse_int
from .sheets import StoreError

logger = logging.getLogger(__name__)

FIRST_DATA_ROW = 2
DATA_RANGE = f"A{FIRST_DATA_ROW}:D"
ID_RANGE = f"A{FIRST_DATA_ROW}:A"
COMPLETED_COLUMN = "ABCD"[COL_COMPLETED]
LAST_COLUMN = "ABCD"[len(HEADER) - 1]


class TodoStore:
    """Todo CRUD against a sheet of rows."""

    def __init__(self, rows):
        """
        Args:
            rows: object with read_range / write_range / append_row /
                  clear_range over A1 ranges (see sheets.SheetsClient).
        """
        self.rows = rows
        self._last_issued = 0

    def list_by_owner(self, owner_id: int) -> List[Todo]:
        """All todos of one owner, in sheet order. Empty list if none."""
        try:
            values = self.rows.read_range(DATA_RANGE)
        except StoreError:
            logger.exception(f"Error getting todos for user {owner_id}")
            raise
        todos = (Todo.from_row(row) for row in values)
        return [t for t in todos if t is not None and t.owner_id == owner_id]

    def next_id(self) -> int:
        """
        max(existing ids) + 1 across all owners, or 1 on an empty sheet.

        Never lower than the last id this store handed out. Not safe
        against two processes adding at once; ids come from a scan, not an
        atomic counter.
        """
        try:
            values = self.rows.read_range(ID_RANGE)
        except StoreError:
            logger.exception("Error getting next ID")
            raise
        ids = [parse_int(row[0]) for row in values if row]
        ids = [i for i in ids if i is not None]
        # A cleared row loses its id cell; remember what we handed out so a
        # deleted highest id is not issued again by this process.
        self._last_issued = max(ids + [self._last_issued]) + 1
        return self._last_issued

    def add(self, todo: Todo):
        """Append a row. No duplicate-id check; use next_id() first."""
        try:
            self.rows.append_row(todo.to_row())
        except StoreError:
            logger.exception(
                f"Error adding todo {todo.id} for user {todo.owner_id}"
            )
            raise
        logger.info(f"Added todo {todo.id} for user {todo.owner_id}")

    def set_completed(self, todo_id: int, owner_id: int, completed: bool) -> bool:
        """
        Overwrite only the completed cell of the matching row.

        Returns False when no row matches (id, owner).
        """
        try:
            row_number = self._find_row(todo_id, owner_id)
            if row_number is None:
                logger.warning(
                    f"Todo with ID {todo_id} not found for user {owner_id}"
                )
                return False
            self.rows.write_range(
                f"{COMPLETED_COLUMN}{row_number}",
                [["true" if completed else "false"]],
            )
        except StoreError:
            logger.exception(
                f"Error updating todo {todo_id} for user {owner_id} "
                f"(completed={completed})"
            )
            raise
        logger.info(
            f"Todo {todo_id} for user {owner_id} set completed={completed}"
        )
        return True

    def remove(self, todo_id: int, owner_id: int) -> bool:
        """
        Clear every cell of the matching row.

        The row stays as a blank slot; rows are never compacted, so ids and
        positions of other todos do not move. Returns False when no row
        matches (id, owner).
        """
        try:
            row_number = self._find_row(todo_id, owner_id)
            if row_number is None:
                logger.warning(
                    f"Todo with ID {todo_id} not found for user {owner_id} "
                    "for deletion"
                )
                return False
            self.rows.clear_range(
                f"A{row_number}:{LAST_COLUMN}{row_number}"
            )
        except StoreError:
            logger.exception(f"Error deleting todo {todo_id} for user {owner_id}")
            raise
        logger.info(f"Deleted todo {todo_id} for user {owner_id}")
        return True

    def _find_row(self, todo_id: int, owner_id: int) -> Optional[int]:
        """1-based sheet row number of the (id, owner) row, or None."""
        for number, todo in self._scan():
            if todo.id == todo_id and todo.owner_id == owner_id:
                return number
        return None

    def _scan(self) -> List[Tuple[int, Todo]]:
        values = self.rows.read_range(DATA_RANGE)
        found = []
        for offset, row in enumerate(values):
            todo = Todo.from_row(row)
            if todo is not None:
                found.append((FIRST_DATA_ROW + offset, todo))
        return found
