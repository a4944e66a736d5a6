"""
Todo schema and sheet row mapping.

Sheet layout (row 1 is the header, data starts at row 2):
  A: id | B: text | C: completed ("true"/"false") | D: owner id
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


HEADER = ["ID", "Text", "Completed", "UserID"]

# Column positions inside a row
COL_ID = 0
COL_TEXT = 1
COL_COMPLETED = 2
COL_OWNER = 3

INTEGER = re.compile(r"^[+-]?\d+$", re.ASCII)


class PendingAction(Enum):
    """Follow-up a user owes the bot after pressing a button."""
    NONE = "none"
    AWAITING_ADD_TEXT = "adding"          # Next text message becomes a todo
    AWAITING_COMPLETE_ID = "completing"   # Next text message is an id to toggle
    AWAITING_DELETE_ID = "deleting"       # Next text message is an id to delete


class ListMode(Enum):
    """How a rendered list is meant to be used."""
    BROWSE = "browse"   # Full action bar (add / complete / delete)
    PICK = "pick"       # User is about to type an id; only "back"


def parse_int(value) -> Optional[int]:
    """Strict base-10 parse (ASCII digits, optional sign). None for anything else."""
    if value is None:
        return None
    text = str(value).strip()
    if not INTEGER.match(text):
        return None
    return int(text)


@dataclass
class Todo:
    """One task row."""
    id: int
    text: str
    completed: bool = False
    owner_id: int = 0

    def to_row(self) -> List[str]:
        """Serialize to the string cells written to the sheet."""
        return [
            str(self.id),
            self.text,
            "true" if self.completed else "false",
            str(self.owner_id),
        ]

    @classmethod
    def from_row(cls, row: List[str]) -> Optional["Todo"]:
        """
        Deserialize a sheet row.

        Returns None for cleared rows and rows whose id or owner cell is
        not an integer; those rows are skipped by every query.
        """
        cells = list(row) + [""] * (len(HEADER) - len(row))
        todo_id = parse_int(cells[COL_ID])
        owner_id = parse_int(cells[COL_OWNER])
        if todo_id is None or owner_id is None:
            return None
        return cls(
            id=todo_id,
            text=cells[COL_TEXT],
            completed=cells[COL_COMPLETED] == "true",
            owner_id=owner_id,
        )
