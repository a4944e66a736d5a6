"""
Per-user pending action tracking.

In-memory only: a restart drops every pending action, which is fine since
each one is a single follow-up message.
"""
from typing import Dict

from .schema import PendingAction


class SessionStore:
    """user_id → PendingAction. Missing users are PendingAction.NONE."""

    def __init__(self):
        self._pending: Dict[int, PendingAction] = {}

    def get(self, owner_id: int) -> PendingAction:
        return self._pending.get(owner_id, PendingAction.NONE)

    def set(self, owner_id: int, action: PendingAction):
        self._pending[owner_id] = action

    def reset(self, owner_id: int):
        self._pending[owner_id] = PendingAction.NONE
