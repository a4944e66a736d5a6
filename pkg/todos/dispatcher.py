"""
Todo bot state machine.

Maps (pending action, incoming event) to (store operation, next pending
action, reply). Transport-agnostic: handlers return a Reply and the bot layer
turns it into Telegram calls.

Pending action policy:
  - button presses and /start clear the pending action first
  - other commands leave it untouched
  - a non-numeric id keeps the user in the same pending action
  - an unknown id, a store failure, or a finished flow clears it
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from .render import (
    BACK_ROW,
    CB_ADD,
    CB_COMPLETE,
    CB_DELETE,
    CB_LIST,
    OPEN_LIST_ROW,
    VIEW_LIST_ROW,
    Buttons,
    render_add_prompt,
    render_list,
    render_pick_prompt,
    render_welcome,
)
from .schema import ListMode, PendingAction, Todo, parse_int
from .session import SessionStore
from .sheets import StoreError
from .store import TodoStore

logger = logging.getLogger(__name__)

MARKDOWN_V2 = "MarkdownV2"


@dataclass
class Reply:
    """What to show the user in response to one event."""
    text: str
    buttons: Buttons = field(default_factory=list)
    parse_mode: Optional[str] = None
    edit: bool = False             # Replace the message the button sat on
    notice: Optional[str] = None   # Toast shown when acknowledging a button


class TodoDispatcher:
    """Routes commands, button presses and free text for every user."""

    def __init__(self, store: TodoStore, sessions: SessionStore = None, audit=None):
        self.store = store
        self.sessions = sessions or SessionStore()
        self.audit = audit

    # ──────────────────────────────────────────
    # Commands
    # ──────────────────────────────────────────

    async def handle_command(self, owner_id: int, name: str) -> Reply:
        if name == "start":
            self.sessions.reset(owner_id)
            text, buttons = render_welcome()
            return Reply(text, buttons, parse_mode=MARKDOWN_V2)

        return Reply(
            "✨ I now work with buttons instead of commands! ✨\n\n"
            "Tap the button below to access your todo list.",
            [list(OPEN_LIST_ROW)],
        )

    # ──────────────────────────────────────────
    # Buttons
    # ──────────────────────────────────────────

    async def handle_callback(self, owner_id: int, value: str) -> Reply:
        self.sessions.reset(owner_id)

        if value == CB_LIST:
            return await self._list_view(owner_id)
        if value == CB_ADD:
            text, buttons = render_add_prompt()
            self.sessions.set(owner_id, PendingAction.AWAITING_ADD_TEXT)
            return Reply(text, buttons, edit=True)
        if value == CB_COMPLETE:
            return await self._pick(owner_id, PendingAction.AWAITING_COMPLETE_ID)
        if value == CB_DELETE:
            return await self._pick(owner_id, PendingAction.AWAITING_DELETE_ID)

        logger.debug(f"Unknown callback {value!r} from user {owner_id}")
        return await self._list_view(owner_id)

    async def _list_view(self, owner_id: int, notice: str = None) -> Reply:
        try:
            todos = await asyncio.to_thread(self.store.list_by_owner, owner_id)
        except StoreError as e:
            return self._store_failed(owner_id, "list", e)
        text, buttons = render_list(todos, ListMode.BROWSE)
        return Reply(text, buttons, parse_mode=MARKDOWN_V2, edit=True, notice=notice)

    async def _pick(self, owner_id: int, action: PendingAction) -> Reply:
        """Complete/delete button: show numbered list and wait for an id."""
        try:
            todos = await asyncio.to_thread(self.store.list_by_owner, owner_id)
        except StoreError as e:
            return self._store_failed(owner_id, action.value, e)

        if not todos:
            verb = "complete" if action is PendingAction.AWAITING_COMPLETE_ID else "delete"
            text, buttons = render_list(todos, ListMode.BROWSE)
            return Reply(
                text,
                buttons,
                parse_mode=MARKDOWN_V2,
                edit=True,
                notice=f"You have no todos to {verb}!",
            )

        text, buttons = render_pick_prompt(todos, action)
        self.sessions.set(owner_id, action)
        return Reply(text, buttons, parse_mode=MARKDOWN_V2, edit=True)

    # ──────────────────────────────────────────
    # Free text
    # ──────────────────────────────────────────

    async def handle_text(self, owner_id: int, text: str, username: str = "") -> Reply:
        if text.startswith("/"):
            name = text[1:].split(maxsplit=1)[0] if len(text) > 1 else ""
            return await self.handle_command(owner_id, name.split("@")[0])

        pending = self.sessions.get(owner_id)

        if pending is PendingAction.AWAITING_ADD_TEXT:
            return await self._add(owner_id, text, username)
        if pending is PendingAction.AWAITING_COMPLETE_ID:
            return await self._toggle(owner_id, text, username)
        if pending is PendingAction.AWAITING_DELETE_ID:
            return await self._delete(owner_id, text, username)

        return Reply(
            "To manage your todos, please use the buttons provided. "
            "Tap below to get started:",
            [list(OPEN_LIST_ROW)],
        )

    async def _add(self, owner_id: int, text: str, username: str) -> Reply:
        if not text.strip():
            prompt, buttons = render_add_prompt()
            return Reply(prompt, buttons)

        self.sessions.reset(owner_id)
        try:
            todo_id = await asyncio.to_thread(self.store.next_id)
            todo = Todo(id=todo_id, text=text, completed=False, owner_id=owner_id)
            await asyncio.to_thread(self.store.add, todo)
        except StoreError as e:
            return self._store_failed(owner_id, "add", e)

        self._audit(owner_id, username, "add", todo_id, "ok", text=text)
        return Reply(f"✅ Added new todo: {text}", [list(VIEW_LIST_ROW)])

    async def _toggle(self, owner_id: int, text: str, username: str) -> Reply:
        todo_id = parse_int(text)
        if todo_id is None:
            return Reply("❌ Please enter a valid number.", [list(BACK_ROW)])

        self.sessions.reset(owner_id)
        try:
            todos = await asyncio.to_thread(self.store.list_by_owner, owner_id)
            todo = next((t for t in todos if t.id == todo_id), None)
            if todo is None:
                return self._not_found(todo_id)
            completed = not todo.completed
            updated = await asyncio.to_thread(
                self.store.set_completed, todo_id, owner_id, completed
            )
        except StoreError as e:
            return self._store_failed(owner_id, "toggle", e, todo_id)

        if not updated:
            return self._not_found(todo_id)

        self._audit(owner_id, username, "toggle", todo_id, "ok", completed=completed)
        status = "completed" if completed else "marked as pending"
        return Reply(f"✅ Todo {todo_id} {status}.", [list(VIEW_LIST_ROW)])

    async def _delete(self, owner_id: int, text: str, username: str) -> Reply:
        todo_id = parse_int(text)
        if todo_id is None:
            return Reply("❌ Please enter a valid number.", [list(BACK_ROW)])

        self.sessions.reset(owner_id)
        try:
            todos = await asyncio.to_thread(self.store.list_by_owner, owner_id)
            # Keep the text: the cleared row can't tell us what it held.
            todo = next((t for t in todos if t.id == todo_id), None)
            if todo is None:
                return self._not_found(todo_id)
            removed = await asyncio.to_thread(self.store.remove, todo_id, owner_id)
        except StoreError as e:
            return self._store_failed(owner_id, "delete", e, todo_id)

        if not removed:
            return self._not_found(todo_id)

        self._audit(owner_id, username, "delete", todo_id, "ok", text=todo.text)
        return Reply(f"🗑️ Deleted todo: {todo.text}", [list(VIEW_LIST_ROW)])

    # ──────────────────────────────────────────
    # Helpers
    # ──────────────────────────────────────────

    def _not_found(self, todo_id: int) -> Reply:
        return Reply(f"❌ Todo with ID {todo_id} not found.", [list(BACK_ROW)])

    def _store_failed(
        self, owner_id: int, operation: str, error: StoreError, todo_id: int = None
    ) -> Reply:
        """Log, drop the pending action, and ask the user to retry."""
        target = f" todo {todo_id}" if todo_id is not None else ""
        logger.error(
            f"Store failure during {operation}{target} for user {owner_id}: {error}"
        )
        self.sessions.reset(owner_id)
        return Reply(
            "❌ Sorry, I couldn't reach your todo list right now. "
            "Please try again in a moment.",
            [list(OPEN_LIST_ROW)],
        )

    def _audit(self, owner_id, username, action, todo_id, status, **extra):
        if self.audit is not None:
            self.audit.log(
                user_id=owner_id,
                username=username,
                action=action,
                todo_id=todo_id,
                status=status,
                **extra,
            )
