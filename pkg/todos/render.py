"""
Telegram views for the todo bot.

Pure functions: each returns (text, buttons) where buttons is a list of rows
of (label, callback value) pairs. Formatted views are MarkdownV2; every
fragment goes through escape() so user text can never break the markup.
"""
from typing import List, Sequence, Tuple

from telegram.helpers import escape_markdown

from .schema import ListMode, PendingAction, Todo

Buttons = List[List[Tuple[str, str]]]

# Callback values carried by the inline buttons
CB_LIST = "list"
CB_ADD = "add"
CB_COMPLETE = "complete"
CB_DELETE = "delete"

BACK_ROW = [("🔙 Back to List", CB_LIST)]
VIEW_LIST_ROW = [("📋 View Todo List", CB_LIST)]
OPEN_LIST_ROW = [("📋 Open Todo List", CB_LIST)]

# Telegram rejects messages over 4096 characters
MAX_LIST_CHARS = 3500
MAX_TODO_CHARS = 300


def escape(text: str) -> str:
    return escape_markdown(text, version=2)


def bold(text: str) -> str:
    return f"*{escape(text)}*"


def format_todo(todo: Todo) -> str:
    """`✅ *3*: Buy milk` — one line per todo."""
    status = "✅" if todo.completed else "⬜️"
    text = todo.text
    if len(text) > MAX_TODO_CHARS:
        text = text[:MAX_TODO_CHARS] + "…"
    return f"{status} {bold(str(todo.id))}: {escape(text)}"


def format_lines(todos: Sequence[Todo], max_chars: int = MAX_LIST_CHARS) -> str:
    """
    One line per todo, cut to fit in a single message.

    Whole lines are dropped, never split, so the markup stays valid; the
    last line says how many were left out.
    """
    lines = []
    used = 0
    for shown, todo in enumerate(todos):
        line = format_todo(todo)
        if used + len(line) + 1 > max_chars:
            lines.append(escape(f"…and {len(todos) - shown} more"))
            break
        lines.append(line)
        used += len(line) + 1
    return "\n".join(lines)


def render_list(todos: Sequence[Todo], mode: ListMode = ListMode.BROWSE) -> Tuple[str, Buttons]:
    """
    List view in sheet order.

    An empty list always gets the empty view with just an add button.
    BROWSE attaches the full action bar; PICK (the user is about to type an
    id) attaches only a back button.
    """
    if not todos:
        text = (
            bold("📋 Your Todo List is Empty")
            + "\n\n"
            + escape("You have no todos yet. Add your first task!")
        )
        return text, [[("➕ Add Todo", CB_ADD)]]

    lines = format_lines(todos)

    if mode is ListMode.PICK:
        return f"{bold('Your Todos:')}\n{lines}", [list(BACK_ROW)]

    text = f"📋 {bold('Your Todo List:')}\n\n{lines}"
    buttons = [[
        ("➕ Add", CB_ADD),
        ("✅ Complete", CB_COMPLETE),
        ("🗑️ Delete", CB_DELETE),
    ]]
    return text, buttons


def render_pick_prompt(todos: Sequence[Todo], action: PendingAction) -> Tuple[str, Buttons]:
    """Numbered list plus "type the id" prompt for the complete/delete flows."""
    if action is PendingAction.AWAITING_COMPLETE_ID:
        title = "✅ Enter Todo Number to Toggle"
        hint = "Type the number of the todo you want to mark as complete/incomplete."
    else:
        title = "🗑️ Enter Todo Number to Delete"
        hint = "Type the number of the todo you want to delete."

    body, buttons = render_list(todos, ListMode.PICK)
    return f"{bold(title)}\n\n{escape(hint)}\n\n{body}", buttons


def render_welcome() -> Tuple[str, Buttons]:
    text = "\n".join([
        f"🤖 {bold('Welcome to Todo Bot!')} 📝",
        "",
        escape("I can help you manage your tasks efficiently."),
        "",
        bold("Use the buttons below to:"),
        "📋 " + escape("View your todo list"),
        "➕ " + escape("Add new tasks"),
        "✅ " + escape("Mark tasks as complete/incomplete"),
        "🗑️ " + escape("Delete tasks"),
        "",
        escape("Let's get organized! Tap a button below to begin."),
    ])
    return text, [[("📋 List", CB_LIST), ("➕ Add", CB_ADD)]]


def render_add_prompt() -> Tuple[str, Buttons]:
    """Plain text (no markup)."""
    text = (
        "Please send me the task you want to add.\n\n"
        "Just type your todo text as a reply to this message."
    )
    return text, [list(BACK_ROW)]
