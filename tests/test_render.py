"""
Tests for the Telegram views.

Covers:
    - render_list()         — empty view, browse view, pick view
    - render_pick_prompt()  — complete / delete prompts
    - MarkdownV2 escaping of user text
"""

from pkg.todos.render import (
    CB_ADD,
    CB_COMPLETE,
    CB_DELETE,
    CB_LIST,
    escape,
    format_todo,
    render_add_prompt,
    render_list,
    render_pick_prompt,
    render_welcome,
)
from pkg.todos.schema import ListMode, PendingAction, Todo


def todo(id, text="task", completed=False):
    return Todo(id=id, text=text, completed=completed, owner_id=1)


class TestFormatTodo:

    def test_unchecked(self):
        assert format_todo(todo(3, "Buy milk")) == "⬜️ *3*: Buy milk"

    def test_checked(self):
        assert format_todo(todo(3, "Buy milk", True)) == "✅ *3*: Buy milk"

    def test_user_text_is_escaped(self):
        line = format_todo(todo(1, "fix_bug *now* (v1.2)!"))
        assert line.endswith(r"fix\_bug \*now\* \(v1\.2\)\!")


class TestRenderList:

    def test_empty_has_only_add(self):
        text, buttons = render_list([])
        assert "Empty" in text
        assert buttons == [[("➕ Add Todo", CB_ADD)]]

    def test_empty_ignores_mode(self):
        assert render_list([], ListMode.PICK) == render_list([], ListMode.BROWSE)

    def test_browse_keeps_order_and_action_bar(self):
        text, buttons = render_list([todo(5, "b"), todo(2, "a")])
        assert text.index("*5*") < text.index("*2*")
        assert [v for _, v in buttons[0]] == [CB_ADD, CB_COMPLETE, CB_DELETE]

    def test_pick_has_only_back(self):
        text, buttons = render_list([todo(1)], ListMode.PICK)
        assert "Your Todos" in text
        assert buttons == [[("🔙 Back to List", CB_LIST)]]


class TestPrompts:

    def test_complete_prompt(self):
        text, buttons = render_pick_prompt([todo(1)], PendingAction.AWAITING_COMPLETE_ID)
        assert "Toggle" in text
        assert "*1*" in text
        assert buttons == [[("🔙 Back to List", CB_LIST)]]

    def test_delete_prompt(self):
        text, _ = render_pick_prompt([todo(1)], PendingAction.AWAITING_DELETE_ID)
        assert "Delete" in text

    def test_welcome_buttons(self):
        _, buttons = render_welcome()
        assert [v for _, v in buttons[0]] == [CB_LIST, CB_ADD]

    def test_welcome_is_escaped(self):
        text, _ = render_welcome()
        assert escape("efficiently.") in text
        assert "efficiently." not in text

    def test_add_prompt_is_plain(self):
        text, buttons = render_add_prompt()
        assert "\\" not in text
        assert buttons == [[("🔙 Back to List", CB_LIST)]]


class TestLongLists:

    def test_long_list_fits_one_message(self):
        todos = [todo(i, "x" * 60) for i in range(1, 201)]
        text, _ = render_list(todos)
        shown = text.count("⬜️")
        assert len(text) < 4096
        assert 0 < shown < 200
        assert text.endswith(escape(f"…and {200 - shown} more"))

    def test_long_pick_prompt_fits_one_message(self):
        todos = [todo(i, "x" * 60) for i in range(1, 201)]
        text, _ = render_pick_prompt(todos, PendingAction.AWAITING_DELETE_ID)
        assert len(text) < 4096

    def test_short_list_is_complete(self):
        text, _ = render_list([todo(1), todo(2)])
        assert "more" not in text

    def test_huge_todo_text_is_cut(self):
        line = format_todo(todo(1, "*" * 5000))
        assert len(line) < 700
        assert line.endswith("…")
