#!/usr/bin/env python3
"""
Todo Bot
─────────
Personal todo lists over Telegram, stored in a Google Sheet.

Everything happens through inline buttons:

  📋 List      — show your todos
  ➕ Add       — next message you send becomes a todo
  ✅ Complete  — next message is the id of a todo to toggle
  🗑️ Delete    — next message is the id of a todo to delete

Setup:
    export BOT_TOKEN=your_token
    export SPREADSHEET_ID=your_spreadsheet_id
    export GOOGLE_APPLICATION_CREDENTIALS=/path/to/service-account.json
    python bots/todo_bot.py

The spreadsheet must have a tab named "Todos" and be shared (Editor) with
the service account. The header row is created on first start.
"""

import logging
import sys
from pathlib import Path

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.error import BadRequest
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

sys.path.insert(0, str(Path(__file__).parent))
sys.path.insert(0, str(Path(__file__).parent.parent))
from bot_base import BotBase, ConfigError
from pkg.todos import sheets
from pkg.todos.dispatcher import Reply, TodoDispatcher
from pkg.todos.render import CB_ADD, CB_COMPLETE, CB_DELETE, CB_LIST
from pkg.todos.session import SessionStore
from pkg.todos.sheets import SheetSetupError
from pkg.todos.store import TodoStore

logger = logging.getLogger(__name__)

CONFIG_PATH = Path(__file__).parent.parent / "config" / "todo_bot.yaml"

BUTTON_PATTERN = f"^({CB_LIST}|{CB_ADD}|{CB_COMPLETE}|{CB_DELETE})$"


def build_keyboard(buttons) -> InlineKeyboardMarkup | None:
    """Rows of (label, value) → Telegram inline keyboard."""
    if not buttons:
        return None
    return InlineKeyboardMarkup([
        [InlineKeyboardButton(label, callback_data=value) for label, value in row]
        for row in buttons
    ])


class TodoBot(BotBase):
    """
    Telegram front-end for TodoDispatcher.
    Converts updates into dispatcher calls and Reply values into messages.
    """

    menu_commands = [("start", "Open the todo menu")]

    def __init__(self, config_path: str = str(CONFIG_PATH), rows=None):
        super().__init__(config_path)

        if rows is None:
            try:
                rows = sheets.connect(
                    self.cfg.spreadsheet_id,
                    self.cfg.credentials_path,
                    self.cfg.sheet_name,
                )
            except (ValueError, OSError) as e:
                raise ConfigError(
                    f"Could not load credentials from "
                    f"{self.cfg.credentials_path}: {e}"
                ) from e

        self.store = TodoStore(rows)
        self.sessions = SessionStore()
        self.dispatcher = TodoDispatcher(self.store, self.sessions, audit=self.audit)

    def register_handlers(self, app: Application):
        super().register_handlers(app)
        app.add_handler(CommandHandler("start", self.cmd_start))
        app.add_handler(CallbackQueryHandler(self.on_button, pattern=BUTTON_PATTERN))
        # Commands other than /start land here too; the dispatcher answers them.
        app.add_handler(
            MessageHandler(filters.UpdateType.MESSAGE & filters.TEXT, self.on_text)
        )

    # ── Handlers ─────────────────────────────────────────────────────────────

    async def cmd_start(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        if not self._is_authorized(update):
            await self._reject_unauthorized(update)
            return

        reply = await self.dispatcher.handle_command(update.effective_user.id, "start")
        await self._send(update, reply)

    async def on_button(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        if not self._is_authorized(update):
            await self._reject_unauthorized(update)
            return

        query = update.callback_query
        reply = await self.dispatcher.handle_callback(update.effective_user.id, query.data)
        await query.answer(reply.notice)
        await self._send(update, reply)

    async def on_text(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        if not self._is_authorized(update):
            await self._reject_unauthorized(update)
            return

        user = update.effective_user
        text = update.message.text
        logger.info(f"{user.first_name} wrote {text}")

        reply = await self.dispatcher.handle_text(user.id, text, user.username or "")
        await self._send(update, reply)

    # ── Output ───────────────────────────────────────────────────────────────

    async def _send(self, update: Update, reply: Reply):
        """Edit the button's message when asked to, otherwise send a new one."""
        markup = build_keyboard(reply.buttons)

        if reply.edit and update.callback_query:
            try:
                await update.callback_query.edit_message_text(
                    reply.text,
                    parse_mode=reply.parse_mode,
                    reply_markup=markup,
                )
            except BadRequest as e:
                # Same button pressed twice: nothing changed on screen
                if "message is not modified" not in str(e).lower():
                    raise
                logger.debug("Edit skipped, message not modified")
            return

        await update.effective_message.reply_text(
            reply.text,
            parse_mode=reply.parse_mode,
            reply_markup=markup,
        )


def main():
    try:
        bot = TodoBot()
    except (ConfigError, SheetSetupError) as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)
    bot.run()


if __name__ == "__main__":
    main()
