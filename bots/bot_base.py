#!/usr/bin/env python3
"""
Todo Bot Base
─────────────
Shared plumbing for the Telegram todo bot.

Components:
    BotConfig       — loads YAML config, resolves token / sheet settings from env
    AuditLogger     — appends structured JSON lines to audit log
    BotBase         — base class with auth, logging, error handling, lifecycle

Dependencies:
    pip install python-telegram-bot==20.* pyyaml python-dotenv

Usage:
    See todo_bot.py
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import yaml
from dotenv import load_dotenv
from telegram import BotCommand, Update
from telegram.ext import Application, ContextTypes

logger = logging.getLogger(__name__)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Utilities
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def utc_now() -> str:
    """ISO-8601 UTC timestamp."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Exceptions
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class ConfigError(Exception):
    """Raised when configuration is invalid or incomplete."""
    pass


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# BotConfig — configuration loader
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class BotConfig:
    """
    Loads and exposes config for the bot.

    Reads the YAML config (all keys optional), resolves the bot token,
    spreadsheet id and credentials file from environment variables,
    sets up the audit path, and builds the user allowlist.
    """

    def __init__(self, config_path: str):
        raw = {}
        if config_path and Path(config_path).exists():
            with open(config_path) as f:
                raw = yaml.safe_load(f) or {}

        self.global_cfg = raw.get("global", {}) or {}
        self.bot_cfg = raw.get("bot", {}) or {}
        self.bot_name = self.bot_cfg.get("name", "todo_bot")
        self.log_level = str(self.global_cfg.get("log_level", "INFO")).upper()

        # ── Resolve secrets from environment ──
        self.token = self._require_env(
            self.bot_cfg.get("token_env", "BOT_TOKEN"),
            "your_bot_token",
            "Get a token from @BotFather on Telegram.",
        )
        self.spreadsheet_id = self._require_env(
            self.bot_cfg.get("spreadsheet_env", "SPREADSHEET_ID"),
            "your_spreadsheet_id",
            "It is the long id in the sheet URL: "
            "https://docs.google.com/spreadsheets/d/<id>/edit",
        )
        credentials_env = self.bot_cfg.get(
            "credentials_env", "GOOGLE_APPLICATION_CREDENTIALS"
        )
        self.credentials_path = self._require_env(
            credentials_env,
            "/path/to/service-account.json",
            "Download a JSON key for your Google Cloud service account.",
        )
        if not Path(self.credentials_path).is_file():
            raise ConfigError(
                f"Credentials file not found: {self.credentials_path}\n"
                f"Point {credentials_env} at your service account JSON key."
            )

        self.sheet_name = self.bot_cfg.get("sheet_name", "Todos")

        # ── Allowlist (numeric Telegram user IDs as strings for comparison) ──
        self.allowed_users = [
            str(uid) for uid in self.bot_cfg.get("allowed_users", []) or []
        ]

        # ── Audit log path ──
        audit_path_str = self.global_cfg.get(
            "audit_log", "/var/log/todo-bot/audit.jsonl"
        )
        self.audit_log = Path(audit_path_str)
        try:
            self.audit_log.parent.mkdir(parents=True, exist_ok=True)
            self.audit_log.touch(exist_ok=True)
        except PermissionError:
            fallback = Path(__file__).parent.parent / "logs" / "audit.jsonl"
            fallback.parent.mkdir(parents=True, exist_ok=True)
            fallback.touch(exist_ok=True)
            self.audit_log = fallback
            logger.warning(
                f"Cannot write to {audit_path_str}, using {fallback}"
            )

    @staticmethod
    def _require_env(name: str, example: str, hint: str) -> str:
        value = os.environ.get(name, "").strip()
        if not value:
            raise ConfigError(
                f"Environment variable {name} is not set.\n"
                f"Set it:  export {name}={example}\n"
                f"{hint}"
            )
        return value

    def is_authorized(self, user_id: int) -> bool:
        """Empty allowlist means everyone is allowed."""
        if not self.allowed_users:
            return True
        return str(user_id) in self.allowed_users


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# AuditLogger — structured JSON audit trail
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class AuditLogger:
    """
    Appends structured JSON audit entries to a .jsonl file.
    Every add, toggle, delete and rejected access is recorded.
    """

    def __init__(self, log_path: Path, bot: str = "todo_bot"):
        self.log_path = log_path
        self.bot = bot

    def log(
        self,
        user_id: int,
        username: str,
        action: str,
        todo_id,
        status: str,
        **extra,
    ):
        """Append one audit entry. Extra kwargs are merged in."""
        entry = {
            "ts": utc_now(),
            "user_id": user_id,
            "username": username,
            "bot": self.bot,
            "action": action,
            "todo_id": todo_id,
            "status": status,
        }
        # Merge extras, filtering None values for cleanliness
        for k, v in extra.items():
            if v is not None:
                entry[k] = v

        try:
            with open(self.log_path, "a") as f:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except Exception as e:
            logger.error(f"Failed to write audit log: {e}")


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# BotBase — base class for the bot
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class BotBase:
    """
    Base class for Telegram bots.

    Subclass contract:
        1. Call super().__init__(config_path)
        2. Override register_handlers() — call super() then add own handlers
        3. Call self.run() to start the bot

    Provides:
        - User authorization (optional numeric Telegram ID allowlist)
        - Structured audit logging
        - Global error handler (logs, never crashes the polling loop)
        - Command menu registration and polling lifecycle
    """

    # (command, description) pairs shown in the Telegram command menu
    menu_commands: list = []

    def __init__(self, config_path: str):
        load_dotenv()
        self.cfg = BotConfig(config_path)
        self.audit = AuditLogger(self.cfg.audit_log, self.cfg.bot_name)

        logging.basicConfig(
            level=getattr(logging, self.cfg.log_level, logging.INFO),
            format=f"%(asctime)s [{self.cfg.bot_name}] %(levelname)s: %(message)s",
            handlers=[logging.StreamHandler(sys.stdout)],
        )

    # ──────────────────────────────────────────
    # Auth helpers
    # ──────────────────────────────────────────

    def _is_authorized(self, update: Update) -> bool:
        """Check if the sender is in the allowlist."""
        return self.cfg.is_authorized(update.effective_user.id)

    async def _reject_unauthorized(self, update: Update):
        """Log, audit and reply to unauthorized access attempts."""
        user = update.effective_user
        logger.warning(
            f"Unauthorized access attempt: user_id={user.id}, "
            f"username={user.username}, name={user.full_name}"
        )
        self.audit.log(
            user_id=user.id,
            username=user.username or "",
            action="UNAUTHORIZED",
            todo_id=None,
            status="rejected",
        )
        if update.callback_query:
            await update.callback_query.answer("⛔ Unauthorized.")
            return
        await update.effective_message.reply_text(
            "⛔ Unauthorized. This incident has been logged."
        )

    # ──────────────────────────────────────────
    # Error boundary
    # ──────────────────────────────────────────

    async def handle_error(
        self, update: object, context: ContextTypes.DEFAULT_TYPE
    ):
        """Log any exception a handler let escape; the bot keeps polling."""
        update_id = update.update_id if isinstance(update, Update) else None
        logger.error(
            f"Error while handling update {update_id}:",
            exc_info=context.error,
        )

    # ──────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────

    def register_handlers(self, app: Application):
        """
        Register the shared error handler.
        Subclasses MUST call super().register_handlers(app)
        before adding their own handlers.
        """
        app.add_error_handler(self.handle_error)

    async def set_bot_commands(self, app: Application):
        """Set command suggestions in Telegram UI (autocomplete menu)."""
        commands = [
            BotCommand(name, desc[:256]) for name, desc in self.menu_commands
        ]
        await app.bot.set_my_commands(commands)

    async def post_init(self, app: Application):
        """Hook run once the application is initialized."""
        await self.set_bot_commands(app)

    def run(self):
        """Build Telegram Application, register handlers, and start polling."""
        app = Application.builder().token(self.cfg.token).build()
        self.register_handlers(app)
        app.post_init = self.post_init
        logger.info(f"Starting {self.cfg.bot_name}…")
        app.run_polling(drop_pending_updates=True)
