"""Telegram bot for session notifications and remote stop."""

import asyncio
import logging
import threading
from typing import Optional

from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.ext import (
    Application,
    CommandHandler,
    CallbackQueryHandler,
    ContextTypes,
)

from tradesim.config import settings
from tradesim.engine.events import Event, SessionCompleted, TradeFinalized
from tradesim.engine.session import SessionController

logger = logging.getLogger(__name__)


def format_event(event: Event) -> str | None:
    """Notification text for an event, or None if it is not worth a message."""
    if isinstance(event, TradeFinalized):
        return (
            f"Trade ended: {event.instrument}\n"
            f"Status: {event.status}, P/L: ${float(event.pnl):+.2f}"
        )
    if isinstance(event, SessionCompleted):
        return (
            f"Session {event.session_id[:8]} complete: {event.reason}\n"
            f"Trades: {event.trade_count}, net P/L: ${float(event.net_pnl):+.2f}"
        )
    return None


class TelegramBot:
    """Telegram bot running in a background thread with its own event loop.

    Commands that touch sessions are handed to the controller's loop.
    """

    def __init__(
        self,
        token: str,
        chat_ids: list[int],
        controller: SessionController,
        controller_loop: asyncio.AbstractEventLoop,
    ):
        self.token = token
        self.chat_ids = set(chat_ids)
        self.controller = controller
        self.controller_loop = controller_loop
        self._app: Optional[Application] = None
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _is_authorized(self, user_id: int) -> bool:
        return user_id in self.chat_ids

    async def _check_auth(self, update: Update) -> bool:
        if not update.effective_user or not self._is_authorized(update.effective_user.id):
            if update.message:
                await update.message.reply_text("Unauthorized.")
            return False
        return True

    def status_text(self) -> str:
        """Summary of running sessions; call on the controller loop."""
        running = [h for h in self.controller.sessions.values() if not h.is_complete]
        if not running:
            return "No running sessions."
        lines = []
        for handle in running:
            lines.append(
                f"{handle.id[:8]} {handle.account_mode}/{handle.trade_category}: "
                f"{len(handle.active_trades)}/{len(handle.trades)} active, "
                f"net ${float(handle.net_pnl):+.2f}"
            )
        return "\n".join(lines)

    async def _cmd_status(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        if not await self._check_auth(update):
            return
        future = asyncio.run_coroutine_threadsafe(self._status_on_controller_loop(), self.controller_loop)
        await update.message.reply_text(await asyncio.wrap_future(future))

    async def _status_on_controller_loop(self) -> str:
        return self.status_text()

    async def _cmd_stop_all(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        if not await self._check_auth(update):
            return

        keyboard = InlineKeyboardMarkup([
            [
                InlineKeyboardButton("Yes, stop everything", callback_data="confirm_stop_all"),
                InlineKeyboardButton("Cancel", callback_data="cancel"),
            ]
        ])
        await update.message.reply_text(
            "Stop all running sessions? Active trades lose their full stake.",
            reply_markup=keyboard,
        )

    async def _handle_callback(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        query = update.callback_query
        if not query or not query.from_user or not self._is_authorized(query.from_user.id):
            return

        await query.answer()

        if query.data == "cancel":
            await query.edit_message_text("Cancelled.")
            return

        if query.data == "confirm_stop_all":
            await query.edit_message_text("Stopping all sessions...")
            future = asyncio.run_coroutine_threadsafe(self.controller.stop_all(), self.controller_loop)
            forced = await asyncio.wrap_future(future)
            await query.edit_message_text(f"Stopped. {forced} active trade(s) closed.")

    def notify(self, event: Event):
        """Event-bus listener; forwards to Telegram without blocking the engine."""
        text = format_event(event)
        if text is None or not self._loop:
            return
        asyncio.run_coroutine_threadsafe(self.send_notification(text), self._loop)

    async def send_notification(self, message: str):
        """Send a message to all whitelisted chat IDs."""
        if not self._app or not self._app.bot:
            return
        for chat_id in self.chat_ids:
            try:
                await self._app.bot.send_message(chat_id=chat_id, text=message)
            except Exception as e:
                logger.warning(f"Failed to send Telegram notification to {chat_id}: {e}")

    def _run_bot(self):
        """Run the bot in a background thread with its own event loop."""
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)

        self._app = (
            Application.builder()
            .token(self.token)
            .build()
        )

        self._app.add_handler(CommandHandler("status", self._cmd_status))
        self._app.add_handler(CommandHandler("stop_all", self._cmd_stop_all))
        self._app.add_handler(CallbackQueryHandler(self._handle_callback))

        logger.info("Telegram bot starting...")
        self._loop.run_until_complete(self._app.initialize())
        self._loop.run_until_complete(self._app.start())
        self._loop.run_until_complete(self._app.updater.start_polling())
        self._loop.run_forever()

    def start(self):
        self.controller.events.add_listener(self.notify)
        self._thread = threading.Thread(target=self._run_bot, daemon=True)
        self._thread.start()

    def stop(self):
        self.controller.events.remove_listener(self.notify)
        if self._loop and self._app:
            async def _shutdown():
                await self._app.updater.stop()
                await self._app.stop()
                await self._app.shutdown()

            asyncio.run_coroutine_threadsafe(_shutdown(), self._loop).result(timeout=10)
            self._loop.call_soon_threadsafe(self._loop.stop)


def init_bot(controller: SessionController) -> TelegramBot:
    """Build the bot from settings, bound to the running controller loop."""
    return TelegramBot(
        token=settings.telegram_bot_token,
        chat_ids=settings.telegram_chat_ids,
        controller=controller,
        controller_loop=asyncio.get_running_loop(),
    )
