"""
Lumina Calendar — Telegram Bot.

Telegram is the presentation layer: it renders the month / week / day grids
as text and turns user intents (navigate, switch view, add, delete, free-text
smart events) into calls on the chat's CalendarSession.

Security-first: unauthorized users are silently ignored.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, Coroutine

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, ReplyKeyboardMarkup, ReplyKeyboardRemove, Update
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    ConversationHandler,
    MessageHandler,
    filters,
)

from src.bot.formatting import format_event_line, md, render_event_details, render_month, render_time_grid
from src.config import settings
from src.core import date_window
from src.core.calendar_session import CalendarSession, EventValidationError, SmartSubmitStatus
from src.core.date_window import ViewMode
from src.core.smart_parser import ParseFailure

if TYPE_CHECKING:
    from src.core.event_store import EventStore
    from src.ports.storage_port import StoragePort

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Security: silent-ignore decorator
# ---------------------------------------------------------------------------


def authorized_only(
    func: Callable[..., Coroutine[Any, Any, Any]],
) -> Callable[..., Coroutine[Any, Any, Any]]:
    """Decorator that silently ignores messages from unauthorized users.

    Does NOT send any response to strangers — the bot must not reveal
    its existence to unauthorized users.
    """

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> Any:
        user = update.effective_user
        if user is None or user.id not in settings.ALLOWED_USER_IDS:
            uid = user.id if user else "unknown"
            logger.warning("Unauthorized access attempt from user_id=%s", uid)
            return None  # Silent ignore
        return await func(update, context)

    return wrapper


# ---------------------------------------------------------------------------
# Session helpers
# ---------------------------------------------------------------------------


def _get_session(context: ContextTypes.DEFAULT_TYPE) -> CalendarSession:
    """Return this chat's session, creating it on first use."""
    session = context.chat_data.get("session")
    if session is None:
        store: EventStore = context.bot_data["store"]
        session = CalendarSession(store)
        context.chat_data["session"] = session
    return session


def render_view(session: CalendarSession) -> str:
    """Render the session's current view as a Markdown message."""
    if session.view_mode is ViewMode.MONTH:
        return render_month(session.title(), session.month_grid())
    return render_time_grid(session.title(), session.time_grid())


async def _reply_view(update: Update, session: CalendarSession) -> None:
    await update.message.reply_text(render_view(session), parse_mode="Markdown")


_SMART_FAILURE_TEXT = {
    ParseFailure.TIMEOUT: "The assistant took too long to answer.",
    ParseFailure.SERVICE_ERROR: "The assistant is unavailable right now.",
}


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — welcome message."""
    await update.message.reply_text(
        "Welcome to *Lumina*!\n\n"
        "• Send me a message like 'Dinner with Sophie tomorrow at 7pm' to create an event\n"
        "• Use /month, /week or /day to switch views\n"
        "• Use /prev, /next and /today to move around\n"
        "• Use /add to create an event step by step\n\n"
        "Type /help for the full command list.",
        parse_mode="Markdown",
    )


@authorized_only
async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help — list available commands."""
    await update.message.reply_text(
        "*Available commands:*\n"
        "/month — Month view\n"
        "/week — Week view\n"
        "/day — Day view\n"
        "/prev, /next — Step back or forward one month/week/day\n"
        "/today — Jump to today\n"
        "/goto YYYY-MM-DD — Jump to a date\n"
        "/add — Create an event\n"
        "/delete — Delete an event in the current view\n"
        "/help — Show this message",
        parse_mode="Markdown",
    )


async def _show_mode(update: Update, context: ContextTypes.DEFAULT_TYPE, mode: ViewMode) -> None:
    session = _get_session(context)
    session.set_view(mode)
    await _reply_view(update, session)


@authorized_only
async def cmd_month(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /month."""
    await _show_mode(update, context, ViewMode.MONTH)


@authorized_only
async def cmd_week(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /week."""
    await _show_mode(update, context, ViewMode.WEEK)


@authorized_only
async def cmd_day(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /day."""
    await _show_mode(update, context, ViewMode.DAY)


@authorized_only
async def cmd_prev(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    session = _get_session(context)
    session.prev()
    await _reply_view(update, session)


@authorized_only
async def cmd_next(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    session = _get_session(context)
    session.next()
    await _reply_view(update, session)


@authorized_only
async def cmd_today(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    session = _get_session(context)
    session.go_today()
    await _reply_view(update, session)


@authorized_only
async def cmd_goto(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /goto YYYY-MM-DD — select a date like the sidebar navigator."""
    args = context.args
    if not args:
        await update.message.reply_text("Usage: /goto YYYY-MM-DD")
        return

    try:
        target = date.fromisoformat(args[0])
    except ValueError:
        await update.message.reply_text("Invalid date. Use the format YYYY-MM-DD.")
        return

    session = _get_session(context)
    session.select_date(target)
    await _reply_view(update, session)


# ---------------------------------------------------------------------------
# /add conversation — manual event form
# ---------------------------------------------------------------------------

(
    ADD_TITLE,
    ADD_DATE,
    ADD_START,
    ADD_END,
    ADD_COLOR,
) = range(5)

_COLORS = {
    "blue": "#3b82f6",
    "indigo": "#6366f1",
    "green": "#22c55e",
    "red": "#ef4444",
    "amber": "#f59e0b",
}


def _parse_day(text: str, today: date | None = None) -> date | None:
    """Parse 'today', 'tomorrow' or YYYY-MM-DD. Returns None if invalid."""
    text = text.strip().lower()
    today = today or date.today()
    if text == "today":
        return today
    if text == "tomorrow":
        return today + timedelta(days=1)
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def _parse_hhmm(text: str) -> str | None:
    """Validate an HH:MM time, returning it normalized or None."""
    try:
        return datetime.strptime(text.strip(), "%H:%M").strftime("%H:%M")
    except ValueError:
        return None


def _parse_color(text: str) -> str | None:
    text = text.strip().lower()
    if text in _COLORS:
        return _COLORS[text]
    if text.startswith("#") and len(text) in (4, 7):
        return text
    return None


@authorized_only
async def cmd_add(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Handle /add — start the manual event conversation."""
    await update.message.reply_text("What's the event title?")
    return ADD_TITLE


async def add_title(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Receive title, ask for date."""
    title = update.message.text.strip()
    if not title:
        await update.message.reply_text("The title can't be empty. What's the event title?")
        return ADD_TITLE
    context.user_data["add_title"] = title
    keyboard = ReplyKeyboardMarkup(
        [["Today", "Tomorrow"]],
        one_time_keyboard=True,
        resize_keyboard=True,
    )
    await update.message.reply_text(
        "Which day? Pick one or type a date (YYYY-MM-DD).",
        reply_markup=keyboard,
    )
    return ADD_DATE


async def add_date(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Receive date, ask for start time."""
    session = _get_session(context)
    day = _parse_day(update.message.text, today=date_window.today(tz=session.zone))
    if day is None:
        await update.message.reply_text("Please enter 'today', 'tomorrow' or a date like 2025-03-14.")
        return ADD_DATE
    context.user_data["add_date"] = day
    keyboard = ReplyKeyboardMarkup(
        [["09:00", "12:00", "18:00"]],
        one_time_keyboard=True,
        resize_keyboard=True,
    )
    await update.message.reply_text("Start time? (HH:MM)", reply_markup=keyboard)
    return ADD_START


async def add_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Receive start time, ask for end time."""
    start = _parse_hhmm(update.message.text)
    if start is None:
        await update.message.reply_text("Please enter a time like 09:00.")
        return ADD_START
    context.user_data["add_start"] = start
    await update.message.reply_text("End time? (HH:MM)", reply_markup=ReplyKeyboardRemove())
    return ADD_END


async def add_end(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Receive end time, ask for color."""
    end = _parse_hhmm(update.message.text)
    if end is None:
        await update.message.reply_text("Please enter a time like 10:00.")
        return ADD_END
    context.user_data["add_end"] = end
    keyboard = ReplyKeyboardMarkup(
        [[name.capitalize() for name in _COLORS]],
        one_time_keyboard=True,
        resize_keyboard=True,
    )
    await update.message.reply_text(
        "Pick a color, or type a hex code like #3b82f6.",
        reply_markup=keyboard,
    )
    return ADD_COLOR


async def add_color(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Receive color and create the event."""
    color = _parse_color(update.message.text)
    if color is None:
        await update.message.reply_text("Unknown color. Pick one of the buttons or send a hex code.")
        return ADD_COLOR

    session = _get_session(context)
    data = context.user_data
    try:
        event = session.add_manual_event(
            title=data["add_title"],
            day=data["add_date"],
            start_time=data["add_start"],
            end_time=data["add_end"],
            color=color,
        )
    except (EventValidationError, KeyError) as exc:
        logger.warning("/add rejected: %s", exc)
        await update.message.reply_text(
            "Couldn't create that event. Please start again with /add.",
            reply_markup=ReplyKeyboardRemove(),
        )
        _clear_add_data(context)
        return ConversationHandler.END

    _clear_add_data(context)
    await update.message.reply_text(
        f"✅ Added *{md(event.title)}*\n{format_event_line(event, escape=True)} on {event.start:%a %d %b}",
        parse_mode="Markdown",
        reply_markup=ReplyKeyboardRemove(),
    )
    return ConversationHandler.END


async def add_cancel(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Handle /cancel during the /add conversation."""
    _clear_add_data(context)
    await update.message.reply_text("Event creation cancelled.", reply_markup=ReplyKeyboardRemove())
    return ConversationHandler.END


def _clear_add_data(context: ContextTypes.DEFAULT_TYPE) -> None:
    """Remove /add conversation keys from user_data."""
    for key in ("add_title", "add_date", "add_start", "add_end"):
        context.user_data.pop(key, None)


# ---------------------------------------------------------------------------
# /delete — inline buttons for events in the current view
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_delete(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /delete — show events in the visible window as buttons."""
    session = _get_session(context)
    events = session.visible_events()

    if not events:
        await update.message.reply_text("No events in the current view.")
        return

    keyboard = [
        [InlineKeyboardButton(
            f"{ev.start:%d %b} {format_event_line(ev)}", callback_data=f"delevent:{ev.id}",
        )]
        for ev in events
    ]
    await update.message.reply_text(
        "Which event do you want to delete?",
        reply_markup=InlineKeyboardMarkup(keyboard),
    )


async def _handle_delete_callback(
    update: Update, context: ContextTypes.DEFAULT_TYPE
) -> None:
    """Handle the inline button tap to delete an event."""
    query = update.callback_query
    await query.answer()

    # Verify the user is authorized
    user = query.from_user
    if user is None or user.id not in settings.ALLOWED_USER_IDS:
        return

    event_id = query.data.split(":", 1)[1]
    session = _get_session(context)
    event = session.store.get(event_id)

    if event is None or not session.delete_event(event_id):
        await query.edit_message_text("Event not found or already deleted.")
        return

    await query.edit_message_text(
        f"🗑 Deleted:\n{render_event_details(event)}", parse_mode="Markdown",
    )


# ---------------------------------------------------------------------------
# Message handlers — smart event creation
# ---------------------------------------------------------------------------


@authorized_only
async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle plain text messages — create an event from free text."""
    session = _get_session(context)
    text = update.message.text or ""

    if session.smart_in_flight:
        await update.message.reply_text("Still working on your previous request…")
        return

    processing_msg = await update.message.reply_text("Processing...")
    outcome = await session.submit_smart_text(text)
    try:
        await processing_msg.delete()
    except Exception as exc:
        logger.debug("Could not delete processing message: %s", exc)

    if outcome.status is SmartSubmitStatus.CREATED:
        event = outcome.event
        await update.message.reply_text(
            f"✅ Created:\n{render_event_details(event)}", parse_mode="Markdown",
        )
        return

    if outcome.status is SmartSubmitStatus.EMPTY_INPUT:
        await update.message.reply_text("Tell me what to schedule, e.g. 'Lunch with Dana on Friday at 1pm'.")
        return

    if outcome.status is SmartSubmitStatus.BUSY:
        await update.message.reply_text("Still working on your previous request…")
        return

    if outcome.status is SmartSubmitStatus.FAILED:
        reason = _SMART_FAILURE_TEXT.get(outcome.failure, "I couldn't turn that into an event.")
        await update.message.reply_text(f"{reason} Please try again, or use /add.")


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


def build_app(
    store: EventStore | None = None,
    storage: StoragePort | None = None,
) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        store: Shared event store. Defaults to a fresh EventStore.
        storage: Persistence backend bound to the store. Defaults to
                 SQLiteEventStorage at DATABASE_PATH.
    """
    app = ApplicationBuilder().token(settings.TELEGRAM_BOT_TOKEN).build()

    if store is None:
        from src.core.event_store import EventStore
        store = EventStore()

    if storage is None:
        from src.data.storage import SQLiteEventStorage
        storage = SQLiteEventStorage()

    from src.data.storage import bind_store
    bind_store(store, storage)

    # Store shared state in bot_data for handler access
    app.bot_data["store"] = store
    app.bot_data["storage"] = storage

    # Commands
    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("month", cmd_month))
    app.add_handler(CommandHandler("week", cmd_week))
    app.add_handler(CommandHandler("day", cmd_day))
    app.add_handler(CommandHandler("prev", cmd_prev))
    app.add_handler(CommandHandler("next", cmd_next))
    app.add_handler(CommandHandler("today", cmd_today))
    app.add_handler(CommandHandler("goto", cmd_goto))
    app.add_handler(CommandHandler("delete", cmd_delete))
    app.add_handler(CallbackQueryHandler(_handle_delete_callback, pattern=r"^delevent:"))

    # /add conversation handler
    _text = filters.TEXT & ~filters.COMMAND
    add_conv = ConversationHandler(
        entry_points=[CommandHandler("add", cmd_add)],
        states={
            ADD_TITLE: [MessageHandler(_text, add_title)],
            ADD_DATE: [MessageHandler(_text, add_date)],
            ADD_START: [MessageHandler(_text, add_start)],
            ADD_END: [MessageHandler(_text, add_end)],
            ADD_COLOR: [MessageHandler(_text, add_color)],
        },
        fallbacks=[CommandHandler("cancel", add_cancel)],
    )
    app.add_handler(add_conv)

    # Text messages (non-command) → smart events
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text))

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting Lumina calendar bot...")
    app = build_app()
    app.run_polling()


if __name__ == "__main__":
    main()
