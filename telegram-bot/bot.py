import os
import uuid
from telegram import (
    Update,
    BotCommand,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    constants,
)
from telegram.ext import (
    Application,
    CommandHandler,
    MessageHandler,
    CallbackQueryHandler,
    filters,
    ContextTypes,
)
import httpx
from dotenv import load_dotenv

load_dotenv()

TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN", "").strip()
WEBSERVER_URL = os.getenv("WEBSERVER_URL", "http://localhost:8000").strip()
SERVICE_TOKEN = os.getenv("SERVICE_TOKEN", "").strip()

BUTTON_LABEL_MAX = 60
USER_NAMESPACE = uuid.UUID("5d0f2a8e-1c3b-4e7a-9f60-2b8d7c4e1a90")

# ─── In-Memory State ────────────────────────────────────────

sessions: dict[int, str] = {}  # chat_id -> assistant session_id
keyboards: dict[int, dict] = {}  # chat_id -> {message_id, kind, values, labels, selected}


class BackendError(Exception):
    """The assistant server answered with an error status."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


# ─── Helpers ────────────────────────────────────────────────


def _user_id(telegram_id: int) -> str:
    """Stable assistant user id for a Telegram account."""
    return str(uuid.uuid5(USER_NAMESPACE, f"telegram:{telegram_id}"))


def _headers(telegram_id: int) -> dict[str, str]:
    """Build identity and auth headers for backend calls."""
    headers = {"X-User-Id": _user_id(telegram_id)}
    if SERVICE_TOKEN:
        headers["Authorization"] = f"Bearer {SERVICE_TOKEN}"
    return headers


def _truncate(text: str, limit: int = BUTTON_LABEL_MAX) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


def _plain(text: str) -> str:
    # Server copy uses **bold**; send it as plain text
    return text.replace("**", "")


async def _call(method: str, path: str, telegram_id: int, json: dict | None = None) -> dict:
    async with httpx.AsyncClient(timeout=30.0) as client:
        response = await client.request(
            method,
            f"{WEBSERVER_URL}{path}",
            headers=_headers(telegram_id),
            json=json,
        )
    if response.status_code >= 400:
        detail = "Unknown error"
        try:
            detail = response.json().get("detail", detail)
        except Exception:
            pass
        raise BackendError(response.status_code, detail)
    if response.status_code == 204:
        return {}
    return response.json()


async def _open_session(chat_id: int, telegram_id: int) -> dict:
    data = await _call("POST", "/assistant/sessions", telegram_id)
    sessions[chat_id] = data["session_id"]
    return data


async def _operation(chat_id: int, telegram_id: int, action: str, json: dict | None = None) -> dict:
    """Run one dialogue operation, reopening the session if the server forgot it."""
    session_id = sessions.get(chat_id)
    if session_id is None:
        await _open_session(chat_id, telegram_id)
        session_id = sessions[chat_id]
    try:
        return await _call("POST", f"/assistant/sessions/{session_id}/{action}", telegram_id, json)
    except BackendError as e:
        if e.status_code != 404:
            raise
        sessions.pop(chat_id, None)
        await _open_session(chat_id, telegram_id)
        return await _call("POST", f"/assistant/sessions/{sessions[chat_id]}/{action}", telegram_id, json)


def _options_keyboard(prefix: str, labels: list[str]) -> InlineKeyboardMarkup:
    rows = [
        [InlineKeyboardButton(_truncate(label), callback_data=f"{prefix}:{i}")]
        for i, label in enumerate(labels)
    ]
    return InlineKeyboardMarkup(rows)


def _days_keyboard(labels: list[str], selected: set) -> InlineKeyboardMarkup:
    """Toggle keyboard for multi-select prompts."""
    rows = []
    for i, label in enumerate(labels):
        check = "✅" if i in selected else "⬜"
        rows.append([InlineKeyboardButton(f"{check} {label}", callback_data=f"toggle:{i}")])
    rows.append([InlineKeyboardButton("Done", callback_data="done")])
    return InlineKeyboardMarkup(rows)


def _confirm_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([[
        InlineKeyboardButton("Confirm", callback_data="confirm"),
        InlineKeyboardButton("Cancel", callback_data="cancel"),
    ]])


# ─── Message Rendering ──────────────────────────────────────


async def _render_messages(message, chat_id: int, messages: list) -> None:
    """Send the assistant side of one turn; echoes of user input are skipped."""
    for msg in messages:
        if msg.get("sender") != "assistant":
            continue

        text = _plain(msg.get("text", ""))
        presentation = msg.get("presentation")
        payload = msg.get("payload") or {}
        options = payload.get("options") or []
        labels = [o["label"] for o in options]
        values = [o["value"] for o in options]

        if presentation == "confirmation-card":
            sent = await message.reply_text(text, reply_markup=_confirm_keyboard())
            keyboards[chat_id] = {"message_id": sent.message_id, "kind": "confirm"}

        elif presentation in ("main-menu", "sub-menu") and options:
            if payload.get("multi_select"):
                selected: set = set()
                sent = await message.reply_text(text, reply_markup=_days_keyboard(labels, selected))
                kind = "toggle"
            else:
                kind = "menu" if presentation == "main-menu" else "option"
                sent = await message.reply_text(text, reply_markup=_options_keyboard(kind, labels))
                selected = set()
            keyboards[chat_id] = {
                "message_id": sent.message_id,
                "kind": kind,
                "labels": labels,
                "values": values,
                "selected": selected,
            }

        elif presentation == "input-prompt":
            hint = (payload.get("input_field") or {}).get("placeholder")
            await message.reply_text(f"{text}\n\ne.g. {hint}" if hint else text)

        else:
            route = payload.get("route")
            await message.reply_text(f"{text}\n\n➡️ {route}" if route else text)


async def _report(message, error: Exception) -> None:
    if isinstance(error, BackendError):
        if error.status_code == 409:
            await message.reply_text("⏳ Still working on your previous request…")
        else:
            await message.reply_text(f"❌ Error: {error.detail}")
    else:
        await message.reply_text("Could not reach the OptiPlan server. Please try again later.")
        print(f"Backend error: {error}")


# ─── Command Handlers ───────────────────────────────────────


async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    chat_id = update.effective_chat.id
    try:
        data = await _open_session(chat_id, update.effective_user.id)
    except (BackendError, httpx.RequestError) as e:
        await _report(update.message, e)
        return
    await _render_messages(update.message, chat_id, data.get("messages", []))


async def cmd_menu(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Cancel whatever is in progress and show the main menu again."""
    await cmd_cancel(update, context)


async def cmd_cancel(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    chat_id = update.effective_chat.id
    try:
        data = await _operation(chat_id, update.effective_user.id, "cancel")
    except (BackendError, httpx.RequestError) as e:
        await _report(update.message, e)
        return
    await _render_messages(update.message, chat_id, data.get("messages", []))


async def cmd_reset(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    chat_id = update.effective_chat.id
    session_id = sessions.pop(chat_id, None)
    keyboards.pop(chat_id, None)
    if session_id:
        try:
            await _call("DELETE", f"/assistant/sessions/{session_id}", update.effective_user.id)
        except (BackendError, httpx.RequestError) as e:
            print(f"Reset error: {e}")
    await update.message.reply_text("Conversation cleared. Send /start to begin again.")


# ─── Message Handler ────────────────────────────────────────


async def handle_private_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.message
    if not message or not message.text:
        return

    chat_id = message.chat_id
    await context.bot.send_chat_action(chat_id, constants.ChatAction.TYPING)

    try:
        data = await _operation(chat_id, message.from_user.id, "input", {"text": message.text})
    except (BackendError, httpx.RequestError) as e:
        await _report(message, e)
        return
    await _render_messages(message, chat_id, data.get("messages", []))


# ─── Callback Query Handler ─────────────────────────────────


async def handle_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    if not query or not query.data:
        return

    chat_id = query.message.chat_id
    telegram_id = query.from_user.id
    data = query.data

    state = keyboards.get(chat_id)
    if not state or state["message_id"] != query.message.message_id:
        await query.answer("These buttons have expired.", show_alert=True)
        return

    if data.startswith("toggle:"):
        index = int(data[7:])
        selected: set = state["selected"]
        if index in selected:
            selected.discard(index)
        else:
            selected.add(index)
        await query.message.edit_reply_markup(reply_markup=_days_keyboard(state["labels"], selected))
        await query.answer()
        return

    if data == "done":
        if not state["selected"]:
            await query.answer("Pick at least one day first.", show_alert=True)
            return
        action, body = "option", {"value": ",".join(state["values"][i] for i in sorted(state["selected"]))}
    elif data in ("confirm", "cancel"):
        action, body = data, None
    elif data.startswith(("menu:", "option:")):
        kind, _, index = data.partition(":")
        action, body = kind, {"value": state["values"][int(index)]}
    else:
        await query.answer()
        return

    await query.answer()
    # Remove keyboard while processing
    await query.message.edit_reply_markup(reply_markup=None)
    keyboards.pop(chat_id, None)

    try:
        result = await _operation(chat_id, telegram_id, action, body)
    except (BackendError, httpx.RequestError) as e:
        await _report(query.message, e)
        return
    await _render_messages(query.message, chat_id, result.get("messages", []))


# ─── Bot Setup ──────────────────────────────────────────────


async def post_init(application: Application) -> None:
    await application.bot.set_my_commands([
        BotCommand("start", "Start the assistant"),
        BotCommand("menu", "Show the main menu"),
        BotCommand("cancel", "Cancel the current draft"),
        BotCommand("reset", "Clear conversation state"),
    ])


def main() -> None:
    if not TELEGRAM_BOT_TOKEN:
        print("ERROR: Set TELEGRAM_BOT_TOKEN in .env")
        print("Get one from @BotFather on Telegram")
        return

    app = Application.builder().token(TELEGRAM_BOT_TOKEN).post_init(post_init).build()

    # Command handlers
    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("menu", cmd_menu))
    app.add_handler(CommandHandler("cancel", cmd_cancel))
    app.add_handler(CommandHandler("reset", cmd_reset))

    # Callback query handler (inline keyboard buttons)
    app.add_handler(CallbackQueryHandler(handle_callback))

    # Message handler — private text messages (must be last)
    app.add_handler(
        MessageHandler(
            filters.TEXT & filters.ChatType.PRIVATE & ~filters.COMMAND,
            handle_private_message,
        )
    )

    print("OptiPlan Telegram bot started")
    print(f"Backend: {WEBSERVER_URL}")
    print(f"Auth: {'SERVICE_TOKEN set' if SERVICE_TOKEN else 'no auth'}")

    app.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()
