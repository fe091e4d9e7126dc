from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from functools import wraps

from telegram import Update
from telegram.ext import ContextTypes

from app.bot import routing
from app.core.error_messages import (
    USAGE_DELETE_TEXT,
    USAGE_REMINDER_TEXT,
    map_error_text,
)
from app.core.errors import DateNotUnderstood
from app.core.models import Reminder
from app.core.services import BotServices
from app.infra.messaging import safe_send_text

LOGGER = logging.getLogger(__name__)


def _get_services(context: ContextTypes.DEFAULT_TYPE) -> BotServices:
    return context.application.bot_data["services"]


def _chat_id(update: Update) -> int | None:
    chat = update.effective_chat
    return chat.id if chat else None


def _message_text(update: Update) -> str:
    message = update.effective_message
    return (message.text or "") if message else ""


def _with_error_handling(
    handler: Callable[[Update, ContextTypes.DEFAULT_TYPE], Awaitable[None]],
) -> Callable[[Update, ContextTypes.DEFAULT_TYPE], Awaitable[None]]:
    @wraps(handler)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        chat_id = _chat_id(update)
        LOGGER.info("route handler=%s chat_id=%s", handler.__name__, chat_id)
        try:
            await _remember_user(context, chat_id)
            await handler(update, context)
        except Exception as exc:
            await _handle_exception(update, context, exc)

    return wrapper


async def _handle_exception(update: Update, context: ContextTypes.DEFAULT_TYPE, error: Exception) -> None:
    try:
        await context.application.process_error(update, error)
    except Exception:
        LOGGER.exception("Failed to forward exception to error handler")


async def _remember_user(context: ContextTypes.DEFAULT_TYPE, chat_id: int | None) -> None:
    if chat_id is None:
        return
    await _get_services(context).user_store.add(chat_id)


def _format_reminder_line(services: BotServices, index: int, reminder: Reminder) -> str:
    return f"{index}. {services.manager.format_local(reminder.due_at)} · {reminder.text}"


def _build_help_text(bot_name: str) -> str:
    return (
        f"Soy {bot_name} 🤖💛. Esto es lo que sé hacer:\n"
        "/recordatorio <qué y cuándo> · p. ej. /recordatorio mañana a las 9 llamar al médico\n"
        "/misrecordatorios · ver los recordatorios pendientes\n"
        "/borrar <texto> · borrar recordatorios que contengan ese texto\n"
        "También puedes escribir «borra médico» o «elimina médico».\n"
        "Y si solo quieres hablar, escríbeme lo que sea."
    )


@_with_error_handling
async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    settings = _get_services(context).settings
    await safe_send_text(
        update,
        f"¡Hola, {settings.partner_name}! 🥰\n\n{_build_help_text(settings.bot_name)}",
    )


@_with_error_handling
async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await safe_send_text(update, _build_help_text(_get_services(context).settings.bot_name))


@_with_error_handling
async def recordatorio(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    services = _get_services(context)
    chat_id = _chat_id(update)
    raw_text = routing.command_argument(_message_text(update))
    if chat_id is None:
        return
    if not raw_text:
        await safe_send_text(update, USAGE_REMINDER_TEXT)
        return
    try:
        reminder = await services.manager.create(chat_id, raw_text)
    except DateNotUnderstood:
        await safe_send_text(update, map_error_text("date_not_understood"))
        return
    await safe_send_text(
        update,
        f"✅ Anotado: «{reminder.text}»\n🗓️ {services.manager.format_local(reminder.due_at)}",
    )


@_with_error_handling
async def misrecordatorios(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    services = _get_services(context)
    chat_id = _chat_id(update)
    if chat_id is None:
        return
    pending = services.manager.list_pending(chat_id)
    if not pending:
        await safe_send_text(update, "No tienes recordatorios pendientes 🌸")
        return
    lines = [_format_reminder_line(services, index, item) for index, item in enumerate(pending, start=1)]
    await safe_send_text(update, "📋 Tus recordatorios pendientes:\n" + "\n".join(lines))


@_with_error_handling
async def borrar(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _delete_reminders(update, context, routing.command_argument(_message_text(update)))


async def _delete_reminders(update: Update, context: ContextTypes.DEFAULT_TYPE, query: str) -> None:
    services = _get_services(context)
    chat_id = _chat_id(update)
    if chat_id is None:
        return
    if not query:
        await safe_send_text(update, USAGE_DELETE_TEXT)
        return
    removed = await services.manager.delete_matching(chat_id, query)
    if removed == 0:
        await safe_send_text(update, f"No encontré recordatorios con «{query}» 🔍")
        return
    noun = "recordatorio" if removed == 1 else "recordatorios"
    await safe_send_text(update, f"🗑️ Borré {removed} {noun} con «{query}».")


@_with_error_handling
async def chat(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    text = _message_text(update).strip()
    route = routing.resolve_text_route(text)
    if route == "empty":
        return
    if route == "delete":
        await _delete_reminders(update, context, routing.parse_delete_request(text) or "")
        return
    reply = await _get_services(context).replier.reply(text)
    await safe_send_text(update, reply)


@_with_error_handling
async def unknown_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    command = routing.normalize_command(_message_text(update)) or "-"
    LOGGER.info("Unknown command: command=%s chat_id=%s", command, _chat_id(update))
    await safe_send_text(update, "No conozco esa orden 🤔. Escribe /ayuda para ver lo que sé hacer.")


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    LOGGER.exception("Unhandled exception", exc_info=context.error)
    if isinstance(update, Update) and update.effective_message:
        try:
            await safe_send_text(update, map_error_text("server"))
        except Exception:
            LOGGER.exception("Failed to send error reply")
