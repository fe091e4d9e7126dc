from __future__ import annotations

import asyncio
import random
from types import SimpleNamespace

import pytest

from app.bot import handlers
from app.core.error_messages import DATE_NOT_UNDERSTOOD_TEXT, SERVER_ERROR_TEXT
from app.core.replies import CANNED_REPLIES, Replier
from app.core.services import BotServices
from app.infra.status_store import StatusStore
from app.infra.user_store import UserStore


def asyncio_run(coro):
    return asyncio.run(coro)


class DummyMessage:
    def __init__(self, text: str) -> None:
        self.text = text
        self.replies: list[str] = []

    async def reply_text(self, text, reply_markup=None):
        self.replies.append(text)


def _build_update(text: str, chat_id: int = 10) -> SimpleNamespace:
    message = DummyMessage(text)
    return SimpleNamespace(
        effective_user=SimpleNamespace(id=1, username="tester"),
        effective_chat=SimpleNamespace(id=chat_id, type="private"),
        message=message,
        effective_message=message,
        callback_query=None,
    )


@pytest.fixture
def services(tmp_path, manager, reminder_store, dummy_scheduler) -> BotServices:
    return BotServices(
        settings=SimpleNamespace(bot_name="Minitats", partner_name="Lucía"),
        reminder_store=reminder_store,
        user_store=UserStore(tmp_path / "users.json"),
        status_store=StatusStore(tmp_path / "status.json"),
        scheduler=dummy_scheduler,
        manager=manager,
        recovery=None,
        replier=Replier(llm_client=None, bot_name="Minitats", partner_name="Lucía", rng=random.Random(1)),
    )


@pytest.fixture
def context(services) -> SimpleNamespace:
    errors: list[Exception] = []

    async def process_error(update, error):
        errors.append(error)

    return SimpleNamespace(
        application=SimpleNamespace(bot_data={"services": services}, process_error=process_error),
        errors=errors,
    )


def test_recordatorio_creates_and_confirms(context, services) -> None:
    update = _build_update("/recordatorio mañana a las 9 llamar al médico")

    asyncio_run(handlers.recordatorio(update, context))

    assert update.message.replies == ["✅ Anotado: «llamar al médico»\n🗓️ 11/03/2026 09:00"]
    assert [item.text for item in services.reminder_store.list_pending(10)] == ["llamar al médico"]
    assert services.user_store.list_users() == [10]


def test_recordatorio_without_date_apologises(context, services) -> None:
    update = _build_update("/recordatorio llamar al médico")

    asyncio_run(handlers.recordatorio(update, context))

    assert update.message.replies == [DATE_NOT_UNDERSTOOD_TEXT]
    assert services.reminder_store.load_all() == []


def test_recordatorio_without_text_shows_usage(context) -> None:
    update = _build_update("/recordatorio")

    asyncio_run(handlers.recordatorio(update, context))

    assert "/recordatorio" in update.message.replies[0]


def test_misrecordatorios_lists_only_this_chat(context) -> None:
    asyncio_run(handlers.recordatorio(_build_update("/recordatorio mañana a las 9 pan", chat_id=10), context))
    asyncio_run(handlers.recordatorio(_build_update("/recordatorio mañana a las 8 leche", chat_id=20), context))
    update = _build_update("/misrecordatorios", chat_id=10)

    asyncio_run(handlers.misrecordatorios(update, context))

    assert update.message.replies == ["📋 Tus recordatorios pendientes:\n1. 11/03/2026 09:00 · pan"]


def test_misrecordatorios_empty(context) -> None:
    update = _build_update("/misrecordatorios")

    asyncio_run(handlers.misrecordatorios(update, context))

    assert update.message.replies == ["No tienes recordatorios pendientes 🌸"]


def test_borrar_reports_count_and_not_found(context, services) -> None:
    asyncio_run(handlers.recordatorio(_build_update("/recordatorio mañana a las 9 médico"), context))
    asyncio_run(handlers.recordatorio(_build_update("/recordatorio mañana a las 10 otro médico"), context))

    update = _build_update("/borrar MÉDICO")
    asyncio_run(handlers.borrar(update, context))
    assert update.message.replies == ["🗑️ Borré 2 recordatorios con «MÉDICO»."]

    update = _build_update("/borrar médico")
    asyncio_run(handlers.borrar(update, context))
    assert update.message.replies == ["No encontré recordatorios con «médico» 🔍"]
    assert services.reminder_store.load_all() == []


def test_plain_text_delete_request(context, services) -> None:
    asyncio_run(handlers.recordatorio(_build_update("/recordatorio mañana a las 9 pan"), context))
    update = _build_update("elimina pan")

    asyncio_run(handlers.chat(update, context))

    assert update.message.replies == ["🗑️ Borré 1 recordatorio con «pan»."]
    assert services.reminder_store.load_all() == []


def test_chat_falls_back_to_canned_reply(context) -> None:
    update = _build_update("hoy fue un día difícil")

    asyncio_run(handlers.chat(update, context))

    expected = {reply.format(name="Lucía") for reply in CANNED_REPLIES}
    assert update.message.replies[0] in expected


def test_unexpected_error_is_forwarded(context, services, monkeypatch) -> None:
    async def broken(chat_id, query):
        raise RuntimeError("boom")

    monkeypatch.setattr(services.manager, "delete_matching", broken)
    update = _build_update("/borrar pan")

    asyncio_run(handlers.borrar(update, context))

    assert len(context.errors) == 1
    assert update.message.replies == []


def test_error_handler_replies_politely(monkeypatch) -> None:
    monkeypatch.setattr(handlers, "Update", SimpleNamespace)
    update = _build_update("/borrar pan")
    context = SimpleNamespace(error=RuntimeError("boom"))

    asyncio_run(handlers.error_handler(update, context))

    assert update.message.replies == [SERVER_ERROR_TEXT]


def test_start_and_help_describe_commands(context) -> None:
    start_update = _build_update("/start")
    help_update = _build_update("/ayuda")

    asyncio_run(handlers.start(start_update, context))
    asyncio_run(handlers.help_command(help_update, context))

    assert start_update.message.replies[0].startswith("¡Hola, Lucía!")
    for text in (start_update.message.replies[0], help_update.message.replies[0]):
        assert "/recordatorio" in text
        assert "/misrecordatorios" in text
        assert "/borrar" in text
