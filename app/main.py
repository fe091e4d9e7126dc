from __future__ import annotations

import asyncio
import logging
import sys
from datetime import timedelta

from telegram.ext import Application, CommandHandler, MessageHandler, filters

from app.bot import handlers
from app.core.app_scheduler import AppScheduler
from app.core.date_resolver import DateparserResolver
from app.core.recovery import StartupRecovery
from app.core.reminder_manager import ReminderManager
from app.core.reminder_store import ReminderStore
from app.core.replies import Replier
from app.core.services import BotServices
from app.infra.config import Settings, load_settings
from app.infra.llm import OpenAIClient
from app.infra.logging_config import configure_logging
from app.infra.messaging import TelegramSender
from app.infra.observability import start_health_http
from app.infra.status_store import StatusStore
from app.infra.user_store import UserStore
from app.infra.version import resolve_app_version

LOGGER = logging.getLogger(__name__)


def _register_handlers(application: Application) -> None:
    application.add_handler(CommandHandler("start", handlers.start))
    application.add_handler(CommandHandler(["ayuda", "help"], handlers.help_command))
    application.add_handler(CommandHandler("recordatorio", handlers.recordatorio))
    application.add_handler(CommandHandler("misrecordatorios", handlers.misrecordatorios))
    application.add_handler(CommandHandler("borrar", handlers.borrar))
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handlers.chat))
    application.add_handler(MessageHandler(filters.COMMAND, handlers.unknown_command))


def build_services(settings: Settings, bot) -> BotServices:
    sender = TelegramSender(bot)
    reminder_store = ReminderStore(settings.reminders_path)
    user_store = UserStore(settings.users_path)
    status_store = StatusStore(settings.status_path)
    scheduler = AppScheduler()
    manager = ReminderManager(
        store=reminder_store,
        scheduler=scheduler,
        resolver=DateparserResolver(timezone_=settings.timezone, languages=settings.date_languages),
        sender=sender,
        timezone_=settings.timezone,
    )
    recovery = StartupRecovery(
        manager=manager,
        status_store=status_store,
        user_store=user_store,
        sender=sender,
        bot_name=settings.bot_name,
        threshold=timedelta(minutes=settings.restart_threshold_minutes),
        admin_chat_id=settings.admin_chat_id,
        reminders_path=settings.reminders_path,
        backup_dir=settings.backup_dir,
        backup_keep=settings.backup_keep,
    )
    llm_client = None
    if settings.openai_api_key:
        llm_client = OpenAIClient(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            timeout_seconds=settings.openai_timeout_seconds,
        )
    replier = Replier(
        llm_client=llm_client,
        bot_name=settings.bot_name,
        partner_name=settings.partner_name,
    )
    return BotServices(
        settings=settings,
        reminder_store=reminder_store,
        user_store=user_store,
        status_store=status_store,
        scheduler=scheduler,
        manager=manager,
        recovery=recovery,
        replier=replier,
    )


def _health_state(services: BotServices) -> dict[str, object]:
    return {
        "start_time": services.start_time,
        "version": resolve_app_version(),
        "armed_reminders": len(services.scheduler.armed_ids()),
        "boot_complete": services.boot_complete,
    }


async def _post_init(application: Application) -> None:
    services: BotServices = application.bot_data["services"]
    settings = services.settings
    if settings.health_http_enabled:
        runner, _site = await start_health_http(
            settings.health_http_host,
            settings.health_http_port,
            lambda: _health_state(services),
        )
        application.bot_data["health_runner"] = runner
        LOGGER.info(
            "Health endpoint listening: host=%s port=%s",
            settings.health_http_host,
            settings.health_http_port,
        )
    services.scheduler.start()
    await services.recovery.run()
    services.boot_complete = True


async def _post_shutdown(application: Application) -> None:
    services: BotServices | None = application.bot_data.get("services")
    if services is not None:
        services.scheduler.shutdown()
    runner = application.bot_data.pop("health_runner", None)
    if runner is not None:
        await runner.cleanup()


def main() -> None:
    configure_logging()
    try:
        settings = load_settings()
    except RuntimeError as exc:
        LOGGER.exception("Startup failed: %s", exc)
        raise SystemExit(str(exc)) from exc

    application = (
        Application.builder()
        .token(settings.bot_token)
        .post_init(_post_init)
        .post_shutdown(_post_shutdown)
        .build()
    )
    application.bot_data["services"] = build_services(settings, application.bot)
    _register_handlers(application)
    application.add_error_handler(handlers.error_handler)

    LOGGER.info(
        "Bot started: name=%s python=%s timezone=%s ai=%s",
        settings.bot_name,
        sys.version.split()[0],
        settings.timezone.key,
        bool(settings.openai_api_key),
    )
    try:
        asyncio.get_event_loop()
    except RuntimeError:
        asyncio.set_event_loop(asyncio.new_event_loop())
    application.run_polling()


if __name__ == "__main__":
    main()
