from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

LOGGER = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path(".")
DEFAULT_TIMEZONE = "Europe/Madrid"
DEFAULT_BOT_NAME = "Minitats"
DEFAULT_PARTNER_NAME = "amor"

T = TypeVar("T")
D = TypeVar("D")


@dataclass(frozen=True)
class Settings:
    bot_token: str
    openai_api_key: str | None
    openai_model: str
    openai_timeout_seconds: float
    admin_chat_id: int | None
    bot_name: str
    partner_name: str
    data_dir: Path
    reminders_path: Path
    users_path: Path
    status_path: Path
    backup_dir: Path
    backup_keep: int
    timezone: ZoneInfo
    date_languages: tuple[str, ...]
    restart_threshold_minutes: int
    health_http_enabled: bool
    health_http_host: str
    health_http_port: int


def load_settings() -> Settings:
    load_dotenv()

    env = os.environ
    token = (env.get("TELEGRAM_TOKEN") or env.get("BOT_TOKEN") or "").strip()
    if not token:
        raise RuntimeError("TELEGRAM_TOKEN is not set")

    data_dir = Path(env.get("DATA_DIR", DEFAULT_DATA_DIR))
    data_dir.mkdir(parents=True, exist_ok=True)
    openai_api_key = (env.get("OPENAI_API_KEY") or "").strip() or None
    openai_model = env.get("OPENAI_MODEL", "gpt-4o-mini")
    openai_timeout_seconds = _parse_number(
        "OPENAI_TIMEOUT_SECONDS", env.get("OPENAI_TIMEOUT_SECONDS"), float, 30.0
    )
    admin_chat_id = _parse_number("ADMIN_ID", env.get("ADMIN_ID"), int, None)
    bot_name = (env.get("BOT_NAME") or DEFAULT_BOT_NAME).strip()
    partner_name = (env.get("WIFE_NAME") or DEFAULT_PARTNER_NAME).strip()
    backup_keep = max(1, _parse_number("BACKUP_KEEP", env.get("BACKUP_KEEP"), int, 10))
    timezone = _parse_timezone(env.get("BOT_TIMEZONE"))
    date_languages = _parse_str_tuple(env.get("DATE_LANGUAGES"), ("es",))
    restart_threshold_minutes = max(
        1, _parse_number("RESTART_THRESHOLD_MINUTES", env.get("RESTART_THRESHOLD_MINUTES"), int, 5)
    )
    health_http_enabled = _parse_optional_bool(env.get("HEALTH_HTTP_ENABLED"))
    if health_http_enabled is None:
        health_http_enabled = True
    health_http_host = (env.get("HEALTH_HTTP_HOST") or "0.0.0.0").strip()
    health_http_port = _parse_number("PORT", env.get("PORT"), int, 8080)
    if health_http_port <= 0 or health_http_port > 65535:
        health_http_port = 8080
    return Settings(
        bot_token=token,
        openai_api_key=openai_api_key,
        openai_model=openai_model,
        openai_timeout_seconds=openai_timeout_seconds,
        admin_chat_id=admin_chat_id,
        bot_name=bot_name,
        partner_name=partner_name,
        data_dir=data_dir,
        reminders_path=Path(env.get("REMINDERS_PATH", data_dir / "reminders.json")),
        users_path=Path(env.get("USERS_PATH", data_dir / "users.json")),
        status_path=Path(env.get("STATUS_PATH", data_dir / "status.json")),
        backup_dir=Path(env.get("BACKUP_DIR", data_dir / "backups")),
        backup_keep=backup_keep,
        timezone=timezone,
        date_languages=date_languages,
        restart_threshold_minutes=restart_threshold_minutes,
        health_http_enabled=health_http_enabled,
        health_http_host=health_http_host,
        health_http_port=health_http_port,
    )


def _parse_timezone(value: str | None) -> ZoneInfo:
    name = (value or "").strip() or DEFAULT_TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        LOGGER.warning("Unknown BOT_TIMEZONE=%s; falling back to %s", name, DEFAULT_TIMEZONE)
        return ZoneInfo(DEFAULT_TIMEZONE)


def _parse_str_tuple(value: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
    if value is None:
        return default
    items = tuple(item.strip().lower() for item in value.split(",") if item.strip())
    return items or default


def _parse_number(name: str, value: str | None, cast: Callable[[str], T], default: D) -> T | D:
    if value is None or not value.strip():
        return default
    try:
        return cast(value.strip())
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {value!r}") from exc


def _parse_optional_bool(value: str | None) -> bool | None:
    if value is None:
        return None
    trimmed = value.strip().lower()
    if not trimmed:
        return None
    return trimmed in {"1", "true", "yes", "on"}

