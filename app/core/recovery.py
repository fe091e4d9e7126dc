"""Boot-time reconciliation of the reminder file with the scheduler."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

from app.core.reminder_manager import ReminderManager, Sender
from app.infra.json_files import snapshot_file
from app.infra.status_store import StatusStore
from app.infra.user_store import UserStore

LOGGER = logging.getLogger(__name__)

DEFAULT_RESTART_THRESHOLD = timedelta(minutes=5)


@dataclass(frozen=True)
class RecoveryReport:
    is_restart: bool
    restored: int
    notified: int
    failed: int
    previous_start: datetime | None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def restart_notice(bot_name: str) -> str:
    return f"🔄 {bot_name} se reinició y ya está de vuelta. Tus recordatorios siguen guardados 💛"


class StartupRecovery:
    def __init__(
        self,
        *,
        manager: ReminderManager,
        status_store: StatusStore,
        user_store: UserStore,
        sender: Sender,
        bot_name: str,
        threshold: timedelta = DEFAULT_RESTART_THRESHOLD,
        admin_chat_id: int | str | None = None,
        reminders_path: Path | None = None,
        backup_dir: Path | None = None,
        backup_keep: int = 10,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._manager = manager
        self._status = status_store
        self._users = user_store
        self._send = sender
        self._bot_name = bot_name
        self._threshold = threshold
        self._admin_chat_id = admin_chat_id
        self._reminders_path = reminders_path
        self._backup_dir = backup_dir
        self._backup_keep = backup_keep
        self._clock = clock

    def is_restart(self, previous_start: datetime | None, now: datetime) -> bool:
        if previous_start is None:
            return False
        return now - previous_start > self._threshold

    async def run(self, now: datetime | None = None) -> RecoveryReport:
        current = now or self._clock()
        previous_start = self._status.last_start()
        restored = 0
        notified = 0
        failed = 0
        restart = False
        try:
            self._backup(current)
            restored = self._manager.restore_all(current)
            restart = self.is_restart(previous_start, current)
            if restart:
                notified, failed = await self._broadcast(restart_notice(self._bot_name))
        finally:
            self._status.record_start(current)
        LOGGER.info(
            "Startup recovery: is_restart=%s previous_start=%s restored=%s notified=%s failed=%s",
            restart,
            previous_start.isoformat() if previous_start else None,
            restored,
            notified,
            failed,
        )
        return RecoveryReport(
            is_restart=restart,
            restored=restored,
            notified=notified,
            failed=failed,
            previous_start=previous_start,
        )

    def _recipients(self) -> list[int | str]:
        recipients = list(self._users.list_users())
        if self._admin_chat_id is not None and all(
            str(user) != str(self._admin_chat_id) for user in recipients
        ):
            recipients.append(self._admin_chat_id)
        return recipients

    async def _broadcast(self, text: str) -> tuple[int, int]:
        notified = 0
        failed = 0
        for chat_id in self._recipients():
            try:
                await self._send(chat_id, text)
            except Exception:
                failed += 1
                LOGGER.exception("Broadcast failed: chat_id=%s", chat_id)
                continue
            notified += 1
        return notified, failed

    def _backup(self, now: datetime) -> None:
        if self._reminders_path is None or self._backup_dir is None:
            return
        try:
            target = snapshot_file(
                self._reminders_path,
                self._backup_dir,
                keep=self._backup_keep,
                now=now,
            )
        except OSError:
            LOGGER.exception("Reminder backup failed: path=%s", self._reminders_path)
            return
        if target is not None:
            LOGGER.info("Reminder backup written: path=%s", target)
