"""Durable reminder records kept in a single JSON document.

Every mutation is a full read-modify-write of the file. Writers are
serialized through one asyncio.Lock so a fire handler marking a reminder
sent and a user deleting another one cannot overwrite each other's
snapshot. Reads never fail: a missing or corrupt file is an empty list.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from pathlib import Path

from app.core.models import Reminder
from app.infra.json_files import load_json, save_json_atomic

LOGGER = logging.getLogger(__name__)


def same_chat(left: int | str, right: int | str) -> bool:
    return str(left) == str(right)


class ReminderStore:
    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load_all(self) -> list[Reminder]:
        data = load_json(self._path, [])
        if not isinstance(data, list):
            LOGGER.warning("Reminder store %s is not a list; treating as empty", self._path)
            return []
        reminders: list[Reminder] = []
        for item in data:
            if not isinstance(item, dict):
                continue
            try:
                reminders.append(Reminder.from_dict(item))
            except ValueError as exc:
                LOGGER.warning("Skipping malformed reminder entry: %s", exc)
        return reminders

    def save_all(self, reminders: Iterable[Reminder]) -> None:
        save_json_atomic(self._path, [reminder.to_dict() for reminder in reminders])

    async def append(self, reminder: Reminder) -> None:
        async with self._lock:
            reminders = self.load_all()
            reminders.append(reminder)
            self.save_all(reminders)
        LOGGER.info(
            "Reminder stored: reminder_id=%s chat_id=%s due_at=%s",
            reminder.id,
            reminder.chat_id,
            reminder.due_at.isoformat(),
        )

    async def mark_sent(self, reminder_id: str) -> bool:
        async with self._lock:
            reminders = self.load_all()
            updated = False
            for index, reminder in enumerate(reminders):
                if reminder.id == reminder_id and not reminder.sent:
                    reminders[index] = reminder.mark_sent()
                    updated = True
                    break
            if updated:
                self.save_all(reminders)
        return updated

    async def remove_where(self, predicate: Callable[[Reminder], bool]) -> list[Reminder]:
        async with self._lock:
            reminders = self.load_all()
            removed = [reminder for reminder in reminders if predicate(reminder)]
            if removed:
                self.save_all([reminder for reminder in reminders if not predicate(reminder)])
        return removed

    def get(self, reminder_id: str) -> Reminder | None:
        for reminder in self.load_all():
            if reminder.id == reminder_id:
                return reminder
        return None

    def list_pending(self, chat_id: int | str | None = None) -> list[Reminder]:
        return [
            reminder
            for reminder in self.load_all()
            if not reminder.sent and (chat_id is None or same_chat(reminder.chat_id, chat_id))
        ]
