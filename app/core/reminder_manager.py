"""Reminder lifecycle: Pending -> Fired, or Pending -> Cancelled.

A reminder is created from free text, stored, and armed in the scheduler.
When its timer fires the text is delivered and the record is flagged sent.
Delivery is best effort: a failed send leaves the record pending and the
timer is not re-armed until the next process start.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from functools import partial
from zoneinfo import ZoneInfo

from app.core.app_scheduler import AppScheduler
from app.core.date_resolver import DateResolver
from app.core.errors import DateNotUnderstood, DeliveryFailed
from app.core.models import PLACEHOLDER_TEXT, Reminder, generate_reminder_id
from app.core.reminder_store import ReminderStore, same_chat

LOGGER = logging.getLogger(__name__)

Sender = Callable[[int | str, str], Awaitable[None]]

_EDGE_PUNCTUATION = " \t\n,.;:-–—"
# Articles and prepositions that only belong to the date they precede.
_LEADING_CONNECTOR = r"(?:(?:el\s+d[ií]a|para\s+el|el|la|los|las|este|esta|para)\s+)?"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def strip_date_expression(raw_text: str, matched: str, *also_matched: str) -> str:
    """Remove each date fragment as a whole-word run and tidy what is left."""
    remainder = raw_text
    for fragment in (matched, *also_matched):
        if not fragment.strip():
            continue
        pattern = re.compile(
            rf"(?<!\w){_LEADING_CONNECTOR}{re.escape(fragment.strip())}(?!\w)",
            re.IGNORECASE,
        )
        remainder = pattern.sub(" ", remainder, count=1)
    remainder = re.sub(r"\s+", " ", remainder).strip(_EDGE_PUNCTUATION)
    return remainder or PLACEHOLDER_TEXT


def format_fire_text(reminder: Reminder) -> str:
    return f"⏰ Recordatorio: {reminder.text}"


class ReminderManager:
    def __init__(
        self,
        *,
        store: ReminderStore,
        scheduler: AppScheduler,
        resolver: DateResolver,
        sender: Sender,
        timezone_: ZoneInfo,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._scheduler = scheduler
        self._resolver = resolver
        self._send = sender
        self._timezone = timezone_
        self._clock = clock

    @property
    def timezone(self) -> ZoneInfo:
        return self._timezone

    def format_local(self, value: datetime) -> str:
        return value.astimezone(self._timezone).strftime("%d/%m/%Y %H:%M")

    async def create(self, chat_id: int | str, raw_text: str, *, now: datetime | None = None) -> Reminder:
        current = now or self._clock()
        matches = await self._resolver(raw_text, current)
        if not matches:
            LOGGER.info("Reminder rejected (no date): chat_id=%s", chat_id)
            raise DateNotUnderstood(raw_text)
        first = matches[0]
        due_at = first.when.astimezone(timezone.utc)
        reminder = Reminder(
            id=generate_reminder_id(current),
            chat_id=chat_id,
            due_at=due_at,
            text=strip_date_expression(raw_text, first.matched, *first.also_matched),
            created_at=current.astimezone(timezone.utc),
            sent=False,
        )
        await self._store.append(reminder)
        self._arm(reminder)
        return reminder

    async def fire(self, reminder_id: str) -> bool:
        reminder = self._store.get(reminder_id)
        if reminder is None:
            LOGGER.warning("Reminder not found at fire time: reminder_id=%s", reminder_id)
            return False
        if reminder.sent:
            LOGGER.info("Reminder already sent, skipping: reminder_id=%s", reminder_id)
            return False
        try:
            await self._send(reminder.chat_id, format_fire_text(reminder))
        except Exception as exc:
            LOGGER.error("%s", DeliveryFailed(reminder.id, reminder.chat_id), exc_info=exc)
            return False
        marked = await self._store.mark_sent(reminder_id)
        LOGGER.info(
            "Reminder sent: reminder_id=%s chat_id=%s due_at=%s marked=%s",
            reminder.id,
            reminder.chat_id,
            reminder.due_at.isoformat(),
            marked,
        )
        return marked

    async def delete_matching(self, chat_id: int | str, query: str) -> int:
        needle = (query or "").strip().casefold()
        if not needle:
            return 0

        def _matches(reminder: Reminder) -> bool:
            return same_chat(reminder.chat_id, chat_id) and needle in reminder.text.casefold()

        removed = await self._store.remove_where(_matches)
        for reminder in removed:
            self._scheduler.cancel(reminder.id)
        LOGGER.info("Reminders deleted: chat_id=%s count=%s", chat_id, len(removed))
        return len(removed)

    def list_pending(self, chat_id: int | str) -> list[Reminder]:
        # sorted() is stable, so equal due times keep insertion order.
        return sorted(self._store.list_pending(chat_id), key=lambda reminder: reminder.due_at)

    def restore_all(self, now: datetime | None = None) -> int:
        current = now or self._clock()
        pending = self._store.list_pending()
        restored = 0
        for reminder in pending:
            if reminder.due_at <= current:
                # Overdue at boot: left pending, neither delivered nor purged.
                LOGGER.info(
                    "Reminder overdue at restore, left pending: reminder_id=%s due_at=%s",
                    reminder.id,
                    reminder.due_at.isoformat(),
                )
                continue
            if self._arm(reminder):
                restored += 1
        LOGGER.info("Reminder restore complete: restored=%s pending=%s", restored, len(pending))
        return restored

    def _arm(self, reminder: Reminder) -> bool:
        return self._scheduler.arm(reminder.id, reminder.due_at, partial(self.fire, reminder.id))
