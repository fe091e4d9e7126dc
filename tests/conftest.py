import re
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.core.date_resolver import DateMatch  # noqa: E402
from app.core.reminder_manager import ReminderManager  # noqa: E402
from app.core.reminder_store import ReminderStore  # noqa: E402

MADRID = ZoneInfo("Europe/Madrid")


class DummyAppScheduler:
    """In-memory stand-in for AppScheduler: remembers armed callbacks by id."""

    def __init__(self, now: datetime) -> None:
        self.now = now
        self.callbacks: dict[str, object] = {}
        self.cancelled: list[str] = []

    def arm(self, reminder_id: str, due_at: datetime, on_fire) -> bool:
        if due_at <= self.now:
            return False
        self.callbacks[reminder_id] = on_fire
        return True

    def cancel(self, reminder_id: str) -> bool:
        self.cancelled.append(reminder_id)
        return self.callbacks.pop(reminder_id, None) is not None

    def is_armed(self, reminder_id: str) -> bool:
        return reminder_id in self.callbacks

    def armed_ids(self) -> list[str]:
        return list(self.callbacks)

    async def trigger(self, reminder_id: str) -> None:
        on_fire = self.callbacks.pop(reminder_id)
        await on_fire()


class RecordingSender:
    def __init__(self, failing: set[object] | None = None) -> None:
        self.sent: list[tuple[object, str]] = []
        self.failing = failing or set()

    async def __call__(self, chat_id, text: str) -> None:
        if chat_id in self.failing:
            raise RuntimeError(f"chat {chat_id} unreachable")
        self.sent.append((chat_id, text))


class SpanishStubResolver:
    """Understands "mañana a las N" and "en N minutos"; nothing else."""

    def __init__(self, timezone_=MADRID) -> None:
        self.timezone = timezone_
        self.calls: list[tuple[str, datetime]] = []

    async def __call__(self, text: str, now: datetime) -> list[DateMatch]:
        self.calls.append((text, now))
        local_now = now.astimezone(self.timezone)
        match = re.search(r"mañana a las (\d{1,2})", text)
        if match:
            day = (local_now + timedelta(days=1)).date()
            when = datetime(day.year, day.month, day.day, int(match.group(1)), tzinfo=self.timezone)
            return [DateMatch(matched=match.group(0), when=when.astimezone(timezone.utc))]
        match = re.search(r"en (\d+) minutos", text)
        if match:
            when = now + timedelta(minutes=int(match.group(1)))
            return [DateMatch(matched=match.group(0), when=when)]
        return []


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 3, 10, 8, 0, tzinfo=MADRID).astimezone(timezone.utc)


@pytest.fixture
def reminder_store(tmp_path) -> ReminderStore:
    return ReminderStore(tmp_path / "reminders.json")


@pytest.fixture
def dummy_scheduler(now) -> DummyAppScheduler:
    return DummyAppScheduler(now)


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def manager(reminder_store, dummy_scheduler, sender, now) -> ReminderManager:
    return ReminderManager(
        store=reminder_store,
        scheduler=dummy_scheduler,
        resolver=SpanishStubResolver(),
        sender=sender,
        timezone_=MADRID,
        clock=lambda: now,
    )
