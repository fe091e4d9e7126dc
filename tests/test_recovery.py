from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta, timezone

import pytest

from app.core.models import Reminder
from app.core.recovery import StartupRecovery
from app.infra.status_store import StatusStore
from app.infra.user_store import UserStore
from conftest import RecordingSender


def asyncio_run(coro):
    return asyncio.run(coro)


@pytest.fixture
def status_store(tmp_path) -> StatusStore:
    return StatusStore(tmp_path / "status.json")


@pytest.fixture
def user_store(tmp_path) -> UserStore:
    store = UserStore(tmp_path / "users.json")
    for chat_id in (1, 2, 3):
        asyncio_run(store.add(chat_id))
    return store


def _recovery(manager, status_store, user_store, sender, **kwargs) -> StartupRecovery:
    return StartupRecovery(
        manager=manager,
        status_store=status_store,
        user_store=user_store,
        sender=sender,
        bot_name="Minitats",
        **kwargs,
    )


def test_first_boot_is_not_restart(manager, status_store, user_store, now) -> None:
    sender = RecordingSender()
    report = asyncio_run(_recovery(manager, status_store, user_store, sender).run(now))

    assert report.is_restart is False
    assert report.previous_start is None
    assert sender.sent == []
    assert status_store.last_start() == now


def test_old_last_start_triggers_one_broadcast_per_user(manager, status_store, user_store, now) -> None:
    status_store.record_start(now - timedelta(hours=2))
    sender = RecordingSender()

    report = asyncio_run(_recovery(manager, status_store, user_store, sender).run(now))

    assert report.is_restart is True
    assert [chat_id for chat_id, _ in sender.sent] == [1, 2, 3]
    assert all("Minitats" in text for _, text in sender.sent)
    assert report.notified == 3
    assert status_store.last_start() == now


def test_recent_last_start_within_threshold_is_quiet(manager, status_store, user_store, now) -> None:
    status_store.record_start(now - timedelta(minutes=2))
    sender = RecordingSender()

    report = asyncio_run(_recovery(manager, status_store, user_store, sender).run(now))

    assert report.is_restart is False
    assert sender.sent == []


def test_broadcast_failure_does_not_stop_others(manager, status_store, user_store, now) -> None:
    status_store.record_start(now - timedelta(hours=1))
    sender = RecordingSender(failing={2})

    report = asyncio_run(_recovery(manager, status_store, user_store, sender).run(now))

    assert [chat_id for chat_id, _ in sender.sent] == [1, 3]
    assert report.failed == 1
    assert status_store.last_start() == now


def test_admin_is_added_once(manager, status_store, user_store, now) -> None:
    status_store.record_start(now - timedelta(hours=1))
    sender = RecordingSender()

    asyncio_run(_recovery(manager, status_store, user_store, sender, admin_chat_id=99).run(now))
    status_store.record_start(now - timedelta(hours=1))
    asyncio_run(_recovery(manager, status_store, user_store, sender, admin_chat_id=2).run(now))

    assert [chat_id for chat_id, _ in sender.sent] == [1, 2, 3, 99, 1, 2, 3]


def test_last_start_written_even_when_restore_fails(status_store, user_store, now) -> None:
    class ExplodingManager:
        def restore_all(self, now=None):
            raise RuntimeError("disk on fire")

    recovery = _recovery(ExplodingManager(), status_store, user_store, RecordingSender())

    with pytest.raises(RuntimeError):
        asyncio_run(recovery.run(now))
    assert status_store.last_start() == now


def test_recovery_rearms_and_backs_up(manager, reminder_store, dummy_scheduler, status_store, user_store, now, tmp_path) -> None:
    reminder_store.save_all(
        [Reminder(id="r1", chat_id=1, due_at=now + timedelta(hours=1), text="pan", created_at=now)]
    )
    backup_dir = tmp_path / "backups"

    report = asyncio_run(
        _recovery(
            manager,
            status_store,
            user_store,
            RecordingSender(),
            reminders_path=reminder_store.path,
            backup_dir=backup_dir,
            backup_keep=2,
        ).run(now)
    )

    assert report.restored == 1
    assert dummy_scheduler.is_armed("r1")
    backups = list(backup_dir.glob("reminders-*.json"))
    assert len(backups) == 1
    assert json.loads(backups[0].read_text(encoding="utf-8"))[0]["id"] == "r1"


def test_status_file_format(status_store) -> None:
    status_store.record_start(datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc))

    data = json.loads((status_store._path).read_text(encoding="utf-8"))
    assert data == {"lastStart": "2026-03-10T09:00:00+00:00"}
