from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any

PLACEHOLDER_TEXT = "Recordatorio"


@dataclass(frozen=True)
class Reminder:
    id: str
    chat_id: int | str
    due_at: datetime
    text: str
    created_at: datetime | None = None
    sent: bool = False

    def mark_sent(self) -> Reminder:
        return replace(self, sent=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "chatId": self.chat_id,
            "date": self.due_at.astimezone(timezone.utc).isoformat(),
            "text": self.text,
            "createdAt": self.created_at.astimezone(timezone.utc).isoformat() if self.created_at else None,
            "sent": self.sent,
        }

    @classmethod
    def from_dict(cls, item: dict[str, Any]) -> Reminder:
        reminder_id = item.get("id")
        chat_id = item.get("chatId")
        text = item.get("text")
        if reminder_id is None or chat_id is None or not isinstance(text, str):
            raise ValueError("reminder entry is missing id/chatId/text")
        if not isinstance(chat_id, (int, str)) or isinstance(chat_id, bool):
            raise ValueError(f"invalid chatId: {chat_id!r}")
        due_at = _parse_instant(item.get("date"))
        if due_at is None:
            raise ValueError(f"invalid date: {item.get('date')!r}")
        return cls(
            id=str(reminder_id),
            chat_id=chat_id,
            due_at=due_at,
            text=text,
            created_at=_parse_instant(item.get("createdAt")),
            sent=bool(item.get("sent", False)),
        )


def generate_reminder_id(now: datetime) -> str:
    """Creation-time based id; the random suffix keeps double submissions apart."""
    millis = int(now.timestamp() * 1000)
    return f"{millis}-{uuid.uuid4().hex[:6]}"


def _parse_instant(value: object) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
