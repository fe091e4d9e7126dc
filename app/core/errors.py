from __future__ import annotations


class ReminderError(Exception):
    """Base class for reminder lifecycle failures."""


class DateNotUnderstood(ReminderError):
    def __init__(self, raw_text: str) -> None:
        super().__init__(f"no date expression found in {raw_text!r}")
        self.raw_text = raw_text


class DeliveryFailed(ReminderError):
    def __init__(self, reminder_id: str, chat_id: int | str) -> None:
        super().__init__(f"delivery failed: reminder_id={reminder_id} chat_id={chat_id}")
        self.reminder_id = reminder_id
        self.chat_id = chat_id
