from __future__ import annotations

import time
from dataclasses import dataclass, field

from app.core.app_scheduler import AppScheduler
from app.core.recovery import StartupRecovery
from app.core.reminder_manager import ReminderManager
from app.core.reminder_store import ReminderStore
from app.core.replies import Replier
from app.infra.config import Settings
from app.infra.status_store import StatusStore
from app.infra.user_store import UserStore


@dataclass
class BotServices:
    """Everything a handler needs; stored once in ``application.bot_data``."""

    settings: Settings
    reminder_store: ReminderStore
    user_store: UserStore
    status_store: StatusStore
    scheduler: AppScheduler
    manager: ReminderManager
    recovery: StartupRecovery
    replier: Replier
    start_time: float = field(default_factory=time.monotonic)
    boot_complete: bool = False
