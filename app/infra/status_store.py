from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from app.infra.json_files import load_json, save_json_atomic

LOGGER = logging.getLogger(__name__)


class StatusStore:
    def __init__(self, path: Path) -> None:
        self._path = path

    def last_start(self) -> datetime | None:
        data = load_json(self._path, {})
        value = data.get("lastStart") if isinstance(data, dict) else None
        if not isinstance(value, str) or not value:
            return None
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            LOGGER.warning("Invalid lastStart in %s: %r", self._path, value)
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    def record_start(self, now: datetime) -> None:
        save_json_atomic(self._path, {"lastStart": now.astimezone(timezone.utc).isoformat()})
