from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from app.infra.json_files import load_json, save_json_atomic

LOGGER = logging.getLogger(__name__)


class UserStore:
    """Append-only set of chat ids that have talked to the bot."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = asyncio.Lock()

    def list_users(self) -> list[int | str]:
        data = load_json(self._path, [])
        if not isinstance(data, list):
            LOGGER.warning("User list %s is not a list; treating as empty", self._path)
            return []
        users: list[int | str] = []
        seen: set[str] = set()
        for item in data:
            if isinstance(item, bool) or not isinstance(item, (int, str)):
                continue
            if str(item) in seen:
                continue
            seen.add(str(item))
            users.append(item)
        return users

    async def add(self, chat_id: int | str) -> bool:
        async with self._lock:
            users = self.list_users()
            if any(str(user) == str(chat_id) for user in users):
                return False
            users.append(chat_id)
            save_json_atomic(self._path, users)
        LOGGER.info("User registered: chat_id=%s total=%s", chat_id, len(users))
        return True
