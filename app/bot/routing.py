from __future__ import annotations

import re

_DELETE_PATTERN = re.compile(r"^\s*(?:borra|elimina)\b[\s:,]*(?P<query>.*)$", re.IGNORECASE | re.DOTALL)


def normalize_command(text: str) -> str:
    trimmed = (text or "").strip()
    if not trimmed.startswith("/"):
        return ""
    command = trimmed.split(maxsplit=1)[0]
    if "@" in command:
        command = command.split("@", maxsplit=1)[0]
    return command.lower()


def command_argument(text: str) -> str:
    """Everything after the command token, with original spacing inside kept."""
    trimmed = (text or "").strip()
    parts = trimmed.split(maxsplit=1)
    if len(parts) < 2:
        return ""
    return parts[1].strip()


def parse_delete_request(text: str) -> str | None:
    """Return the query of a plain-text "borra ..." / "elimina ..." request."""
    match = _DELETE_PATTERN.match(text or "")
    if not match:
        return None
    return match.group("query").strip()


def resolve_text_route(text: str) -> str:
    trimmed = (text or "").strip()
    if not trimmed:
        return "empty"
    if trimmed.startswith("/"):
        command = normalize_command(trimmed)
        return command.lstrip("/") if command else "command"
    if parse_delete_request(trimmed) is not None:
        return "delete"
    return "chat"
