"""Process-wide logging for the bot.

``configure_logging()`` is called once from ``main``. Level comes from
LOG_LEVEL and an optional rotating file from LOG_FILE. Every handler carries
a filter that masks Telegram bot tokens, which appear in API URLs.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from logging.handlers import RotatingFileHandler

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_TOKEN_PATTERN = re.compile(r"(?<!\d)\d{6,}:[A-Za-z0-9_-]{20,}")
_QUIET_LOGGERS = ("httpx", "httpcore", "telegram", "apscheduler")


class TokenRedactingFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _TOKEN_PATTERN.sub("<token>", message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _level_from_env() -> int:
    name = os.environ.get("LOG_LEVEL", "").strip().upper()
    level = logging.getLevelName(name) if name else logging.INFO
    return level if isinstance(level, int) else logging.INFO


def configure_logging() -> None:
    level = _level_from_env()
    formatter = logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    redactor = TokenRedactingFilter()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    file_error: OSError | None = None
    log_file = os.environ.get("LOG_FILE", "").strip()
    if log_file:
        try:
            os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
            handlers.append(
                RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8")
            )
        except OSError as exc:
            file_error = exc

    root = logging.getLogger()
    for old in root.handlers[:]:
        root.removeHandler(old)
    root.setLevel(level)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(redactor)
        root.addHandler(handler)
    if file_error is not None:
        root.warning("Could not open LOG_FILE=%s: %s; logging to stderr only", log_file, file_error)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
