from __future__ import annotations

from typing import Final

DATE_NOT_UNDERSTOOD_TEXT: Final[str] = (
    "No entendí la fecha 🙈. Prueba algo como: /recordatorio mañana a las 9 llamar al médico"
)
SERVER_ERROR_TEXT: Final[str] = "Ups, algo se me enredó por dentro 😅. ¿Lo intentas de nuevo en un ratito?"
USAGE_REMINDER_TEXT: Final[str] = "Dime qué y cuándo: /recordatorio mañana a las 9 llamar al médico"
USAGE_DELETE_TEXT: Final[str] = "Dime qué borrar: /borrar médico"


def map_error_text(kind: str) -> str:
    normalized = kind.strip().lower()
    if normalized == "date_not_understood":
        return DATE_NOT_UNDERSTOOD_TEXT
    return SERVER_ERROR_TEXT
