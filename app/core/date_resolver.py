"""Spanish date expressions in free text.

Clock phrases ("a las 9", "a la 1 y media", "18:30") and the common day words
("hoy", "mañana", "pasado mañana", weekdays, "en N minutos") are read with
regular expressions, because dateparser takes the number in "a las 10" for a
day or month. Anything else ("el 15 de abril") goes to dateparser's search API
with the clock phrase blanked out, and the clock is applied on top.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from dateparser.search import search_dates

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DateMatch:
    matched: str
    when: datetime
    also_matched: tuple[str, ...] = ()


DateResolver = Callable[[str, datetime], Awaitable[list[DateMatch]]]

_CLOCK_PATTERN = re.compile(
    r"(?<!\w)(?:a|sobre|hacia)\s+las?\s+(?P<hour>\d{1,2})(?:[:.h](?P<minute>\d{2}))?"
    r"(?:\s*(?:h|hs|horas)(?!\w))?"
    r"(?:\s+y\s+(?P<fraction>media|cuarto))?"
    r"(?:\s+de\s+la\s+(?P<period>mañana|madrugada|tarde|noche))?(?!\w)",
    re.IGNORECASE,
)
_BARE_CLOCK_PATTERN = re.compile(r"(?<![\w:])(?P<hour>\d{1,2}):(?P<minute>\d{2})(?![\w:])")
_OFFSET_PATTERN = re.compile(
    r"(?<!\w)(?:en|dentro\s+de)\s+(?P<amount>\d+|un|una|media)\s+"
    r"(?P<unit>minutos?|horas?|d[ií]as?|semanas?)(?!\w)",
    re.IGNORECASE,
)
_DAY_WORD_PATTERN = re.compile(r"(?<!\w)(?P<word>pasado\s+mañana|mañana|hoy)(?!\w)", re.IGNORECASE)
_WEEKDAY_PATTERN = re.compile(
    r"(?<!\w)(?:(?:el|este|el\s+pr[oó]ximo|pr[oó]ximo)\s+)?"
    r"(?P<weekday>lunes|martes|mi[eé]rcoles|jueves|viernes|s[aá]bado|domingo)(?!\w)",
    re.IGNORECASE,
)
_WEEKDAYS = {
    "lunes": 0,
    "martes": 1,
    "miercoles": 2,
    "jueves": 3,
    "viernes": 4,
    "sabado": 5,
    "domingo": 6,
}
_DATE_WORDS = frozenset(
    {
        "hoy", "mañana", "semana", "mes", "año", "día", "dia", "noche", "tarde",
        "enero", "febrero", "marzo", "abril", "mayo", "junio", "julio", "agosto",
        "septiembre", "setiembre", "octubre", "noviembre", "diciembre",
        *_WEEKDAYS, "miércoles", "sábado",
    }
)
# Text between two fragments that still counts as one expression.
_JOINER_PATTERN = re.compile(r"[\s,]*")


@dataclass(frozen=True)
class _Hit:
    start: int
    end: int


def _fold(value: str) -> str:
    return value.lower().replace("é", "e").replace("á", "a").replace("í", "i").replace("ó", "o")


def _has_date_content(fragment: str) -> bool:
    if any(char.isdigit() for char in fragment):
        return True
    return any(token in _DATE_WORDS for token in re.findall(r"\w+", fragment.lower()))


def _blank(text: str, hit: _Hit | None) -> str:
    if hit is None:
        return text
    return text[: hit.start] + " " * (hit.end - hit.start) + text[hit.end :]


def _find_clock(text: str) -> tuple[_Hit, time] | None:
    for pattern in (_CLOCK_PATTERN, _BARE_CLOCK_PATTERN):
        for match in pattern.finditer(text):
            hour = int(match.group("hour"))
            minute = int(match.group("minute") or 0)
            groups = match.groupdict()
            fraction = (groups.get("fraction") or "").lower()
            period = (groups.get("period") or "").lower()
            if fraction == "media":
                minute += 30
            elif fraction == "cuarto":
                minute += 15
            if period in {"tarde", "noche"} and hour < 12:
                hour += 12
            if hour > 23 or minute > 59:
                continue
            return _Hit(match.start(), match.end()), time(hour, minute)
    return None


def _offset_amount(raw: str) -> float:
    lowered = raw.lower()
    if lowered in {"un", "una"}:
        return 1
    if lowered == "media":
        return 0.5
    return int(lowered)


class DateparserResolver:
    """Finds the date expression in free text and the instant it names.

    Relative expressions resolve against ``now`` in the bot timezone and
    ambiguous ones ("viernes", "a las 9") prefer the next occurrence.
    """

    def __init__(self, *, timezone_: ZoneInfo, languages: tuple[str, ...] = ("es",)) -> None:
        self._timezone = timezone_
        self._languages = list(languages)

    async def __call__(self, text: str, now: datetime) -> list[DateMatch]:
        return await asyncio.to_thread(self.resolve, text, now)

    def resolve(self, text: str, now: datetime) -> list[DateMatch]:
        local_now = now.astimezone(self._timezone).replace(second=0, microsecond=0)
        clock = _find_clock(text)
        clock_hit, clock_time = clock if clock else (None, None)
        remaining = _blank(text, clock_hit)

        offset = _OFFSET_PATTERN.search(remaining)
        if offset is not None:
            unit = _fold(offset.group("unit")).rstrip("s")
            amount = _offset_amount(offset.group("amount"))
            if unit in {"minuto", "hora"}:
                delta = timedelta(minutes=amount) if unit == "minuto" else timedelta(hours=amount)
                return [self._match(text, [_Hit(offset.start(), offset.end())], now + delta)]
            days = amount * 7 if unit == "semana" else amount
            day = (local_now + timedelta(days=days)).date()
            return [self._combine(text, _Hit(offset.start(), offset.end()), day, clock_hit, clock_time, local_now)]

        day_word = _DAY_WORD_PATTERN.search(remaining)
        if day_word is not None:
            word = re.sub(r"\s+", " ", day_word.group("word").lower())
            shift = {"hoy": 0, "mañana": 1, "pasado mañana": 2}[word]
            day = local_now.date() + timedelta(days=shift)
            hit = _Hit(day_word.start(), day_word.end())
            return [self._combine(text, hit, day, clock_hit, clock_time, local_now)]

        weekday = _WEEKDAY_PATTERN.search(remaining)
        if weekday is not None:
            target = _WEEKDAYS[_fold(weekday.group("weekday"))]
            ahead = (target - local_now.weekday()) % 7 or 7
            day = local_now.date() + timedelta(days=ahead)
            hit = _Hit(weekday.start(), weekday.end())
            return [self._combine(text, hit, day, clock_hit, clock_time, local_now)]

        found = self._search(remaining, local_now)
        if found is not None:
            hit, value = found
            return [self._combine(text, hit, value.date(), clock_hit, clock_time, value)]

        if clock_hit is not None:
            when = datetime.combine(local_now.date(), clock_time, tzinfo=self._timezone)
            if when <= local_now:
                when += timedelta(days=1)
            return [self._match(text, [clock_hit], when)]

        LOGGER.debug("Date resolution: no match")
        return []

    def _search(self, text: str, local_now: datetime) -> tuple[_Hit, datetime] | None:
        settings = {
            "PREFER_DATES_FROM": "future",
            "RELATIVE_BASE": local_now.replace(tzinfo=None),
            "TIMEZONE": self._timezone.key,
            "RETURN_AS_TIMEZONE_AWARE": True,
        }
        found = search_dates(text, languages=self._languages, settings=settings) or []
        cursor = 0
        for fragment, value in found:
            start = text.lower().find(fragment.lower(), cursor)
            if start < 0:
                continue
            cursor = start + len(fragment)
            # search_dates also reports lone words such as "a" or "el".
            if not _has_date_content(fragment):
                LOGGER.debug("Date resolution: ignoring fragment=%r", fragment)
                continue
            if value.tzinfo is None:
                value = value.replace(tzinfo=self._timezone)
            return _Hit(start, cursor), value.astimezone(self._timezone)
        return None

    def _combine(
        self,
        text: str,
        day_hit: _Hit,
        day: date,
        clock_hit: _Hit | None,
        clock_time: time | None,
        fallback: datetime,
    ) -> DateMatch:
        if clock_hit is None or clock_time is None:
            when = datetime.combine(day, fallback.timetz().replace(tzinfo=None), tzinfo=self._timezone)
            return self._match(text, [day_hit], when)
        when = datetime.combine(day, clock_time, tzinfo=self._timezone)
        return self._match(text, [day_hit, clock_hit], when)

    def _match(self, text: str, hits: list[_Hit], when: datetime) -> DateMatch:
        merged: list[_Hit] = []
        for hit in sorted(hits, key=lambda item: item.start):
            if merged and _JOINER_PATTERN.fullmatch(text[merged[-1].end : hit.start]):
                merged[-1] = _Hit(merged[-1].start, hit.end)
            else:
                merged.append(hit)
        fragments = [text[hit.start : hit.end] for hit in merged]
        LOGGER.debug("Date resolution: fragments=%s", len(fragments))
        return DateMatch(
            matched=fragments[0],
            when=when.astimezone(timezone.utc),
            also_matched=tuple(fragments[1:]),
        )
