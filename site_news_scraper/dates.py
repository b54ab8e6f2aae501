from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from dateutil import parser as dateparser
from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


_RELATIVE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(rf"(\d+)\s*{unit}s?\s+ago"), unit)
    for unit in ("second", "minute", "hour", "day", "week", "month", "year")
)

_ISO_DATETIME_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:?\d{2})$"
)

_RFC2822_FORMATS = (
    "%a, %d %b %Y %H:%M:%S %z",
    "%a, %d %b %Y %H:%M:%S",
)

_LABEL_PREFIXES = (
    "Published:",
    "Updated:",
    "Posted:",
    "Date:",
    "发布于:",
    "更新于:",
    "时间:",
)

_ENTITIES = (
    ("&nbsp;", " "),
    ("&#160;", " "),
    ("&mdash;", "-"),
    ("&ndash;", "-"),
    ("&amp;", "&"),
)

_NUMERIC_OFFSET_RE = re.compile(r"[+-]\d{2}:?\d{2}\b")
_TRAILING_ZONE_NAME_RE = re.compile(r"\s+[A-Z]{3,4}$")

STANDARD_FORMATS = (
    # ISO style
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    # slashes
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d/%m/%Y",
    # dots
    "%Y.%m.%d %H:%M:%S",
    "%Y.%m.%d %H:%M",
    "%Y.%m.%d",
    "%d.%m.%Y",
    # English month names
    "%b %d, %Y %H:%M:%S",
    "%b %d, %Y %H:%M",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
    "%Y, %B %d",
    "%Y, %b %d",
    # compact
    "%Y%m%d",
    "%Y%m%d%H%M%S",
)

TIMEZONE_FORMATS = (
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M:%S%z",
    "%Y-%m-%d %H:%M %z",
    "%Y/%m/%d %H:%M:%S %z",
    "%Y/%m/%d %H:%M %z",
    "%b %d, %Y %H:%M %z",
    "%b %d, %Y %H:%M:%S %z",
    "%B %d, %Y %H:%M:%S %z",
    "%a, %d %b %Y %H:%M:%S %z",
)

CHINESE_FORMATS = (
    "%Y年%m月%d日 %H:%M:%S",
    "%Y年%m月%d日 %H:%M",
    "%Y年%m月%d日",
)

# Formats without a year; the current year is assumed.
CHINESE_YEARLESS_FORMATS = (
    "%m月%d日",
    "%m-%d %H:%M",
)

_NAMED_ZONES = {
    "UTC": "+0000",
    "GMT": "+0000",
    "UT": "+0000",
    "Z": "+0000",
    "EST": "-0500",
    "EDT": "-0400",
    "CST": "-0600",
    "CDT": "-0500",
    "MST": "-0700",
    "MDT": "-0600",
    "PST": "-0800",
    "PDT": "-0700",
    "BST": "+0100",
    "CET": "+0100",
    "CEST": "+0200",
    "JST": "+0900",
}

_GMT_OFFSET_RE = re.compile(r"\s*(?:GMT|UTC)\s*([+-])(\d{1,2})(?::?(\d{2}))?$")
_ZONE_NAME_RE = re.compile(r"\s*\b([A-Z]{1,4})$")

_FUZZY_YEAR_RE = re.compile(r"(19|20)\d{2}")
_FUZZY_MONTH_RE = re.compile(r"\b(0?[1-9]|1[0-2])\b")
_FUZZY_DAY_RE = re.compile(r"\b(0?[1-9]|[12]\d|3[01])\b")


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _strptime_any(text: str, formats: tuple[str, ...]) -> Optional[datetime]:
    for fmt in formats:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


class DateNormalizer:
    """Multi-stage date parser with an injectable clock.

    ``parse`` returns an aware UTC datetime or None and never raises. Relative
    phrases and machine formats are tried on the raw text, the remaining
    pattern families on the cleaned text.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or utc_now

    def now(self) -> datetime:
        return _as_utc(self._clock())

    def parse(self, text: str | None) -> Optional[datetime]:
        if not text:
            return None
        trimmed = str(text).strip()
        if not trimmed:
            return None

        stages: tuple[Callable[[str], Optional[datetime]], ...] = (
            self.parse_relative,
            self.parse_iso8601,
            self.parse_rfc2822,
        )
        for stage in stages:
            found = self._run(stage, trimmed)
            if found is not None:
                return found

        cleaned = clean_date_string(trimmed)
        if not cleaned:
            return None

        for stage in (
            self.parse_standard,
            self.parse_with_timezone,
            self.parse_chinese,
            self.parse_fuzzy,
        ):
            found = self._run(stage, cleaned)
            if found is not None:
                return found

        logger.debug("Unparseable date string: %r", trimmed)
        return None

    __call__ = parse

    @staticmethod
    def _run(stage: Callable[[str], Optional[datetime]], text: str) -> Optional[datetime]:
        try:
            found = stage(text)
        except (ValueError, OverflowError, TypeError) as exc:
            logger.debug("Date stage %s rejected %r: %s", stage.__name__, text, exc)
            return None
        return _as_utc(found) if found is not None else None

    def parse_relative(self, text: str) -> Optional[datetime]:
        lowered = text.lower()
        now = self.now()

        for pattern, unit in _RELATIVE_PATTERNS:
            m = pattern.search(lowered)
            if m:
                return now - relativedelta(**{f"{unit}s": int(m.group(1))})

        if "just now" in lowered or "刚刚" in lowered:
            return now
        if "yesterday" in lowered or "昨天" in lowered:
            return now - timedelta(days=1)
        if "today" in lowered or "今天" in lowered:
            return now
        return None

    @staticmethod
    def parse_iso8601(text: str) -> Optional[datetime]:
        if not _ISO_DATETIME_RE.match(text):
            return None
        return dateparser.isoparse(text)

    @staticmethod
    def parse_rfc2822(text: str) -> Optional[datetime]:
        candidate = re.sub(r"\s+(GMT|UTC|UT)$", " +0000", text)
        return _strptime_any(candidate, _RFC2822_FORMATS)

    @staticmethod
    def parse_standard(text: str) -> Optional[datetime]:
        return _strptime_any(text, STANDARD_FORMATS)

    @staticmethod
    def parse_with_timezone(text: str) -> Optional[datetime]:
        found = _strptime_any(text, TIMEZONE_FORMATS)
        if found is not None:
            return found
        numeric = _named_offset_to_numeric(text)
        if numeric is not None and numeric != text:
            return _strptime_any(numeric, TIMEZONE_FORMATS)
        return None

    def parse_chinese(self, text: str) -> Optional[datetime]:
        found = _strptime_any(text, CHINESE_FORMATS)
        if found is not None:
            return found
        # strptime refuses Feb 29 without a year, so parse with the year attached
        year = self.now().year
        for fmt in CHINESE_YEARLESS_FORMATS:
            try:
                return datetime.strptime(f"{year} {text}", f"%Y {fmt}")
            except ValueError:
                continue
        return None

    @staticmethod
    def parse_fuzzy(text: str) -> Optional[datetime]:
        year_m = _FUZZY_YEAR_RE.search(text)
        if not year_m:
            return None
        after_year = text[year_m.end():]

        month_m = _FUZZY_MONTH_RE.search(after_year)
        if not month_m:
            return None
        after_month = after_year[month_m.end():]

        day_m = _FUZZY_DAY_RE.search(after_month)
        if not day_m:
            return None

        return datetime(
            int(year_m.group(0)),
            int(month_m.group(1)),
            int(day_m.group(1)),
            tzinfo=timezone.utc,
        )


def clean_date_string(text: str) -> str:
    """Strip labels and entities, collapse whitespace, drop redundant zone names."""

    cleaned = text
    for prefix in _LABEL_PREFIXES:
        idx = cleaned.lower().find(prefix.lower())
        if idx >= 0:
            cleaned = cleaned[idx + len(prefix):]

    for entity, replacement in _ENTITIES:
        cleaned = cleaned.replace(entity, replacement)

    cleaned = re.sub(r"\s+", " ", cleaned).strip()

    if _NUMERIC_OFFSET_RE.search(cleaned):
        cleaned = _TRAILING_ZONE_NAME_RE.sub("", cleaned)
    return cleaned


def _named_offset_to_numeric(text: str) -> Optional[str]:
    m = _GMT_OFFSET_RE.search(text)
    if m:
        sign, hours, minutes = m.group(1), int(m.group(2)), int(m.group(3) or 0)
        return f"{text[:m.start()]} {sign}{hours:02d}{minutes:02d}"

    m = _ZONE_NAME_RE.search(text)
    if m and m.group(1) in _NAMED_ZONES:
        return f"{text[:m.start()]} {_NAMED_ZONES[m.group(1)]}"
    return None


_default = DateNormalizer()


def parse_date(text: str | None, now: datetime | None = None) -> Optional[datetime]:
    """Parse with the shared normalizer, or with a fixed ``now`` when given."""

    if now is None:
        return _default.parse(text)
    return DateNormalizer(clock=lambda: now).parse(text)
