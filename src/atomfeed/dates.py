"""Timestamp parsing for Atom date constructs.

Atom mandates RFC 3339, but real feeds also carry RFC 822 dates, missing
timezone colons and zone abbreviations, so parsing falls through several
progressively slower strategies.
"""

from __future__ import annotations

import datetime
import re
from email.utils import parsedate_to_datetime
from typing import Optional

from dateutil import parser as dateutil_parser

_UTC = datetime.timezone.utc

_RE_WHITESPACE = re.compile(r"\s+")
_RE_ISO_TZ_NO_COLON = re.compile(r"([+-]\d{2})(\d{2})$")
_RE_ISO_TZ_HOUR_ONLY = re.compile(r"([+-]\d{2})$")
_RE_ISO_FRACTION = re.compile(r"\.(\d{7,})(?=(?:[+-]\d{2}:?\d{2}|Z|$))", re.IGNORECASE)
_RE_RFC822 = re.compile(
    r"(?:\w{3},\s+)?(\d{1,2})\s+(\w{3})\s+(\d{4})\s+(\d{2}):(\d{2}):(\d{2})\s+([+-]\d{4}|[A-Z]{2,5})$"
)
_MONTHS_RFC822: dict[str, int] = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

# Zone names defined by RFC 822, plus UTC.
_RFC822_ZONES: dict[str, int] = {
    "UTC": 0,
    "UT": 0,
    "GMT": 0,
    "EST": -18000,
    "EDT": -14400,
    "CST": -21600,
    "CDT": -18000,
    "MST": -25200,
    "MDT": -21600,
    "PST": -28800,
    "PDT": -25200,
}

# dateutil fills whatever the input lacks from a default. Parsing against two
# defaults that differ in every date field exposes inputs without a full date.
_DATEUTIL_DEFAULTS = (datetime.datetime(1, 1, 1), datetime.datetime(2, 2, 2))


def _normalize_iso_datetime_string(value: str) -> str:
    """Coerce flexible ISO-8601 inputs into a form datetime.fromisoformat can parse."""
    cleaned = value
    if cleaned[-1] in ("Z", "z"):
        cleaned = cleaned[:-1] + "+00:00"

    if len(cleaned) > 6 and cleaned[-6] in ("+", "-") and cleaned[-3] == ":":
        return _RE_ISO_FRACTION.sub(lambda m: "." + m.group(1)[:6], cleaned, count=1)

    upper_cleaned = cleaned.upper()
    for suffix in (" UTC", " GMT", " Z"):
        if upper_cleaned.endswith(suffix):
            cleaned = cleaned[: -len(suffix)].rstrip() + "+00:00"
            break

    if (
        " " in cleaned
        and "T" not in cleaned[:11]
        and len(cleaned) >= 10
        and cleaned[4] == "-"
        and cleaned[0:4].isdigit()
    ):
        date_part, rest = cleaned.split(" ", 1)
        if rest and rest[0].isdigit():
            cleaned = f"{date_part}T{rest}"

    match = _RE_ISO_TZ_NO_COLON.search(cleaned)
    if match and len(cleaned) > 10:
        cleaned = cleaned[:-5] + f"{match.group(1)}:{match.group(2)}"
    else:
        match = _RE_ISO_TZ_HOUR_ONLY.search(cleaned)
        if match and len(cleaned) > 10 and "T" in cleaned:
            cleaned = cleaned[:-3] + f"{match.group(1)}:00"

    return _RE_ISO_FRACTION.sub(lambda m: "." + m.group(1)[:6], cleaned, count=1)


def _ensure_utc(dt: datetime.datetime) -> Optional[datetime.datetime]:
    """Return a timezone-aware datetime normalized to UTC."""
    try:
        return dt.replace(tzinfo=_UTC) if dt.tzinfo is None else dt.astimezone(_UTC)
    except (ValueError, OverflowError):
        return None


def _fast_rfc822(value: str) -> Optional[datetime.datetime]:
    m = _RE_RFC822.match(value)
    if not m:
        return None
    day, mon_str, year, hour, minute, second, tz = m.groups()
    month = _MONTHS_RFC822.get(mon_str.lower())
    if month is None:
        return None
    if tz[0] in "+-":
        tz_offset_seconds = (int(tz[1:3]) * 3600 + int(tz[3:5]) * 60) * (
            1 if tz[0] == "+" else -1
        )
    else:
        tz_offset_seconds = _RFC822_ZONES.get(tz)
        if tz_offset_seconds is None:
            return None
    # Python requires offset strictly between -24h and +24h
    if not (-86400 < tz_offset_seconds < 86400):
        return None
    try:
        dt = datetime.datetime(
            int(year),
            month,
            int(day),
            int(hour),
            int(minute),
            int(second),
            tzinfo=datetime.timezone(datetime.timedelta(seconds=tz_offset_seconds)),
        )
    except ValueError:
        return None
    return _ensure_utc(dt)


def _parsedate_to_utc(value: str) -> Optional[datetime.datetime]:
    """RFC-822 / RFC-2822 parsing via email.utils (fallback)."""
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    return _ensure_utc(parsed)


def _slow_dateutil_parse(value: str) -> Optional[datetime.datetime]:
    try:
        first, second = (
            dateutil_parser.parse(
                value, default=default, tzinfos=_RFC822_ZONES, ignoretz=False
            )
            for default in _DATEUTIL_DEFAULTS
        )
    except (ValueError, TypeError, OverflowError):
        return None
    # A bare time, month or weekday is not a timestamp
    if first.date() != second.date():
        return None
    return first


def parse_date(date_str: Optional[str]) -> Optional[datetime.datetime]:
    """Parse a date construct into a UTC datetime.

    Args:
        date_str: Date string in any common format

    Returns:
        Timezone-aware UTC datetime, or None when parsing fails
    """
    if not date_str:
        return None

    candidate = date_str.strip()
    if not candidate:
        return None

    # Fast path: clean RFC 3339 (covers nearly every Atom date)
    if len(candidate) >= 20 and candidate[4] == "-" and candidate[0:4].isdigit():
        if candidate[-1] in ("Z", "z"):
            try:
                return datetime.datetime.fromisoformat(candidate[:-1] + "+00:00")
            except ValueError:
                pass
        elif candidate[-6] in ("+", "-") and candidate[-3] == ":":
            try:
                return _ensure_utc(datetime.datetime.fromisoformat(candidate))
            except (ValueError, OverflowError):
                pass

    if "\n" in candidate or "\r" in candidate or "\t" in candidate or "  " in candidate:
        candidate = _RE_WHITESPACE.sub(" ", candidate)

    if len(candidate) >= 10 and candidate[4] == "-" and candidate[0:4].isdigit():
        try:
            dt = datetime.datetime.fromisoformat(
                _normalize_iso_datetime_string(candidate)
            )
        except ValueError:
            dt = None
        if dt is not None:
            utc_dt = _ensure_utc(dt)
            if utc_dt is not None:
                return utc_dt

    dt = _fast_rfc822(candidate)
    if dt is not None:
        return dt

    dt = _parsedate_to_utc(candidate)
    if dt is not None:
        return dt

    dt = _slow_dateutil_parse(candidate)
    if dt is not None:
        return _ensure_utc(dt)

    return None
