"""
Israel Timezone Utilities.

Summer (IDT): UTC+3 (April-September)
Winter (IST): UTC+2 (October-March)

Stored instants are naive datetimes holding UTC (or the literal wall-clock value
a user typed, see ``to_stored_instant``). Display helpers apply the fixed Israel
rule above; it intentionally works on whole months instead of the IANA rules.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Union

import pytz

logger = logging.getLogger(__name__)

FALLBACK_TIME = "00:00"

_DATE_RE = re.compile(r"^\s*([0-9]{4})-([0-9]{1,2})-([0-9]{1,2})\s*$")
_TIME_RE = re.compile(r"^\s*([01]?[0-9]|2[0-3]):([0-5]?[0-9])(:|\s*$)")
_CLOCK_PART_RE = re.compile(r"[0-9]{1,2}")  # ASCII digits only


@dataclass(frozen=True)
class LocalDisplay:
    """Date and time strings rendered in Israel local time."""
    date_str: str  # YYYY-MM-DD
    time_str: str  # HH:MM


def utc_now() -> datetime:
    """Current UTC wall-clock as a naive datetime."""
    return datetime.now(pytz.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Drop tzinfo from an aware datetime after converting it to UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(pytz.utc).replace(tzinfo=None)


def is_israel_dst(instant: datetime) -> bool:
    """April through September is summer time."""
    return 4 <= instant.month <= 9


def israel_offset_hours(instant: datetime) -> int:
    return 3 if is_israel_dst(instant) else 2


def utc_to_israel(instant: datetime) -> datetime:
    instant = to_naive_utc(instant)
    return instant + timedelta(hours=israel_offset_hours(instant))


def normalize_time_string(raw: Optional[str]) -> str:
    """
    Normalize a time string to HH:MM.

    Seconds are dropped and single digits padded ("9:5:30" -> "09:05").
    Anything that cannot be read as hours and minutes yields "00:00".
    """
    if not raw or not isinstance(raw, str):
        return FALLBACK_TIME

    parts = raw.strip().split(":")
    if len(parts) < 2:
        return FALLBACK_TIME

    hours, minutes = parts[0].strip(), parts[1].strip()[:2]
    if not _CLOCK_PART_RE.fullmatch(hours) or not _CLOCK_PART_RE.fullmatch(minutes):
        return FALLBACK_TIME
    if int(hours) > 23 or int(minutes) > 59:
        return FALLBACK_TIME

    return f"{hours.zfill(2)}:{minutes.zfill(2)}"


def to_stored_instant(date_str: Optional[str], time_str: Optional[str]) -> datetime:
    """
    Combine a date (YYYY-MM-DD) and a time (HH:MM) into the instant to store.

    The wall-clock value is kept as typed; no timezone math is applied so the
    value is never converted twice. Missing or malformed input falls back to now.
    """
    if not date_str or not time_str:
        logger.warning(f"Invalid date or time provided: date={date_str!r} time={time_str!r}")
        return utc_now()

    match = _DATE_RE.match(date_str)
    if not match or not _TIME_RE.match(time_str):
        logger.warning(f"Invalid date or time format: date={date_str!r} time={time_str!r}")
        return utc_now()

    year, month, day = (int(part) for part in match.groups())
    hours, minutes = (int(part) for part in normalize_time_string(time_str).split(":"))
    try:
        return datetime(year, month, day, hours, minutes)
    except ValueError:
        logger.warning(f"Date out of range: date={date_str!r} time={time_str!r}")
        return utc_now()


def to_display_local(instant: Optional[datetime]) -> LocalDisplay:
    """Render an instant as Israel-local date and time strings."""
    local = utc_to_israel(instant if instant is not None else utc_now())
    return LocalDisplay(date_str=local.strftime("%Y-%m-%d"), time_str=local.strftime("%H:%M"))


def format_display_date(instant: datetime) -> str:
    """dd/mm/YYYY in Israel time."""
    return utc_to_israel(instant).strftime("%d/%m/%Y")


def format_display_time(instant: datetime) -> str:
    """HH:MM in Israel time."""
    return utc_to_israel(instant).strftime("%H:%M")


def parse_instant(value: Union[str, datetime, None]) -> datetime:
    """
    Strictly parse a stored timestamp into a naive UTC datetime.

    Accepts datetime objects, ISO 8601 strings (with "Z" or an offset) and the
    database form "YYYY-MM-DD HH:MM[:SS]". Raises ValueError on anything else.
    """
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid timestamp: {value!r}")

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    return to_naive_utc(parsed)
