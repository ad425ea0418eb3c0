"""
Calendar and timezone helpers.

Julian Day conversion follows the usual Meeus decomposition. Offsets come
from a small built-in table with a month-level DST window; names missing
from the table are resolved through pytz. Turkey gets its own historical
rule because its clock changes do not follow the table's simplification.
"""

import calendar
import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Tuple, Union

import pytz

from exceptions import InvalidDateTimeError, InvalidTimezoneError

logger = logging.getLogger(__name__)

GREGORIAN_CUTOVER_JD = 2299161
J2000 = 2451545.0

# (standard offset, DST offset, DST start month, DST end month).
# A start month of 0 means the zone keeps one offset all year.
TZ_TABLE: Dict[str, Tuple[float, float, int, int]] = {
    'Europe/Istanbul': (3, 3, 0, 0),
    'Europe/Berlin': (1, 2, 3, 10),
    'Europe/Vienna': (1, 2, 3, 10),
    'Europe/Paris': (1, 2, 3, 10),
    'Europe/Amsterdam': (1, 2, 3, 10),
    'Europe/Zurich': (1, 2, 3, 10),
    'Europe/London': (0, 1, 3, 10),
    'America/New_York': (-5, -4, 3, 11),
    'America/Chicago': (-6, -5, 3, 11),
    'America/Los_Angeles': (-8, -7, 3, 11),
    'Europe/Bucharest': (2, 3, 3, 10),
    'Europe/Moscow': (3, 3, 0, 0),
}

TURKEY_ALIASES = frozenset({'tr', 'turkey', 'istanbul'})

# Turkey dropped DST and stayed on UTC+3 from September 2016.
TURKEY_PERMANENT_FROM = (2016, 9)
# DST ended in September until 1995, in October from 1996.
TURKEY_OCTOBER_END_FROM = 1996


@dataclass(frozen=True)
class CivilDateTime:
    """Calendar date and time rounded to the minute."""
    year: int
    month: int
    day: int
    hour: int
    minute: int

    def isoformat(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}T{self.hour:02d}:{self.minute:02d}"

    def __str__(self):
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d} {self.hour:02d}:{self.minute:02d}"


def date_to_julian_day(year: int, month: int, day: int, hour: float = 0, minute: float = 0) -> float:
    """
    Gregorian-proleptic Julian Day for a civil date and time.

    Hour may fall outside 0-23 after an offset has been subtracted; the
    fractional day carries the difference.
    """
    if month <= 2:
        year -= 1
        month += 12
    a = math.floor(year / 100)
    b = 2 - a + math.floor(a / 4)
    return (math.floor(365.25 * (year + 4716))
            + math.floor(30.6001 * (month + 1))
            + day + b - 1524.5
            + (hour + minute / 60.0) / 24.0)


def julian_day_to_date(jd: float) -> CivilDateTime:
    """Inverse of date_to_julian_day, rounded to the nearest minute."""
    z = math.floor(jd + 0.5)
    f = jd + 0.5 - z
    total_minutes = round(f * 1440)
    if total_minutes >= 1440:
        z += 1
        total_minutes -= 1440

    if z < GREGORIAN_CUTOVER_JD:
        a = z
    else:
        alpha = math.floor((z - 1867216.25) / 36524.25)
        a = z + 1 + alpha - math.floor(alpha / 4)
    b = a + 1524
    c = math.floor((b - 122.1) / 365.25)
    d = math.floor(365.25 * c)
    e = math.floor((b - d) / 30.6001)

    day = b - d - math.floor(30.6001 * e)
    month = e - 1 if e < 14 else e - 13
    year = c - 4716 if month > 2 else c - 4715

    return CivilDateTime(int(year), int(month), int(day), total_minutes // 60, total_minutes % 60)


def validate_civil_datetime(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> None:
    """Raise InvalidDateTimeError unless the fields form a real civil date and time."""
    if not 1 <= month <= 12:
        raise InvalidDateTimeError(f"Month must be between 1 and 12, got {month}")
    days_in_month = calendar.monthrange(year, month)[1]
    if not 1 <= day <= days_in_month:
        raise InvalidDateTimeError(f"Day must be between 1 and {days_in_month} for {year}-{month:02d}, got {day}")
    if not 0 <= hour <= 23:
        raise InvalidDateTimeError(f"Hour must be between 0 and 23, got {hour}")
    if not 0 <= minute <= 59:
        raise InvalidDateTimeError(f"Minute must be between 0 and 59, got {minute}")


def last_sunday_of_month(year: int, month: int) -> int:
    last_day = calendar.monthrange(year, month)[1]
    # calendar.weekday: Monday is 0, Sunday is 6
    return last_day - (calendar.weekday(year, month, last_day) + 1) % 7


def resolve_turkey_offset(year: int, month: int, day: int) -> int:
    """
    Historical UTC offset for Turkey.

    Summer time (+3) runs from the last Sunday of March to the last Sunday
    of September (before 1996) or October (1996 onward); winter is +2.
    Permanent +3 from September 2016. Older clock regimes are not modelled.
    """
    if (year, month) >= TURKEY_PERMANENT_FROM:
        return 3

    start_day = last_sunday_of_month(year, 3)
    end_month = 10 if year >= TURKEY_OCTOBER_END_FROM else 9
    end_day = last_sunday_of_month(year, end_month)

    if 3 < month < end_month:
        return 3
    if month < 3 or month > end_month:
        return 2
    if month == 3:
        return 3 if day >= start_day else 2
    return 3 if day < end_day else 2


def is_in_turkey(latitude: float, longitude: float) -> bool:
    """Bounding box used to auto-select the Turkey rule."""
    return 35 < latitude < 43 and 25 < longitude < 45


def resolve_timezone_offset(tz: Union[str, float, int], year: int, month: int) -> float:
    """
    UTC offset in hours for a zone name or numeric offset.

    Table zones switch to DST when month lies strictly inside the DST
    window. Other IANA names are resolved with pytz on the 15th at noon.
    """
    if isinstance(tz, (int, float)):
        return float(tz)

    if tz in TZ_TABLE:
        standard, dst, dst_start, dst_end = TZ_TABLE[tz]
        if dst_start == 0:
            return float(standard)
        if dst_start < month < dst_end:
            return float(dst)
        return float(standard)

    try:
        zone = pytz.timezone(tz)
    except pytz.exceptions.UnknownTimeZoneError:
        raise InvalidTimezoneError(f"Unknown timezone: {tz}")

    localized = zone.localize(datetime(year, month, 15, 12, 0))
    offset = localized.utcoffset().total_seconds() / 3600.0
    logger.debug("Resolved %s for %d-%02d through pytz: %+.2f", tz, year, month, offset)
    return offset


def known_timezones() -> list[str]:
    """Zone names served from the built-in table."""
    return sorted(TZ_TABLE)
