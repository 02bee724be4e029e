from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from datetime import tzinfo
from zoneinfo import ZoneInfo
from zoneinfo import ZoneInfoNotFoundError

from config.defaults import TIME_PARSE_MAX_AMOUNT
from misc.discord_timestamps import full_and_relative_tag


IN_PATTERN = re.compile(r"^in\s+(\d+)\s+(minutes|minute|mins|min|hours|hour|hrs|hr)$")
AT_PATTERN = re.compile(r"^at\s+(\d{1,2})(?::(\d{2}))?\s*(am|pm)?$")
NOW_DISPLAY = "**Right Now!**"


@dataclass(frozen=True, slots=True)
class TimeParseResult:
    ok: bool
    instant: datetime | None = None
    display: str | None = None


_FAILED = TimeParseResult(ok=False)


def local_now() -> datetime:
    # Host-local wall clock; sessions carry no timezone of their own.
    return datetime.now().astimezone()


def resolve_timezone(name: str | None) -> tuple[ZoneInfo, str | None]:
    """Returns (zone, warning). Unknown names fall back to UTC."""
    clean = str(name or "").strip() or "UTC"
    try:
        return (ZoneInfo(clean), None)
    except (ZoneInfoNotFoundError, ValueError):
        return (ZoneInfo("UTC"), f"Unknown timezone {clean!r}; using UTC.")


def _wall_clock(day, hour: int, minute: int, zone: tzinfo | None) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=zone)


def parse_time_expression(
    text: str | None,
    now: datetime | None = None,
    *,
    tz: tzinfo | None = None,
) -> TimeParseResult:
    """
    Turn "now", "in <N> <unit>" or "at <H>[:<MM>] [am|pm]" into an absolute instant.

    `now` must be timezone-aware when given. "at" times are wall-clock times in
    `tz` (or `now`'s own timezone when tz is None) and roll over to the same
    wall-clock time on the next day when already passed, across DST changes too.
    "in" offsets are elapsed time.
    """
    clean = str(text or "").strip().lower()
    if not clean:
        return _FAILED
    if now is not None and (now.tzinfo is None or now.utcoffset() is None):
        raise ValueError("now must be timezone-aware")
    if tz is not None:
        now = now.astimezone(tz) if now is not None else datetime.now(tz)
    elif now is None:
        now = local_now()

    if clean == "now":
        return TimeParseResult(ok=True, instant=now, display=NOW_DISPLAY)

    m = IN_PATTERN.fullmatch(clean)
    if m:
        amount = int(m.group(1))
        if amount <= 0 or amount > TIME_PARSE_MAX_AMOUNT:
            return _FAILED
        if m.group(2).startswith("h"):
            delta = timedelta(hours=amount)
        else:
            delta = timedelta(minutes=amount)
        # UTC arithmetic so a DST change inside the window doesn't shift it
        target = (now.astimezone(timezone.utc) + delta).astimezone(now.tzinfo)
        return TimeParseResult(ok=True, instant=target, display=full_and_relative_tag(target))

    m = AT_PATTERN.fullmatch(clean)
    if m:
        hour = int(m.group(1))
        minute = int(m.group(2)) if m.group(2) else 0
        meridiem = m.group(3)
        if minute > 59:
            return _FAILED
        if meridiem:
            if hour < 1 or hour > 12:
                return _FAILED
            if meridiem == "pm" and hour != 12:
                hour += 12
            elif meridiem == "am" and hour == 12:
                hour = 0
        elif hour > 23:
            return _FAILED

        target = _wall_clock(now.date(), hour, minute, now.tzinfo)
        if target <= now:
            target = _wall_clock(now.date() + timedelta(days=1), hour, minute, now.tzinfo)
        return TimeParseResult(ok=True, instant=target, display=full_and_relative_tag(target))

    return _FAILED
