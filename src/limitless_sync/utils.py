# -*- coding: utf-8 -*-
"""Shared helpers: stderr output, timezones and timestamp parsing/formatting."""

from __future__ import annotations
import re
import sys
from datetime import date, datetime, timedelta
from typing import Iterator, Optional

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import tzlocal

# ── Constants ────────────────────────────────────────────────────────────────
DEFAULT_TZ   = "UTC"     # when the host zone cannot be determined
API_DATE_FMT = "%Y-%m-%d"
DATE_NAME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# ── Output ───────────────────────────────────────────────────────────────────
def eprint(msg: str, verbose: bool=False):
    if verbose:
        print(msg, file=sys.stderr)

def progress_print(msg: str, quiet: bool=False):
    if not quiet:
        print(msg, file=sys.stderr)

# ── Dates & times ────────────────────────────────────────────────────────────
def local_tz_name() -> str:
    """IANA name of the host timezone, or UTC if it cannot be determined."""
    try:
        name = tzlocal.get_localzone_name()
    except (LookupError, ValueError, OSError) as e:
        print(f"Warning: Could not get local timezone: {e}. Defaulting to {DEFAULT_TZ}.", file=sys.stderr)
        return DEFAULT_TZ
    return name or DEFAULT_TZ

def get_tz(name: Optional[str]=None) -> ZoneInfo:
    """Resolve `name`; an empty name means the host timezone."""
    name = name or local_tz_name()
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        print(f"Warning: Timezone '{name}' not found; falling back to UTC.", file=sys.stderr)
        return ZoneInfo("UTC")

def parse_date_name(name: str) -> Optional[date]:
    """Return the date for a `YYYY-MM-DD` basename, or None if it isn't one."""
    if not DATE_NAME_RE.match(name):
        return None
    try:
        return datetime.strptime(name, API_DATE_FMT).date()
    except ValueError:
        return None

def daterange(start: date, end: date) -> Iterator[date]:
    d = start
    while d <= end:
        yield d
        d += timedelta(days=1)

def parse_instant(s: str) -> datetime:
    """Parse an ISO-8601 instant as returned by the API ("Z" suffix allowed)."""
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return datetime.fromisoformat(s)

def localize(dt: datetime, tz: ZoneInfo) -> datetime:
    # Naive instants are already wall-clock time in the requested timezone.
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(tz)

def _clock(dt: datetime) -> tuple[int, str]:
    hour = dt.hour % 12 or 12
    return hour, "AM" if dt.hour < 12 else "PM"

def format_short_timestamp(dt: datetime) -> str:
    """`02/09/25 10:00 AM` style, used for transcript lines."""
    hour, ampm = _clock(dt)
    return f"{dt:%m/%d/%y} {hour}:{dt:%M} {ampm}"

def format_timestamp(dt: datetime) -> str:
    """`2/9/2025, 10:00:00 AM` style, used for chat metadata."""
    hour, ampm = _clock(dt)
    return f"{dt.month}/{dt.day}/{dt.year}, {hour}:{dt:%M:%S} {ampm}"
