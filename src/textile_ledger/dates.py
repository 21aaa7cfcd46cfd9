from __future__ import annotations

from datetime import date, datetime, timezone
import re
import time

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

DAY_MS = 24 * 60 * 60 * 1000


def now_ms() -> int:
    """Milliseconds since the epoch (the ledger's timestamp unit)."""
    return time.time_ns() // 1_000_000


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def today_iso() -> str:
    return date.today().isoformat()


def _try_strptime(s: str, fmts: list[str]) -> datetime | None:
    for fmt in fmts:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            pass
    return None


def normalize_entry_date(value: str | None) -> str | None:
    """Normalize user-typed dates into the ledger's YYYY-MM-DD form.

    Accepts:
      - 2024-10-25 (also with a trailing time, which is dropped)
      - 10/25/2024, 10/25/24, 10-25-2024
      - Oct 25, 2024 / October 25 2024
      - 25-OCT-2024

    Returns None if parsing fails.
    """
    if not value:
        return None
    s = str(value).strip()
    if not s:
        return None

    dt = _try_strptime(s, ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M"])
    if dt:
        return dt.strftime("%Y-%m-%d")

    # US numeric formats
    dt = _try_strptime(s, ["%m/%d/%Y", "%m/%d/%y", "%m-%d-%Y", "%m-%d-%y"])
    if dt:
        return dt.strftime("%Y-%m-%d")

    # Oct 25, 2024 / October 25 2024
    m = re.match(r"^([A-Za-z]{3,9})\.?\s+(\d{1,2}),?\s*(\d{4})$", s)
    if m:
        mon_s, day_s, year_s = m.groups()
        mon = _MONTHS.get(mon_s[:3].lower())
        if mon:
            try:
                return date(int(year_s), mon, int(day_s)).isoformat()
            except ValueError:
                return None

    # 25-OCT-2024
    m = re.match(r"^(\d{1,2})-([A-Za-z]{3})-(\d{4})$", s)
    if m:
        d, mon_s, y = m.groups()
        mon = _MONTHS.get(mon_s.lower())
        if mon:
            try:
                return date(int(y), mon, int(d)).isoformat()
            except ValueError:
                return None

    return None


def day_label(entry_date: str) -> str:
    """Human heading for a ledger day, e.g. 'Friday, October 25, 2024'.

    Weekday and month names come from the process locale (LC_TIME). The date is
    taken at noon so no timezone handling can shift it to a neighbouring day.
    Unparseable values are returned unchanged.
    """
    try:
        dt = datetime.strptime(f"{entry_date}T12:00:00", "%Y-%m-%dT%H:%M:%S")
    except (TypeError, ValueError):
        return str(entry_date)
    return f"{dt.strftime('%A')}, {dt.strftime('%B')} {dt.day}, {dt.year}"


def pretty_timestamp(ms: int | None) -> str:
    """Local 'YYYY-MM-DD HH:MM' for a millisecond timestamp ('' when missing)."""
    if ms is None:
        return ""
    try:
        return datetime.fromtimestamp(int(ms) / 1000).strftime("%Y-%m-%d %H:%M")
    except (TypeError, ValueError, OverflowError, OSError):
        return ""
