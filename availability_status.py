"""
Aggregate availability for one calendar date.

Given the core roster and the availability entries submitted for a date,
classify the date as one of:

    unknown   - not every core member has responded yet
    conflict  - every core member responded, at least one is unavailable
    partial   - every core member responded, nobody unavailable, someone maybe
    full      - every core member responded available

Availability is keyed by ``DD-MM-YYYY`` strings. Gigs and rehearsals use ISO
``YYYY-MM-DD`` dates; convert with :func:`iso_to_date_key`, never by slicing.
"""
import re
from datetime import date, datetime, timedelta
from typing import Iterable, Iterator

FULL = "full"
PARTIAL = "partial"
CONFLICT = "conflict"
UNKNOWN = "unknown"

DATE_KEY_FORMAT = "%d-%m-%Y"
_DATE_KEY_RE = re.compile(r"^\d{2}-\d{2}-\d{4}$")


def _as_dict(obj) -> dict:
    if isinstance(obj, dict):
        return obj
    return obj.to_dict()


def to_date_key(value: date) -> str:
    return value.strftime(DATE_KEY_FORMAT)


def is_date_key(value) -> bool:
    if not isinstance(value, str) or not _DATE_KEY_RE.match(value):
        return False
    try:
        datetime.strptime(value, DATE_KEY_FORMAT)
    except ValueError:
        return False
    return True


def parse_date_key(value: str) -> date:
    """``"DD-MM-YYYY"`` -> date. Raises ValueError for any other shape."""
    if not isinstance(value, str) or not _DATE_KEY_RE.match(value):
        raise ValueError(f"Expected DD-MM-YYYY, got {value!r}")
    return datetime.strptime(value, DATE_KEY_FORMAT).date()


def iso_to_date_key(value: str) -> str:
    """``"YYYY-MM-DD"`` -> ``"DD-MM-YYYY"``."""
    return to_date_key(date.fromisoformat(value))


def date_keys_between(start: date, end: date) -> Iterator[str]:
    """Every date key from start to end, inclusive."""
    day = start
    while day <= end:
        yield to_date_key(day)
        day += timedelta(days=1)


def aggregate_status(core_members: Iterable, entries_for_date: Iterable) -> str:
    """Classify one date from the core roster and that date's entries.

    Entries from non-core or unknown members are ignored. Completeness is
    checked before severity, so a date with missing responses is always
    ``unknown`` even when someone already answered ``unavailable``.
    """
    core_ids = {_as_dict(m)["id"] for m in core_members}
    by_member = {}
    for entry in entries_for_date:
        entry = _as_dict(entry)
        if entry.get("memberId") in core_ids:
            by_member[entry["memberId"]] = entry.get("status")

    if len(by_member) < len(core_ids):
        return UNKNOWN
    statuses = set(by_member.values())
    if "unavailable" in statuses:
        return CONFLICT
    if "maybe" in statuses:
        return PARTIAL
    return FULL


def summarize_dates(core_members: Iterable, entries: Iterable, date_keys: Iterable[str]) -> dict:
    """Run :func:`aggregate_status` for each date key.

    Returns ``{date_key: {"status", "responded", "required"}}``.
    """
    core = [_as_dict(m) for m in core_members]
    core_ids = {m["id"] for m in core}

    grouped: dict[str, list[dict]] = {}
    for entry in entries:
        entry = _as_dict(entry)
        grouped.setdefault(entry.get("dateString"), []).append(entry)

    summary = {}
    for key in date_keys:
        day_entries = grouped.get(key, [])
        responded = {e.get("memberId") for e in day_entries} & core_ids
        summary[key] = {
            "status": aggregate_status(core, day_entries),
            "responded": len(responded),
            "required": len(core_ids),
        }
    return summary
