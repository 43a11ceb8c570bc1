import re
from datetime import date, datetime

from flask import abort, request

from availability_status import summarize_dates, iso_to_date_key
from models import AvailabilityEntry, BandMember, Song
from setlist_builder import assemble_setlist, setlist_metrics

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^\d{2}:\d{2}$")


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description="Request body must be a JSON object")
    return data


def clean_str(value, *, max_len: int | None = None) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    if max_len is not None:
        value = value[:max_len]
    return value or None


def require_text(data: dict, field: str, label: str | None = None) -> str:
    value = clean_str(data.get(field))
    if not value:
        abort(400, description=f"{label or field} is required")
    return value


def require_iso_date(value, field: str = "date") -> str:
    value = clean_str(value)
    if not value or not _ISO_DATE_RE.match(value):
        abort(400, description=f"{field} must be in YYYY-MM-DD format")
    try:
        date.fromisoformat(value)
    except ValueError:
        abort(400, description=f"{field} is not a valid date")
    return value


def require_time(value, field: str = "time") -> str:
    value = clean_str(value)
    if not value or not _TIME_RE.match(value):
        abort(400, description=f"{field} must be in HH:MM format")
    try:
        datetime.strptime(value, "%H:%M")
    except ValueError:
        abort(400, description=f"{field} is not a valid time")
    return value


def require_choice(value, choices, field: str) -> str:
    if value not in choices:
        abort(400, description=f"{field} must be one of: {', '.join(choices)}")
    return value


def as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


# --- collaborators for the pure engines ---

def load_catalog() -> dict[str, dict]:
    """Authoritative song catalog, id -> serialized song."""
    return {song.id: song.to_dict() for song in Song.query.all()}


def core_roster() -> list[dict]:
    return [m.to_dict() for m in BandMember.query.filter_by(is_core=True).all()]


def availability_summary(date_keys: list[str], roster: list[dict] | None = None) -> dict:
    """Aggregate status per DD-MM-YYYY key, loading only the entries needed."""
    if roster is None:
        roster = core_roster()
    entries = []
    if date_keys:
        entries = AvailabilityEntry.query.filter(AvailabilityEntry.date_string.in_(date_keys)).all()
    return summarize_dates(roster, entries, date_keys)


def availability_for_iso(iso_dates: list[str]) -> dict:
    """Same as :func:`availability_summary` but keyed by the ISO date."""
    keys = {}
    for value in iso_dates:
        try:
            keys[value] = iso_to_date_key(value)
        except ValueError:
            continue
    summary = availability_summary(sorted(set(keys.values())))
    return {iso: summary[key] for iso, key in keys.items()}


def hydrate(song_ids: list[str], catalog: dict, annotations: dict | None = None) -> dict:
    """Resolve stored ids to songs; returns ``{"songs", "metrics"}``."""
    annotations = annotations or {}
    candidates = [{"id": sid, **annotations.get(sid, {})} for sid in song_ids or []]
    assembled = assemble_setlist(candidates, catalog)
    return {"songs": assembled.songs, "metrics": setlist_metrics(assembled.songs)}


def candidate_list(value, field: str = "songs") -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        abort(400, description=f"{field} must be a list")
    return value
