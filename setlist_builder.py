"""
Setlist assembly and setlist metrics.

A candidate setlist is an ordered list of song references coming from the
set builder UI, a saved set, or the AI suggestion endpoint. It can contain
duplicates, ids that no longer exist, or stale song snapshots.
:func:`assemble_setlist` turns it into a clean list of catalog songs with
contiguous 1-based positions. Everything here is pure; callers load the
catalog and persist the result.
"""
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Iterable

DEFAULT_ENERGY = "Medium"
DEFAULT_VOCALIST = "Both"
DEFAULT_LANGUAGE = "english"
MAX_DURATION_SECONDS = 24 * 60 * 60


@dataclass
class AssembledSetlist:
    songs: list[dict] = field(default_factory=list)
    dropped: int = 0

    @property
    def song_ids(self) -> list[str]:
        return song_ids(self.songs)


# --- durations ---

def parse_duration_seconds(value) -> int | None:
    """
    Normalize a duration to whole seconds.

    Accepts 'mm:ss' (e.g. '3:30') or a number of minutes (4.1, '4.1', 4).
    Returns None if empty/invalid.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _minutes_to_seconds(value)
    s = str(value).strip()
    if not s:
        return None
    try:
        if ":" in s:
            m, sec = s.split(":", 1)
            minutes, seconds = int(m), int(sec)
            if minutes < 0 or not 0 <= seconds < 60:
                return None
            total = minutes * 60 + seconds
            return total if total <= MAX_DURATION_SECONDS else None
        minutes_float = float(s)
    except ValueError:
        return None
    return _minutes_to_seconds(minutes_float)


def _minutes_to_seconds(minutes) -> int | None:
    # rejects NaN, infinities and values too large to be a song
    try:
        seconds = float(minutes) * 60
    except OverflowError:
        return None
    if not math.isfinite(seconds) or not 0 <= seconds <= MAX_DURATION_SECONDS:
        return None
    return int(round(seconds))


def fmt_mmss(total_sec: int | None) -> str:
    if total_sec is None:
        return ""
    m = total_sec // 60
    s = total_sec % 60
    return f"{m}:{s:02d}"


def song_minutes(song: dict) -> float:
    seconds = song.get("durationSeconds")
    if not isinstance(seconds, int) or isinstance(seconds, bool):
        seconds = parse_duration_seconds(song.get("duration"))
    return (seconds or 0) / 60


# --- assembly ---

def _coerce_candidate(item) -> dict | None:
    if isinstance(item, Mapping):
        if item.get("id") in (None, ""):
            return None
        return {**item, "id": str(item["id"])}
    if isinstance(item, (str, int)) and not isinstance(item, bool) and str(item):
        return {"id": str(item)}
    return None


def _catalog_map(catalog) -> dict:
    if isinstance(catalog, Mapping):
        return dict(catalog)
    return {str(song["id"]): song for song in catalog}


def assemble_setlist(candidate_items: Iterable, catalog) -> AssembledSetlist:
    """Deduplicate, resolve and number a candidate song list.

    Unknown ids and repeated ids (after the first occurrence) are dropped
    silently and counted in ``dropped``. Each surviving song is the catalog
    record plus whatever extra fields the candidate carried that the catalog
    does not define (AI ``reasoning``, set notes). Positions count surviving
    songs only.
    """
    songs_by_id = _catalog_map(catalog)
    result = AssembledSetlist()
    seen: set[str] = set()

    for raw in candidate_items or []:
        item = _coerce_candidate(raw)
        if item is None or item["id"] not in songs_by_id or item["id"] in seen:
            result.dropped += 1
            continue
        seen.add(item["id"])
        record = songs_by_id[item["id"]]
        extras = {k: v for k, v in item.items() if k not in record and k != "position"}
        result.songs.append({**record, **extras, "position": len(result.songs) + 1})

    return result


def song_ids(songs: Iterable[dict]) -> list[str]:
    return [song["id"] for song in songs]


# --- metrics ---

def total_duration(songs: Iterable[dict]) -> float:
    """Total length in minutes."""
    return round(sum(song_minutes(s) for s in songs), 2)


def language_mix(songs: list[dict], language: str = DEFAULT_LANGUAGE) -> int:
    """Percentage of songs in ``language``, rounded; 0 for an empty list."""
    if not songs:
        return 0
    target = language.lower()
    matching = sum(1 for s in songs if (s.get("language") or DEFAULT_LANGUAGE).lower() == target)
    # round half up, like the UI does
    return int(matching * 100 / len(songs) + 0.5)


def _count_by(songs: Iterable[dict], key: str, default: str) -> dict[str, int]:
    counts: dict[str, int] = {}
    for song in songs:
        value = song.get(key) or default
        counts[value] = counts.get(value, 0) + 1
    return counts


def energy_distribution(songs: Iterable[dict]) -> dict[str, int]:
    return _count_by(songs, "energy", DEFAULT_ENERGY)


def singer_balance(songs: Iterable[dict]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for song in songs:
        singer = song.get("vocalist") or song.get("leadSinger") or DEFAULT_VOCALIST
        counts[singer] = counts.get(singer, 0) + 1
    return counts


def instrument_changes(songs: list[dict]) -> dict[str, int]:
    """Adjacent transitions where the bass or the guitar differs."""
    changes = {"bassGuitar": 0, "guitar": 0}
    for prev, cur in zip(songs, songs[1:]):
        for instrument in changes:
            if prev.get(instrument) != cur.get(instrument):
                changes[instrument] += 1
    return changes


def setlist_metrics(songs: list[dict]) -> dict:
    return {
        "songCount": len(songs),
        "totalDuration": total_duration(songs),
        "englishPercentage": language_mix(songs, "english"),
        "energyDistribution": energy_distribution(songs),
        "singerBalance": singer_balance(songs),
        "instrumentChanges": instrument_changes(songs),
    }
