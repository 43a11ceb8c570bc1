from flask import Blueprint, abort, current_app, jsonify, request
from sqlalchemy import or_

from guards import api_login_required, core_member_required
from models import db, Song, ENERGY_LEVELS, LANGUAGES
from routes.helpers import as_bool, clean_str, json_body, require_text
from setlist_builder import parse_duration_seconds

songs_bp = Blueprint("songs", __name__, url_prefix="/api/songs")


def _song_or_404(song_id: str) -> Song:
    song = db.session.get(Song, song_id)
    if song is None:
        abort(404, description="Song not found")
    return song


def _normalize_tags(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        abort(400, description="tags must be a list or a comma-separated string")
    tags = [str(t).strip() for t in value if str(t).strip()]
    return list(dict.fromkeys(tags))


def _vocalist(value) -> str:
    choices = tuple(current_app.config["BAND_VOCALISTS"]) + ("Both",)
    lookup = {c.lower(): c for c in choices}
    key = (clean_str(value) or "").lower()
    if key not in lookup:
        abort(400, description=f"vocalist must be one of: {', '.join(choices)}")
    return lookup[key]


def _apply_song_fields(song: Song, data: dict, *, creating: bool) -> None:
    """Copy incoming JSON onto the model; only keys present are touched."""
    if creating or "title" in data:
        song.title = require_text(data, "title", "Title")
    if "artist" in data:
        song.artist = clean_str(data.get("artist")) or ""
    if "key" in data:
        song.musical_key = clean_str(data.get("key"), max_len=20)
    if "duration" in data:
        raw = data.get("duration")
        seconds = parse_duration_seconds(raw)
        if seconds is None and clean_str(raw):
            abort(400, description="duration must be minutes (e.g. 4.1) or MM:SS")
        song.duration_sec = seconds
    if "language" in data:
        language = (clean_str(data.get("language")) or "").lower()
        if language not in LANGUAGES:
            abort(400, description=f"language must be one of: {', '.join(LANGUAGES)}")
        song.language = language
    vocalist = data.get("vocalist", data.get("leadSinger"))
    if vocalist is not None:
        song.vocalist = _vocalist(vocalist)
    if "energy" in data:
        energy = (clean_str(data.get("energy")) or "").capitalize()
        if energy not in ENERGY_LEVELS:
            abort(400, description=f"energy must be one of: {', '.join(ENERGY_LEVELS)}")
        song.energy = energy
    if "bassGuitar" in data:
        song.bass_guitar = clean_str(data.get("bassGuitar"), max_len=60)
    if "guitar" in data:
        song.guitar = clean_str(data.get("guitar"), max_len=60)
    if "backingTrack" in data:
        song.backing_track = as_bool(data.get("backingTrack"))
    if "tags" in data:
        song.tags = _normalize_tags(data.get("tags"))
    if "medley" in data or "medleyPosition" in data:
        medley = clean_str(data.get("medley", song.medley))
        if not medley:
            song.medley = None
            song.medley_position = None
        else:
            song.medley = medley
            position = data.get("medleyPosition", song.medley_position)
            try:
                song.medley_position = int(position) if position not in (None, "") else None
            except (TypeError, ValueError):
                abort(400, description="medleyPosition must be a whole number")
    if "notes" in data:
        song.notes = clean_str(data.get("notes"))


@songs_bp.get("")
@api_login_required
def list_songs():
    query = Song.query
    q = (request.args.get("q") or "").strip()
    if q:
        like = f"%{q}%"
        query = query.filter(or_(Song.title.ilike(like), Song.artist.ilike(like), Song.musical_key.ilike(like)))
    language = (request.args.get("language") or "").strip().lower()
    if language:
        query = query.filter(Song.language == language)
    energy = (request.args.get("energy") or "").strip().capitalize()
    if energy:
        query = query.filter(Song.energy == energy)
    vocalist = (request.args.get("vocalist") or "").strip()
    if vocalist:
        query = query.filter(Song.vocalist.ilike(vocalist))

    songs = [s.to_dict() for s in query.order_by(Song.title.asc()).all()]
    tag = (request.args.get("tag") or "").strip().lower()
    if tag:
        songs = [s for s in songs if tag in {t.lower() for t in s["tags"]}]
    return jsonify(songs)


@songs_bp.get("/<song_id>")
@api_login_required
def get_song(song_id: str):
    return jsonify(_song_or_404(song_id).to_dict())


@songs_bp.post("")
@core_member_required
def create_song():
    data = json_body()
    song = Song(tags=[])
    _apply_song_fields(song, data, creating=True)
    db.session.add(song)
    db.session.commit()
    current_app.logger.info("Created song %s (%s)", song.id, song.title)
    return jsonify(song.to_dict()), 201


@songs_bp.put("/<song_id>")
@core_member_required
def update_song(song_id: str):
    song = _song_or_404(song_id)
    _apply_song_fields(song, json_body(), creating=False)
    db.session.commit()
    return jsonify(song.to_dict())


@songs_bp.delete("/<song_id>")
@core_member_required
def delete_song(song_id: str):
    song = _song_or_404(song_id)
    db.session.delete(song)
    db.session.commit()
    # Sets and gigs keep the id; the assembler drops it on their next read.
    current_app.logger.info("Deleted song %s", song_id)
    return jsonify({"message": "Song deleted successfully"})
