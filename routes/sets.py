from flask import Blueprint, Response, abort, current_app, jsonify
from flask_login import current_user

from guards import api_login_required, core_member_required
from models import db, Setlist
from pdf_export import render_setlist_pdf
from routes.helpers import candidate_list, clean_str, hydrate, json_body, load_catalog, require_text
from setlist_builder import assemble_setlist, setlist_metrics

sets_bp = Blueprint("sets", __name__, url_prefix="/api/sets")


def _set_or_404(set_id: str) -> Setlist:
    sl = db.session.get(Setlist, set_id)
    if sl is None:
        abort(404, description="Set not found")
    return sl


def set_payload(sl: Setlist, catalog: dict) -> dict:
    """Serialized set with songs hydrated from the current catalog."""
    payload = sl.to_dict()
    annotations = (sl.meta or {}).get("songNotes") or {}
    payload.update(hydrate(sl.song_ids, catalog, annotations))
    return payload


def _song_notes(songs: list[dict]) -> dict:
    """Per-song annotations worth keeping alongside the id list."""
    notes = {}
    for song in songs:
        extra = {k: song[k] for k in ("reasoning", "setNotes") if song.get(k)}
        if extra:
            notes[song["id"]] = extra
    return notes


def _apply_songs(sl: Setlist, raw, catalog: dict) -> int:
    assembled = assemble_setlist(candidate_list(raw), catalog)
    if assembled.dropped:
        current_app.logger.info("Set %s: dropped %d unknown or duplicate songs", sl.id or sl.name, assembled.dropped)
    sl.song_ids = assembled.song_ids
    meta = dict(sl.meta or {})
    meta["songNotes"] = _song_notes(assembled.songs)
    sl.meta = meta
    return assembled.dropped


@sets_bp.get("")
@api_login_required
def list_sets():
    catalog = load_catalog()
    sets = Setlist.query.order_by(Setlist.created_at.desc()).all()
    return jsonify([set_payload(sl, catalog) for sl in sets])


@sets_bp.get("/<set_id>")
@api_login_required
def get_set(set_id: str):
    return jsonify(set_payload(_set_or_404(set_id), load_catalog()))


@sets_bp.post("")
@core_member_required
def create_set():
    data = json_body()
    catalog = load_catalog()
    metadata = data.get("metadata") or {}
    if not isinstance(metadata, dict):
        abort(400, description="metadata must be an object")
    sl = Setlist(
        name=require_text(data, "name", "Name"),
        created_by=clean_str(data.get("createdBy")) or current_user.username,
        meta=metadata,
    )
    dropped = _apply_songs(sl, data.get("songs"), catalog)
    db.session.add(sl)
    db.session.commit()
    current_app.logger.info("Created set %s with %d songs", sl.id, len(sl.song_ids))
    return jsonify({**set_payload(sl, catalog), "dropped": dropped}), 201


@sets_bp.put("/<set_id>")
@core_member_required
def update_set(set_id: str):
    sl = _set_or_404(set_id)
    data = json_body()
    catalog = load_catalog()
    if "name" in data:
        sl.name = require_text(data, "name", "Name")
    if "metadata" in data:
        metadata = data.get("metadata") or {}
        if not isinstance(metadata, dict):
            abort(400, description="metadata must be an object")
        sl.meta = {**metadata, "songNotes": (sl.meta or {}).get("songNotes", {})}
    dropped = 0
    if "songs" in data:
        dropped = _apply_songs(sl, data.get("songs"), catalog)
    db.session.commit()
    return jsonify({**set_payload(sl, catalog), "dropped": dropped})


@sets_bp.delete("/<set_id>")
@core_member_required
def delete_set(set_id: str):
    sl = _set_or_404(set_id)
    db.session.delete(sl)
    db.session.commit()
    return jsonify({"message": "Set deleted successfully"})


@sets_bp.post("/validate")
@api_login_required
def validate_set():
    """Assemble a candidate list and report metrics without saving it."""
    data = json_body()
    assembled = assemble_setlist(candidate_list(data.get("songs")), load_catalog())
    return jsonify({
        "songs": assembled.songs,
        "songIds": assembled.song_ids,
        "dropped": assembled.dropped,
        "metrics": setlist_metrics(assembled.songs),
    })


@sets_bp.get("/<set_id>/export.pdf")
@api_login_required
def export_set_pdf(set_id: str):
    sl = _set_or_404(set_id)
    payload = set_payload(sl, load_catalog())
    pdf = render_setlist_pdf(sl.name, [(None, payload["songs"])])
    resp = Response(pdf, mimetype="application/pdf")
    resp.headers["Content-Disposition"] = f'attachment; filename="set-{sl.id}.pdf"'
    return resp
