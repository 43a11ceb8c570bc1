from flask import Blueprint, Response, abort, current_app, jsonify, request
from flask_login import current_user

from guards import api_login_required, core_member_required, current_band_member, is_admin, is_replacement_user
from models import db, BandMember, Gig, GigComment, GIG_STATUSES
from pdf_export import render_setlist_pdf
from routes.helpers import (
    as_bool,
    availability_for_iso,
    candidate_list,
    clean_str,
    hydrate,
    json_body,
    load_catalog,
    require_choice,
    require_iso_date,
    require_text,
    require_time,
)
from setlist_builder import assemble_setlist, setlist_metrics

gigs_bp = Blueprint("gigs", __name__, url_prefix="/api/gigs")


def _visible_to_current_user(gig: Gig) -> bool:
    if not is_replacement_user():
        return True
    member = current_band_member()
    return member.id in gig.lineup_member_ids()


def _gig_or_404(gig_id: str) -> Gig:
    gig = db.session.get(Gig, gig_id)
    if gig is None or not _visible_to_current_user(gig):
        abort(404, description="Gig not found")
    return gig


def gig_payload(gig: Gig, catalog: dict, availability: dict | None = None) -> dict:
    payload = gig.to_dict()
    sets = []
    all_songs = []
    for index, item in enumerate(gig.sets or [], start=1):
        hydrated = hydrate(item.get("songIds") or [], catalog)
        all_songs.extend(hydrated["songs"])
        sets.append({"name": item.get("name") or f"Set {index}", "songIds": item.get("songIds") or [], **hydrated})
    payload["sets"] = sets
    payload["metrics"] = setlist_metrics(all_songs)
    if availability is not None:
        payload["availability"] = availability.get(gig.date)
    return payload


def _clean_lineup(raw) -> list[dict]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        abort(400, description="lineup must be a list")
    known = {m.id for m in BandMember.query.all()}
    lineup = []
    for item in raw:
        if not isinstance(item, dict):
            abort(400, description="lineup entries must be objects")
        member_id = clean_str(item.get("memberId"))
        if member_id and member_id not in known:
            abort(400, description=f"Unknown band member {member_id}")
        lineup.append({
            "memberId": member_id,
            "instrument": clean_str(item.get("instrument")) or "",
            "isReplacement": as_bool(item.get("isReplacement")),
        })
    return lineup


def _clean_sets(raw, catalog: dict) -> list[dict]:
    """Each set keeps only its assembled id list; songs are never embedded."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        abort(400, description="sets must be a list")
    sets = []
    for index, item in enumerate(raw, start=1):
        if not isinstance(item, dict):
            abort(400, description="sets entries must be objects")
        candidates = item.get("songs") if "songs" in item else item.get("songIds")
        assembled = assemble_setlist(candidate_list(candidates, "sets.songs"), catalog)
        sets.append({"name": clean_str(item.get("name")) or f"Set {index}", "songIds": assembled.song_ids})
    return sets


def _apply_gig_fields(gig: Gig, data: dict, catalog: dict, *, creating: bool) -> None:
    if creating or "name" in data:
        gig.name = require_text(data, "name", "Name")
    if creating or "date" in data:
        gig.date = require_iso_date(data.get("date"))
    if "time" in data:
        gig.time = require_time(data["time"]) if data.get("time") else None
    if creating or "venue" in data:
        gig.venue = clean_str(data.get("venue")) or ""
    if "address" in data:
        gig.address = clean_str(data.get("address"))
    if "notes" in data:
        gig.notes = clean_str(data.get("notes"))
    if "status" in data:
        status = data.get("status")
        if status == "cancelled":
            status = "canceled"
        gig.status = require_choice(status, GIG_STATUSES, "status")
    if "contractUploaded" in data:
        gig.contract_uploaded = as_bool(data.get("contractUploaded"))
    if creating or "lineup" in data:
        gig.lineup = _clean_lineup(data.get("lineup"))
    if creating or "sets" in data:
        gig.sets = _clean_sets(data.get("sets"), catalog)


@gigs_bp.get("")
@api_login_required
def list_gigs():
    catalog = load_catalog()
    gigs = [g for g in Gig.query.order_by(Gig.date.asc(), Gig.time.asc()).all() if _visible_to_current_user(g)]
    status = request.args.get("status")
    if status:
        gigs = [g for g in gigs if g.status == status]
    availability = availability_for_iso([g.date for g in gigs])
    return jsonify([gig_payload(g, catalog, availability) for g in gigs])


@gigs_bp.get("/<gig_id>")
@api_login_required
def get_gig(gig_id: str):
    gig = _gig_or_404(gig_id)
    return jsonify(gig_payload(gig, load_catalog(), availability_for_iso([gig.date])))


@gigs_bp.post("")
@core_member_required
def create_gig():
    data = json_body()
    catalog = load_catalog()
    gig = Gig(status="pending")
    _apply_gig_fields(gig, data, catalog, creating=True)
    db.session.add(gig)
    db.session.commit()
    current_app.logger.info("Created gig %s (%s on %s)", gig.id, gig.name, gig.date)
    return jsonify(gig_payload(gig, catalog, availability_for_iso([gig.date]))), 201


@gigs_bp.put("/<gig_id>")
@core_member_required
def update_gig(gig_id: str):
    gig = _gig_or_404(gig_id)
    catalog = load_catalog()
    _apply_gig_fields(gig, json_body(), catalog, creating=False)
    db.session.commit()
    return jsonify(gig_payload(gig, catalog, availability_for_iso([gig.date])))


@gigs_bp.delete("/<gig_id>")
@core_member_required
def delete_gig(gig_id: str):
    gig = _gig_or_404(gig_id)
    db.session.delete(gig)
    db.session.commit()
    current_app.logger.info("Deleted gig %s", gig_id)
    return jsonify({"message": "Gig deleted successfully"})


# --- comments ---

@gigs_bp.get("/<gig_id>/comments")
@api_login_required
def list_comments(gig_id: str):
    gig = _gig_or_404(gig_id)
    return jsonify([c.to_dict() for c in gig.comments])


@gigs_bp.post("/<gig_id>/comments")
@api_login_required
def add_comment(gig_id: str):
    gig = _gig_or_404(gig_id)
    data = json_body()
    message = require_text(data, "message", "Message")
    member = current_band_member()
    author = member.name if member else current_user.username
    comment = GigComment(gig_id=gig.id, user_id=current_user.id, author=author, message=message)
    db.session.add(comment)
    db.session.commit()
    return jsonify(comment.to_dict()), 201


@gigs_bp.delete("/<gig_id>/comments/<comment_id>")
@api_login_required
def delete_comment(gig_id: str, comment_id: str):
    gig = _gig_or_404(gig_id)
    comment = GigComment.query.filter_by(id=comment_id, gig_id=gig.id).first()
    if comment is None:
        abort(404, description="Comment not found")
    if not is_admin() and comment.user_id != current_user.id:
        abort(403, description="You can only delete your own comments")
    db.session.delete(comment)
    db.session.commit()
    return jsonify({"message": "Comment deleted successfully"})


@gigs_bp.get("/<gig_id>/export.pdf")
@api_login_required
def export_gig_pdf(gig_id: str):
    gig = _gig_or_404(gig_id)
    payload = gig_payload(gig, load_catalog())
    subtitle = " · ".join(filter(None, [gig.date, gig.time, gig.venue]))
    pdf = render_setlist_pdf(gig.name, [(s["name"], s["songs"]) for s in payload["sets"]], subtitle=subtitle)
    resp = Response(pdf, mimetype="application/pdf")
    resp.headers["Content-Disposition"] = f'attachment; filename="gig-{gig.id}.pdf"'
    return resp
