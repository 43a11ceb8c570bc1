from flask import Blueprint, abort, current_app, jsonify, request

from guards import api_login_required, core_member_required
from models import db, Rehearsal, REHEARSAL_STATUSES
from routes.helpers import availability_for_iso, clean_str, json_body, require_choice, require_iso_date, require_text, require_time

rehearsals_bp = Blueprint("rehearsals", __name__, url_prefix="/api/rehearsals")


def _rehearsal_or_404(rehearsal_id: str) -> Rehearsal:
    rehearsal = db.session.get(Rehearsal, rehearsal_id)
    if rehearsal is None:
        abort(404, description="Rehearsal not found")
    return rehearsal


def _payload(rehearsal: Rehearsal, availability: dict) -> dict:
    return {**rehearsal.to_dict(), "availability": availability.get(rehearsal.date)}


def _apply_fields(rehearsal: Rehearsal, data: dict, *, creating: bool) -> None:
    if creating or "name" in data:
        rehearsal.name = require_text(data, "name", "Name")
    if creating or "date" in data:
        rehearsal.date = require_iso_date(data.get("date"))
    if creating or "startTime" in data:
        rehearsal.start_time = require_time(data.get("startTime"), "startTime")
    if creating or "endTime" in data:
        rehearsal.end_time = require_time(data.get("endTime"), "endTime")
    if "location" in data:
        rehearsal.location = clean_str(data.get("location"))
    if "notes" in data:
        rehearsal.notes = clean_str(data.get("notes"))
    if "status" in data:
        rehearsal.status = require_choice(data.get("status"), REHEARSAL_STATUSES, "status")


@rehearsals_bp.get("")
@api_login_required
def list_rehearsals():
    query = Rehearsal.query
    status = request.args.get("status")
    if status:
        query = query.filter(Rehearsal.status == status)
    # ISO dates and HH:MM times sort correctly as strings
    rehearsals = query.order_by(Rehearsal.date.asc(), Rehearsal.start_time.asc()).all()
    availability = availability_for_iso([r.date for r in rehearsals])
    return jsonify([_payload(r, availability) for r in rehearsals])


@rehearsals_bp.get("/<rehearsal_id>")
@api_login_required
def get_rehearsal(rehearsal_id: str):
    rehearsal = _rehearsal_or_404(rehearsal_id)
    return jsonify(_payload(rehearsal, availability_for_iso([rehearsal.date])))


@rehearsals_bp.post("")
@core_member_required
def create_rehearsal():
    data = json_body()
    rehearsal = Rehearsal(status="planned")
    _apply_fields(rehearsal, data, creating=True)
    db.session.add(rehearsal)
    db.session.commit()
    current_app.logger.info("Created rehearsal %s on %s", rehearsal.id, rehearsal.date)
    return jsonify(_payload(rehearsal, availability_for_iso([rehearsal.date]))), 201


@rehearsals_bp.put("/<rehearsal_id>")
@core_member_required
def update_rehearsal(rehearsal_id: str):
    rehearsal = _rehearsal_or_404(rehearsal_id)
    _apply_fields(rehearsal, json_body(), creating=False)
    db.session.commit()
    return jsonify(_payload(rehearsal, availability_for_iso([rehearsal.date])))


@rehearsals_bp.delete("/<rehearsal_id>")
@core_member_required
def delete_rehearsal(rehearsal_id: str):
    rehearsal = _rehearsal_or_404(rehearsal_id)
    db.session.delete(rehearsal)
    db.session.commit()
    return jsonify({"message": "Rehearsal deleted successfully"})
