from flask import Blueprint, abort, current_app, jsonify, request

from availability_status import date_keys_between, is_date_key, parse_date_key
from guards import api_login_required, can_act_for_member, core_member_required, is_replacement_user
from models import (
    db,
    AvailabilityEntry,
    AvailabilityRequest,
    BandMember,
    AVAILABILITY_STATUSES,
    REQUEST_STATUSES,
    utcnow,
)
from routes.helpers import availability_summary, clean_str, core_roster, json_body, require_choice, require_text

availability_bp = Blueprint("availability", __name__, url_prefix="/api/availability")

MAX_RANGE_DAYS = 400


def _date_arg(name: str):
    value = request.args.get(name)
    if not value:
        abort(400, description="startDate and endDate parameters are required")
    try:
        return parse_date_key(value)
    except ValueError:
        abort(400, description=f"{name} must be in DD-MM-YYYY format")


def _range_keys() -> list[str]:
    start, end = _date_arg("startDate"), _date_arg("endDate")
    if end < start:
        abort(400, description="endDate must not be before startDate")
    if (end - start).days > MAX_RANGE_DAYS:
        abort(400, description=f"Date range is limited to {MAX_RANGE_DAYS} days")
    return list(date_keys_between(start, end))


def _require_date_key(value, field: str = "dateString") -> str:
    if not is_date_key(value):
        abort(400, description=f"{field} must be in DD-MM-YYYY format")
    return value


def _known_member(member_id) -> BandMember:
    member = db.session.get(BandMember, member_id) if isinstance(member_id, str) else None
    if member is None:
        abort(400, description="Unknown band member")
    return member


# --- entries ---

@availability_bp.get("")
@api_login_required
def list_availability():
    keys = _range_keys()
    query = AvailabilityEntry.query.filter(AvailabilityEntry.date_string.in_(keys))
    member_id = request.args.get("memberId")
    if member_id:
        query = query.filter(AvailabilityEntry.member_id == member_id)
    order = {key: idx for idx, key in enumerate(keys)}
    entries = sorted(query.all(), key=lambda e: (order[e.date_string], e.member_id))
    return jsonify([e.to_dict() for e in entries])


@availability_bp.post("")
@api_login_required
def upsert_availability():
    """Create or overwrite the entry for (dateString, memberId)."""
    data = json_body()
    date_string = data.get("dateString")
    member_id = data.get("memberId")
    status = data.get("status")
    if not date_string or not member_id or not status:
        abort(400, description="dateString, memberId, and status are required")
    require_choice(status, AVAILABILITY_STATUSES, "status")
    _require_date_key(date_string)
    _known_member(member_id)
    if not can_act_for_member(member_id):
        abort(403, description="You can only submit availability for yourself")

    comment = clean_str(data.get("comment")) or ""
    entry = AvailabilityEntry.query.filter_by(date_string=date_string, member_id=member_id).first()
    created = entry is None
    if created:
        entry = AvailabilityEntry(date_string=date_string, member_id=member_id, status=status, comment=comment)
        db.session.add(entry)
    else:
        entry.status = status
        entry.comment = comment
    db.session.commit()
    current_app.logger.info("Availability %s for %s on %s", status, member_id, date_string)
    return jsonify(entry.to_dict()), 201 if created else 200


@availability_bp.delete("/<entry_id>")
@api_login_required
def delete_availability(entry_id: str):
    entry = db.session.get(AvailabilityEntry, entry_id)
    if entry is None:
        abort(404, description="Availability entry not found")
    if not can_act_for_member(entry.member_id):
        abort(403, description="You can only remove your own availability")
    db.session.delete(entry)
    db.session.commit()
    return jsonify({"message": "Availability entry deleted successfully"})


# --- aggregate status ---

@availability_bp.get("/status")
@api_login_required
def date_status():
    date_string = _require_date_key(request.args.get("date"), "date")
    roster = core_roster()
    summary = availability_summary([date_string], roster)[date_string]
    entries = AvailabilityEntry.query.filter_by(date_string=date_string).all()
    return jsonify({
        "dateString": date_string,
        **summary,
        "coreMembers": [m["id"] for m in roster],
        "entries": [e.to_dict() for e in entries],
    })


@availability_bp.get("/calendar")
@api_login_required
def calendar_status():
    keys = _range_keys()
    return jsonify({
        "startDate": keys[0],
        "endDate": keys[-1],
        "dates": availability_summary(keys),
    })


# --- availability requests ---

def _request_or_404(request_id: str) -> AvailabilityRequest:
    req = db.session.get(AvailabilityRequest, request_id)
    if req is None:
        abort(404, description="Availability request not found")
    return req


@availability_bp.get("/requests")
@api_login_required
def list_requests():
    reqs = AvailabilityRequest.query.order_by(AvailabilityRequest.created_at.desc()).all()
    return jsonify([r.to_dict() for r in reqs])


@availability_bp.post("/requests")
@core_member_required
def create_request():
    data = json_body()
    dates = data.get("dates")
    if not isinstance(dates, list) or not dates:
        abort(400, description="Dates array is required")
    for value in dates:
        _require_date_key(value, "dates")
    req = AvailabilityRequest(
        dates=list(dict.fromkeys(dates)),
        message=clean_str(data.get("message")) or "",
        requested_by=require_text(data, "requestedBy", "Requested by"),
        status="pending",
        responses=[],
    )
    db.session.add(req)
    db.session.commit()
    return jsonify(req.to_dict()), 201


@availability_bp.put("/requests/<request_id>")
@api_login_required
def respond_to_request(request_id: str):
    """Record a member's response, or change the request status."""
    req = _request_or_404(request_id)
    data = json_body()

    if "status" in data:
        if is_replacement_user():
            abort(403, description="Core band member access required")
        require_choice(data.get("status"), REQUEST_STATUSES, "status")
        req.status = data["status"]

    member_id = data.get("memberId")
    response = data.get("response")
    if member_id or response:
        if not member_id or not response:
            abort(400, description="memberId and response are required")
        require_choice(response, AVAILABILITY_STATUSES, "response")
        member = _known_member(member_id)
        if not can_act_for_member(member_id):
            abort(403, description="You can only respond for yourself")
        entry = {
            "memberId": member_id,
            "memberName": clean_str(data.get("memberName")) or member.name,
            "response": response,
            "respondedAt": utcnow().isoformat(),
        }
        responses = [r for r in (req.responses or []) if r.get("memberId") != member_id]
        req.responses = responses + [entry]
    elif "status" not in data:
        abort(400, description="Nothing to update")

    db.session.commit()
    return jsonify(req.to_dict())


@availability_bp.delete("/requests/<request_id>")
@core_member_required
def delete_request(request_id: str):
    req = _request_or_404(request_id)
    db.session.delete(req)
    db.session.commit()
    return jsonify({"message": "Availability request deleted successfully"})
