from flask import Blueprint, abort, current_app, jsonify, request

from guards import admin_required, api_login_required
from models import db, BandMember, User
from routes.helpers import as_bool, clean_str, json_body, require_text

members_bp = Blueprint("members", __name__, url_prefix="/api/band-members")


def _member_or_404(member_id: str) -> BandMember:
    member = db.session.get(BandMember, member_id)
    if member is None:
        abort(404, description="Band member not found")
    return member


def _linked_user_id(value, member: BandMember) -> int | None:
    if value in (None, ""):
        return None
    try:
        user_id = int(value)
    except (TypeError, ValueError):
        abort(400, description="userId must be a user id")
    if db.session.get(User, user_id) is None:
        abort(400, description="userId does not match an account")
    taken = BandMember.query.filter(BandMember.user_id == user_id, BandMember.id != member.id).first()
    if taken:
        abort(409, description=f"Account is already linked to {taken.name}")
    return user_id


@members_bp.get("")
@api_login_required
def list_members():
    query = BandMember.query
    core = request.args.get("core")
    if core is not None:
        query = query.filter(BandMember.is_core.is_(as_bool(core)))
    members = query.order_by(BandMember.is_core.desc(), BandMember.name.asc()).all()
    return jsonify([m.to_dict() for m in members])


@members_bp.post("")
@admin_required
def create_member():
    data = json_body()
    member = BandMember(
        name=require_text(data, "name", "Name"),
        instrument=require_text(data, "instrument", "Instrument"),
        email=clean_str(data.get("email")),
        is_core=as_bool(data.get("isCore", True)),
    )
    member.user_id = _linked_user_id(data.get("userId"), member)
    db.session.add(member)
    db.session.commit()
    current_app.logger.info("Created band member %s (%s, core=%s)", member.id, member.name, member.is_core)
    return jsonify(member.to_dict()), 201


@members_bp.put("/<member_id>")
@admin_required
def update_member(member_id: str):
    member = _member_or_404(member_id)
    data = json_body()
    if "name" in data:
        member.name = require_text(data, "name", "Name")
    if "instrument" in data:
        member.instrument = require_text(data, "instrument", "Instrument")
    if "email" in data:
        member.email = clean_str(data.get("email"))
    if "userId" in data:
        member.user_id = _linked_user_id(data.get("userId"), member)
    if "isCore" in data:
        member.is_core = as_bool(data.get("isCore"))
    db.session.commit()
    return jsonify(member.to_dict())


@members_bp.delete("/<member_id>")
@admin_required
def delete_member(member_id: str):
    member = _member_or_404(member_id)
    db.session.delete(member)
    db.session.commit()
    current_app.logger.info("Deleted band member %s", member_id)
    return jsonify({"message": "Band member deleted successfully"})
