import secrets
from datetime import timedelta

from flask import Blueprint, abort, current_app, jsonify, request
from flask_login import current_user

from guards import admin_required
from models import db, GigComment, Invitation, User, utcnow
from routes.auth import MIN_PASSWORD_LENGTH
from routes.helpers import as_bool, clean_str, json_body, require_text

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


def _user_or_404(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        abort(404, description="User not found")
    return user


def _validated_password(value) -> str:
    password = value or ""
    if len(password) < MIN_PASSWORD_LENGTH:
        abort(400, description=f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return password


@admin_bp.get("/users")
@admin_required
def list_users():
    users = User.query.order_by(User.username.asc()).all()
    return jsonify([u.to_dict() for u in users])


@admin_bp.post("/users")
@admin_required
def create_user():
    data = json_body()
    username = require_text(data, "username", "Username")
    password = _validated_password(data.get("password"))
    email = clean_str(data.get("email"))
    if User.query.filter_by(username=username).first():
        return jsonify({"error": "Username already taken"}), 409
    if email and User.query.filter_by(email=email).first():
        return jsonify({"error": "Email already registered"}), 409

    user = User(username=username, email=email, is_admin=as_bool(data.get("isAdmin")))
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("Admin %s created user %r", current_user.username, username)
    return jsonify(user.to_dict()), 201


@admin_bp.put("/users/<int:user_id>")
@admin_required
def update_user(user_id: int):
    user = _user_or_404(user_id)
    data = json_body()
    if "username" in data:
        username = require_text(data, "username", "Username")
        if User.query.filter(User.username == username, User.id != user.id).first():
            return jsonify({"error": "Username already taken"}), 409
        user.username = username
    if "email" in data:
        email = clean_str(data.get("email"))
        if email and User.query.filter(User.email == email, User.id != user.id).first():
            return jsonify({"error": "Email already registered"}), 409
        user.email = email
    if "isAdmin" in data:
        is_admin = as_bool(data.get("isAdmin"))
        if not is_admin and user.id == current_user.id:
            return jsonify({"error": "You cannot remove your own admin rights"}), 400
        user.is_admin = is_admin
    db.session.commit()
    return jsonify(user.to_dict())


@admin_bp.delete("/users/<int:user_id>")
@admin_required
def delete_user(user_id: int):
    user = _user_or_404(user_id)
    if user.id == current_user.id:
        return jsonify({"error": "You cannot delete your own account"}), 400
    if user.band_member:
        user.band_member.user_id = None
    GigComment.query.filter_by(user_id=user.id).update({"user_id": None})
    db.session.delete(user)
    db.session.commit()
    current_app.logger.info("Admin %s deleted user %s", current_user.username, user_id)
    return jsonify({"message": "User deleted successfully"})


@admin_bp.post("/users/<int:user_id>/reset-password")
@admin_required
def reset_password(user_id: int):
    user = _user_or_404(user_id)
    data = request.get_json(silent=True) or {}
    generated = not data.get("newPassword")
    password = secrets.token_urlsafe(9) if generated else _validated_password(data.get("newPassword"))
    user.set_password(password)
    db.session.commit()
    payload = {"success": True, "message": f"Password reset for {user.username}"}
    if generated:
        payload["temporaryPassword"] = password
    return jsonify(payload)


@admin_bp.get("/invitations")
@admin_required
def list_invitations():
    invitations = Invitation.query.order_by(Invitation.created_at.desc()).all()
    return jsonify([inv.to_dict() for inv in invitations])


@admin_bp.post("/invitations")
@admin_required
def create_invitation():
    data = request.get_json(silent=True) or {}
    days = current_app.config["INVITATION_DAYS"]
    invitation = Invitation(
        code=secrets.token_urlsafe(16),
        email=clean_str(data.get("email")),
        created_by=current_user.id,
        expires_at=utcnow() + timedelta(days=days),
    )
    db.session.add(invitation)
    db.session.commit()
    return jsonify(invitation.to_dict()), 201


@admin_bp.delete("/invitations/<int:invitation_id>")
@admin_required
def delete_invitation(invitation_id: int):
    invitation = db.session.get(Invitation, invitation_id)
    if invitation is None:
        abort(404, description="Invitation not found")
    db.session.delete(invitation)
    db.session.commit()
    return jsonify({"message": "Invitation deleted successfully"})
