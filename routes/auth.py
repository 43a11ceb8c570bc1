from flask import Blueprint, abort, current_app, jsonify, request, session
from flask_login import current_user, login_user, logout_user

from guards import api_login_required, current_band_member
from models import db, Invitation, User, utcnow
from routes.helpers import clean_str, json_body, require_text

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

MIN_PASSWORD_LENGTH = 6


def _start_session(user: User) -> None:
    session.permanent = True
    login_user(user)
    user.last_login_at = utcnow()
    db.session.commit()


def _check_password_strength(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        abort(400, description=f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


@auth_bp.post("/login")
def login():
    data = json_body()
    password = data.get("password") or ""
    if not password:
        return jsonify({"error": "Password is required"}), 400
    username = clean_str(data.get("username")) or "admin"

    # First login on an empty system creates the admin account
    if User.query.count() == 0:
        _check_password_strength(password)
        user = User(username=username, is_admin=True)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        _start_session(user)
        current_app.logger.info("Created initial admin account %r", username)
        return jsonify({
            "success": True,
            "message": "Admin account created and logged in",
            "isFirstTime": True,
            "user": user.to_dict(),
        })

    user = User.query.filter_by(username=username).first()
    if not user or not user.check_password(password):
        current_app.logger.info("Failed login for %r", username)
        return jsonify({"error": "Invalid username or password"}), 401

    _start_session(user)
    return jsonify({
        "success": True,
        "message": "Logged in successfully",
        "isFirstTime": False,
        "user": user.to_dict(),
    })


@auth_bp.post("/logout")
def logout():
    logout_user()
    return jsonify({"success": True, "message": "Logged out"})


@auth_bp.get("/check")
def check():
    has_users = User.query.count() > 0
    if current_user.is_authenticated:
        return jsonify({"authenticated": True, "user": current_user.to_dict(), "hasUsers": has_users})
    return jsonify({"authenticated": False, "hasUsers": has_users, "isFirstTime": not has_users})


@auth_bp.get("/validate-invitation")
def validate_invitation():
    code = clean_str(request.args.get("code"))
    invitation = Invitation.query.filter_by(code=code).first() if code else None
    if not invitation or not invitation.is_valid:
        return jsonify({"valid": False, "error": "Invalid or expired invitation"}), 404
    return jsonify({"valid": True, "email": invitation.email, "expiresAt": invitation.to_dict()["expiresAt"]})


@auth_bp.post("/register")
def register():
    data = json_body()
    code = require_text(data, "invitationCode", "Invitation code")
    username = require_text(data, "username", "Username")
    password = data.get("password") or ""
    email = clean_str(data.get("email"))

    invitation = Invitation.query.filter_by(code=code).first()
    if not invitation or not invitation.is_valid:
        return jsonify({"error": "Invalid or expired invitation"}), 400
    _check_password_strength(password)
    if User.query.filter_by(username=username).first():
        return jsonify({"error": "Username already taken"}), 409
    email = email or invitation.email
    if email and User.query.filter_by(email=email).first():
        return jsonify({"error": "Email already registered"}), 409

    user = User(username=username, email=email)
    user.set_password(password)
    db.session.add(user)
    db.session.flush()
    invitation.used_at = utcnow()
    invitation.used_by = user.id
    db.session.commit()
    _start_session(user)
    current_app.logger.info("Registered user %r via invitation %s", username, invitation.id)
    return jsonify({"success": True, "user": user.to_dict()}), 201


@auth_bp.post("/change-password")
@api_login_required
def change_password():
    data = json_body()
    current = data.get("currentPassword") or ""
    new = data.get("newPassword") or ""
    if not current or not new:
        return jsonify({"error": "Current and new password are required"}), 400
    if not current_user.check_password(current):
        return jsonify({"error": "Current password is incorrect"}), 401
    _check_password_strength(new)
    current_user.set_password(new)
    db.session.commit()
    return jsonify({"success": True, "message": "Password changed"})


@auth_bp.get("/profile")
@api_login_required
def profile():
    member = current_band_member()
    return jsonify({"user": current_user.to_dict(), "bandMember": member.to_dict() if member else None})


@auth_bp.put("/profile")
@api_login_required
def update_profile():
    data = json_body()
    if "email" in data:
        email = clean_str(data.get("email"))
        if email and User.query.filter(User.email == email, User.id != current_user.id).first():
            return jsonify({"error": "Email already registered"}), 409
        current_user.email = email
    db.session.commit()
    return jsonify({"user": current_user.to_dict()})
