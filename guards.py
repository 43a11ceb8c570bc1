from functools import wraps

from flask import abort, jsonify
from flask_login import current_user

from models import BandMember


def _current_user_id() -> int | None:
    if not current_user.is_authenticated:
        return None
    try:
        return int(current_user.get_id())
    except (TypeError, ValueError):
        return None


def is_admin() -> bool:
    return current_user.is_authenticated and bool(getattr(current_user, "is_admin", False))


def current_band_member() -> BandMember | None:
    """Band member linked to the logged-in account, if any."""
    user_id = _current_user_id()
    if user_id is None:
        return None
    return BandMember.query.filter_by(user_id=user_id).first()


def is_replacement_user() -> bool:
    """Accounts linked to a non-core member see a restricted view."""
    if is_admin():
        return False
    member = current_band_member()
    return bool(member and not member.is_core)


def can_act_for_member(member_id: str) -> bool:
    if is_admin():
        return True
    member = current_band_member()
    return bool(member and member.id == member_id)


def api_login_required(f):
    """
    Decorator for API endpoints that require authentication.
    Returns JSON error response instead of redirecting to login page.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({"error": "Authentication required"}), 401
        return f(*args, **kwargs)
    return decorated_function


def admin_required(f):
    @wraps(f)
    @api_login_required
    def decorated_function(*args, **kwargs):
        if not is_admin():
            abort(403, description="Admin access required")
        return f(*args, **kwargs)
    return decorated_function


def core_member_required(f):
    """Replacement members are limited to read-only views."""
    @wraps(f)
    @api_login_required
    def decorated_function(*args, **kwargs):
        if is_replacement_user():
            abort(403, description="Core band member access required")
        return f(*args, **kwargs)
    return decorated_function
