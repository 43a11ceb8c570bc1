import hmac

from flask import Blueprint, Response, abort, current_app, request

from calendar_feed import gigs_calendar, rehearsals_calendar
from models import BandMember, Gig, Rehearsal

calendar_bp = Blueprint("calendar", __name__, url_prefix="/api/calendar")


def _check_feed_token() -> None:
    """Feeds are subscribed to without a session; optionally gate them by token."""
    expected = current_app.config.get("CALENDAR_TOKEN")
    if not expected:
        return
    supplied = request.args.get("token") or ""
    if not hmac.compare_digest(supplied, expected):
        abort(403, description="Invalid calendar token")


def _ics_response(body: str, filename: str) -> Response:
    resp = Response(body, mimetype="text/calendar")
    resp.headers["Content-Type"] = "text/calendar; charset=utf-8"
    resp.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return resp


def _gig_feed(status: str, filename: str) -> Response:
    _check_feed_token()
    gigs = Gig.query.filter_by(status=status).order_by(Gig.date.asc()).all()
    members = [m.to_dict() for m in BandMember.query.all()]
    body = gigs_calendar(
        [g.to_dict() for g in gigs],
        members,
        pending=status == "pending",
        base_url=current_app.config["PUBLIC_BASE_URL"],
    )
    return _ics_response(body, filename)


@calendar_bp.get("/confirmed.ics")
def confirmed_gigs():
    return _gig_feed("confirmed", "confirmed-gigs.ics")


@calendar_bp.get("/pending.ics")
def pending_gigs():
    return _gig_feed("pending", "pending-gigs.ics")


@calendar_bp.get("/rehearsals.ics")
def rehearsals():
    _check_feed_token()
    items = Rehearsal.query.filter(Rehearsal.status != "cancelled").order_by(Rehearsal.date.asc()).all()
    return _ics_response(rehearsals_calendar([r.to_dict() for r in items]), "rehearsals.ics")
