import secrets
import time
from datetime import datetime, timezone

from flask_login import UserMixin
from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import generate_password_hash, check_password_hash

from setlist_builder import fmt_mmss

db = SQLAlchemy()

AVAILABILITY_STATUSES = ("available", "maybe", "unavailable")
LANGUAGES = ("danish", "english")
ENERGY_LEVELS = ("Low", "Medium", "High")
GIG_STATUSES = ("pending", "confirmed", "completed", "canceled")
REHEARSAL_STATUSES = ("planned", "completed", "cancelled")
REQUEST_STATUSES = ("pending", "completed", "cancelled")


def utcnow() -> datetime:
    """Naive UTC timestamp (what the DateTime columns store)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id(prefix: str) -> str:
    """Timestamp + random suffix, e.g. ``song_1718000000000_3fa9c1d2e4``."""
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# --- User model ---
class User(db.Model, UserMixin):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=True)
    password_hash = db.Column(db.String(255), nullable=False)
    is_admin = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    last_login_at = db.Column(db.DateTime, nullable=True)

    band_member = db.relationship("BandMember", backref="user", uselist=False)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def to_dict(self) -> dict:
        member = self.band_member
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "isAdmin": bool(self.is_admin),
            "bandMemberId": member.id if member else None,
            "isCore": bool(member.is_core) if member else None,
            "createdAt": _iso(self.created_at),
            "lastLogin": _iso(self.last_login_at),
        }


class Invitation(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    used_at = db.Column(db.DateTime, nullable=True)
    used_by = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)

    @property
    def is_valid(self) -> bool:
        return self.used_at is None and self.expires_at > utcnow()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "email": self.email,
            "createdAt": _iso(self.created_at),
            "expiresAt": _iso(self.expires_at),
            "used": self.used_at is not None,
            "valid": self.is_valid,
        }


# --- Song model ---
class Song(db.Model):
    id = db.Column(db.String(64), primary_key=True, default=lambda: new_id("song"))
    title = db.Column(db.String(200), nullable=False)
    artist = db.Column(db.String(200), nullable=False, default="")
    musical_key = db.Column(db.String(20), nullable=True)
    duration_sec = db.Column(db.Integer, nullable=True)
    language = db.Column(db.String(20), nullable=False, default="english")
    vocalist = db.Column(db.String(40), nullable=False, default="Both")
    energy = db.Column(db.String(20), nullable=False, default="Medium")
    bass_guitar = db.Column(db.String(60), nullable=True)
    guitar = db.Column(db.String(60), nullable=True)
    backing_track = db.Column(db.Boolean, nullable=False, default=False)
    tags = db.Column(db.JSON, nullable=False, default=list)
    medley = db.Column(db.String(200), nullable=True)
    medley_position = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "artist": self.artist,
            "key": self.musical_key,
            "duration": fmt_mmss(self.duration_sec) or None,
            "durationSeconds": self.duration_sec,
            "language": self.language,
            "vocalist": self.vocalist,
            "energy": self.energy,
            "bassGuitar": self.bass_guitar,
            "guitar": self.guitar,
            "backingTrack": bool(self.backing_track),
            "tags": list(self.tags or []),
            "medley": self.medley,
            "medleyPosition": self.medley_position,
            "notes": self.notes or "",
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


# --- Band roster + availability ---
class BandMember(db.Model):
    __tablename__ = "band_member"

    id = db.Column(db.String(64), primary_key=True, default=lambda: new_id("member"))
    name = db.Column(db.String(120), nullable=False)
    instrument = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True, unique=True)
    is_core = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "instrument": self.instrument,
            "email": self.email,
            "userId": self.user_id,
            "isCore": bool(self.is_core),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class AvailabilityEntry(db.Model):
    __tablename__ = "availability_entry"
    __table_args__ = (
        db.UniqueConstraint("date_string", "member_id", name="uq_availability_date_member"),
    )

    id = db.Column(db.String(64), primary_key=True, default=lambda: new_id("availability"))
    date_string = db.Column(db.String(10), nullable=False, index=True)  # DD-MM-YYYY
    member_id = db.Column(db.String(64), nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False)
    comment = db.Column(db.Text, nullable=False, default="")
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "dateString": self.date_string,
            "memberId": self.member_id,
            "status": self.status,
            "comment": self.comment or "",
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class AvailabilityRequest(db.Model):
    __tablename__ = "availability_request"

    id = db.Column(db.String(64), primary_key=True, default=lambda: new_id("request"))
    dates = db.Column(db.JSON, nullable=False, default=list)
    message = db.Column(db.Text, nullable=False, default="")
    requested_by = db.Column(db.String(120), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="pending")
    responses = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "dates": list(self.dates or []),
            "message": self.message or "",
            "requestedBy": self.requested_by,
            "status": self.status,
            "responses": list(self.responses or []),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


# --- Sets, gigs, rehearsals ---
class Setlist(db.Model):
    id = db.Column(db.String(64), primary_key=True, default=lambda: new_id("set"))
    name = db.Column(db.String(200), nullable=False)
    # Ordered song id references; hydrated through the assembler on read.
    song_ids = db.Column(db.JSON, nullable=False, default=list)
    created_by = db.Column(db.String(120), nullable=True)
    meta = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "songIds": list(self.song_ids or []),
            "createdBy": self.created_by,
            "metadata": dict(self.meta or {}),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class Gig(db.Model):
    id = db.Column(db.String(64), primary_key=True, default=lambda: new_id("gig"))
    name = db.Column(db.String(200), nullable=False)
    date = db.Column(db.String(10), nullable=False)  # YYYY-MM-DD
    time = db.Column(db.String(5), nullable=True)    # HH:MM
    venue = db.Column(db.String(200), nullable=False, default="")
    address = db.Column(db.String(300), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default="pending")
    contract_uploaded = db.Column(db.Boolean, nullable=False, default=False)
    lineup = db.Column(db.JSON, nullable=False, default=list)  # [{memberId, instrument, isReplacement}]
    sets = db.Column(db.JSON, nullable=False, default=list)    # [{name, songIds}]
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    comments = db.relationship(
        "GigComment",
        backref="gig",
        cascade="all, delete-orphan",
        order_by="GigComment.created_at.asc()",
        lazy="selectin",
    )

    def lineup_member_ids(self) -> set[str]:
        return {item.get("memberId") for item in (self.lineup or []) if item.get("memberId")}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "date": self.date,
            "time": self.time,
            "venue": self.venue,
            "address": self.address,
            "notes": self.notes or "",
            "status": self.status,
            "contractUploaded": bool(self.contract_uploaded),
            "lineup": list(self.lineup or []),
            "sets": list(self.sets or []),
            "comments": [c.to_dict() for c in self.comments],
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class GigComment(db.Model):
    __tablename__ = "gig_comment"

    id = db.Column(db.String(64), primary_key=True, default=lambda: new_id("comment"))
    gig_id = db.Column(db.String(64), db.ForeignKey("gig.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    author = db.Column(db.String(120), nullable=False)
    message = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "author": self.author,
            "message": self.message,
            "timestamp": _iso(self.created_at),
        }


class Rehearsal(db.Model):
    id = db.Column(db.String(64), primary_key=True, default=lambda: new_id("rehearsal"))
    name = db.Column(db.String(200), nullable=False)
    date = db.Column(db.String(10), nullable=False)  # YYYY-MM-DD
    start_time = db.Column(db.String(5), nullable=False)
    end_time = db.Column(db.String(5), nullable=False)
    location = db.Column(db.String(200), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default="planned")
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "date": self.date,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "location": self.location,
            "notes": self.notes or "",
            "status": self.status,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
