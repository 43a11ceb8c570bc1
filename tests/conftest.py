"""Pytest configuration: in-memory database and logged-in test clients."""

import os

# Must be set before the app (and config) is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["FLASK_SECRET_KEY"] = "test-secret"
os.environ["OPENAI_API_KEY"] = ""
os.environ["CALENDAR_TOKEN"] = ""
os.environ["BAND_VOCALISTS"] = "Rikke,Lorentz"

import pytest

from app import app as flask_app
from models import db, BandMember, Song, User

PASSWORD = "secret123"


@pytest.fixture
def app():
    flask_app.config.update(TESTING=True, CALENDAR_TOKEN=None, OPENAI_API_KEY=None)
    with flask_app.app_context():
        db.drop_all()
        db.create_all()
    yield flask_app
    with flask_app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, username, password=PASSWORD):
    resp = client.post("/api/auth/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.get_json()
    return client


@pytest.fixture
def make_user(app):
    """Create an account, optionally linked to a new band member."""
    def _make(username, *, is_admin=False, member_name=None, is_core=True, instrument="Guitar"):
        with app.app_context():
            user = User(username=username, is_admin=is_admin)
            user.set_password(PASSWORD)
            db.session.add(user)
            db.session.flush()
            member_id = None
            if member_name:
                member = BandMember(name=member_name, instrument=instrument, is_core=is_core, user_id=user.id)
                db.session.add(member)
                db.session.flush()
                member_id = member.id
            db.session.commit()
            return {"userId": user.id, "memberId": member_id}
    return _make


@pytest.fixture
def admin_client(app, make_user):
    make_user("admin", is_admin=True)
    return login(app.test_client(), "admin")


@pytest.fixture
def core_member(make_user):
    return make_user("rikke", member_name="Rikke", instrument="Lead vocal")


@pytest.fixture
def core_client(app, core_member):
    return login(app.test_client(), "rikke")


@pytest.fixture
def replacement_member(make_user):
    return make_user("sub", member_name="Sub Bassist", is_core=False, instrument="Bass")


@pytest.fixture
def replacement_client(app, replacement_member):
    return login(app.test_client(), "sub")


@pytest.fixture
def songs(app):
    """Three catalog songs; returns their ids in insertion order."""
    rows = [
        Song(title="Opener", artist="Band", duration_sec=210, language="english", vocalist="Rikke",
             energy="High", bass_guitar="4-string", guitar="Strat", tags=["rock"]),
        Song(title="Ballade", artist="Band", duration_sec=240, language="danish", vocalist="Lorentz",
             energy="Low", bass_guitar="5-string", guitar="Acoustic", tags=["slow"]),
        Song(title="Closer", artist="Band", duration_sec=180, language="english", vocalist="Both",
             energy="High", bass_guitar="5-string", guitar="Strat", tags=["rock", "party"]),
    ]
    with app.app_context():
        db.session.add_all(rows)
        db.session.commit()
        return [s.id for s in rows]
