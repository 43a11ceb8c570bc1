from datetime import timedelta

from flask import Flask, jsonify
from flask_login import LoginManager
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from config import *

app = Flask(__name__)

app.config["SECRET_KEY"] = FLASK_SECRET_KEY
app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=SESSION_HOURS)
app.config["SESSION_COOKIE_HTTPONLY"] = True
app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
app.config["SQLALCHEMY_DATABASE_URI"] = SQLALCHEMY_DATABASE_URI
app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
app.config["OPENAI_API_KEY"] = OPENAI_API_KEY
app.config["OPENAI_MODEL"] = OPENAI_MODEL
app.config["OPENAI_TIMEOUT"] = OPENAI_TIMEOUT
app.config["BAND_VOCALISTS"] = BAND_VOCALISTS
app.config["INVITATION_DAYS"] = INVITATION_DAYS
app.config["CALENDAR_TOKEN"] = CALENDAR_TOKEN
app.config["PUBLIC_BASE_URL"] = PUBLIC_BASE_URL
app.url_map.strict_slashes = False
app.logger.setLevel(LOG_LEVEL)

from models import db, User

db.init_app(app)

login_manager = LoginManager(app)


@login_manager.user_loader
def load_user(user_id):
    try:
        return db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "Authentication required"}), 401


from routes.admin import admin_bp
from routes.ai import ai_bp
from routes.auth import auth_bp
from routes.availability import availability_bp
from routes.calendar import calendar_bp
from routes.gigs import gigs_bp
from routes.members import members_bp
from routes.rehearsals import rehearsals_bp
from routes.sets import sets_bp
from routes.songs import songs_bp

for bp in (auth_bp, admin_bp, songs_bp, members_bp, availability_bp,
           sets_bp, gigs_bp, rehearsals_bp, ai_bp, calendar_bp):
    app.register_blueprint(bp)


@app.errorhandler(HTTPException)
def handle_http_error(exc: HTTPException):
    return jsonify({"error": exc.description}), exc.code


@app.errorhandler(SQLAlchemyError)
def handle_storage_error(exc: SQLAlchemyError):
    db.session.rollback()
    app.logger.exception("Storage error: %s", exc)
    return jsonify({"error": "Storage unavailable"}), 500


@app.get("/healthz")
def healthz():
    # quick DB ping; never crash health
    try:
        db.session.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError:
        db_ok = False
    return (f"ok | db={ 'up' if db_ok else 'down' }", 200)


def ensure_schema():
    """Create any missing tables, idempotently."""
    with app.app_context():
        db.create_all()
        app.logger.info("ensure_schema completed successfully.")


# single init call
def _init_schema_on_import():
    try:
        ensure_schema()
    except SQLAlchemyError as e:
        app.logger.warning("ensure_schema on import warning: %s", e)

_init_schema_on_import()

if __name__ == "__main__":
    app.run(debug=True, port=5055)
