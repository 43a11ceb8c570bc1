import os

from dotenv import load_dotenv

load_dotenv()

# Database config
BASE_DIR = os.path.abspath(os.path.dirname(__file__))
DEFAULT_SQLITE = "sqlite:///" + os.path.join(BASE_DIR, "band.db")
SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", DEFAULT_SQLITE)

# Hosted Postgres URLs use postgres://; SQLAlchemy needs an explicit psycopg driver
if SQLALCHEMY_DATABASE_URI.startswith("postgres://"):
    SQLALCHEMY_DATABASE_URI = SQLALCHEMY_DATABASE_URI.replace("postgres://", "postgresql+psycopg://", 1)
elif SQLALCHEMY_DATABASE_URI.startswith("postgresql://") and "+psycopg" not in SQLALCHEMY_DATABASE_URI:
    SQLALCHEMY_DATABASE_URI = SQLALCHEMY_DATABASE_URI.replace("postgresql://", "postgresql+psycopg://", 1)

# Sessions
FLASK_SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret")
SESSION_HOURS = int(os.getenv("SESSION_HOURS", "24"))

# AI setlist builder
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_TIMEOUT = int(os.getenv("OPENAI_TIMEOUT", "60"))

# Band
BAND_VOCALISTS = tuple(
    v.strip() for v in os.getenv("BAND_VOCALISTS", "Rikke,Lorentz").split(",") if v.strip()
)
INVITATION_DAYS = int(os.getenv("INVITATION_DAYS", "7"))

# Calendar feeds (optional ?token= protection)
CALENDAR_TOKEN = os.getenv("CALENDAR_TOKEN")
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:5055")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
