import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str = "0") -> bool:
    return (os.getenv(name, default) or "").lower() in ("1", "true", "yes")


# ---- Server ------------------------------------------------------------------
SECRET = os.getenv("SECRET", "change-me")
DATABASE_URL = os.getenv("DATABASE_URL") or "sqlite+aiosqlite:///./examgate.db"
SCHEMA_SEARCH_PATH = os.getenv("SCHEMA_SEARCH_PATH")
SQL_ECHO = _flag("SQL_ECHO")
JWT_LIFETIME_SECONDS = int(os.getenv("JWT_LIFETIME_SECONDS") or 3600)
LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").upper()

# NOTE: exact origins used by the frontend dev server (no trailing slash)
CORS_ORIGINS = [
    o.strip()
    for o in (os.getenv("CORS_ORIGINS") or "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000").split(",")
    if o.strip()
]

# ---- Exam session client -----------------------------------------------------
TICK_SECONDS = float(os.getenv("EXAMGATE_TICK_SECONDS") or 1.0)
DRIFT_TOLERANCE_SECONDS = int(os.getenv("EXAMGATE_DRIFT_TOLERANCE") or 2)
AUTOSAVE_DEBOUNCE_SECONDS = float(os.getenv("EXAMGATE_AUTOSAVE_DEBOUNCE") or 0.5)
TIME_WARNING_SECONDS = int(os.getenv("EXAMGATE_TIME_WARNING") or 300)

FETCH_MAX_ATTEMPTS = int(os.getenv("EXAMGATE_FETCH_ATTEMPTS") or 3)
BACKOFF_BASE_SECONDS = float(os.getenv("EXAMGATE_BACKOFF_BASE") or 1.0)
BACKOFF_CAP_SECONDS = float(os.getenv("EXAMGATE_BACKOFF_CAP") or 5.0)
HTTP_TIMEOUT_SECONDS = float(os.getenv("EXAMGATE_HTTP_TIMEOUT") or 10.0)
