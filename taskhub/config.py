import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


SECRET_KEY = os.environ.get("SECRET_KEY", "TU_SECRET_KEY_TEMPORAL")
ALGORITHM = os.environ.get("ALGORITHM", "HS256")

# Signed cookie that carries the per-browser session (anti-forgery token)
SESSION_COOKIE = os.environ.get("SESSION_COOKIE", "taskhub_session")
SESSION_MAX_AGE_MINUTES = float(os.environ.get("SESSION_MAX_AGE_MINUTES", 60 * 24))

# Default to local SQLite for dev/tests; override via env in Docker/Prod
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./taskhub.db")

DEFAULT_PER_PAGE = int(os.environ.get("DEFAULT_PER_PAGE", 10))
MAX_PER_PAGE = int(os.environ.get("MAX_PER_PAGE", 100))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_DIR = os.environ.get("LOG_DIR") or None

SEED_CATEGORIES = _env_bool("SEED_CATEGORIES", True)
