import os


def _normalize_database_url(url: str) -> str:
    # Render/Heroku sometimes provide postgres:// which SQLAlchemy expects as postgresql://
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def _flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Base directory of the backend (one level above this `civix` package)
    BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    INSTANCE_DIR = os.path.join(BACKEND_DIR, "instance")

    ENV = (os.getenv("CIVIX_ENV", "dev") or "dev").strip().lower()
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
    JWT_SECRET = os.getenv("JWT_SECRET") or SECRET_KEY
    JWT_TTL_SECONDS = int(os.getenv("JWT_TTL_SECONDS", str(60 * 60 * 24 * 7)))

    _default_sqlite_path = os.path.join(INSTANCE_DIR, "civix.db").replace("\\", "/")
    _db_url = os.getenv("DATABASE_URL") or os.getenv("SQLALCHEMY_DATABASE_URI") or f"sqlite:///{_default_sqlite_path}"
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(_db_url)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CORS: comma-separated origins for web builds (e.g. https://civix.web.app,https://yourdomain.com)
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")
    CLIENT_URL = os.getenv("CLIENT_URL", "http://localhost:5173")

    FREE_ISSUE_LIMIT = int(os.getenv("CIVIX_FREE_ISSUE_LIMIT", "3"))
    DEFAULT_AVATAR_URL = os.getenv("CIVIX_DEFAULT_AVATAR", "https://i.ibb.co/2W8Py4W/default-avatar.png")

    STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "").strip()
    STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET", "").strip()
    STRIPE_CURRENCY = os.getenv("STRIPE_CURRENCY", "bdt").strip().lower()

    AUTO_CREATE_TABLES = _flag("CIVIX_AUTO_CREATE_TABLES", ENV not in ("prod", "production"))
    LOG_LEVEL = os.getenv("CIVIX_LOG_LEVEL", "DEBUG" if ENV in ("dev", "development") else "INFO").upper()
