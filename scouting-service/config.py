# config.py
import os


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


DEV_SECRET_KEY = "dev-secret-key-change-me"

# Database
DATABASE_URL = os.getenv("DATABASE_URL") or "sqlite+aiosqlite:///./scouting.db"
SQL_ECHO = _flag("SQL_ECHO", "false")
CREATE_TABLES = _flag("CREATE_TABLES", "true")

# JWT / session cookie
SECRET_KEY = os.getenv("SECRET_KEY") or DEV_SECRET_KEY
ALGORITHM = "HS256"
TOKEN_EXPIRE_DAYS = int(os.getenv("TOKEN_EXPIRE_DAYS", "7"))
COOKIE_NAME = "token"
COOKIE_SECURE = _flag("COOKIE_SECURE", "false")

# Password hashing cost
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
