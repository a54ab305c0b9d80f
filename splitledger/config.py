import os
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.dirname(__file__))


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "change-me")

    DATABASE_URL = os.environ.get(
        "DATABASE_URL", f"sqlite:///{os.path.join(BASE_DIR, 'db.sqlite')}"
    )
    SQL_ECHO = _env_bool("SQL_ECHO")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # seconds a PENDING idempotency claim may live before the reaper frees it
    IDEMPOTENCY_PENDING_TTL = int(os.environ.get("IDEMPOTENCY_PENDING_TTL", 300))

    DEFAULT_PAGE_SIZE = int(os.environ.get("DEFAULT_PAGE_SIZE", 20))
    MAX_PAGE_SIZE = int(os.environ.get("MAX_PAGE_SIZE", 100))


config = Config()
