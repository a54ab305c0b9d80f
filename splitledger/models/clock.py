from datetime import datetime, timezone


def utcnow() -> datetime:
    # timestamps are stored timezone-aware, in UTC
    return datetime.now(timezone.utc)
