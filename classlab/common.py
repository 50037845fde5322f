import secrets
from datetime import datetime, timezone
from typing import Optional


def generate_id(prefix: str) -> str:
    """Generate unique ID with prefix"""
    return f"{prefix}_{secrets.token_hex(6).upper()}"


def utcnow() -> datetime:
    """Naive UTC timestamp, the form Mongo hands back"""
    return datetime.utcnow()


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize client supplied datetimes so they compare with stored ones"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)

