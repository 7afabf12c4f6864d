import secrets
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from bson import ObjectId

from coopvote.config import VOTE_TOKEN_BYTES


def utcnow() -> datetime:
    # pymongo hands back naive UTC datetimes, so everything is compared naive
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def new_id() -> str:
    return str(ObjectId())


def generate_vote_token() -> str:
    return secrets.token_urlsafe(VOTE_TOKEN_BYTES)


def percent(part: int, whole: int) -> float:
    """Share of ``whole`` as a percentage rounded half-up to 2 places; 0 for an empty whole."""
    if not whole:
        return 0.0
    share = Decimal(part) * 100 / Decimal(whole)
    return float(share.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
