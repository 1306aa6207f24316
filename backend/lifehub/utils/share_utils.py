import hashlib
import hmac
import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from lifehub.core.errors import ValidationError

NEVER = "never"

# Relative expiry presets offered by the share dialog: 12h, 1d, 7d, 2w ...
_RELATIVE_EXPIRY = re.compile(r"^(\d+)\s*([hdw])$", re.IGNORECASE)
_UNIT_TO_DELTA = {
    "h": lambda n: timedelta(hours=n),
    "d": lambda n: timedelta(days=n),
    "w": lambda n: timedelta(weeks=n),
}


def utcnow() -> datetime:
    """Naive UTC timestamp; the database stores naive UTC datetimes."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_expiry(value: Union[None, str, datetime], *, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Resolve an expiry option to an absolute naive-UTC datetime, or None for "never".

    Accepts None, "never", a datetime, an ISO-8601 string, or a relative preset
    such as "1d" / "7d" / "12h" / "2w" (resolved against ``now``).
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)

    raw = value.strip()
    if not raw or raw.lower() == NEVER:
        return None

    match = _RELATIVE_EXPIRY.match(raw)
    if match:
        amount = int(match.group(1))
        if amount <= 0:
            raise ValidationError(f"Invalid expiry: {value!r}")
        base = now or utcnow()
        return base + _UNIT_TO_DELTA[match.group(2).lower()](amount)

    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"Invalid expiry: {value!r}")
    return to_naive_utc(parsed)


def generate_share_id() -> str:
    return uuid.uuid4().hex


def share_token(secret: str, share_id: str, length: int = 32) -> str:
    """
    Secret token component of a share link. Deterministic for a given share id,
    so the link never changes once issued.
    """
    digest = hmac.new(secret.encode(), share_id.encode(), hashlib.sha256).hexdigest()
    return digest[:length]


def build_share_link(base_url: str, api_prefix: str, share_id: str, token: str) -> str:
    return f"{base_url.rstrip('/')}{api_prefix}/shared/{share_id}?token={token}"


def token_matches(secret: str, share_id: str, supplied: str, length: int = 32) -> bool:
    expected = share_token(secret, share_id, length)
    return hmac.compare_digest(expected, supplied or "")
