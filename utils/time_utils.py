"""
utils/time_utils.py

Purpose: Time and expiry helpers

- Timezone-aware "now"
- OTP expiry checks
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """
    Current time as a timezone-aware UTC datetime.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Treats naive datetimes as UTC (older documents were stored naive).
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def calculate_otp_expiry(issued_at: datetime, validity_seconds: int = 300) -> datetime:
    """
    Calculates OTP expiry timestamp.
    """
    return issued_at + timedelta(seconds=validity_seconds)


def is_otp_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """
    Checks if an OTP has expired. A missing expiry counts as expired.

    The code stops being valid at `expires_at` itself.
    """
    if expires_at is None:
        return True
    now = now or utcnow()
    return ensure_utc(now) >= ensure_utc(expires_at)
