### app/utils/general.py

# Standard library imports
import secrets
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional, Union


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Treat naive datetimes (SQLite hands those back) as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_day(value: datetime) -> datetime:
    """Midnight UTC of the given instant's day"""
    value = as_utc(value)
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def expiry_from_now(hours: int) -> datetime:
    """Expiry timestamp `hours` from now"""
    return utc_now() + timedelta(hours=hours)


def is_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """A request without an expiry never expires"""
    if expires_at is None:
        return False
    return as_utc(expires_at) < as_utc(now or utc_now())


def generate_signing_token() -> str:
    """48 hex characters from 24 random bytes"""
    return secrets.token_hex(24)


def format_long_date(value: Union[date, datetime]) -> str:
    """`March 5, 2026`"""
    return f"{value:%B} {value.day}, {value.year}"


def format_amount(amount: Union[Decimal, float, int]) -> str:
    """Thousands separators, cents only when there are some"""
    amount = Decimal(str(amount))
    if amount == amount.to_integral_value():
        return f"{int(amount):,}"
    return f"{amount:,.2f}"


def get_client_ip(request) -> str:
    """
    Client address as seen through the proxy chain: the first
    X-Forwarded-For entry, then X-Real-IP, then the socket peer.
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host
    return "unknown"
