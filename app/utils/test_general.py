from datetime import date, datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

from app.utils.general import (
    as_utc,
    format_amount,
    format_long_date,
    generate_signing_token,
    get_client_ip,
    is_expired,
)


def _request(headers=None, host="10.1.2.3"):
    return SimpleNamespace(
        headers=headers or {},
        client=SimpleNamespace(host=host) if host else None,
    )


def test_client_ip_prefers_first_forwarded_for():
    request = _request({"x-forwarded-for": " 203.0.113.7 , 10.0.0.1", "x-real-ip": "198.51.100.2"})
    assert get_client_ip(request) == "203.0.113.7"


def test_client_ip_falls_back_to_real_ip_then_peer():
    assert get_client_ip(_request({"x-real-ip": "198.51.100.2"})) == "198.51.100.2"
    assert get_client_ip(_request()) == "10.1.2.3"
    assert get_client_ip(_request(host=None)) == "unknown"


def test_signing_token_shape():
    token = generate_signing_token()
    assert len(token) == 48
    int(token, 16)
    assert token != generate_signing_token()


def test_expiry_accepts_naive_timestamps():
    now = datetime(2026, 3, 5, 12, 0, tzinfo=timezone.utc)
    assert is_expired(datetime(2026, 3, 5, 11, 59), now)
    assert not is_expired(datetime(2026, 3, 5, 12, 1, tzinfo=timezone.utc), now)
    assert not is_expired(None, now)
    assert as_utc(datetime(2026, 3, 5)).tzinfo == timezone.utc


def test_formatting():
    assert format_long_date(date(2026, 3, 5)) == "March 5, 2026"
    assert format_amount(Decimal("1850.00")) == "1,850"
    assert format_amount(Decimal("12500.5")) == "12,500.50"
