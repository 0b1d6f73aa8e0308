import secrets
from datetime import datetime, timedelta, timezone

OTP_LENGTH = 6


def utcnow():
    # Naive UTC, matching how expiry columns are stored
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value):
    """Offset-aware datetimes become naive UTC; naive ones are taken as UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def generate_otp(length: int = OTP_LENGTH):
    return "".join(str(secrets.randbelow(10)) for _ in range(length))  # numeric OTP


def otp_expiry(minutes: int, now=None):
    return (now or utcnow()) + timedelta(minutes=minutes)
