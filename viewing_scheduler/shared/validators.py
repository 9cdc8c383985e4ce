"""Shared validation utilities"""

import re
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

TIME_PATTERN = re.compile(r"^([0-1][0-9]|2[0-3]):([0-5][0-9])$")


def is_valid_time_string(value) -> bool:
    """Check a wall-clock time in HH:mm (24h) format"""
    return isinstance(value, str) and bool(TIME_PATTERN.match(value))


def is_valid_timezone(name) -> bool:
    """Check that an IANA zone name resolves"""
    if not name or not isinstance(name, str):
        return False
    try:
        ZoneInfo(name)
        return True
    except (ZoneInfoNotFoundError, ValueError):
        return False


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a phone number to E.164 format.

    Args:
        phone: Phone number string, with or without leading "+" / "00"

    Returns:
        Normalized phone number in E.164 format (+XXXXXXXXXXX)

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    stripped = phone.strip()
    if stripped.startswith("00"):
        stripped = "+" + stripped[2:]

    # Remove all non-digit characters
    digits = re.sub(r"\D", "", stripped)

    # E.164 allows at most 15 digits including country code
    if len(digits) < 8 or len(digits) > 15:
        raise ValueError("Phone number must have between 8 and 15 digits")

    if not stripped.startswith("+"):
        raise ValueError("Phone number must include the country code (e.g., +201001234567)")

    return f"+{digits}"
