"""Shared validation utilities"""

import re
from datetime import time
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

TIME_OF_DAY_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_time_of_day(value: str) -> time:
    """
    Parse a local "HH:MM" time of day (00:00-23:59).

    Raises:
        ValueError: If the string is not a valid time of day
    """
    if not isinstance(value, str):
        raise ValueError("Time of day must be a string in HH:MM format")
    match = TIME_OF_DAY_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Invalid time of day '{value}', expected HH:MM between 00:00 and 23:59")
    return time(int(match.group(1)), int(match.group(2)))


def validate_timezone(value: str) -> str:
    """
    Validate an IANA timezone identifier.

    Raises:
        ValueError: If the zone is unknown
    """
    if not value:
        raise ValueError("Timezone is required")
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone '{value}'") from e
    return value


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    # Basic email validation pattern
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate an international phone number and normalize it to E.164.

    Raises:
        ValueError: If the number has fewer than 8 or more than 15 digits
    """
    if not phone:
        return phone

    # Remove all non-digit characters
    digits = re.sub(r"\D", "", phone)

    if len(digits) < 8 or len(digits) > 15:
        raise ValueError("Phone number must have between 8 and 15 digits")

    return f"+{digits}"


def validate_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return url
    if not re.match(r"^https?://[^\s/$.?#].[^\s]*$", url.strip(), re.IGNORECASE):
        raise ValueError("Invalid URL format")
    return url.strip()
