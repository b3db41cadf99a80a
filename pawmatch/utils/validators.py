"""
Input validation and sanitization utilities.
"""

import re
from typing import Union

from ..config import get_settings
from ..errors import InvalidIdentifier

_ID_PATTERN = re.compile(r"^\d+$")

# Primary keys are 32-bit signed integer columns
MAX_ID = 2**31 - 1


def sanitize_string(value: str, max_length: int = 1000) -> str:
    """
    Sanitize string input.

    Args:
        value: Input string
        max_length: Maximum allowed length

    Returns:
        Sanitized string
    """
    if not isinstance(value, str):
        return str(value)

    # Remove null bytes
    value = value.replace("\x00", "")

    # Strip leading/trailing whitespace
    value = value.strip()

    # Truncate to max length
    return value[:max_length]


def parse_id(value: Union[int, str], kind: str = "id") -> int:
    """
    Parse a numeric identifier supplied as int or decimal string.

    Args:
        value: Raw identifier
        kind: What the identifier names, for the error message

    Returns:
        Positive integer id within the primary key range

    Raises:
        InvalidIdentifier: If the value is not a positive integer
    """
    if isinstance(value, bool):
        raise InvalidIdentifier(f"{kind} is not valid: {value!r}")

    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and _ID_PATTERN.match(value.strip()):
        parsed = int(value.strip())
    else:
        raise InvalidIdentifier(f"{kind} is not valid: {value!r}")

    if parsed < 1 or parsed > MAX_ID:
        raise InvalidIdentifier(f"{kind} is not valid: {value!r}")
    return parsed


def validate_match_message(message: str) -> bool:
    """
    Check a match message against the configured length bounds.

    The length is measured after sanitizing, so padding whitespace does not
    count towards the minimum.

    Args:
        message: Message from the issuer

    Returns:
        True if the message length is within bounds
    """
    if not isinstance(message, str):
        return False

    settings = get_settings()
    length = len(sanitize_string(message, len(message)))
    return settings.match_message_min_length <= length <= settings.match_message_max_length
