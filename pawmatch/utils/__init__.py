"""Utility modules for PawMatch."""

from .validators import sanitize_string, parse_id, validate_match_message

__all__ = [
    "sanitize_string",
    "parse_id",
    "validate_match_message",
]
