"""Validation utilities for applicant contact details."""

import re
from typing import Optional


def validate_phone(phone: str) -> tuple[bool, Optional[str]]:
    """
    Validate phone number format (basic validation).

    Args:
        phone: Phone number to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not phone:
        return False, "Phone number is required"

    # Remove common separators
    cleaned = re.sub(r'[\s\-\(\)\.]', '', phone)

    if not re.fullmatch(r'\+?\d+', cleaned):
        return False, "Phone number may only contain digits and separators"

    digits = cleaned.lstrip('+')
    if len(digits) < 7 or len(digits) > 15:
        return False, "Phone number must be between 7 and 15 digits"

    return True, None


def normalize_phone(phone: str, country_code: str = "254") -> str:
    """
    Normalize phone number to E.164 format (basic version).

    Local numbers with a leading trunk zero take the default country code.

    Args:
        phone: Phone number to normalize
        country_code: Calling code for local numbers (default: Kenya)

    Returns:
        Normalized phone number
    """
    cleaned = re.sub(r'[^\d+]', '', phone)

    if cleaned.startswith('+'):
        return cleaned
    if cleaned.startswith('0'):
        cleaned = cleaned[1:]
    return f"+{country_code}{cleaned}"
