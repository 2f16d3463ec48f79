"""
utils/validation_utils.py

Purpose: Input validation

- Phone and email format checks
- Identity document number normalization
- Input sanitization
"""

import re
from typing import Optional


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_phone_number(phone: str) -> bool:
    """
    Validates Indian phone number format.

    Args:
        phone: Phone number string

    Returns:
        True if valid Indian mobile number
    """
    if not phone:
        return False

    # Remove common separators and spaces
    phone = re.sub(r"[\s\-\(\)\+]", "", phone)

    # Remove country code if present
    if len(phone) == 12 and phone.startswith("91"):
        phone = phone[2:]
    elif len(phone) == 11 and phone.startswith("0"):
        phone = phone[1:]

    # Indian mobile format (starts with 6-9, 10 digits total)
    return bool(re.match(r"^[6-9]\d{9}$", phone))


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def validate_email(email: str) -> bool:
    if not email:
        return False
    return bool(EMAIL_PATTERN.match(email.strip()))


def normalize_id_number(id_number: Optional[str]) -> Optional[str]:
    """
    Uppercases and strips separators from an identity document number.
    """
    if not id_number:
        return None
    cleaned = re.sub(r"[\s\-]", "", id_number).upper()
    return cleaned or None


def sanitize_input(text: str, max_length: int = 1000) -> str:
    """
    Sanitizes user input to prevent injection attacks.

    Args:
        text: Input text
        max_length: Maximum allowed length

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    text = text[:max_length]

    # Keep alphanumeric, spaces, and common punctuation
    text = re.sub(r"[<>{}\[\]]", "", text)

    # Normalize whitespace
    text = " ".join(text.split())

    return text.strip()
