"""
Input validation and sanitization utilities for contact form submissions.
Protects the outbound mail against header injection and filters obvious spam.

The spam denylist and caps-lock heuristic are best-effort content filters,
not a fraud prevention boundary.
"""

import re
from typing import Optional

from src.shared.contact.schemas import ContactRequest


# Length limits
MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 50
MAX_EMAIL_LENGTH = 100
MIN_MESSAGE_LENGTH = 10
MAX_MESSAGE_LENGTH = 1000
MAX_SANITIZED_LENGTH = 10000

# Caps-lock heuristic only applies to messages longer than this
CAPS_CHECK_MIN_LENGTH = 20
MAX_CAPS_RATIO = 0.7

SPAM_WORDS = ("viagra", "casino", "lottery", "prince", "inheritance")

NAME_PATTERN = re.compile(r"[a-zA-Z\s'-]+")
EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
# Characters that could smuggle extra headers into the outbound message
EMAIL_DANGEROUS_CHARS = re.compile(r"[\r\n\0%]")
UNSAFE_CHARS = re.compile(r"[<>'\"]")
EXCESS_NEWLINES = re.compile(r"[\r\n]{3,}")
UPPERCASE_LETTER = re.compile(r"[A-Z]")

# Error messages returned to the client
ERROR_REQUIRED_FIELDS = "All fields are required"
ERROR_FIRST_NAME = "Invalid first name format"
ERROR_LAST_NAME = "Invalid last name format"
ERROR_EMAIL = "Invalid email format"
ERROR_MESSAGE_LENGTH = (
    f"Message must be between {MIN_MESSAGE_LENGTH} and {MAX_MESSAGE_LENGTH} characters"
)
ERROR_SPAM = "Message contains prohibited content"
ERROR_CAPS = "Please avoid excessive caps lock"


def validate_name(name: str) -> bool:
    """Only letters, spaces, hyphens and apostrophes, 2 to 50 characters."""
    if not name:
        return False
    return (
        NAME_PATTERN.fullmatch(name) is not None
        and MIN_NAME_LENGTH <= len(name) <= MAX_NAME_LENGTH
    )


def validate_email(email: str) -> bool:
    """
    Validate email address format with header injection checks.

    Args:
        email: Raw email address as submitted

    Returns:
        True if the address is well formed, free of CR/LF/NUL/% and at most
        100 characters long
    """
    if not email:
        return False
    if EMAIL_PATTERN.fullmatch(email) is None:
        return False
    if EMAIL_DANGEROUS_CHARS.search(email):
        return False
    return len(email) <= MAX_EMAIL_LENGTH


def validate_message_length(message: str) -> bool:
    return MIN_MESSAGE_LENGTH <= len(message) <= MAX_MESSAGE_LENGTH


def contains_spam(message: str) -> bool:
    """Case-insensitive substring match against the spam denylist."""
    lower_message = message.lower()
    return any(word in lower_message for word in SPAM_WORDS)


def has_excessive_caps(message: str) -> bool:
    """True when more than 70% of a message longer than 20 characters is A-Z."""
    if len(message) <= CAPS_CHECK_MIN_LENGTH:
        return False
    caps_ratio = len(UPPERCASE_LETTER.findall(message)) / len(message)
    return caps_ratio > MAX_CAPS_RATIO


def has_required_fields(contact_data: ContactRequest) -> bool:
    """First name, last name, email and message must all be present and non-blank."""
    return all(
        value and value.strip()
        for value in (
            contact_data.first_name,
            contact_data.last_name,
            contact_data.email,
            contact_data.message,
        )
    )


def get_validation_error(contact_data: ContactRequest) -> Optional[str]:
    """
    Run every field check in order and stop at the first failure.

    Returns:
        The client-facing error message for the first failing check, or None
        when the submission is valid
    """
    if not has_required_fields(contact_data):
        return ERROR_REQUIRED_FIELDS
    if not validate_name(contact_data.first_name):
        return ERROR_FIRST_NAME
    if not validate_name(contact_data.last_name):
        return ERROR_LAST_NAME
    if not validate_email(contact_data.email):
        return ERROR_EMAIL
    if not validate_message_length(contact_data.message):
        return ERROR_MESSAGE_LENGTH
    if contains_spam(contact_data.message):
        return ERROR_SPAM
    if has_excessive_caps(contact_data.message):
        return ERROR_CAPS
    return None


def sanitize_input(text: str) -> str:
    """
    Sanitize free text before it is rendered into the outbound email.

    Trims whitespace, removes < > ' " characters, collapses runs of three or
    more line breaks into a single blank line and truncates to 10,000
    characters.
    """
    if not text:
        return ""
    text = text.strip()
    text = UNSAFE_CHARS.sub("", text)
    text = EXCESS_NEWLINES.sub("\n\n", text)
    return text[:MAX_SANITIZED_LENGTH]


def normalize_email(email: str) -> str:
    # Syntax was already constrained by validate_email, so no stripping here
    return email.strip().lower()
