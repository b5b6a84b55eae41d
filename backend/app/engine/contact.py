"""
Contact form sanitising and validation.
"""
import html
import re
from dataclasses import dataclass

MAX_NAME_LENGTH = 100
MAX_EMAIL_LENGTH = 254
MAX_MESSAGE_LENGTH = 2000

TAG_RE = re.compile(r"<[^>]*>")
NAME_RE = re.compile(r"^[a-zA-ZÀ-ÿ\s'-]+$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class ContactValidationError(ValueError):
    """Raised with a user-facing message when a submission is rejected."""


@dataclass
class ContactSubmission:
    name: str
    email: str
    message: str


def strip_tags(value: str) -> str:
    return TAG_RE.sub("", value)


def sanitize(value: str) -> str:
    """Trim, strip HTML tags, then escape what is left."""
    return html.escape(strip_tags(value.strip()), quote=True).replace("/", "&#x2F;")


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def clean_submission(name, email, message) -> ContactSubmission:
    """
    Validate raw form fields and return the plain-text values to send.
    Length limits apply to the escaped form.
    """
    if not name or not isinstance(name, str):
        raise ContactValidationError("Name is required")
    if not email or not isinstance(email, str):
        raise ContactValidationError("Email is required")
    if not message or not isinstance(message, str):
        raise ContactValidationError("Message is required")

    safe_name = sanitize(name)
    if not safe_name:
        raise ContactValidationError("Name is required")
    if len(safe_name) > MAX_NAME_LENGTH:
        raise ContactValidationError(f"Name must be {MAX_NAME_LENGTH} characters or less")
    plain_name = strip_tags(name.strip())
    if not NAME_RE.match(plain_name):
        raise ContactValidationError("Name can only contain letters, spaces, hyphens, and apostrophes")

    safe_email = sanitize(email)
    if not safe_email:
        raise ContactValidationError("Email is required")
    if len(safe_email) > MAX_EMAIL_LENGTH:
        raise ContactValidationError(f"Email must be {MAX_EMAIL_LENGTH} characters or less")
    plain_email = strip_tags(email.strip()).lower()
    if not is_valid_email(plain_email):
        raise ContactValidationError("Please enter a valid email address")

    safe_message = sanitize(message)
    if not safe_message:
        raise ContactValidationError("Message is required")
    if len(safe_message) > MAX_MESSAGE_LENGTH:
        raise ContactValidationError(f"Message must be {MAX_MESSAGE_LENGTH} characters or less")

    return ContactSubmission(
        name=plain_name,
        email=plain_email,
        message=strip_tags(message.strip()),
    )
