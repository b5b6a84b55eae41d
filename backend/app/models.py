import re
from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, Field, StrictBool, StrictInt, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .engine.contact import is_valid_email
from .engine.subscription import SessionType, parse_enum

USERNAME_RE = re.compile(r"^[a-z0-9_-]+$")
PERSON_NAME_RE = re.compile(r"^[a-zA-Z\s\-']+$")
MIN_PASSWORD_LENGTH = 8


def normalize_username(value: Any) -> str:
    """Trim and lower-case, then enforce 3–30 chars of [a-z0-9_-]."""
    if not value or not isinstance(value, str) or not value.strip():
        raise ValueError("Username is required")
    username = value.strip().lower()
    if not 3 <= len(username) <= 30:
        raise ValueError("Username must be between 3 and 30 characters")
    if not USERNAME_RE.match(username):
        raise ValueError("Username can only contain letters, numbers, underscores, and hyphens")
    return username


def _required_text(value: Any, message: str) -> str:
    if not value or not isinstance(value, str) or not value.strip():
        raise ValueError(message)
    return value.strip()


def _years_before(today: date, years: int) -> date:
    try:
        return today.replace(year=today.year - years)
    except ValueError:  # Feb 29
        return today.replace(year=today.year - years, day=28)


class ApiModel(BaseModel):
    model_config = {"alias_generator": to_camel, "populate_by_name": True, "extra": "ignore"}


# ── Progress & sessions ───────────────────────────────────────────────────────

class ProgressSubmit(ApiModel):
    question_id: str
    is_correct: StrictBool
    time_spent_seconds: Optional[float] = Field(default=None, ge=0)

    @model_validator(mode="before")
    @classmethod
    def require_answer(cls, data):
        if not isinstance(data, dict):
            return data
        question_id = data.get("questionId", data.get("question_id"))
        is_correct = data.get("isCorrect", data.get("is_correct"))
        if not question_id or not isinstance(is_correct, bool):
            raise ValueError("Missing required fields: questionId and isCorrect")
        return data

    @field_validator("question_id", mode="before")
    @classmethod
    def question_id_as_text(cls, v):
        return v if isinstance(v, str) else str(v)


class SessionStart(ApiModel):
    session_type: SessionType
    category_slug: Optional[str] = None

    @field_validator("session_type", mode="before")
    @classmethod
    def validate_session_type(cls, v):
        session_type = parse_enum(SessionType, v)
        if session_type is None:
            raise ValueError("Invalid session type")
        return session_type

    @model_validator(mode="before")
    @classmethod
    def require_session_type(cls, data):
        if isinstance(data, dict) and not data.get("sessionType", data.get("session_type")):
            raise ValueError("Invalid session type")
        return data


class SessionEnd(ApiModel):
    session_id: str
    xp_earned: Optional[int] = Field(default=None, ge=0)
    questions_answered: Optional[int] = Field(default=None, ge=0)
    questions_correct: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="before")
    @classmethod
    def require_session_id(cls, data):
        if isinstance(data, dict) and not data.get("sessionId", data.get("session_id")):
            raise ValueError("Session ID required")
        return data


# ── Bookmarks & quiz results ──────────────────────────────────────────────────

class BookmarkCreate(ApiModel):
    question_id: str = Field(min_length=1)


class FlashcardBookmarkBody(ApiModel):
    flashcard_id: str = Field(min_length=1)


class QuizResultCreate(ApiModel):
    category_slug: str = Field(min_length=1)
    score: StrictInt = Field(ge=0)
    total_questions: StrictInt = Field(gt=0)
    best_streak: Optional[int] = Field(default=0, ge=0)
    difficulty: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def require_fields(cls, data):
        if not isinstance(data, dict):
            return data
        score = data.get("score")
        total = data.get("totalQuestions", data.get("total_questions"))
        numeric = all(isinstance(v, int) and not isinstance(v, bool) for v in (score, total))
        if not data.get("categorySlug", data.get("category_slug")) or not numeric:
            raise ValueError("Missing required fields: categorySlug, score, totalQuestions")
        return data


# ── Accounts ──────────────────────────────────────────────────────────────────

class Registration(ApiModel):
    name: str
    email: str
    password: str

    @model_validator(mode="before")
    @classmethod
    def require_fields(cls, data):
        if isinstance(data, dict) and not all(data.get(k) for k in ("name", "email", "password")):
            raise ValueError("Name, email, and password are required")
        return data

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not PERSON_NAME_RE.match(v) or len(v) > 100:
            raise ValueError("Please enter a valid name")
        return v.strip()

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        if not is_valid_email(v) or len(v) > 254:
            raise ValueError("Please enter a valid email address")
        return v.lower()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError("Password must be at least 8 characters")
        return v


class TokenRequest(ApiModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def lower_email(cls, v):
        return v.strip().lower()


class EmailRequest(ApiModel):
    email: str

    @model_validator(mode="before")
    @classmethod
    def require_email(cls, data):
        if isinstance(data, dict) and not data.get("email"):
            raise ValueError("Email is required")
        return data


class VerifyEmail(ApiModel):
    token: str

    @model_validator(mode="before")
    @classmethod
    def require_token(cls, data):
        if isinstance(data, dict) and not data.get("token"):
            raise ValueError("Verification token is required")
        return data


class PasswordReset(ApiModel):
    token: str
    password: str

    @model_validator(mode="before")
    @classmethod
    def require_fields(cls, data):
        if not isinstance(data, dict):
            return data
        if not data.get("token"):
            raise ValueError("Reset token is required")
        if not data.get("password"):
            raise ValueError("New password is required")
        return data

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError("Password must be at least 8 characters")
        return v


# ── Profile & settings ────────────────────────────────────────────────────────

class ProfilePatch(ApiModel):
    target_exam_date: Optional[date] = None
    newsletter_opted_in: Optional[bool] = None


class ProfileComplete(ApiModel):
    username: str
    date_of_birth: date
    city: str
    state: str
    target_exam_date: date
    newsletter_opted_in: bool = False

    @model_validator(mode="before")
    @classmethod
    def require_fields(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        data["username"] = normalize_username(data.get("username"))
        if not data.get("dateOfBirth", data.get("date_of_birth")):
            raise ValueError("Date of birth is required")
        _required_text(data.get("city"), "City is required")
        _required_text(data.get("state"), "State is required")
        if not data.get("targetExamDate", data.get("target_exam_date")):
            raise ValueError("Target exam date is required")
        return data

    @field_validator("city", "state")
    @classmethod
    def strip_text(cls, v):
        return v.strip()

    @field_validator("date_of_birth")
    @classmethod
    def validate_age(cls, v):
        if v > _years_before(date.today(), 18):
            raise ValueError("You must be at least 18 years old")
        return v

    @field_validator("target_exam_date")
    @classmethod
    def validate_exam_date(cls, v):
        if v < date.today():
            raise ValueError("Target exam date must be in the future")
        return v


class UsernameSettings(ApiModel):
    name: str
    username: str
    city: Optional[str] = None
    state: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v):
        return _required_text(v, "Name is required")

    @field_validator("username", mode="before")
    @classmethod
    def validate_username(cls, v):
        return normalize_username(v)

    @field_validator("city", "state")
    @classmethod
    def blank_to_none(cls, v):
        return (v or "").strip() or None


class PasswordChange(ApiModel):
    current_password: str
    new_password: str

    @model_validator(mode="before")
    @classmethod
    def require_fields(cls, data):
        if isinstance(data, dict) and not (
            data.get("currentPassword", data.get("current_password"))
            and data.get("newPassword", data.get("new_password"))
        ):
            raise ValueError("Current password and new password are required")
        return data

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v):
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError("New password must be at least 8 characters")
        return v


# ── Billing & contact ─────────────────────────────────────────────────────────

class CheckoutRequest(ApiModel):
    plan: str
    promo_code: Optional[str] = None


class ContactForm(ApiModel):
    """Raw fields; checked by engine.contact after the rate limit."""
    name: Any = None
    email: Any = None
    message: Any = None
    website: Any = None
