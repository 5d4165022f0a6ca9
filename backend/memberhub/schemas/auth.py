"""Form schemas for signup and login.

Rules are checked field by field in declaration order, and only the first
violation is reported back to the user, e.g.
``"username" must only contain alpha-numeric characters``.
"""
from __future__ import annotations

from typing import Any, TypeVar

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ValidationError, field_validator

MAX_USERNAME_LENGTH = 20
MAX_PASSWORD_LENGTH = 20

FormT = TypeVar("FormT", bound=BaseModel)


class FormValidationError(ValueError):
    """Raised when a submitted form breaks a schema rule."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def _check_text(value: Any, max_length: int | None = None, alphanum: bool = False) -> str:
    if not isinstance(value, str):
        raise ValueError("must be a string")
    if value == "":
        raise ValueError("is not allowed to be empty")
    if alphanum and not (value.isascii() and value.isalnum()):
        raise ValueError("must only contain alpha-numeric characters")
    if max_length is not None and len(value) > max_length:
        raise ValueError(f"length must be less than or equal to {max_length} characters long")
    return value


def _check_email(value: Any) -> str:
    value = _check_text(value)
    # email-validator would otherwise accept "Name <addr>" forms and padding
    if value != value.strip() or "<" in value or ">" in value:
        raise ValueError("must be a valid email")
    try:
        result = validate_email(value, check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValueError("must be a valid email") from exc
    return result.normalized


class SignupForm(BaseModel):
    username: str
    password: str
    email: str | None = None

    @field_validator("username", mode="before")
    @classmethod
    def _username(cls, value: Any) -> str:
        return _check_text(value, MAX_USERNAME_LENGTH, alphanum=True)

    @field_validator("password", mode="before")
    @classmethod
    def _password(cls, value: Any) -> str:
        return _check_text(value, MAX_PASSWORD_LENGTH)

    @field_validator("email", mode="before")
    @classmethod
    def _email(cls, value: Any) -> str | None:
        if value is None:
            return None
        return _check_email(value)


class LoginForm(BaseModel):
    email: str
    password: str

    @field_validator("email", mode="before")
    @classmethod
    def _email(cls, value: Any) -> str:
        return _check_email(value)

    @field_validator("password", mode="before")
    @classmethod
    def _password(cls, value: Any) -> str:
        return _check_text(value, MAX_PASSWORD_LENGTH)


def first_error_message(exc: ValidationError) -> str:
    """Render the first error of a pydantic ValidationError as a user-facing sentence."""

    error = exc.errors()[0]
    field = ".".join(str(part) for part in error.get("loc", ())) or "value"
    if error["type"] == "missing":
        return f'"{field}" is required'
    cause = (error.get("ctx") or {}).get("error")
    detail = str(cause) if cause is not None else error.get("msg", "is invalid")
    return f'"{field}" {detail}'


def validate_form(schema: type[FormT], data: dict[str, Any]) -> FormT:
    """Validate ``data`` against ``schema`` or raise FormValidationError."""

    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise FormValidationError(first_error_message(exc)) from exc
