"""Pydantic schemas for authentication."""

from typing import Annotated

from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, AliasChoices, BaseModel, ConfigDict, Field
from pydantic_core import PydanticCustomError

from src.models import EXTERNAL_ID_MAX_LENGTH

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 128


def _check_email(value: str) -> str:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as exc:
        raise PydanticCustomError("email_format", "Invalid email format") from exc
    return value.strip().lower()


def _check_password(value: str) -> str:
    if len(value) < MIN_PASSWORD_LENGTH:
        raise PydanticCustomError(
            "password_too_short",
            "Password must be at least {min_length} characters",
            {"min_length": MIN_PASSWORD_LENGTH},
        )
    if len(value) > MAX_PASSWORD_LENGTH:
        raise PydanticCustomError(
            "password_too_long",
            "Password must be at most {max_length} characters",
            {"max_length": MAX_PASSWORD_LENGTH},
        )
    return value


Email = Annotated[str, AfterValidator(_check_email)]
Password = Annotated[str, AfterValidator(_check_password)]


class RegisterRequest(BaseModel):
    """Schema for user registration."""

    model_config = ConfigDict(populate_by_name=True)

    email: Email
    password: Password
    display_name: str | None = Field(
        default=None,
        max_length=255,
        validation_alias=AliasChoices("display_name", "name"),
    )


class LoginRequest(BaseModel):
    """Schema for user login.

    Exactly one credential path is used: ``email`` + ``password``, or
    ``external_id``. Selector checks happen in the router so that the
    error taxonomy (bad request vs validation failure) is preserved.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: str | None = None
    password: str | None = Field(default=None, max_length=MAX_PASSWORD_LENGTH)
    external_id: str | None = Field(
        default=None,
        max_length=EXTERNAL_ID_MAX_LENGTH,
        validation_alias=AliasChoices("external_id", "telegram_user_id"),
    )


class TokenResponse(BaseModel):
    """Schema for login response."""

    token: str


class ErrorResponse(BaseModel):
    """Error body returned for every failed request."""

    error: str
