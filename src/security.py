"""Security utilities for password hashing and JWT bearer tokens."""

import re
from datetime import UTC, datetime, timedelta

import jwt
from passlib.context import CryptContext
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.config import settings
from src.errors import ConfigurationError, HashingFailure, MalformedTokenError, TokenExpiredError
from src.logger import get_logger

logger = get_logger(__name__)

JWT_ALGORITHM = "HS256"
REQUIRED_CLAIMS = ["sub", "iat", "exp"]

_DURATION_RE = re.compile(r"^(-?\d+)([smhd])$")
_DURATION_UNITS = {
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
}

pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
    argon2__time_cost=settings.argon2_time_cost,
    argon2__memory_cost=settings.argon2_memory_cost,
    argon2__parallelism=settings.argon2_parallelism,
)


# =============================================================================
# Passwords
# =============================================================================


def hash_password(password: str) -> str:
    """Hash a password with argon2id and a fresh random salt."""
    try:
        return pwd_context.hash(password)
    except Exception as exc:
        raise HashingFailure("Password hashing failed") from exc


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash.

    Returns False for malformed or unrecognised hashes so that a corrupt
    record is indistinguishable from a wrong password.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


# =============================================================================
# Tokens
# =============================================================================


class Claims(BaseModel):
    """Signed token payload: subject, issued-at and expiry (epoch seconds)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    subject: str = Field(alias="sub")
    issued_at: int = Field(alias="iat")
    expires_at: int = Field(alias="exp")

    def to_payload(self) -> dict[str, str | int]:
        return self.model_dump(by_alias=True)


def parse_duration(expression: str) -> timedelta:
    """Parse a compact duration such as ``"60m"`` or ``"7d"``.

    Raises:
        ConfigurationError: If the expression is not ``<integer><s|m|h|d>``.
    """
    match = _DURATION_RE.match(expression.strip()) if isinstance(expression, str) else None
    if match is None:
        raise ConfigurationError(f"Invalid duration expression: {expression!r}")
    value, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit]: int(value)})


def issue_token(
    subject_id: str,
    secret: str,
    ttl: str,
    *,
    now: datetime | None = None,
) -> str:
    """Create a signed HS256 token for ``subject_id`` valid for ``ttl``."""
    lifetime = parse_duration(ttl)
    issued = now or datetime.now(UTC)
    claims = Claims(
        subject=str(subject_id),
        issued_at=int(issued.timestamp()),
        expires_at=int((issued + lifetime).timestamp()),
    )
    return jwt.encode(claims.to_payload(), secret, algorithm=JWT_ALGORITHM)


def verify_token(token: str, secret: str) -> Claims:
    """Validate signature and expiry and return the token claims.

    Raises:
        TokenExpiredError: The token is well formed but past ``exp``.
        MalformedTokenError: Any other signature, structure or claim problem.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[JWT_ALGORITHM],
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError as exc:
        logger.debug("JWT token expired")
        raise TokenExpiredError("Token expired") from exc
    except jwt.PyJWTError as exc:
        logger.debug("JWT decode failed", error_type=type(exc).__name__)
        raise MalformedTokenError(str(exc)) from exc

    try:
        return Claims.model_validate(payload)
    except ValidationError as exc:
        raise MalformedTokenError("Token claims have unexpected types") from exc
