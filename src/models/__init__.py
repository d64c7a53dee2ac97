"""SQLAlchemy models package."""

from src.models.base import TimestampMixin, UUIDMixin
from src.models.user import DEFAULT_ROLE, EXTERNAL_ID_MAX_LENGTH, User

__all__ = [
    "DEFAULT_ROLE",
    "EXTERNAL_ID_MAX_LENGTH",
    "TimestampMixin",
    "UUIDMixin",
    "User",
]
