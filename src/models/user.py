"""User model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from src.database import Base
from src.models.base import TimestampMixin, UUIDMixin

DEFAULT_ROLE = "user"
EXTERNAL_ID_MAX_LENGTH = 64


class User(UUIDMixin, TimestampMixin, Base):
    """Registered account.

    ``email`` is stored lower-cased. ``external_id`` is the identifier issued
    by an upstream identity provider (Telegram user id) and is optional.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    external_id: Mapped[str | None] = mapped_column(String(EXTERNAL_ID_MAX_LENGTH), unique=True, nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(32), nullable=False, default=DEFAULT_ROLE)

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email}>"
