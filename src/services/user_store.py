"""User persistence: the store contract and its SQLAlchemy implementation."""

from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.errors import DuplicateIdentityError
from src.logger import get_logger
from src.models import User

logger = get_logger(__name__)


class UserStore(Protocol):
    """Persistence capability required by the auth service.

    Lookups return ``None`` when nothing matches; deciding which error that
    becomes is the caller's job.
    """

    async def create(
        self,
        email: str,
        password_hash: str,
        display_name: str | None = None,
        external_id: str | None = None,
    ) -> User: ...

    async def find_by_email(self, email: str) -> User | None: ...

    async def find_by_id(self, user_id: UUID) -> User | None: ...

    async def find_by_external_id(self, external_id: str) -> User | None: ...


class SqlAlchemyUserStore:
    """UserStore backed by the ``users`` table of the request session."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(
        self,
        email: str,
        password_hash: str,
        display_name: str | None = None,
        external_id: str | None = None,
    ) -> User:
        """Insert a user. Raises DuplicateIdentityError on a uniqueness violation."""
        user = User(
            email=email.strip().lower(),
            password_hash=password_hash,
            display_name=display_name,
            external_id=external_id,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            logger.info(
                "User insert rejected by unique constraint",
                has_external_id=external_id is not None,
                error_type=type(exc.orig).__name__ if exc.orig is not None else None,
            )
            raise DuplicateIdentityError() from exc
        await self.db.refresh(user)
        return user

    async def find_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    async def find_by_id(self, user_id: UUID) -> User | None:
        return await self.db.get(User, user_id)

    async def find_by_external_id(self, external_id: str) -> User | None:
        result = await self.db.execute(select(User).where(User.external_id == external_id))
        return result.scalar_one_or_none()
