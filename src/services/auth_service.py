"""Authentication service: registration, credential checks and token issuance."""

from uuid import UUID

from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from src import security
from src.errors import DataIntegrityError, InvalidCredentialsError, NotFoundError
from src.logger import get_logger
from src.models import User
from src.schemas.user import FilteredUser
from src.services.user_store import UserStore

logger = get_logger(__name__)

# Verified against when the email is unknown so both failure paths cost one hash
_DUMMY_HASH: str | None = None


def _dummy_hash() -> str:
    global _DUMMY_HASH
    if _DUMMY_HASH is None:
        _DUMMY_HASH = security.hash_password("timing-equalizer-password")
    return _DUMMY_HASH


def to_filtered_user(user: User) -> FilteredUser:
    """Project a persisted user onto its public shape.

    Raises:
        DataIntegrityError: The record is missing a required timestamp.
    """
    if user.created_at is None or user.updated_at is None:
        raise DataIntegrityError(f"User {user.id} is missing timestamps")
    try:
        return FilteredUser.model_validate(user)
    except ValidationError as exc:
        raise DataIntegrityError(f"User {user.id} failed projection") from exc


class AuthService:
    """Authentication operations over a UserStore.

    Holds the signing secret and token lifetime; constructed per request so
    no mutable state is shared between requests.
    """

    def __init__(self, store: UserStore, secret: str, ttl: str) -> None:
        self.store = store
        self._secret = secret
        self._ttl = ttl

    async def register(
        self,
        email: str,
        password: str,
        *,
        display_name: str | None = None,
        external_id: str | None = None,
    ) -> FilteredUser:
        """Create an account and return its public projection.

        Raises:
            DuplicateIdentityError: Email or external id already registered.
            HashingFailure: The password could not be hashed.
        """
        password_hash = await run_in_threadpool(security.hash_password, password)
        user = await self.store.create(
            email=email,
            password_hash=password_hash,
            display_name=display_name,
            external_id=external_id,
        )
        logger.info("User registered", user_id=str(user.id))
        return to_filtered_user(user)

    async def authenticate_by_password(self, email: str, password: str) -> User:
        """Return the user if the password matches.

        Unknown email and wrong password raise the same error.
        """
        user = await self.store.find_by_email(email)
        if user is not None:
            hashed = user.password_hash
        else:
            hashed = await run_in_threadpool(_dummy_hash)
        valid = await run_in_threadpool(security.verify_password, password, hashed)
        if user is None or not valid:
            logger.info("Password login rejected")
            raise InvalidCredentialsError()
        return user

    async def authenticate_by_external_id(self, external_id: str) -> User:
        """Return the user linked to an upstream identity.

        No secret is checked here: the identity provider that issued
        ``external_id`` is trusted to have authenticated the caller, and the
        deployment must only accept this path from that provider.
        """
        user = await self.store.find_by_external_id(external_id)
        if user is None:
            logger.info("External id login rejected")
            raise InvalidCredentialsError()
        return user

    def issue_token(self, user: User) -> str:
        return security.issue_token(str(user.id), self._secret, self._ttl)

    async def get_profile(self, user_id: UUID) -> FilteredUser:
        user = await self.store.find_by_id(user_id)
        if user is None:
            raise NotFoundError()
        return to_filtered_user(user)
