"""Unit tests for AuthService over an in-memory user store."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from src.errors import DataIntegrityError, DuplicateIdentityError, InvalidCredentialsError, NotFoundError
from src.schemas.user import FilteredUser
from src.security import verify_password, verify_token
from src.services.auth_service import AuthService, to_filtered_user
from tests.factories import InMemoryUserStore, UserFactory

SECRET = "service-test-secret"


@pytest.fixture
def store():
    return InMemoryUserStore()


@pytest.fixture
def service(store):
    return AuthService(store=store, secret=SECRET, ttl="15m")


@pytest.mark.asyncio
async def test_register_returns_filtered_user(service, store):
    """
    GIVEN a new email
    WHEN registering
    THEN a FilteredUser without credential material is returned and the stored hash verifies
    """
    user = await service.register("New@Example.com", "secret1", display_name="Newbie")

    assert isinstance(user, FilteredUser)
    assert user.email == "new@example.com"
    assert user.display_name == "Newbie"
    assert user.role == "user"
    assert "password" not in user.model_dump()
    assert "password_hash" not in user.model_dump()

    stored = store.users[user.id]
    assert stored.password_hash != "secret1"
    assert verify_password("secret1", stored.password_hash)


@pytest.mark.asyncio
async def test_register_duplicate_email(service):
    await service.register("dup@example.com", "secret1")

    with pytest.raises(DuplicateIdentityError):
        await service.register("DUP@example.com", "secret2")


@pytest.mark.asyncio
async def test_register_duplicate_external_id(service):
    await service.register("a@example.com", "secret1", external_id="tg-1")

    with pytest.raises(DuplicateIdentityError):
        await service.register("b@example.com", "secret1", external_id="tg-1")


@pytest.mark.asyncio
async def test_authenticate_by_password(service):
    registered = await service.register("login@example.com", "secret1")

    user = await service.authenticate_by_password("LOGIN@example.com", "secret1")

    assert user.id == registered.id


@pytest.mark.asyncio
async def test_authenticate_failures_are_indistinguishable(service):
    """
    GIVEN one registered user
    WHEN logging in with a wrong password and with an unknown email
    THEN both raise InvalidCredentialsError with the same message
    """
    await service.register("known@example.com", "secret1")

    with pytest.raises(InvalidCredentialsError) as wrong_password:
        await service.authenticate_by_password("known@example.com", "wrong-password")
    with pytest.raises(InvalidCredentialsError) as unknown_email:
        await service.authenticate_by_password("unknown@example.com", "secret1")

    assert wrong_password.value.message == unknown_email.value.message == "Invalid credentials"
    assert wrong_password.value.status_code == unknown_email.value.status_code == 401


@pytest.mark.asyncio
async def test_authenticate_by_external_id(service):
    registered = await service.register("tg@example.com", "secret1", external_id="123456")

    user = await service.authenticate_by_external_id("123456")

    assert user.id == registered.id


@pytest.mark.asyncio
async def test_authenticate_by_unknown_external_id(service):
    with pytest.raises(InvalidCredentialsError):
        await service.authenticate_by_external_id("999")


@pytest.mark.asyncio
async def test_issue_token_subject_is_user_id(service):
    await service.register("token@example.com", "secret1")
    user = await service.authenticate_by_password("token@example.com", "secret1")

    claims = verify_token(service.issue_token(user), SECRET)

    assert claims.subject == str(user.id)
    assert claims.expires_at - claims.issued_at == 15 * 60


@pytest.mark.asyncio
async def test_get_profile(service):
    registered = await service.register("me@example.com", "secret1")

    profile = await service.get_profile(registered.id)

    assert profile == registered


@pytest.mark.asyncio
async def test_get_profile_unknown_id(service):
    with pytest.raises(NotFoundError):
        await service.get_profile(uuid4())


def test_to_filtered_user_normalizes_naive_timestamps():
    naive = datetime(2025, 1, 1, 8, 30)
    user = UserFactory.build(created_at=naive, updated_at=naive)

    filtered = to_filtered_user(user)

    assert filtered.created_at.utcoffset() == timedelta(0)
    assert filtered.updated_at == naive.replace(tzinfo=UTC)


def test_to_filtered_user_missing_timestamp():
    """A persisted user without timestamps is a data-integrity defect."""
    user = UserFactory.build(created_at=None)

    with pytest.raises(DataIntegrityError) as exc_info:
        to_filtered_user(user)

    assert exc_info.value.status_code == 500
