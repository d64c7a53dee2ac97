"""Current-user API router."""

from uuid import UUID

from fastapi import APIRouter

from src.deps import AuthServiceDep, CurrentClaims
from src.errors import UnauthorizedError
from src.schemas.auth import ErrorResponse
from src.schemas.user import FilteredUser

router = APIRouter(prefix="/users", tags=["users"])


@router.get(
    "/me",
    response_model=FilteredUser,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def get_me(claims: CurrentClaims, service: AuthServiceDep) -> FilteredUser:
    """Get the authenticated user's profile."""
    try:
        user_id = UUID(claims.subject)
    except ValueError:
        raise UnauthorizedError(UnauthorizedError.MALFORMED) from None
    return await service.get_profile(user_id)
