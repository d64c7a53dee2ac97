"""Common FastAPI dependencies for consistent type annotations.

This module provides type aliases for frequently used FastAPI dependencies,
reducing boilerplate and ensuring consistency across routers.

Usage:
    from src.deps import AuthServiceDep, CurrentClaims

    async def my_endpoint(service: AuthServiceDep, claims: CurrentClaims):
        # service is an AuthService bound to the request's session
        # claims are the verified bearer token claims
        ...
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth import require_claims
from src.config import settings
from src.database import get_db
from src.security import Claims
from src.services import AuthService, SqlAlchemyUserStore

DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentClaims = Annotated[Claims, Depends(require_claims)]


def get_auth_service(db: DbSession) -> AuthService:
    """Build an AuthService over the request's database session."""
    return AuthService(
        store=SqlAlchemyUserStore(db),
        secret=settings.jwt_secret,
        ttl=settings.jwt_expires_in,
    )


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]

__all__ = ["AuthServiceDep", "CurrentClaims", "DbSession", "get_auth_service"]
