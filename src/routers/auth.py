"""Authentication API router."""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, Request, status

from src.config import settings
from src.deps import AuthServiceDep
from src.errors import BadRequestError, ValidationFailureError
from src.logger import get_logger
from src.models import EXTERNAL_ID_MAX_LENGTH
from src.rate_limit import RateLimiter, login_rate_limiter, register_rate_limiter
from src.schemas.auth import ErrorResponse, LoginRequest, RegisterRequest, TokenResponse
from src.schemas.user import FilteredUser

router = APIRouter(prefix="/auth", tags=["auth"])
logger = get_logger(__name__)


def _get_client_ip(request: Request) -> str:
    """Extract client IP from request, considering proxies.

    NOTE: X-Forwarded-For is only trusted when TRUST_PROXY=true to prevent
    IP spoofing attacks that could bypass rate limiting.
    """
    if settings.trust_proxy:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            # First entry is the original client
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _check_rate_limit(request: Request, limiter: RateLimiter, error_msg: str) -> None:
    """Raise 429 with Retry-After when the client exceeded the limit."""
    client_ip = _get_client_ip(request)
    allowed, retry_after = limiter.is_allowed(client_ip)
    if not allowed:
        logger.warning("Rate limit exceeded", limiter=limiter.config.name, client_ip=client_ip)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=error_msg,
            headers={"Retry-After": str(retry_after)},
        )


@router.post(
    "/register",
    response_model=FilteredUser,
    status_code=status.HTTP_200_OK,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def register(
    request: Request,
    data: RegisterRequest,
    service: AuthServiceDep,
    external_id: Annotated[
        str | None,
        Query(max_length=EXTERNAL_ID_MAX_LENGTH, description="Upstream identity provider user id"),
    ] = None,
    telegram_user_id: Annotated[
        str | None,
        Query(max_length=EXTERNAL_ID_MAX_LENGTH, description="Alias of external_id"),
    ] = None,
) -> FilteredUser:
    """Register a new user with email and password."""
    _check_rate_limit(
        request,
        register_rate_limiter,
        "Too many registration attempts. Please try again later.",
    )

    return await service.register(
        data.email,
        data.password,
        display_name=data.display_name,
        external_id=external_id or telegram_user_id,
    )


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def login(
    request: Request,
    data: LoginRequest,
    service: AuthServiceDep,
) -> TokenResponse:
    """Login with ``{email, password}`` or ``{external_id}``.

    When both selectors are present the email path wins.
    """
    _check_rate_limit(
        request,
        login_rate_limiter,
        "Too many login attempts. Please try again later.",
    )

    if data.email:
        if not data.password:
            raise ValidationFailureError("Password is required")
        user = await service.authenticate_by_password(data.email, data.password)
        method = "password"
    elif data.external_id:
        user = await service.authenticate_by_external_id(data.external_id)
        method = "external_id"
    else:
        raise BadRequestError()

    logger.info(
        "Successful login",
        user_id=str(user.id),
        method=method,
        client_ip=_get_client_ip(request),
    )
    login_rate_limiter.reset(_get_client_ip(request))

    return TokenResponse(token=service.issue_token(user))
