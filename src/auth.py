"""Bearer-token gate for protected routes."""

from typing import Annotated

from fastapi import Header, Request

from src.config import settings
from src.errors import MalformedTokenError, TokenExpiredError, UnauthorizedError
from src.logger import get_logger
from src.security import Claims, verify_token

logger = get_logger(__name__)

BEARER_PREFIX = "Bearer "


def _reject(reason: str) -> UnauthorizedError:
    logger.debug("Bearer authentication rejected", reason=reason)
    return UnauthorizedError(reason)


async def require_claims(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
) -> Claims:
    """Verify the ``Authorization: Bearer <token>`` header.

    The scheme prefix is matched exactly (case-sensitive). On success the
    claims are stored on ``request.state.claims`` and returned; the user
    record is not loaded here.

    Raises:
        UnauthorizedError: With ``reason`` set to the failed check.
    """
    if authorization is None:
        raise _reject(UnauthorizedError.MISSING_HEADER)
    if not authorization.startswith(BEARER_PREFIX):
        raise _reject(UnauthorizedError.MALFORMED_HEADER)

    token = authorization[len(BEARER_PREFIX) :].strip()
    try:
        claims = verify_token(token, settings.jwt_secret)
    except TokenExpiredError:
        raise _reject(UnauthorizedError.EXPIRED) from None
    except MalformedTokenError:
        raise _reject(UnauthorizedError.MALFORMED) from None

    request.state.claims = claims
    return claims
