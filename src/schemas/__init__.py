from src.schemas.auth import ErrorResponse, LoginRequest, RegisterRequest, TokenResponse
from src.schemas.user import FilteredUser

__all__ = [
    "ErrorResponse",
    "FilteredUser",
    "LoginRequest",
    "RegisterRequest",
    "TokenResponse",
]
