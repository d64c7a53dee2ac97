"""Services package."""

from src.services.auth_service import AuthService, to_filtered_user
from src.services.user_store import SqlAlchemyUserStore, UserStore

__all__ = [
    "AuthService",
    "SqlAlchemyUserStore",
    "UserStore",
    "to_filtered_user",
]
