"""API routers package."""

from src.routers import auth, users

__all__ = [
    "auth",
    "users",
]
