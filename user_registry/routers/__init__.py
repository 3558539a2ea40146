"""API routers."""

from user_registry.routers import auth, users

__all__ = ["auth", "users"]
