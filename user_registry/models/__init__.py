"""SQLAlchemy models package."""

from user_registry.models.base import TimestampMixin
from user_registry.models.user import User

__all__ = ["TimestampMixin", "User"]
