"""Pydantic schemas for users."""

from datetime import UTC, datetime

from pydantic import field_validator

from user_registry.schemas.base import BaseResponse, ListResponse


def _as_utc(v: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC
    if isinstance(v, datetime) and v.tzinfo is None:
        return v.replace(tzinfo=UTC)
    return v


class UserResponse(BaseResponse):
    """Public user fields. There is no password field, so the hash cannot leak."""

    id: int
    username: str
    email: str | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def ensure_timezone_aware(cls, v: datetime) -> datetime:
        return _as_utc(v)


class CreatedUser(BaseResponse):
    id: int
    username: str
    email: str | None = None
    created_at: datetime

    @field_validator("created_at", mode="before")
    @classmethod
    def ensure_timezone_aware(cls, v: datetime) -> datetime:
        return _as_utc(v)


class DeletedUser(BaseResponse):
    id: int
    username: str


class RegisterResponse(BaseResponse):
    message: str = "User registered successfully"
    user: CreatedUser


class PasswordChangeResponse(BaseResponse):
    message: str = "Password updated successfully"
    user: UserResponse


class DeleteUserResponse(BaseResponse):
    message: str = "User deleted successfully"
    user: DeletedUser


UserListResponse = ListResponse[UserResponse]
