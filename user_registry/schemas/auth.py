"""Pydantic schemas for registration and login requests.

Fields accept any JSON value: presence, type and format rules live in the
validation service so that every rejection carries its specific message.
"""

from typing import Any

from pydantic import BaseModel

from user_registry.schemas.base import BaseResponse


class RegisterRequest(BaseModel):
    """Schema for user registration."""

    username: Any = None
    password: Any = None
    email: Any = None


class LoginRequest(BaseModel):
    """Schema for user login."""

    username: Any = None
    password: Any = None


class PasswordChangeRequest(BaseModel):
    current_password: Any = None
    new_password: Any = None


class LoginUser(BaseResponse):
    id: int
    username: str
    email: str | None = None


class LoginResponse(BaseResponse):
    """Login result. No token is issued; the caller only learns who it is."""

    message: str = "Login successful"
    user: LoginUser
