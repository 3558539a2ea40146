from user_registry.schemas.auth import (
    LoginRequest,
    LoginResponse,
    LoginUser,
    PasswordChangeRequest,
    RegisterRequest,
)
from user_registry.schemas.base import BaseResponse, ListResponse
from user_registry.schemas.health import HealthResponse
from user_registry.schemas.user import (
    CreatedUser,
    DeletedUser,
    DeleteUserResponse,
    PasswordChangeResponse,
    RegisterResponse,
    UserListResponse,
    UserResponse,
)

__all__ = [
    "BaseResponse",
    "CreatedUser",
    "DeleteUserResponse",
    "DeletedUser",
    "HealthResponse",
    "ListResponse",
    "LoginRequest",
    "LoginResponse",
    "LoginUser",
    "PasswordChangeRequest",
    "PasswordChangeResponse",
    "RegisterRequest",
    "RegisterResponse",
    "UserListResponse",
    "UserResponse",
]
