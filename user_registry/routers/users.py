"""User management API router."""

from fastapi import APIRouter, Query, status

from user_registry.deps import ActivePolicy, Store
from user_registry.logger import get_logger
from user_registry.routers.auth import register
from user_registry.schemas import (
    DeletedUser,
    DeleteUserResponse,
    PasswordChangeRequest,
    PasswordChangeResponse,
    RegisterResponse,
    UserListResponse,
    UserResponse,
)
from user_registry.services.credentials import CredentialStoreError, UnauthorizedError
from user_registry.services.validation import validate_password
from user_registry.utils.exceptions import (
    raise_bad_request,
    raise_for_store_error,
    raise_not_found,
    raise_unauthorized,
)

router = APIRouter(prefix="/api/users", tags=["users"])
logger = get_logger(__name__)

# Largest value a 32-bit signed INTEGER column can hold
MAX_USER_ID = 2**31 - 1


def parse_user_id(raw: str) -> int:
    """Path ids must be plain decimal digits; anything else is a 400, not a 404.

    Ids beyond the INTEGER primary key range cannot exist, so they are a 404
    without a store round trip.
    """
    if not (raw.isascii() and raw.isdigit()):
        raise_bad_request("Invalid user id")
    user_id = int(raw)
    if user_id > MAX_USER_ID:
        raise_not_found("User")
    return user_id


router.add_api_route(
    "",
    register,
    methods=["POST"],
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
)


@router.get("", response_model=UserListResponse)
async def list_users(
    store: Store,
    limit: int | None = Query(None, ge=1, le=1000, description="Maximum items to return"),
    offset: int = Query(0, ge=0, description="Number of items to skip"),
) -> UserListResponse:
    """List users, newest first. Password hashes are never part of the response."""
    try:
        users, total = await store.list_users(limit=limit, offset=offset)
    except CredentialStoreError as exc:
        raise_for_store_error(exc)

    return UserListResponse(
        items=[UserResponse.model_validate(user) for user in users],
        total=total,
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, store: Store) -> UserResponse:
    """Get user by ID."""
    try:
        user = await store.get_user(parse_user_id(user_id))
    except CredentialStoreError as exc:
        logger.debug("User lookup failed", user_id=user_id, error=str(exc))
        raise_for_store_error(exc)

    return UserResponse.model_validate(user)


@router.put("/{user_id}/password", response_model=PasswordChangeResponse)
async def change_password(
    user_id: str,
    data: PasswordChangeRequest,
    store: Store,
    policy: ActivePolicy,
) -> PasswordChangeResponse:
    """Replace a user's password after confirming the current one."""
    user_pk = parse_user_id(user_id)
    if not (isinstance(data.current_password, str) and data.current_password):
        raise_bad_request("Current password is required")

    check = validate_password(data.new_password, policy)
    if not check.valid:
        raise_bad_request(check.message)

    try:
        user = await store.change_password(user_pk, data.current_password, check.value)
    except UnauthorizedError as exc:
        raise_unauthorized("Current password is incorrect", cause=exc)
    except CredentialStoreError as exc:
        raise_for_store_error(exc)

    return PasswordChangeResponse(user=UserResponse.model_validate(user))


@router.delete("/{user_id}", response_model=DeleteUserResponse)
async def delete_user(user_id: str, store: Store) -> DeleteUserResponse:
    """Delete a user and echo back its id and username."""
    try:
        user = await store.delete_user(parse_user_id(user_id))
    except CredentialStoreError as exc:
        logger.debug("User deletion failed", user_id=user_id, error=str(exc))
        raise_for_store_error(exc)

    return DeleteUserResponse(user=DeletedUser.model_validate(user))
