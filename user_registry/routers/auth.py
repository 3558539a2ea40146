"""Registration and login API router."""

from fastapi import APIRouter, status

from user_registry.deps import ActivePolicy, Store
from user_registry.logger import get_logger
from user_registry.schemas import (
    CreatedUser,
    LoginRequest,
    LoginResponse,
    LoginUser,
    RegisterRequest,
    RegisterResponse,
)
from user_registry.services.credentials import CredentialStoreError, UnauthorizedError
from user_registry.services.validation import ValidationError, sanitize_input, validate_registration
from user_registry.utils.exceptions import (
    raise_bad_request,
    raise_for_store_error,
    raise_unauthorized,
)

router = APIRouter(prefix="/api", tags=["auth"])
logger = get_logger(__name__)


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(data: RegisterRequest, store: Store, policy: ActivePolicy) -> RegisterResponse:
    """Register a new user.

    Also mounted at POST /api/users; both paths run this exact handler.
    """
    try:
        fields = validate_registration(data.username, data.password, data.email, policy)
    except ValidationError as exc:
        logger.info("Registration rejected", field=exc.field, reason=exc.message)
        raise_bad_request(exc.message, cause=exc)

    try:
        user = await store.create_user(fields.username, fields.password, fields.email)
    except CredentialStoreError as exc:
        raise_for_store_error(exc)

    return RegisterResponse(user=CreatedUser.model_validate(user))


@router.post("/login", response_model=LoginResponse)
async def login(data: LoginRequest, store: Store) -> LoginResponse:
    """Check a username/password pair.

    Unknown usernames and wrong passwords produce the same 401 response.
    """
    if not (isinstance(data.username, str) and data.username) or not (
        isinstance(data.password, str) and data.password
    ):
        raise_bad_request("Username and password are required")

    username = sanitize_input(data.username.strip())

    try:
        user = await store.verify_login(username, data.password)
    except UnauthorizedError as exc:
        logger.warning("Failed login attempt")
        raise_unauthorized(str(exc), cause=exc)
    except CredentialStoreError as exc:
        raise_for_store_error(exc)

    logger.info("Successful login", user_id=user.id)
    return LoginResponse(user=LoginUser.model_validate(user))
