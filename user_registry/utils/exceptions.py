"""Common exception utilities for FastAPI routers."""

from typing import NoReturn

from fastapi import HTTPException, status

from user_registry.config import settings
from user_registry.services.credentials import (
    ConflictError,
    CredentialStoreError,
    NotFoundError,
    UnauthorizedError,
)


def raise_bad_request(detail: str, *, cause: Exception | None = None) -> NoReturn:
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=detail,
    ) from cause


def raise_unauthorized(detail: str, *, cause: Exception | None = None) -> NoReturn:
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
    ) from cause


def raise_not_found(resource_name: str, *, cause: Exception | None = None) -> NoReturn:
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{resource_name} not found",
    ) from cause


def raise_conflict(detail: str, *, cause: Exception | None = None) -> NoReturn:
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=detail,
    ) from cause


def raise_internal_error(detail: str, *, cause: Exception | None = None) -> NoReturn:
    """500 response; the underlying error text is only exposed in debug mode."""
    if settings.debug and cause is not None and cause.__cause__ is not None:
        detail = f"{detail}: {cause.__cause__}"
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=detail,
    ) from cause


def raise_for_store_error(exc: CredentialStoreError) -> NoReturn:
    """Translate a credential store error into its HTTP status."""
    if isinstance(exc, ConflictError):
        raise_conflict(str(exc), cause=exc)
    if isinstance(exc, NotFoundError):
        raise_not_found("User", cause=exc)
    if isinstance(exc, UnauthorizedError):
        raise_unauthorized(str(exc), cause=exc)
    raise_internal_error(str(exc), cause=exc)
