"""Common FastAPI dependencies for consistent type annotations.

Usage:
    from user_registry.deps import ActivePolicy, Store

    async def my_endpoint(store: Store, policy: ActivePolicy):
        ...

Tests swap either dependency through ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends, Request

from user_registry.config import settings
from user_registry.services.credentials import CredentialStore
from user_registry.services.validation import ValidationPolicy


def get_credential_store(request: Request) -> CredentialStore:
    """Return the store built during application startup."""
    return request.app.state.credential_store


def get_validation_policy() -> ValidationPolicy:
    return settings.validation_policy


Store = Annotated[CredentialStore, Depends(get_credential_store)]
ActivePolicy = Annotated[ValidationPolicy, Depends(get_validation_policy)]

__all__ = ["ActivePolicy", "Store", "get_credential_store", "get_validation_policy"]
