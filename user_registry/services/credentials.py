"""Credential store gateway.

The only component that reads or writes user records. It owns password
hashing and verification; bcrypt work runs in the threadpool so a slow hash
never stalls other requests on the event loop.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from user_registry.database import create_engine_from_settings, init_db
from user_registry.logger import async_log_timing, get_logger, log_exception
from user_registry.models import User
from user_registry.security import DEFAULT_ROUNDS, hash_password, verify_password

if TYPE_CHECKING:
    from user_registry.config import Settings

logger = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid username or password"


class CredentialStoreError(Exception):
    """Base exception for credential store errors."""


class ConflictError(CredentialStoreError):
    """Username or email already taken."""


class NotFoundError(CredentialStoreError):
    """No user with the requested id."""


class UnauthorizedError(CredentialStoreError):
    """Credentials did not match. Deliberately says nothing about why."""

    def __init__(self, message: str = INVALID_CREDENTIALS) -> None:
        super().__init__(message)


class StoreError(CredentialStoreError):
    """Connectivity or database failure not otherwise classified."""


class CredentialStore:
    """Gateway to the users table.

    Usage:
        store = CredentialStore.from_settings(settings)
        await store.sync_schema()
        user = await store.create_user("alice", "Secret1!")
    """

    def __init__(self, engine: AsyncEngine, *, bcrypt_rounds: int = DEFAULT_ROUNDS) -> None:
        self.engine = engine
        self.bcrypt_rounds = bcrypt_rounds
        self._session_maker = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        self._dummy_hash: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> CredentialStore:
        return cls(create_engine_from_settings(settings), bcrypt_rounds=settings.bcrypt_rounds)

    async def sync_schema(self) -> None:
        await init_db(self.engine)

    async def dispose(self) -> None:
        await self.engine.dispose()

    # ------------------------------------------------------------------
    # Hashing
    # ------------------------------------------------------------------

    async def _hash(self, password: str) -> str:
        async with async_log_timing("password_hash", logger=logger, level="debug"):
            return await run_in_threadpool(hash_password, password, self.bcrypt_rounds)

    async def _verify(self, password: str, hashed: str) -> bool:
        async with async_log_timing("password_verify", logger=logger, level="debug"):
            return await run_in_threadpool(verify_password, password, hashed)

    async def _equalize_timing(self, password: str) -> None:
        """Spend one bcrypt check so unknown usernames cost the same as wrong passwords."""
        if self._dummy_hash is None:
            self._dummy_hash = await run_in_threadpool(
                hash_password, "timing-equalizer", self.bcrypt_rounds
            )
        await self._verify(password, self._dummy_hash)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def create_user(self, username: str, password: str, email: str | None = None) -> User:
        """Insert a new user. Inputs must already be validated and sanitized.

        The hash is computed before a session is opened, so no pooled
        connection is held while bcrypt runs.
        """
        hashed_password = await self._hash(password)
        try:
            async with self._session_maker() as db:
                conditions = [User.username == username]
                if email is not None:
                    conditions.append(User.email == email)
                result = await db.execute(select(User).where(or_(*conditions)).limit(1))
                existing = result.scalar_one_or_none()
                if existing is not None:
                    if existing.username == username:
                        raise ConflictError("Username already exists")
                    raise ConflictError("Email already exists")

                user = User(
                    username=username,
                    email=email,
                    hashed_password=hashed_password,
                )
                db.add(user)
                try:
                    await db.commit()
                except IntegrityError as exc:
                    # Another request won the race for the same username/email
                    await db.rollback()
                    raise ConflictError("Username or email already exists") from exc
                await db.refresh(user)
        except SQLAlchemyError as exc:
            log_exception(logger, exc, "User creation failed", username=username)
            raise StoreError("Error creating user") from exc

        logger.info("User registered", user_id=user.id, username=user.username)
        return user

    async def list_users(self, limit: int | None = None, offset: int = 0) -> tuple[list[User], int]:
        try:
            async with self._session_maker() as db:
                total = (await db.execute(select(func.count(User.id)))).scalar_one()
                query = select(User).order_by(User.created_at.desc(), User.id.desc()).offset(offset)
                if limit is not None:
                    query = query.limit(limit)
                result = await db.execute(query)
                users = list(result.scalars().all())
        except SQLAlchemyError as exc:
            log_exception(logger, exc, "User listing failed")
            raise StoreError("Error fetching users") from exc
        return users, total

    async def get_user(self, user_id: int) -> User:
        try:
            async with self._session_maker() as db:
                user = await db.get(User, user_id)
        except SQLAlchemyError as exc:
            log_exception(logger, exc, "User lookup failed", user_id=user_id)
            raise StoreError("Error fetching user") from exc
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def verify_login(self, username: str, password: str) -> User:
        """Return the user when the password matches; UnauthorizedError otherwise."""
        try:
            async with self._session_maker() as db:
                result = await db.execute(select(User).where(User.username == username))
                user = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            log_exception(logger, exc, "Login lookup failed")
            raise StoreError("Login error") from exc

        if user is None:
            await self._equalize_timing(password)
            raise UnauthorizedError()
        if not await self._verify(password, user.hashed_password):
            raise UnauthorizedError()
        return user

    async def change_password(self, user_id: int, current_password: str, new_password: str) -> User:
        """Replace the stored hash after checking the current password.

        The new plaintext is hashed here, before the row is flushed; there is
        no path that writes a plaintext value to the column. Verification and
        hashing happen between two short sessions, never while a connection
        is checked out.
        """
        try:
            async with self._session_maker() as db:
                user = await db.get(User, user_id)
        except SQLAlchemyError as exc:
            log_exception(logger, exc, "Password change lookup failed", user_id=user_id)
            raise StoreError("Error updating password") from exc

        if user is None:
            raise NotFoundError("User not found")
        if not await self._verify(current_password, user.hashed_password):
            raise UnauthorizedError()
        hashed_password = await self._hash(new_password)

        try:
            async with self._session_maker() as db:
                user = await db.get(User, user_id)
                if user is None:
                    # Deleted between the two sessions
                    raise NotFoundError("User not found")
                user.hashed_password = hashed_password
                await db.commit()
                await db.refresh(user)
        except SQLAlchemyError as exc:
            log_exception(logger, exc, "Password change failed", user_id=user_id)
            raise StoreError("Error updating password") from exc

        logger.info("Password changed", user_id=user.id)
        return user

    async def delete_user(self, user_id: int) -> User:
        try:
            async with self._session_maker() as db:
                user = await db.get(User, user_id)
                if user is None:
                    raise NotFoundError("User not found")
                await db.delete(user)
                await db.commit()
        except SQLAlchemyError as exc:
            log_exception(logger, exc, "User deletion failed", user_id=user_id)
            raise StoreError("Error deleting user") from exc

        logger.info("User deleted", user_id=user.id, username=user.username)
        return user
