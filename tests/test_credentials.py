"""Tests for the credential store gateway."""

import pytest
from sqlalchemy import false
from sqlalchemy.exc import OperationalError

from user_registry.models import User
from user_registry.security import verify_password
from user_registry.services import credentials
from user_registry.services.credentials import (
    ConflictError,
    CredentialStore,
    NotFoundError,
    StoreError,
    UnauthorizedError,
)


async def _fetch_row(store: CredentialStore, user_id: int) -> User | None:
    async with store._session_maker() as db:
        return await db.get(User, user_id)


@pytest.mark.asyncio
async def test_create_user_stores_hash_not_plaintext(store):
    user = await store.create_user("alice", "Abcdef1!", "alice@example.com")

    assert user.id is not None
    assert user.username == "alice"
    assert user.email == "alice@example.com"
    assert user.created_at is not None

    row = await _fetch_row(store, user.id)
    assert row.hashed_password != "Abcdef1!"
    assert verify_password("Abcdef1!", row.hashed_password)


@pytest.mark.asyncio
async def test_create_then_login_round_trip(store):
    created = await store.create_user("alice", "Abcdef1!")

    user = await store.verify_login("alice", "Abcdef1!")
    assert user.id == created.id


@pytest.mark.asyncio
@pytest.mark.parametrize("attempt", ["abcdef1!", "Abcdef1", "", "Abcdef1!!"])
async def test_login_wrong_password(store, attempt):
    await store.create_user("alice", "Abcdef1!")

    with pytest.raises(UnauthorizedError) as exc_info:
        await store.verify_login("alice", attempt)
    assert str(exc_info.value) == "Invalid username or password"


@pytest.mark.asyncio
async def test_login_unknown_user_is_indistinguishable(store):
    await store.create_user("alice", "Abcdef1!")

    with pytest.raises(UnauthorizedError) as unknown:
        await store.verify_login("bob", "Abcdef1!")
    with pytest.raises(UnauthorizedError) as wrong:
        await store.verify_login("alice", "Wrong1!x")

    assert str(unknown.value) == str(wrong.value)


@pytest.mark.asyncio
async def test_duplicate_username_conflict_keeps_first_record(store):
    first = await store.create_user("alice", "Abcdef1!", "alice@example.com")

    with pytest.raises(ConflictError) as exc_info:
        await store.create_user("alice", "Other1!x", "other@example.com")
    assert str(exc_info.value) == "Username already exists"

    row = await _fetch_row(store, first.id)
    assert row.email == "alice@example.com"
    assert verify_password("Abcdef1!", row.hashed_password)
    users, total = await store.list_users()
    assert total == 1


@pytest.mark.asyncio
async def test_duplicate_email_conflict(store):
    await store.create_user("alice", "Abcdef1!", "shared@example.com")

    with pytest.raises(ConflictError) as exc_info:
        await store.create_user("bob", "Abcdef1!", "shared@example.com")
    assert str(exc_info.value) == "Email already exists"


@pytest.mark.asyncio
async def test_users_without_email_do_not_conflict(store):
    await store.create_user("alice", "Abcdef1!")
    await store.create_user("bob", "Abcdef1!")

    _, total = await store.list_users()
    assert total == 2


@pytest.mark.asyncio
async def test_unique_constraint_race_maps_to_conflict(store, monkeypatch):
    """The lookup misses but the insert hits the unique index."""
    await store.create_user("alice", "Abcdef1!")

    monkeypatch.setattr(credentials, "or_", lambda *conditions: false())

    with pytest.raises(ConflictError) as exc_info:
        await store.create_user("alice", "Abcdef1!")
    assert str(exc_info.value) == "Username or email already exists"


@pytest.mark.asyncio
async def test_list_users_empty(store):
    users, total = await store.list_users()
    assert users == []
    assert total == 0


@pytest.mark.asyncio
async def test_list_users_newest_first_with_pagination(store):
    for name in ("alice", "bob", "carol"):
        await store.create_user(name, "Abcdef1!")

    users, total = await store.list_users()
    assert total == 3
    assert [u.username for u in users] == ["carol", "bob", "alice"]

    page, total = await store.list_users(limit=1, offset=1)
    assert total == 3
    assert [u.username for u in page] == ["bob"]


@pytest.mark.asyncio
async def test_get_user_not_found(store):
    with pytest.raises(NotFoundError):
        await store.get_user(999)


@pytest.mark.asyncio
async def test_delete_twice(store):
    user = await store.create_user("alice", "Abcdef1!")

    deleted = await store.delete_user(user.id)
    assert (deleted.id, deleted.username) == (user.id, "alice")

    with pytest.raises(NotFoundError):
        await store.delete_user(user.id)


@pytest.mark.asyncio
async def test_delete_nonexistent(store):
    with pytest.raises(NotFoundError):
        await store.delete_user(12345)


@pytest.mark.asyncio
async def test_change_password_rehashes(store):
    user = await store.create_user("alice", "Abcdef1!")
    old_hash = (await _fetch_row(store, user.id)).hashed_password

    await store.change_password(user.id, "Abcdef1!", "Newpass2@")

    new_hash = (await _fetch_row(store, user.id)).hashed_password
    assert new_hash != old_hash
    assert new_hash != "Newpass2@"
    await store.verify_login("alice", "Newpass2@")
    with pytest.raises(UnauthorizedError):
        await store.verify_login("alice", "Abcdef1!")


@pytest.mark.asyncio
async def test_change_password_wrong_current(store):
    user = await store.create_user("alice", "Abcdef1!")

    with pytest.raises(UnauthorizedError):
        await store.change_password(user.id, "Wrong1!x", "Newpass2@")


@pytest.mark.asyncio
async def test_change_password_missing_user(store):
    with pytest.raises(NotFoundError):
        await store.change_password(42, "Abcdef1!", "Newpass2@")


@pytest.mark.asyncio
async def test_database_failure_becomes_store_error(store, monkeypatch):
    class BrokenSession:
        async def __aenter__(self):
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

        async def __aexit__(self, *exc_info):
            return False

    monkeypatch.setattr(store, "_session_maker", BrokenSession)

    with pytest.raises(StoreError) as exc_info:
        await store.list_users()
    assert str(exc_info.value) == "Error fetching users"
    assert isinstance(exc_info.value.__cause__, OperationalError)

    with pytest.raises(StoreError):
        await store.create_user("alice", "Abcdef1!")
    with pytest.raises(StoreError):
        await store.verify_login("alice", "Abcdef1!")


@pytest.mark.asyncio
async def test_bcrypt_never_runs_with_a_session_open(store, monkeypatch):
    """Hashing must not pin a pooled connection for its whole duration."""
    real_maker = store._session_maker
    open_sessions = 0

    class TrackedSession:
        async def __aenter__(self):
            nonlocal open_sessions
            self._session = real_maker()
            session = await self._session.__aenter__()
            open_sessions += 1
            return session

        async def __aexit__(self, *exc_info):
            nonlocal open_sessions
            open_sessions -= 1
            return await self._session.__aexit__(*exc_info)

    seen = []
    real_hash, real_verify = store._hash, store._verify

    async def tracked_hash(password):
        seen.append(("hash", open_sessions))
        return await real_hash(password)

    async def tracked_verify(password, hashed):
        seen.append(("verify", open_sessions))
        return await real_verify(password, hashed)

    monkeypatch.setattr(store, "_session_maker", TrackedSession)
    monkeypatch.setattr(store, "_hash", tracked_hash)
    monkeypatch.setattr(store, "_verify", tracked_verify)

    user = await store.create_user("alice", "Abcdef1!")
    await store.verify_login("alice", "Abcdef1!")
    await store.change_password(user.id, "Abcdef1!", "Newpass2@")

    assert [kind for kind, _ in seen] == ["hash", "verify", "verify", "hash"]
    assert all(count == 0 for _, count in seen)
    await store.verify_login("alice", "Newpass2@")
