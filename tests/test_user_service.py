import pytest

from app.core.errors import DuplicateEntityError, ValidationError
from app.services.user_service import UserService

ALICE = {"name": "Alice", "email": "Alice@Example.com", "password": "correct horse"}


def test_created_user_never_exposes_password(run_db):
    async def scenario(db):
        users = UserService(db)
        user = await users.create_user(ALICE)
        stored = await users.find_by_id(user.id)
        return user, stored

    user, stored = run_db(scenario)
    assert user.email == "alice@example.com"
    assert user.role == "user"
    assert "password" not in user.model_dump()
    assert stored.password != "correct horse"


def test_email_is_unique_case_insensitively(run_db):
    async def scenario(db):
        users = UserService(db)
        await users.create_user(ALICE)
        with pytest.raises(DuplicateEntityError):
            await users.create_user({**ALICE, "email": "ALICE@example.com"})
        return await users.get_user_by_email("ALICE@EXAMPLE.COM")

    assert run_db(scenario).name == "Alice"


def test_verify_password(run_db):
    async def scenario(db):
        users = UserService(db)
        await users.create_user(ALICE)
        good = await users.verify_password("alice@example.com", "correct horse")
        bad = await users.verify_password("alice@example.com", "wrong")
        unknown = await users.verify_password("bob@example.com", "correct horse")
        return good, bad, unknown

    good, bad, unknown = run_db(scenario)
    assert good is not None and good.name == "Alice"
    assert bad is None
    assert unknown is None


def test_add_user_account(run_db):
    async def scenario(db):
        users = UserService(db)
        user = await users.create_user(ALICE)
        updated = await users.add_user_account(
            user.id,
            {"provider": "linkedin", "providerAccountId": "li-123", "access_token": "tok"},
        )
        with pytest.raises(ValidationError):
            await users.add_user_account(user.id, {"provider": "linkedin"})
        missing = await users.add_user_account("a" * 32, {"provider": "x", "providerAccountId": "1"})
        return updated, missing

    updated, missing = run_db(scenario)
    assert len(updated.accounts) == 1
    assert updated.accounts[0].provider_account_id == "li-123"
    assert len(updated.accounts[0].id) == 32
    assert missing is None


def test_update_user_rehashes_password(run_db):
    async def scenario(db):
        users = UserService(db)
        user = await users.create_user(ALICE)
        await users.update_user(user.id, {"password": "new password"})
        return await users.verify_password(ALICE["email"], "new password")

    assert run_db(scenario) is not None
