"""Tests for bearer-token session resolution."""

import pytest

from conftest import USER_TOKEN
from toyotron.core.session import SessionResolver, bearer_token
from toyotron.errors import StoreError


@pytest.mark.parametrize(
    "header, expected",
    [("Bearer abc", "abc"), ("Bearer  abc ", "abc"), ("Basic abc", None), ("Bearer ", None), (None, None)],
)
def test_bearer_token(header, expected):
    assert bearer_token(header) == expected


class TestSessionResolver:
    async def test_known_token(self, users):
        session = await SessionResolver(users).resolve(USER_TOKEN)
        assert session.authenticated
        assert session.user.email == "jane@example.com"
        assert session.access_token == USER_TOKEN
        assert session.preferences.budget_max == 4000000
        assert session.preferences.car_types == ["SUV"]

    async def test_unknown_token(self, users):
        session = await SessionResolver(users).resolve("nope")
        assert not session.authenticated

    async def test_no_token(self, users):
        assert (await SessionResolver(users).resolve(None)).user is None

    async def test_expired_token(self, db, users):
        await db.conn.execute(
            "UPDATE user_sessions SET expires_at = ? WHERE token = ?",
            ("2000-01-01T00:00:00+00:00", USER_TOKEN),
        )
        await db.conn.commit()
        session = await SessionResolver(users).resolve(USER_TOKEN)
        assert not session.authenticated

    async def test_user_without_preferences(self, users):
        session = await SessionResolver(users).resolve("token-no-email")
        assert session.authenticated
        assert session.preferences is None

    async def test_store_failure_is_anonymous(self):
        class BrokenUsers:
            async def get_user_by_token(self, token):
                raise StoreError("database is locked")

        session = await SessionResolver(BrokenUsers()).resolve(USER_TOKEN)
        assert not session.authenticated


async def test_user_lookup_by_email_ignores_case(users):
    user = await users.get_user_by_email(" Jane@Example.com ")
    assert user.id == "user-1"
    assert await users.get_user_by_email("nobody@example.com") is None
