"""
Tests for token issuance/verification and the ownership predicates.
"""

from datetime import timedelta

import jwt
import pytest

from petpromise.core.errors import Forbidden
from petpromise.core.security import (
    Caller,
    InvalidToken,
    is_admin,
    is_self,
    issue_token,
    require_self,
    require_self_or_admin,
    verify_token,
)

from fakes import InMemoryStore

pytestmark = pytest.mark.unit

SECRET = "s3cret"


class TestTokens:
    def test_round_trip_keeps_email_claim(self):
        token = issue_token({"email": "a@example.com", "name": "A"}, SECRET)

        claims = verify_token(token, SECRET)

        assert claims["email"] == "a@example.com"
        assert claims["name"] == "A"

    def test_default_validity_is_three_hours(self):
        token = issue_token({"email": "a@example.com"}, SECRET)
        claims = jwt.decode(token, SECRET, algorithms=["HS256"])

        assert claims["exp"] - claims["iat"] == 3 * 60 * 60

    def test_expired_token_rejected(self):
        token = issue_token({"email": "a@example.com"}, SECRET, ttl=timedelta(seconds=-10))

        with pytest.raises(InvalidToken, match="expired"):
            verify_token(token, SECRET)

    def test_wrong_secret_rejected(self):
        token = issue_token({"email": "a@example.com"}, SECRET)

        with pytest.raises(InvalidToken):
            verify_token(token, "other-secret")

    def test_malformed_token_rejected(self):
        with pytest.raises(InvalidToken):
            verify_token("not-a-jwt", SECRET)

    def test_token_without_email_rejected(self):
        token = jwt.encode({"sub": "123"}, SECRET, algorithm="HS256")

        with pytest.raises(InvalidToken):
            verify_token(token, SECRET)

    def test_issue_requires_email(self):
        with pytest.raises(ValueError):
            issue_token({"name": "nobody"}, SECRET)


class TestPredicates:
    def test_is_self(self):
        caller = Caller(email="a@example.com")

        assert is_self(caller, "a@example.com")
        assert not is_self(caller, "b@example.com")
        assert not is_self(caller, None)

    def test_is_admin(self):
        assert is_admin({"role": "Admin"})
        assert not is_admin({"role": "User"})
        assert not is_admin(None)

    def test_require_self_raises_forbidden(self):
        with pytest.raises(Forbidden):
            require_self(Caller(email="a@example.com"), "b@example.com")

    def test_self_or_admin_skips_lookup_for_owner(self):
        users = InMemoryStore("users", key="email")

        require_self_or_admin(Caller(email="a@example.com"), "a@example.com", users)

        assert users.calls == []

    def test_self_or_admin_allows_admin(self):
        users = InMemoryStore("users", key="email")
        users.seed({"email": "boss@example.com", "role": "Admin"})

        require_self_or_admin(Caller(email="boss@example.com"), "a@example.com", users)

    def test_self_or_admin_rejects_others(self):
        users = InMemoryStore("users", key="email")
        users.seed({"email": "b@example.com", "role": "User"})

        with pytest.raises(Forbidden):
            require_self_or_admin(Caller(email="b@example.com"), "a@example.com", users)
