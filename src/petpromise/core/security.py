import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from petpromise.core.errors import Forbidden

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
ADMIN_ROLE = "Admin"
USER_ROLE = "User"


class InvalidToken(Exception):
    pass


@dataclass(frozen=True)
class Caller:
    """Identity established from a verified bearer token."""
    email: str


def issue_token(claims: dict, secret: str, ttl: timedelta = timedelta(hours=3)) -> str:
    if not claims.get("email"):
        raise ValueError("Token claims must include an email")

    now = datetime.now(timezone.utc)
    payload = {
        **claims,
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def verify_token(token: str, secret: str) -> dict:
    try:
        claims = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise InvalidToken("Token expired") from e
    except jwt.InvalidTokenError as e:
        raise InvalidToken(f"Invalid token: {e}") from e

    if not claims.get("email"):
        raise InvalidToken("Token has no email claim")
    return claims


def is_self(caller: Caller, email: str | None) -> bool:
    return bool(email) and caller.email == email


def is_admin(user: dict | None) -> bool:
    return bool(user) and user.get("role") == ADMIN_ROLE


def require_self(caller: Caller, email: str | None) -> None:
    if not is_self(caller, email):
        logger.warning(f"Ownership check failed: {caller.email} acting for {email}")
        raise Forbidden("Unauthorized access")


def require_self_or_admin(caller: Caller, email: str | None, users) -> None:
    """Owner-or-admin gate; only hits the user store when the caller is not the owner."""
    if is_self(caller, email):
        return
    if is_admin(users.get(caller.email)):
        return
    logger.warning(f"Owner-or-admin check failed: {caller.email} acting for {email}")
    raise Forbidden("Unauthorized access")
