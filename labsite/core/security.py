"""Security primitives: password hashing, signed session tokens and reset-token digests."""

import hashlib
import secrets
import time
from datetime import timedelta
from typing import Any, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from labsite.config import get_settings

settings = get_settings()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)

RESET_TOKEN_BYTES = 20


class InvalidTokenError(Exception):
    """Raised when a session token is malformed, tampered with or expired."""


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


def issue_token(
    claims: dict[str, Any],
    secret: Optional[str] = None,
    ttl: Optional[timedelta] = None,
    now: Optional[float] = None,
) -> str:
    """Sign ``claims`` into a compact JWT that expires ``ttl`` after ``now``."""
    issued_at = int(now if now is not None else time.time())
    lifetime = ttl if ttl is not None else timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)
    payload = dict(claims)
    payload.update({"iat": issued_at, "exp": issued_at + int(lifetime.total_seconds())})
    return jwt.encode(payload, secret or settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str, secret: Optional[str] = None, now: Optional[float] = None) -> dict[str, Any]:
    """Return the claims of a valid token.

    Expiry is checked here rather than by jose so that a token is rejected
    from the exact second its ``exp`` is reached.
    """
    try:
        payload = jwt.decode(
            token,
            secret or settings.SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_exp": False},
        )
    except JWTError as exc:
        raise InvalidTokenError(str(exc)) from exc

    exp = payload.get("exp")
    if not isinstance(exp, int) or isinstance(exp, bool):
        raise InvalidTokenError("Token has no expiry")
    current = now if now is not None else time.time()
    if current >= exp:
        raise InvalidTokenError("Token has expired")
    return payload


def decode_unverified(token: str) -> dict[str, Any]:
    """Read claims without checking the signature or expiry."""
    try:
        return jwt.get_unverified_claims(token)
    except JWTError as exc:
        raise InvalidTokenError(str(exc)) from exc


def hash_reset_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode()).hexdigest()


def generate_reset_token() -> tuple[str, str]:
    """Return ``(raw_token, digest)``; only the digest is stored."""
    raw_token = secrets.token_hex(RESET_TOKEN_BYTES)
    return raw_token, hash_reset_token(raw_token)


def generate_temporary_password(length: int = 12) -> str:
    alphabet = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz23456789!@#$%&*"
    return "".join(secrets.choice(alphabet) for _ in range(length))
