"""Client-side session state.

A ``SessionStore`` is created by whoever hosts the client (a CLI, a script,
a test) and handed to ``LabsiteClient``. ``open()`` restores a persisted
token, ``close()`` drops in-memory state; both are driven by the ``with``
block when the store is used as a context manager.
"""

import logging
import time
from typing import Any, Callable, Optional

from labsite.client.storage import TOKEN_STORAGE_KEY, TokenStorage
from labsite.core.security import InvalidTokenError, decode_unverified

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(self, storage: TokenStorage, clock: Callable[[], float] = time.time):
        self.storage = storage
        self.clock = clock
        self.token: Optional[str] = None
        self.claims: Optional[dict[str, Any]] = None
        self.user: Optional[dict[str, Any]] = None
        self.must_change_password = False
        self.is_loading = True

    def __enter__(self) -> "SessionStore":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    @property
    def user_role(self) -> Optional[str]:
        return self.claims.get("role") if self.claims else None

    @property
    def user_id(self) -> Optional[str]:
        return self.claims.get("id") if self.claims else None

    @property
    def user_name(self) -> Optional[str]:
        return self.claims.get("name") if self.claims else None

    def open(self) -> None:
        """Restore the persisted session, discarding it if unreadable or expired."""
        stored = self.storage.get(TOKEN_STORAGE_KEY)
        if stored:
            try:
                claims = decode_unverified(stored)
            except InvalidTokenError as exc:
                logger.warning("Stored token could not be decoded: %s", exc)
                self.logout()
            else:
                if self._expired(claims):
                    logger.info("Stored token expired, clearing session")
                    self.logout()
                else:
                    self._apply(stored, claims)
                    self.must_change_password = bool(claims.get("mustChangePassword", False))
                    self.user = {
                        "id": claims.get("id"),
                        "email": claims.get("email"),
                        "role": claims.get("role"),
                        "name": claims.get("name"),
                        "mustChangePassword": self.must_change_password,
                    }
        self.is_loading = False

    def close(self) -> None:
        """Drop in-memory state; the persisted token is kept for the next ``open()``."""
        self._clear()
        self.is_loading = True

    def login(self, token: str, user_data: dict[str, Any]) -> None:
        """Store a fresh token; the server's user payload is the authoritative profile."""
        claims = decode_unverified(token)
        self.storage.set(TOKEN_STORAGE_KEY, token)
        self._apply(token, claims)
        self.must_change_password = bool(user_data.get("mustChangePassword"))
        self.user = dict(user_data)
        self.is_loading = False

    def logout(self) -> None:
        self.storage.remove(TOKEN_STORAGE_KEY)
        self._clear()
        self.is_loading = False

    def get_session_time_remaining(self) -> Optional[int]:
        """Milliseconds until the held token expires, ``None`` without a token."""
        if not self.token:
            return None
        try:
            exp = decode_unverified(self.token).get("exp")
        except InvalidTokenError:
            return None
        if exp is None:
            return None
        return max(0, int(exp * 1000 - self.clock() * 1000))

    def _expired(self, claims: dict[str, Any]) -> bool:
        exp = claims.get("exp")
        return not isinstance(exp, (int, float)) or exp * 1000 <= self.clock() * 1000

    def _apply(self, token: str, claims: dict[str, Any]) -> None:
        self.token = token
        self.claims = claims

    def _clear(self) -> None:
        self.token = None
        self.claims = None
        self.user = None
        self.must_change_password = False
