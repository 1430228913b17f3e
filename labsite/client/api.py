"""Async HTTP client for the Labsite API.

Token-bearing responses to the caller's own session (login, self-registration,
password changes, own-profile edits) are fed into the ``SessionStore``; tokens
minted for other accounts are returned but never adopted. A 401 on an
authenticated call means the held token is no longer accepted and ends the session.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx

from labsite.client.session import SessionStore

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, status_code: int, message: str, code: Optional[str] = None):
        self.status_code = status_code
        self.message = message
        self.code = code
        super().__init__(f"{status_code}: {message}")


class StaleRequestError(Exception):
    """The request was superseded by a newer one for the same key."""


class LatestRequestGate:
    """Keeps at most one in-flight request per key.

    Starting a request cancels the one still running under the same key, and
    a result that arrives after a newer request started is rejected.
    """

    def __init__(self):
        self._generations: dict[str, int] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    async def run(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        generation = self._generations.get(key, 0) + 1
        self._generations[key] = generation

        previous = self._tasks.get(key)
        if previous is not None and not previous.done():
            previous.cancel()

        task = asyncio.ensure_future(factory())
        self._tasks[key] = task
        try:
            result = await task
        except asyncio.CancelledError:
            if self._generations.get(key) != generation:
                raise StaleRequestError(key)
            raise
        finally:
            if self._tasks.get(key) is task:
                del self._tasks[key]

        if self._generations.get(key) != generation:
            raise StaleRequestError(key)
        return result


class LabsiteClient:
    def __init__(
        self,
        base_url: str,
        session: SessionStore,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 15.0,
    ):
        self.session = session
        self.gate = LatestRequestGate()
        self._http = httpx.AsyncClient(base_url=base_url.rstrip("/"), transport=transport, timeout=timeout)

    async def __aenter__(self) -> "LabsiteClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
        authenticated: bool = True,
        gate_key: Optional[str] = None,
        adopt_session: bool = False,
    ) -> dict:
        """Send one request; with ``adopt_session`` a returned token becomes the held session."""
        headers = {}
        sent_token = self.session.token if authenticated else None
        if sent_token:
            headers["Authorization"] = f"Bearer {sent_token}"

        async def send() -> httpx.Response:
            return await self._http.request(method, path, json=json, params=params, headers=headers)

        if gate_key is not None:
            response = await self.gate.run(gate_key, send)
        else:
            response = await send()

        try:
            body = response.json() if response.content else {}
        except ValueError:
            # non-JSON error pages from proxies
            body = {}
        if response.status_code >= 400:
            if response.status_code == 401 and sent_token and sent_token == self.session.token:
                logger.info("Token rejected by the server, logging out")
                self.session.logout()
            error = body.get("error") or {}
            raise ApiError(response.status_code, body.get("message") or response.reason_phrase, error.get("code"))

        if adopt_session and body.get("token") and body.get("user"):
            self.session.login(body["token"], body["user"])
        return body

    # Auth

    async def login(self, email: str, password: str) -> dict:
        return await self._request(
            "POST",
            "/api/auth/login",
            json={"email": email, "password": password},
            authenticated=False,
            adopt_session=True,
        )

    async def register(self, email: str, password: str, **profile: Any) -> dict:
        """Self-registration signs the new account in; an admin registering someone keeps their own session."""
        return await self._request(
            "POST",
            "/api/auth/register",
            json={"email": email, "password": password, **profile},
            adopt_session=not self.session.is_authenticated,
        )

    async def check_users_exist(self) -> bool:
        body = await self._request("GET", "/api/auth/check-users-exist", authenticated=False)
        return bool(body.get("exists"))

    async def initial_signup(self, name: str, email: str, password: str) -> dict:
        return await self._request(
            "POST",
            "/api/auth/initial-signup",
            json={"name": name, "email": email, "password": password},
            authenticated=False,
            adopt_session=True,
        )

    async def change_password(self, old_password: str, new_password: str) -> dict:
        return await self._request(
            "PUT",
            "/api/auth/change-password",
            json={"oldPassword": old_password, "newPassword": new_password},
            adopt_session=True,
        )

    async def initial_password_setup(self, action: str, new_password: Optional[str] = None) -> dict:
        payload: dict[str, Any] = {"action": action}
        if new_password is not None:
            payload["newPassword"] = new_password
        return await self._request("PUT", "/api/auth/initial-password-setup", json=payload, adopt_session=True)

    async def forgot_password(self, email: str) -> dict:
        return await self._request("POST", "/api/auth/forgot-password", json={"email": email}, authenticated=False)

    async def reset_password(self, token: str, new_password: str) -> dict:
        return await self._request(
            "POST",
            f"/api/auth/reset-password/{token}",
            json={"newPassword": new_password},
            authenticated=False,
            adopt_session=True,
        )

    async def me(self) -> dict:
        return await self._request("GET", "/api/auth/me", gate_key="me")

    def logout(self) -> None:
        self.session.logout()

    # Users

    async def list_users(self, include_archived: bool = False) -> dict:
        params = {"includeArchived": "true"} if include_archived else None
        return await self._request("GET", "/api/users", params=params, gate_key="users:list")

    async def get_user(self, user_id: str) -> dict:
        return await self._request("GET", f"/api/users/{user_id}", gate_key="users:detail")

    async def update_user(self, user_id: str, **changes: Any) -> dict:
        own_profile = user_id == self.session.user_id
        return await self._request("PUT", f"/api/users/{user_id}", json=changes, adopt_session=own_profile)
