"""Sign-in against the remote store's authentication endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict

import httpx

from .client import _build_endpoint, _normalize_base_url

logger = logging.getLogger("vendoradmin.auth")

LOGIN_PATH = "/auth/login"


class AuthenticationFailed(RuntimeError):
    """Raised when the remote store refuses or cannot process a sign-in."""


@dataclass(frozen=True)
class LoginResult:
    token: str
    user: Dict[str, Any] = field(default_factory=dict)

    @property
    def user_name(self) -> str:
        for key in ("nombre", "name", "email"):
            value = self.user.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return "operator"

    @property
    def user_role(self) -> str:
        value = self.user.get("rol")
        return str(value) if value else ""


class AuthClient:
    """Exchange an email and password for a bearer token."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        verify: bool | str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = _build_endpoint(_normalize_base_url(base_url), LOGIN_PATH)
        self._timeout = timeout
        self._verify = True if verify is None else verify
        self._transport = transport

    async def login(self, email: str, password: str) -> LoginResult:
        email = (email or "").strip()
        if not email or not password:
            raise AuthenticationFailed("Please provide both email and password.")

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                verify=self._verify,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self._url,
                    json={"email": email, "password": password},
                    headers={"Content-Type": "application/json"},
                )
        except httpx.HTTPError as exc:
            logger.warning("Sign-in request for %s failed: %s", email, exc)
            raise AuthenticationFailed("Unable to reach the authentication service.") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.status_code >= 400 or not isinstance(payload, dict) or not payload.get("success"):
            logger.warning("Rejected sign-in for %s (status %s)", email, response.status_code)
            raise AuthenticationFailed("Invalid email or password.")

        token = payload.get("token")
        if not isinstance(token, str) or not token.strip():
            raise AuthenticationFailed("The authentication service did not return a token.")

        user = payload.get("user")
        return LoginResult(token=token.strip(), user=user if isinstance(user, dict) else {})


__all__ = ["AuthClient", "AuthenticationFailed", "LOGIN_PATH", "LoginResult"]
