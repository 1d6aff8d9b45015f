"""Bearer credential providers used by the remote resource client."""
from __future__ import annotations

import os
from typing import Mapping, Optional

TOKEN_ENV_VAR = "VENDORADMIN_TOKEN"


class MissingCredential(RuntimeError):
    """Raised when no bearer token is available for an API call."""


class CredentialProvider:
    """Supplies the bearer token attached to every remote call."""

    def token(self) -> str:  # pragma: no cover - interface
        raise NotImplementedError

    def authorization_header(self) -> str:
        return f"Bearer {self.token()}"


class StaticTokenProvider(CredentialProvider):
    """Hold a token issued by a previous sign-in."""

    def __init__(self, token: str) -> None:
        self._token = (token or "").strip()

    def token(self) -> str:
        if not self._token:
            raise MissingCredential("No bearer token is available for this session")
        return self._token


class EnvTokenProvider(CredentialProvider):
    """Read the token from the environment on every call."""

    def __init__(self, env: Optional[Mapping[str, str]] = None, *, variable: str = TOKEN_ENV_VAR) -> None:
        self._env = env if env is not None else os.environ
        self._variable = variable

    def token(self) -> str:
        value = (self._env.get(self._variable) or "").strip()
        if not value:
            raise MissingCredential(f"Set {self._variable} to a bearer token before using the console")
        return value


__all__ = [
    "CredentialProvider",
    "EnvTokenProvider",
    "MissingCredential",
    "StaticTokenProvider",
    "TOKEN_ENV_VAR",
]
