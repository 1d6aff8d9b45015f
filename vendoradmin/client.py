"""HTTP client for the remote vendor collection."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from .models import ListResult, PageInfo, Record, Role
from .security import CredentialProvider, MissingCredential

logger = logging.getLogger("vendoradmin.client")

PAGE_SIZE = 9
COLLECTION_PATH = "/vendedoractivo"


class RequestFailed(RuntimeError):
    """Raised when a call to the remote store does not succeed."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.operation = operation


@dataclass
class _ClientConfig:
    base_url: str
    page_size: int
    timeout: float
    verify: bool | str


def _normalize_base_url(base_url: str) -> str:
    cleaned = (base_url or "").strip()
    if not cleaned:
        raise ValueError("API base URL must not be empty")
    return cleaned.rstrip("/")


def _build_endpoint(base_url: str, path: str) -> str:
    if not path.startswith("/"):
        path = "/" + path
    return f"{base_url}{path}"


def _extract_error_message(payload: object, default: str) -> str:
    if isinstance(payload, dict):
        for key in ("message", "error", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return f"{default}: {value.strip()}"
    return default


class VendorClient:
    """Issue authenticated list and mutation calls against the vendor collection."""

    def __init__(
        self,
        base_url: str,
        credentials: CredentialProvider,
        *,
        page_size: int = PAGE_SIZE,
        timeout: float = 10.0,
        verify: bool | str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self._config = _ClientConfig(
            base_url=_normalize_base_url(base_url),
            page_size=page_size,
            timeout=timeout,
            verify=True if verify is None else verify,
        )
        self._credentials = credentials
        self._transport = transport

    @property
    def page_size(self) -> int:
        return self._config.page_size

    async def list(self, page: int) -> ListResult:
        """Fetch one page of records."""

        if page < 1:
            raise ValueError("page must be 1 or greater")
        payload = await self._request(
            "GET",
            COLLECTION_PATH,
            operation="list",
            failure="Failed to load vendors",
            params={"page": page, "limit": self._config.page_size},
        )
        if not isinstance(payload, dict):
            raise RequestFailed("Vendor list response was not an object", operation="list")
        if payload.get("success") is False:
            raise RequestFailed(
                _extract_error_message(payload, "Failed to load vendors"),
                operation="list",
            )

        try:
            records = [Record.model_validate(item) for item in payload.get("data") or []]
            page_info = PageInfo.model_validate(payload["pagination"])
        except (KeyError, TypeError, ValidationError) as exc:
            raise RequestFailed("Vendor list response was malformed", operation="list") from exc
        return ListResult(records=records, page=page_info)

    async def toggle_freeze(self, record_id: str) -> bool:
        """Flip the frozen flag remotely and return the confirmed value."""

        payload = await self._request(
            "PATCH",
            f"{COLLECTION_PATH}/{quote(record_id, safe='')}/freeze",
            operation="freeze",
            failure="Failed to change vendor status",
        )
        data = self._unwrap_data(payload, "freeze")
        value = data.get("isFrozen")
        if not isinstance(value, bool):
            raise RequestFailed("Freeze response did not include isFrozen", operation="freeze")
        return value

    async def set_role(self, record_id: str, role: Role | str) -> Role:
        """Change the role of a record to vendor or user and return the confirmed role."""

        target = Role(role)
        if target is Role.ADMIN:
            raise ValueError("The console cannot assign the admin role")

        payload = await self._request(
            "PATCH",
            f"{COLLECTION_PATH}/{quote(record_id, safe='')}/rol",
            operation="role",
            failure="Failed to change user role",
            json={"nuevoRol": target.value},
        )
        data = self._unwrap_data(payload, "role")
        try:
            return Role(data.get("rol"))
        except ValueError as exc:
            raise RequestFailed("Role response did not include a known role", operation="role") from exc

    async def delete(self, record_id: str) -> None:
        await self._request(
            "DELETE",
            f"{COLLECTION_PATH}/{quote(record_id, safe='')}",
            operation="delete",
            failure="Failed to delete vendor",
            expect_body=False,
        )

    def _headers(self, operation: str) -> Dict[str, str]:
        try:
            authorization = self._credentials.authorization_header()
        except MissingCredential as exc:
            raise RequestFailed(str(exc), operation=operation) from exc
        return {"Authorization": authorization, "Content-Type": "application/json"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        failure: str,
        expect_body: bool = True,
        **kwargs: Any,
    ) -> Any:
        url = _build_endpoint(self._config.base_url, path)
        headers = self._headers(operation)

        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout,
                verify=self._config.verify,
                transport=self._transport,
            ) as client:
                response = await client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise RequestFailed(f"{failure}: {exc}", operation=operation) from exc

        if not response.is_success:
            try:
                parsed = response.json()
            except ValueError:
                parsed = None
            logger.warning("%s %s returned status %s", method, url, response.status_code)
            raise RequestFailed(
                _extract_error_message(parsed, f"{failure} (status {response.status_code})"),
                status_code=response.status_code,
                operation=operation,
            )

        if not expect_body:
            return None

        try:
            return response.json()
        except ValueError as exc:
            raise RequestFailed(
                f"{failure}: the server returned an invalid response",
                status_code=response.status_code,
                operation=operation,
            ) from exc

    @staticmethod
    def _unwrap_data(payload: Any, operation: str) -> Dict[str, Any]:
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            raise RequestFailed("Response was missing its data object", operation=operation)
        return data


__all__ = ["COLLECTION_PATH", "PAGE_SIZE", "RequestFailed", "VendorClient"]
