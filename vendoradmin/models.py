"""Domain models for records managed through the vendor console."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Roles understood by the remote store, using its wire values."""

    ADMIN = "admin"
    VENDOR = "vendedor"
    USER = "usuario"

    @property
    def label(self) -> str:
        return {"admin": "admin", "vendedor": "vendor", "usuario": "user"}[self.value]

    def toggled(self) -> "Role":
        """Return the role the console switches this record to."""

        return Role.USER if self is Role.VENDOR else Role.VENDOR


class Record(BaseModel):
    """Represents one vendor/user entity returned by the remote store."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., alias="_id", min_length=1)
    display_name: str = Field(..., alias="nombre")
    email: str
    role: Role = Field(..., alias="rol")
    contact_phone: Optional[str] = Field(default=None, alias="whatsapp")
    is_frozen: bool = Field(default=False, alias="isFrozen")
    verified: bool = Field(default=False, alias="isVerified")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @property
    def initial(self) -> str:
        name = self.display_name.strip()
        return name[:1].upper() if name else "?"


class PageInfo(BaseModel):
    """Server-reported pagination for the last successful list fetch."""

    model_config = ConfigDict(frozen=True)

    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    pages: int = Field(..., ge=0)


class ListResult(BaseModel):
    """One page of records together with its pagination details."""

    model_config = ConfigDict(frozen=True)

    records: List[Record]
    page: PageInfo


__all__ = ["ListResult", "PageInfo", "Record", "Role"]
