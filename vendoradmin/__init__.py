"""Admin console for paginated vendor and user records held by a remote store."""

from __future__ import annotations

from typing import Any

from .client import RequestFailed, VendorClient
from .console import ActionOutcome, VendorConsole


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the web console application."""

    from .web import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "ActionOutcome",
    "RequestFailed",
    "VendorClient",
    "VendorConsole",
    "create_app",
]
