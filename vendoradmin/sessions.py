"""In-memory console sessions for the web interface."""

from __future__ import annotations

import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from .console import NoticeBuffer, VendorConsole


@dataclass
class ConsoleSession:
    console: VendorConsole
    notices: NoticeBuffer
    user_name: str
    user_role: str
    expires_at: datetime


class ConsoleSessionManager:
    """Create, resolve, and destroy the console state bound to a browser session."""

    def __init__(self, *, ttl: timedelta = timedelta(hours=8)) -> None:
        self._ttl = ttl
        self._sessions: Dict[str, ConsoleSession] = {}
        self._lock = threading.Lock()

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def create(self, console: VendorConsole, notices: NoticeBuffer, *, user_name: str, user_role: str = "") -> str:
        session_id = secrets.token_urlsafe(32)
        session = ConsoleSession(
            console=console,
            notices=notices,
            user_name=user_name,
            user_role=user_role,
            expires_at=self._now() + self._ttl,
        )
        with self._lock:
            self._prune_expired_locked()
            self._sessions[session_id] = session
        return session_id

    def resolve(self, session_id: str) -> Optional[ConsoleSession]:
        now = self._now()
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if session.expires_at <= now:
                self._sessions.pop(session_id, None)
                return None
            session.expires_at = now + self._ttl
            return session

    def destroy(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _prune_expired_locked(self) -> None:
        now = self._now()
        expired = [key for key, session in self._sessions.items() if session.expires_at <= now]
        for key in expired:
            del self._sessions[key]

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)


__all__ = ["ConsoleSession", "ConsoleSessionManager"]
