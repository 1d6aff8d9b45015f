"""Per-record guards against overlapping mutations."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Iterator


class ActionInProgress(RuntimeError):
    """Raised when a record already has a mutation in flight."""

    def __init__(self, record_id: str) -> None:
        super().__init__(f"An action is already running for record {record_id}")
        self.record_id = record_id


class ActionLockRegistry:
    """Marks records with a mutation in flight.

    Entries exist only while a lock is held so long sessions do not
    accumulate stale ids.
    """

    def __init__(self) -> None:
        self._held: Dict[str, bool] = {}

    def begin(self, record_id: str) -> bool:
        if self._held.get(record_id):
            return False
        self._held[record_id] = True
        return True

    def end(self, record_id: str) -> None:
        self._held.pop(record_id, None)

    def is_locked(self, record_id: str) -> bool:
        return self._held.get(record_id, False)

    @contextmanager
    def hold(self, record_id: str) -> Iterator[None]:
        if not self.begin(record_id):
            raise ActionInProgress(record_id)
        try:
            yield
        finally:
            self.end(record_id)

    def __len__(self) -> int:
        return len(self._held)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._held


__all__ = ["ActionInProgress", "ActionLockRegistry"]
