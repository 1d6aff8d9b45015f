"""State and actions behind the vendor management screen."""

from __future__ import annotations

import inspect
import logging
from enum import Enum
from typing import Awaitable, List, Optional, Tuple, Union

from .client import PAGE_SIZE, RequestFailed, VendorClient
from .locks import ActionInProgress, ActionLockRegistry
from .models import Record, Role
from .pagination import PaginationController
from .reconciler import WorkingSet
from .stats import ConsoleStats, derive_stats

logger = logging.getLogger("vendoradmin.console")


class ConfirmationDeclined(Exception):
    """The operator answered no to a destructive prompt."""


class ActionOutcome(str, Enum):
    APPLIED = "applied"
    FAILED = "failed"
    BUSY = "busy"
    DECLINED = "declined"
    MISSING = "missing"


class Confirmer:
    """Asks the operator a yes/no question before a destructive action."""

    def confirm(self, message: str) -> Union[bool, Awaitable[bool]]:  # pragma: no cover - interface
        raise NotImplementedError


class Notifier:
    """Receives the messages the screen shows as alerts."""

    def error(self, message: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def success(self, message: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError


class NoticeBuffer(Notifier):
    """Collects notices until the presentation layer drains them."""

    def __init__(self) -> None:
        self._notices: List[Tuple[str, str]] = []

    def error(self, message: str) -> None:
        self._notices.append(("error", message))

    def success(self, message: str) -> None:
        self._notices.append(("success", message))

    def drain(self) -> List[Tuple[str, str]]:
        notices, self._notices = self._notices, []
        return notices


class VendorConsole:
    """Owns pagination, the working set and per-record locks for one operator."""

    def __init__(
        self,
        client: VendorClient,
        *,
        confirmer: Optional[Confirmer] = None,
        notifier: Optional[Notifier] = None,
        page_size: int = PAGE_SIZE,
    ) -> None:
        self._client = client
        self._confirmer = confirmer
        self.notifier = notifier or NoticeBuffer()
        self.pagination = PaginationController(page_size)
        self.working_set = WorkingSet()
        self.locks = ActionLockRegistry()
        self.loading = False
        self.error: Optional[str] = None
        self.loaded = False
        self._fetch_seq = 0

    @property
    def records(self) -> Tuple[Record, ...]:
        return self.working_set.records

    @property
    def stats(self) -> ConsoleStats:
        return derive_stats(self.working_set, self.pagination.total)

    def is_busy(self, record_id: str) -> bool:
        return self.locks.is_locked(record_id)

    async def load(self) -> None:
        """Fetch the current page and replace the working set with it."""

        self._fetch_seq += 1
        seq = self._fetch_seq
        page = self.pagination.page
        self.loading = True
        self.error = None
        try:
            result = await self._client.list(page)
        except RequestFailed as exc:
            if seq != self._fetch_seq:
                logger.info("Ignoring failure of superseded fetch for page %s", page)
                return
            logger.warning("Failed to load page %s: %s", page, exc)
            self.error = str(exc)
            return
        finally:
            if seq == self._fetch_seq:
                self.loading = False

        if seq != self._fetch_seq:
            logger.info("Discarding stale result for page %s", page)
            return
        self.working_set.replace_all(result.records)
        self.pagination.apply(result.page)
        self.loaded = True

    async def refresh(self) -> None:
        await self.load()

    async def go_to_page(self, page: int) -> bool:
        if not self.pagination.request_page(page):
            return False
        await self.load()
        return True

    async def next_page(self) -> bool:
        return await self.go_to_page(self.pagination.page + 1)

    async def previous_page(self) -> bool:
        return await self.go_to_page(self.pagination.page - 1)

    async def toggle_freeze(self, record_id: str) -> ActionOutcome:
        try:
            with self.locks.hold(record_id):
                frozen = await self._client.toggle_freeze(record_id)
                self.working_set.patch_one(record_id, is_frozen=frozen)
        except ActionInProgress:
            return ActionOutcome.BUSY
        except RequestFailed as exc:
            logger.warning("Freeze toggle failed for %s: %s", record_id, exc)
            self.notifier.error("Failed to change vendor status")
            return ActionOutcome.FAILED
        return ActionOutcome.APPLIED

    async def change_role(self, record_id: str, role: Role) -> ActionOutcome:
        current = self.working_set.get(record_id)
        if current is not None and current.role is Role.ADMIN:
            self.notifier.error("Administrator roles cannot be changed from the console")
            return ActionOutcome.FAILED

        try:
            with self.locks.hold(record_id):
                confirmed = await self._client.set_role(record_id, role)
                self.working_set.patch_one(record_id, role=confirmed)
        except ActionInProgress:
            return ActionOutcome.BUSY
        except (RequestFailed, ValueError) as exc:
            logger.warning("Role change failed for %s: %s", record_id, exc)
            self.notifier.error("Failed to change user role")
            return ActionOutcome.FAILED
        return ActionOutcome.APPLIED

    async def toggle_role(self, record_id: str) -> ActionOutcome:
        record = self.working_set.get(record_id)
        if record is None:
            return ActionOutcome.MISSING
        return await self.change_role(record_id, record.role.toggled())

    async def delete(self, record_id: str, *, confirmer: Optional[Confirmer] = None) -> ActionOutcome:
        if self.is_busy(record_id):
            return ActionOutcome.BUSY

        confirmer = confirmer or self._confirmer
        if confirmer is None:
            logger.warning("Delete of %s declined: no confirmer configured", record_id)
            return ActionOutcome.DECLINED

        record = self.working_set.get(record_id)
        name = record.display_name if record is not None else record_id
        try:
            await self._confirm(confirmer, f"Are you sure you want to delete {name}?")
        except ConfirmationDeclined:
            return ActionOutcome.DECLINED

        try:
            with self.locks.hold(record_id):
                await self._client.delete(record_id)
                await self.load()
        except ActionInProgress:
            return ActionOutcome.BUSY
        except RequestFailed as exc:
            logger.warning("Delete failed for %s: %s", record_id, exc)
            self.notifier.error("Failed to delete vendor")
            return ActionOutcome.FAILED

        logger.info("Deleted record %s", record_id)
        self.notifier.success("Vendor deleted successfully")
        return ActionOutcome.APPLIED

    @staticmethod
    async def _confirm(confirmer: Confirmer, message: str) -> None:
        answer = confirmer.confirm(message)
        if inspect.isawaitable(answer):
            answer = await answer
        if not answer:
            raise ConfirmationDeclined(message)


__all__ = [
    "ActionOutcome",
    "ConfirmationDeclined",
    "Confirmer",
    "NoticeBuffer",
    "Notifier",
    "VendorConsole",
]
