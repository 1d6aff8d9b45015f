import asyncio
import math
from typing import Dict, List, Optional

import httpx

from fake_store import TOKEN, FakeStore, make_record
from vendoradmin.client import RequestFailed, VendorClient
from vendoradmin.console import ActionOutcome, Confirmer, NoticeBuffer, VendorConsole
from vendoradmin.models import ListResult, PageInfo, Record, Role
from vendoradmin.security import StaticTokenProvider


class Answer(Confirmer):
    def __init__(self, answer: bool) -> None:
        self.answer = answer
        self.messages: List[str] = []

    def confirm(self, message: str) -> bool:
        self.messages.append(message)
        return self.answer


class AsyncAnswer(Confirmer):
    async def confirm(self, message: str) -> bool:
        await asyncio.sleep(0)
        return True


class GatedClient:
    """Client double whose calls wait on events so tests control interleaving."""

    def __init__(self, records: List[Dict[str, object]], page_size: int = 9) -> None:
        self.records = [Record.model_validate(record) for record in records]
        self.page_size = page_size
        self.list_gates: Dict[int, asyncio.Event] = {}
        self.mutation_gate: Optional[asyncio.Event] = None
        self.freeze_calls = 0
        self.fail_mutations = False

    async def list(self, page: int) -> ListResult:
        gate = self.list_gates.get(page)
        if gate is not None:
            await gate.wait()
        start = (page - 1) * self.page_size
        total = len(self.records)
        return ListResult(
            records=self.records[start : start + self.page_size],
            page=PageInfo(page=page, limit=self.page_size, total=total, pages=math.ceil(total / self.page_size)),
        )

    async def toggle_freeze(self, record_id: str) -> bool:
        self.freeze_calls += 1
        if self.mutation_gate is not None:
            await self.mutation_gate.wait()
        if self.fail_mutations:
            raise RequestFailed("Failed to change vendor status (status 500)", status_code=500)
        return True


def _console(store: FakeStore, **kwargs) -> VendorConsole:
    client = VendorClient("https://store.example.com/api", StaticTokenProvider(TOKEN), transport=store.transport())
    return VendorConsole(client, **kwargs)


def test_load_populates_records_pagination_and_stats():
    store = FakeStore(
        [make_record(i, role="vendedor" if i <= 4 else "usuario", frozen=i == 2) for i in range(1, 21)]
    )
    console = _console(store)

    asyncio.run(console.load())

    assert len(console.records) == 9
    assert console.pagination.total_pages == 3
    assert console.loading is False
    assert console.error is None
    assert console.stats.total_on_server == 20
    assert console.stats.vendor_count == 4
    assert console.stats.frozen_count == 1


def test_go_to_page_out_of_range_issues_no_fetch():
    store = FakeStore([make_record(i) for i in range(1, 12)])
    console = _console(store)
    asyncio.run(console.load())
    fetches = len(store.calls("GET"))

    assert asyncio.run(console.go_to_page(3)) is False
    assert asyncio.run(console.go_to_page(0)) is False
    assert len(store.calls("GET")) == fetches
    assert console.pagination.page == 1


def test_next_and_previous_page():
    store = FakeStore([make_record(i) for i in range(1, 12)])
    console = _console(store)
    asyncio.run(console.load())

    assert asyncio.run(console.next_page()) is True
    assert [record.id for record in console.records] == ["rec010", "rec011"]
    assert asyncio.run(console.next_page()) is False
    assert asyncio.run(console.previous_page()) is True
    assert console.pagination.page == 1


def test_toggle_freeze_patches_only_that_record():
    store = FakeStore([make_record(i) for i in range(1, 4)])
    console = _console(store)
    asyncio.run(console.load())
    before = console.records

    outcome = asyncio.run(console.toggle_freeze("rec002"))

    assert outcome is ActionOutcome.APPLIED
    after = console.records
    assert after[0] is before[0]
    assert after[2] is before[2]
    assert after[1].is_frozen is True
    assert after[1].model_dump(exclude={"is_frozen"}) == before[1].model_dump(exclude={"is_frozen"})
    assert len(store.calls("GET")) == 1
    assert not console.is_busy("rec002")


def test_toggle_role_switches_between_vendor_and_user():
    store = FakeStore([make_record(1, role="vendedor"), make_record(2, role="usuario")])
    console = _console(store)
    asyncio.run(console.load())

    assert asyncio.run(console.toggle_role("rec001")) is ActionOutcome.APPLIED
    assert asyncio.run(console.toggle_role("rec002")) is ActionOutcome.APPLIED

    assert console.working_set.get("rec001").role is Role.USER
    assert console.working_set.get("rec002").role is Role.VENDOR


def test_toggle_role_for_unknown_record_issues_no_request():
    store = FakeStore([make_record(1)])
    console = _console(store)
    asyncio.run(console.load())

    assert asyncio.run(console.toggle_role("missing")) is ActionOutcome.MISSING
    assert store.calls("PATCH") == []


def test_admin_role_is_never_changed():
    store = FakeStore([make_record(1, role="admin")])
    notices = NoticeBuffer()
    console = _console(store, notifier=notices)
    asyncio.run(console.load())

    assert asyncio.run(console.change_role("rec001", Role.USER)) is ActionOutcome.FAILED
    assert store.calls("PATCH") == []
    assert notices.drain()[0][0] == "error"


def test_failed_mutation_releases_lock_and_keeps_record():
    store = FakeStore([make_record(1), make_record(2)])
    store.records[0]["_id"] = "abc123"
    store.failures["freeze"] = 500
    notices = NoticeBuffer()
    console = _console(store, notifier=notices)
    asyncio.run(console.load())
    before = console.working_set.get("abc123")

    outcome = asyncio.run(console.toggle_freeze("abc123"))

    assert outcome is ActionOutcome.FAILED
    assert not console.is_busy("abc123")
    assert console.working_set.get("abc123") is before
    assert notices.drain() == [("error", "Failed to change vendor status")]


def test_second_action_while_first_in_flight_is_refused():
    async def scenario():
        client = GatedClient([make_record(1), make_record(2)])
        console = VendorConsole(client)
        await console.load()
        client.mutation_gate = asyncio.Event()

        first = asyncio.create_task(console.toggle_freeze("rec001"))
        await asyncio.sleep(0)
        assert console.is_busy("rec001")

        second = await console.toggle_freeze("rec001")
        other = asyncio.create_task(console.toggle_freeze("rec002"))
        await asyncio.sleep(0)

        client.mutation_gate.set()
        return client, console, await first, second, await other

    client, console, first, second, other = asyncio.run(scenario())

    assert first is ActionOutcome.APPLIED
    assert second is ActionOutcome.BUSY
    assert other is ActionOutcome.APPLIED
    assert client.freeze_calls == 2
    assert len(console.locks) == 0


def test_delete_is_refused_while_record_busy():
    async def scenario():
        client = GatedClient([make_record(1)])
        confirmer = Answer(True)
        console = VendorConsole(client, confirmer=confirmer)
        await console.load()
        client.mutation_gate = asyncio.Event()
        pending = asyncio.create_task(console.toggle_freeze("rec001"))
        await asyncio.sleep(0)
        outcome = await console.delete("rec001")
        client.mutation_gate.set()
        await pending
        return outcome, confirmer

    outcome, confirmer = asyncio.run(scenario())

    assert outcome is ActionOutcome.BUSY
    assert confirmer.messages == []


def test_delete_refetches_current_page():
    store = FakeStore([make_record(i) for i in range(1, 11)])
    confirmer = Answer(True)
    notices = NoticeBuffer()
    console = _console(store, confirmer=confirmer, notifier=notices)
    asyncio.run(console.load())
    assert console.working_set.get("rec010") is None

    outcome = asyncio.run(console.delete("rec003"))

    assert outcome is ActionOutcome.APPLIED
    assert confirmer.messages == ["Are you sure you want to delete Vendor 3?"]
    assert len(store.calls("GET")) == 2
    assert console.working_set.get("rec003") is None
    assert console.working_set.get("rec010") is not None
    assert console.pagination.total == 9
    assert console.pagination.total_pages == 1
    assert notices.drain() == [("success", "Vendor deleted successfully")]
    assert not console.is_busy("rec003")


def test_declined_delete_issues_no_request():
    store = FakeStore([make_record(1)])
    console = _console(store, confirmer=Answer(False))
    asyncio.run(console.load())

    assert asyncio.run(console.delete("rec001")) is ActionOutcome.DECLINED
    assert store.calls("DELETE") == []
    assert len(console.locks) == 0


def test_delete_accepts_awaitable_confirmation():
    store = FakeStore([make_record(1)])
    console = _console(store)
    asyncio.run(console.load())

    assert asyncio.run(console.delete("rec001", confirmer=AsyncAnswer())) is ActionOutcome.APPLIED
    assert console.records == ()


def test_failed_delete_keeps_working_set():
    store = FakeStore([make_record(1), make_record(2)])
    store.failures["delete"] = 403
    notices = NoticeBuffer()
    console = _console(store, confirmer=Answer(True), notifier=notices)
    asyncio.run(console.load())

    assert asyncio.run(console.delete("rec001")) is ActionOutcome.FAILED
    assert len(console.records) == 2
    assert len(store.calls("GET")) == 1
    assert notices.drain() == [("error", "Failed to delete vendor")]


def test_delete_without_confirmer_is_declined():
    store = FakeStore([make_record(1)])
    notices = NoticeBuffer()
    console = _console(store, notifier=notices)
    asyncio.run(console.load())

    assert asyncio.run(console.delete("rec001")) is ActionOutcome.DECLINED
    assert store.calls("DELETE") == []
    assert len(console.records) == 1
    assert notices.drain() == []


def test_redirect_from_store_is_reported_as_failure():
    store = FakeStore([make_record(1)])

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method in ("DELETE", "PATCH"):
            return httpx.Response(302, headers={"Location": "/login"})
        return store.handle(request)

    client = VendorClient(
        "https://store.example.com/api", StaticTokenProvider(TOKEN), transport=httpx.MockTransport(handler)
    )
    notices = NoticeBuffer()
    console = VendorConsole(client, confirmer=Answer(True), notifier=notices)
    asyncio.run(console.load())

    assert asyncio.run(console.delete("rec001")) is ActionOutcome.FAILED
    assert asyncio.run(console.toggle_freeze("rec001")) is ActionOutcome.FAILED
    assert console.working_set.get("rec001").is_frozen is False
    assert len(console.records) == 1
    assert notices.drain() == [("error", "Failed to delete vendor"), ("error", "Failed to change vendor status")]
    assert len(console.locks) == 0


def test_list_failure_sets_banner_and_clears_loading():
    store = FakeStore([make_record(1)])
    console = _console(store)
    asyncio.run(console.load())
    store.failures["list"] = 503

    asyncio.run(console.refresh())

    assert console.loading is False
    assert "Failed to load vendors" in console.error
    assert len(console.records) == 1

    del store.failures["list"]
    asyncio.run(console.refresh())
    assert console.error is None


def test_stale_list_response_is_discarded():
    async def scenario():
        client = GatedClient([make_record(i) for i in range(1, 28)])
        console = VendorConsole(client)
        await console.load()
        client.list_gates[2] = asyncio.Event()

        slow = asyncio.create_task(console.go_to_page(2))
        await asyncio.sleep(0)
        assert console.loading is True
        await console.go_to_page(3)
        assert console.loading is False

        client.list_gates[2].set()
        await slow
        return console

    console = asyncio.run(scenario())

    assert console.pagination.page == 3
    assert [record.id for record in console.records][0] == "rec019"
    assert console.loading is False
