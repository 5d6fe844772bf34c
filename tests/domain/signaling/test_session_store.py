"""Tests for the in-memory session store."""

import asyncio
from datetime import timedelta

import pytest

from matchmaker.domain.signaling.session_store import SessionRecord, SessionStore
from matchmaker.schemas import SessionDescription
from tests.fixtures.clock_fixtures import FakeClock

TTL = timedelta(minutes=5)


def make_record(clock: FakeClock, code: str, *, is_fixed: bool = False, owner: str | None = None) -> SessionRecord:
    now = clock()
    return SessionRecord(
        code=code,
        offer=SessionDescription(type="offer", sdp=f"sdp-{code}"),
        ice_candidates_host=[{"candidate": "host-1"}],
        ice_servers_host=[{"urls": "stun:stun.example.org"}],
        owner_account_ref=owner,
        is_fixed=is_fixed,
        created_at=now,
        last_access_at=now,
    )


async def seed(store: SessionStore, record: SessionRecord) -> None:
    assert await store.claim(record, may_replace=lambda existing: False)


@pytest.fixture
def store(clock: FakeClock) -> SessionStore:
    return SessionStore(ttl=TTL, clock=clock)


class TestGetAndClaim:
    async def test_claim_normalizes_code(self, store: SessionStore, clock: FakeClock):
        await seed(store, make_record(clock, " abc123 "))

        record = await store.get("ABC123")

        assert record is not None
        assert record.code == "ABC123"

    async def test_get_is_case_insensitive(self, store: SessionStore, clock: FakeClock):
        await seed(store, make_record(clock, "ABC123"))

        assert await store.get("abc123") is not None

    async def test_get_touches_last_access(self, store: SessionStore, clock: FakeClock):
        await seed(store, make_record(clock, "ABC123"))
        clock.advance(minutes=2)

        record = await store.get("ABC123")

        assert record is not None
        assert record.last_access_at == clock()

    async def test_peek_does_not_touch(self, store: SessionStore, clock: FakeClock):
        created = clock()
        await seed(store, make_record(clock, "ABC123"))
        clock.advance(minutes=2)

        record = await store.peek("ABC123")

        assert record is not None
        assert record.last_access_at == created

    async def test_returned_record_is_a_copy(self, store: SessionStore, clock: FakeClock):
        await seed(store, make_record(clock, "ABC123"))

        record = await store.get("ABC123")
        assert record is not None
        record.ice_candidates_host.append({"candidate": "injected"})
        record.offer.sdp = "mutated"

        fresh = await store.get("ABC123")
        assert fresh is not None
        assert fresh.offer.sdp == "sdp-ABC123"
        assert fresh.ice_candidates_host == [{"candidate": "host-1"}]


class TestExpiry:
    async def test_dynamic_record_hidden_after_ttl(self, store: SessionStore, clock: FakeClock):
        await seed(store, make_record(clock, "ABC123"))
        clock.advance(minutes=5, seconds=1)

        assert await store.get("ABC123") is None
        assert await store.is_live("ABC123") is False

    async def test_dynamic_record_alive_at_ttl_boundary(self, store: SessionStore, clock: FakeClock):
        await seed(store, make_record(clock, "ABC123"))
        clock.advance(minutes=5)

        assert await store.get("ABC123") is not None

    async def test_access_extends_lifetime(self, store: SessionStore, clock: FakeClock):
        await seed(store, make_record(clock, "ABC123"))
        clock.advance(minutes=4)
        await store.get("ABC123")
        clock.advance(minutes=4)

        assert await store.get("ABC123") is not None

    async def test_fixed_record_never_expires(self, store: SessionStore, clock: FakeClock):
        await seed(store, make_record(clock, "FIX01", is_fixed=True))
        clock.advance(days=30)

        assert await store.get("FIX01") is not None

    async def test_evict_expired_returns_evicted_codes(self, store: SessionStore, clock: FakeClock):
        await seed(store, make_record(clock, "OLD001"))
        await seed(store, make_record(clock, "FIX01", is_fixed=True))
        clock.advance(minutes=10)
        await seed(store, make_record(clock, "NEW001"))

        evicted = await store.evict_expired()

        assert evicted == ["OLD001"]
        assert await store.count() == 2
        assert await store.peek("OLD001") is None

    async def test_count_and_snapshot_skip_expired(self, store: SessionStore, clock: FakeClock):
        await seed(store, make_record(clock, "OLD001"))
        clock.advance(minutes=6)
        await seed(store, make_record(clock, "NEW001"))

        assert await store.count() == 1
        assert [r.code for r in await store.snapshot()] == ["NEW001"]


class TestClaim:
    async def test_claim_free_code(self, store: SessionStore, clock: FakeClock):
        stored = await store.claim(make_record(clock, "ABC123"), may_replace=lambda existing: False)

        assert stored is True
        assert await store.is_live("ABC123")

    async def test_claim_refused_when_live_and_not_replaceable(self, store: SessionStore, clock: FakeClock):
        await seed(store, make_record(clock, "ABC123", owner="acct-a"))

        stored = await store.claim(
            make_record(clock, "ABC123", owner="acct-b"),
            may_replace=lambda existing: existing.owner_account_ref == "acct-b",
        )

        assert stored is False
        record = await store.peek("ABC123")
        assert record is not None
        assert record.owner_account_ref == "acct-a"

    async def test_claim_over_expired_record(self, store: SessionStore, clock: FakeClock):
        await seed(store, make_record(clock, "ABC123", owner="acct-a"))
        clock.advance(minutes=6)

        stored = await store.claim(make_record(clock, "ABC123", owner="acct-b"), may_replace=lambda existing: False)

        assert stored is True


class TestInsertGenerated:
    async def test_generated_codes_unique_under_concurrency(self, store: SessionStore, clock: FakeClock):
        # Arrange: a tiny code space forces collisions between concurrent inserts
        candidates = iter(["AAAA", "AAAA", "BBBB", "AAAA", "BBBB", "CCCC"] * 10)

        async def generate(is_live_session) -> str:
            while True:
                candidate = next(candidates)
                await asyncio.sleep(0)
                if not await is_live_session(candidate):
                    return candidate

        # Act
        records = await asyncio.gather(
            *(store.insert_generated(generate, lambda code: make_record(clock, code)) for _ in range(3))
        )

        # Assert
        codes = [r.code for r in records]
        assert sorted(codes) == ["AAAA", "BBBB", "CCCC"]
        assert await store.count() == 3


class TestAnswer:
    async def test_attach_answer(self, store: SessionStore, clock: FakeClock):
        await seed(store, make_record(clock, "ABC123"))

        record = await store.attach_answer(
            "abc123",
            SessionDescription(type="answer", sdp="A1"),
            [{"candidate": "viewer-1"}],
        )

        assert record is not None
        assert record.answer is not None
        assert record.answer.sdp == "A1"
        assert record.ice_candidates_viewer == [{"candidate": "viewer-1"}]

    async def test_last_answer_wins(self, store: SessionStore, clock: FakeClock):
        await seed(store, make_record(clock, "ABC123"))
        await store.attach_answer("ABC123", SessionDescription(type="answer", sdp="A1"), [])

        await store.attach_answer("ABC123", SessionDescription(type="answer", sdp="A2"), [])

        record = await store.get("ABC123")
        assert record is not None
        assert record.answer is not None
        assert record.answer.sdp == "A2"

    async def test_attach_answer_unknown_code(self, store: SessionStore):
        record = await store.attach_answer("NOPE", SessionDescription(type="answer", sdp="A1"), [])

        assert record is None


class TestDeleteAndTouch:
    async def test_delete_is_idempotent(self, store: SessionStore, clock: FakeClock):
        await seed(store, make_record(clock, "ABC123"))

        assert await store.delete("abc123") is not None
        assert await store.delete("abc123") is None

    async def test_touch_unknown_code(self, store: SessionStore):
        assert await store.touch("NOPE") is False

    async def test_touch_refreshes_record(self, store: SessionStore, clock: FakeClock):
        await seed(store, make_record(clock, "ABC123"))
        clock.advance(minutes=4)

        assert await store.touch("ABC123") is True
        clock.advance(minutes=4)
        assert await store.is_live("ABC123") is True
