"""LedgerStore 통합 테스트"""

import pytest

from core.domain.entities import AccountTokenSnapshot, Index, Pool, PoolMember, Stream
from core.storage.ledger_store import LedgerStore
from core.types import EntityKind, EventPosition


POOL = "0x00000000000000000000000000000000000000b1"
TOKEN = "0x00000000000000000000000000000000000000aa"
ALICE = "0x0000000000000000000000000000000000000a11"


class TestEntityPersistence:
    """Entity 저장/조회"""

    @pytest.mark.asyncio
    async def test_save_and_get(self, store: LedgerStore, make_event) -> None:
        event = make_event("PoolCreated", {})
        pool = Pool(id=POOL, token=TOKEN, total_units=2**200, per_unit_flow_rate=-3)

        await store.save(pool, event)
        loaded = await store.get(Pool, POOL)

        assert loaded == pool

    @pytest.mark.asyncio
    async def test_get_missing(self, store: LedgerStore) -> None:
        assert await store.get(Pool, "0xnope") is None

    @pytest.mark.asyncio
    async def test_save_upserts(self, store: LedgerStore) -> None:
        pool = Pool(id=POOL, token=TOKEN)
        await store.save(pool)

        pool.total_units = 10
        await store.save(pool)

        assert (await store.get(Pool, POOL)).total_units == 10
        assert await store.count(EntityKind.POOL) == 1

    @pytest.mark.asyncio
    async def test_same_id_different_kind(self, store: LedgerStore) -> None:
        """(kind, id)가 키이므로 id가 같아도 충돌하지 않음"""
        await store.save(Pool(id="x"))
        await store.save(Stream(id="x"))

        assert await store.count(EntityKind.POOL) == 1
        assert await store.count(EntityKind.STREAM) == 1

    @pytest.mark.asyncio
    async def test_list_all(self, store: LedgerStore) -> None:
        await store.save(Pool(id="b"))
        await store.save(Pool(id="a"))

        assert [p.id for p in await store.list_all(Pool)] == ["a", "b"]


class TestGetOrInit:
    """get-or-init 조회"""

    @pytest.mark.asyncio
    async def test_pool_member_initialized_at_event(self, store: LedgerStore, make_event) -> None:
        event = make_event("MemberUnitsUpdated", {}, block_number=42, timestamp=4200)

        member = await store.get_or_init_pool_member(POOL, ALICE, event)

        assert member.id == PoolMember.make_id(POOL, ALICE)
        assert member.pool_id == POOL
        assert member.units == 0
        assert member.created_at_block_number == 42
        assert member.updated_at_timestamp == 4200
        # 저장 전에는 DB에 없음
        assert await store.get(PoolMember, member.id) is None

    @pytest.mark.asyncio
    async def test_pool_member_resolves_pool(self, store: LedgerStore, make_event) -> None:
        event = make_event("PoolCreated", {})
        await store.save(Pool(id=POOL, token=TOKEN, total_units=5))
        member = await store.get_or_init_pool_member(POOL, ALICE, event)

        pool = await store.get_pool_for_member(member)

        assert pool is not None and pool.total_units == 5

    @pytest.mark.asyncio
    async def test_existing_entity_returned(self, store: LedgerStore, make_event) -> None:
        event = make_event("FlowUpdated", {})
        ats = AccountTokenSnapshot(id=AccountTokenSnapshot.make_id(ALICE, TOKEN), account=ALICE, token=TOKEN, total_net_flow_rate=-7)
        await store.save(ats)

        loaded = await store.get_or_init_account_token_snapshot(ALICE, TOKEN, event)

        assert loaded.total_net_flow_rate == -7

    @pytest.mark.asyncio
    async def test_subscription_starts_at_index_value(self, store: LedgerStore, make_event) -> None:
        event = make_event("SubscriptionUnitsUpdated", {})
        index = Index(id=Index.make_id(ALICE, TOKEN, 0), token=TOKEN, publisher=ALICE, index_value=50)

        subscription = await store.get_or_init_subscription("0xsub", index, event)

        assert subscription.index == index.id
        assert subscription.index_value_until_updated_at == 50

    @pytest.mark.asyncio
    async def test_list_subscriptions_for_index(self, store: LedgerStore, make_event) -> None:
        event = make_event("SubscriptionUnitsUpdated", {})
        index = Index(id=Index.make_id(ALICE, TOKEN, 0), token=TOKEN, publisher=ALICE)
        other = Index(id=Index.make_id(ALICE, TOKEN, 1), token=TOKEN, publisher=ALICE, index_id=1)

        for subscriber, idx in (("0xs1", index), ("0xs2", index), ("0xs3", other)):
            await store.save(await store.get_or_init_subscription(subscriber, idx, event))

        subscriptions = await store.list_subscriptions_for_index(index.id)

        assert [s.subscriber for s in subscriptions] == ["0xs1", "0xs2"]


class TestAuditLog:
    """감사 로그 / 스냅샷 로그"""

    @pytest.mark.asyncio
    async def test_event_log_ordered_and_deduplicated(self, store: LedgerStore, make_event) -> None:
        late = make_event("FlowUpdated", {}, block_number=20)
        early = make_event("PoolCreated", {}, block_number=10)

        await store.append_event_log(late, [TOKEN], {"a": "1"})
        await store.append_event_log(early, [TOKEN, POOL], {"b": "2"})
        await store.append_event_log(early, [TOKEN, POOL], {"b": "2"})

        entries = await store.get_event_log()

        assert [e["block_number"] for e in entries] == [10, 20]
        assert entries[0]["addresses"] == [TOKEN, POOL]
        assert entries[0]["payload"] == {"b": "2"}

        assert len(await store.get_event_log("FlowUpdated")) == 1

    @pytest.mark.asyncio
    async def test_snapshot_log(self, store: LedgerStore, make_event) -> None:
        event = make_event("FlowUpdated", {})
        ats = AccountTokenSnapshot(id="a-t", total_net_flow_rate=5)

        await store.append_snapshot_log(ats, event)
        ats.total_net_flow_rate = 9
        await store.append_snapshot_log(ats, event)

        rows = await store.db.fetchall(
            "SELECT payload_json FROM snapshot_log WHERE entity_id = ? ORDER BY seq", ("a-t",)
        )
        assert len(rows) == 2
        assert '"9"' in rows[1][0]


class TestCheckpoint:
    """체크포인트"""

    @pytest.mark.asyncio
    async def test_default_genesis(self, store: LedgerStore) -> None:
        assert await store.get_checkpoint("ledger") == EventPosition.genesis()

    @pytest.mark.asyncio
    async def test_set_and_get(self, store: LedgerStore) -> None:
        await store.set_checkpoint("ledger", EventPosition(10, 2))
        await store.set_checkpoint("ledger", EventPosition(11, 0))

        assert await store.get_checkpoint("ledger") == EventPosition(11, 0)
        assert await store.get_checkpoint("other") == EventPosition.genesis()

    @pytest.mark.asyncio
    async def test_timestamp_stored_with_position(self, store: LedgerStore) -> None:
        assert await store.get_checkpoint_timestamp("ledger") == 0

        await store.set_checkpoint("ledger", EventPosition(10, 2), 1700000000)

        assert await store.get_checkpoint_timestamp("ledger") == 1700000000
        assert await store.get_checkpoint_timestamp("other") == 0
