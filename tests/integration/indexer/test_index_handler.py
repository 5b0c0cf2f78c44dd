"""
IndexProjectionHandler 통합 테스트

Index / Subscription unit 버킷 이동과 unit 합 보존 검증
"""

import pytest

from core.accumulator import pending_distribution
from core.domain.entities import AccountTokenSnapshot, Index, Subscription, TokenStatistic
from core.domain.events import EventTypes
from core.storage.ledger_store import LedgerStore
from indexer.projector import LedgerProjector


TOKEN = "0x00000000000000000000000000000000000000aa"
IDA = "0x00000000000000000000000000000000000000ee"
PUBLISHER = "0x00000000000000000000000000000000000000bb"
S1 = "0x0000000000000000000000000000000000000051"
S2 = "0x0000000000000000000000000000000000000052"

INDEX_ID = Index.make_id(PUBLISHER, TOKEN, 0)


@pytest.fixture
def ida(make_event):
    """IDA 이벤트 생성"""

    def _ida(name: str, **params):
        base = {"token": TOKEN, "publisher": PUBLISHER, "indexId": "0"}
        base.update({k: str(v) for k, v in params.items()})
        return make_event(name, base, address=IDA)

    return _ida


async def _index(store: LedgerStore) -> Index:
    index = await store.get(Index, INDEX_ID)
    assert index is not None
    return index


async def _subscription(store: LedgerStore, subscriber: str) -> Subscription:
    subscription = await store.get(Subscription, Subscription.make_id(subscriber, PUBLISHER, TOKEN, 0))
    assert subscription is not None
    return subscription


async def _assert_units_conserved(store: LedgerStore) -> None:
    index = await _index(store)
    subscriptions = await store.list_subscriptions_for_index(INDEX_ID)
    assert sum(s.units for s in subscriptions) == index.total_units_approved + index.total_units_pending


class TestIndexLifecycle:
    """Index / Subscription 시나리오"""

    @pytest.mark.asyncio
    async def test_units_and_distribution(self, store: LedgerStore, ida) -> None:
        projector = LedgerProjector(store)

        await projector.apply(ida(EventTypes.INDEX_CREATED))
        await projector.apply(ida(EventTypes.SUBSCRIPTION_UNITS_UPDATED, subscriber=S1, units=6))

        index = await _index(store)
        assert index.total_units_pending == 6
        assert index.total_subscriptions_with_units == 1
        await _assert_units_conserved(store)

        await projector.apply(ida(EventTypes.SUBSCRIPTION_APPROVED, subscriber=S1))

        index = await _index(store)
        assert index.total_units_pending == 0
        assert index.total_units_approved == 6
        s1_ats = await store.get(AccountTokenSnapshot, AccountTokenSnapshot.make_id(S1, TOKEN))
        assert s1_ats.total_connected_memberships == 1
        await _assert_units_conserved(store)

        await projector.apply(ida(EventTypes.SUBSCRIPTION_UNITS_UPDATED, subscriber=S2, units=4))
        await projector.apply(
            ida(
                EventTypes.INDEX_UPDATED,
                oldIndexValue=0,
                newIndexValue=10,
                totalUnitsPending=4,
                totalUnitsApproved=6,
            )
        )

        index = await _index(store)
        assert index.index_value == 10
        assert index.total_amount_distributed_until_updated_at == 100
        assert (await store.get(TokenStatistic, TOKEN)).total_amount_distributed_until_updated_at == 100
        publisher_ats = await store.get(AccountTokenSnapshot, AccountTokenSnapshot.make_id(PUBLISHER, TOKEN))
        assert publisher_ats.balance_until_updated_at == -100
        s1_ats = await store.get(AccountTokenSnapshot, AccountTokenSnapshot.make_id(S1, TOKEN))
        assert s1_ats.balance_until_updated_at == 60
        await _assert_units_conserved(store)

        # 미승인 S2의 미청구 분배량
        s2 = await _subscription(store, S2)
        assert pending_distribution(s2.units, index.index_value, s2.index_value_until_updated_at, s2.approved) == 40

        await projector.apply(ida(EventTypes.SUBSCRIPTION_APPROVED, subscriber=S2))

        s2 = await _subscription(store, S2)
        assert s2.approved is True
        assert s2.index_value_until_updated_at == 10
        assert s2.total_amount_received_until_updated_at == 40
        s2_ats = await store.get(AccountTokenSnapshot, AccountTokenSnapshot.make_id(S2, TOKEN))
        assert s2_ats.balance_until_updated_at == 40
        index = await _index(store)
        assert index.total_units_approved == 10
        assert index.total_units_pending == 0

        await projector.apply(ida(EventTypes.SUBSCRIPTION_REVOKED, subscriber=S1))

        index = await _index(store)
        assert index.total_units_approved == 4
        assert index.total_units_pending == 6
        s1_ats = await store.get(AccountTokenSnapshot, AccountTokenSnapshot.make_id(S1, TOKEN))
        assert s1_ats.balance_until_updated_at == 60
        await _assert_units_conserved(store)

        await projector.apply(ida(EventTypes.SUBSCRIPTION_UNITS_UPDATED, subscriber=S1, units=0))

        index = await _index(store)
        assert index.total_units_pending == 0
        assert index.total_subscriptions_with_units == 1
        s1_ats = await store.get(AccountTokenSnapshot, AccountTokenSnapshot.make_id(S1, TOKEN))
        assert s1_ats.total_memberships_with_units == 0
        assert s1_ats.total_connected_memberships == 0
        await _assert_units_conserved(store)

    @pytest.mark.asyncio
    async def test_approved_subscriber_credited_on_distribution(self, store: LedgerStore, ida) -> None:
        """승인 구독은 분배 시점에, 미승인 구독은 승인 시점에 잔액 반영 (합계 0 유지)"""
        projector = LedgerProjector(store)

        await projector.apply_all(
            [
                ida(EventTypes.INDEX_CREATED),
                ida(EventTypes.SUBSCRIPTION_UNITS_UPDATED, subscriber=S1, units=6),
                ida(EventTypes.SUBSCRIPTION_APPROVED, subscriber=S1),
                ida(EventTypes.SUBSCRIPTION_UNITS_UPDATED, subscriber=S2, units=4),
                ida(
                    EventTypes.INDEX_UPDATED,
                    oldIndexValue=0,
                    newIndexValue=10,
                    totalUnitsPending=4,
                    totalUnitsApproved=6,
                ),
                ida(
                    EventTypes.INDEX_UPDATED,
                    oldIndexValue=10,
                    newIndexValue=15,
                    totalUnitsPending=4,
                    totalUnitsApproved=6,
                ),
            ]
        )

        async def balance(account: str) -> int:
            ats = await store.get(AccountTokenSnapshot, AccountTokenSnapshot.make_id(account, TOKEN))
            return ats.balance_until_updated_at

        assert await balance(PUBLISHER) == -150
        assert await balance(S1) == 90
        assert await balance(S2) == 0

        await projector.apply(ida(EventTypes.SUBSCRIPTION_APPROVED, subscriber=S2))

        assert await balance(S2) == 60
        assert await balance(PUBLISHER) + await balance(S1) + await balance(S2) == 0

    @pytest.mark.asyncio
    async def test_distribution_claimed(self, store: LedgerStore, ida) -> None:
        projector = LedgerProjector(store)

        await projector.apply_all(
            [
                ida(EventTypes.INDEX_CREATED),
                ida(EventTypes.SUBSCRIPTION_UNITS_UPDATED, subscriber=S2, units=4),
                ida(
                    EventTypes.INDEX_UPDATED,
                    oldIndexValue=0,
                    newIndexValue=5,
                    totalUnitsPending=4,
                    totalUnitsApproved=0,
                ),
                ida(EventTypes.SUBSCRIPTION_DISTRIBUTION_CLAIMED, subscriber=S2, amount=20),
            ]
        )

        s2 = await _subscription(store, S2)
        assert s2.index_value_until_updated_at == 5
        assert s2.total_amount_received_until_updated_at == 20
        s2_ats = await store.get(AccountTokenSnapshot, AccountTokenSnapshot.make_id(S2, TOKEN))
        assert s2_ats.balance_until_updated_at == 20

    @pytest.mark.asyncio
    async def test_repeated_approval_is_noop(self, store: LedgerStore, ida) -> None:
        projector = LedgerProjector(store)

        await projector.apply_all(
            [
                ida(EventTypes.INDEX_CREATED),
                ida(EventTypes.SUBSCRIPTION_UNITS_UPDATED, subscriber=S1, units=3),
                ida(EventTypes.SUBSCRIPTION_APPROVED, subscriber=S1),
                ida(EventTypes.SUBSCRIPTION_APPROVED, subscriber=S1),
            ]
        )

        index = await _index(store)
        assert index.total_units_approved == 3
        assert index.total_units_pending == 0
        s1_ats = await store.get(AccountTokenSnapshot, AccountTokenSnapshot.make_id(S1, TOKEN))
        assert s1_ats.total_connected_memberships == 1
