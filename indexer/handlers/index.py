"""
Index Projection Handler

IDA 이벤트를 처리하여 Index / Subscription / ATS / TokenStatistic 업데이트.

불변식: Index별 Σ subscription.units == total_units_approved + total_units_pending
"""

import logging

from core.domain.entities import Index, Subscription
from core.domain.events import EventTypes, ProtocolEvent
from indexer.handlers.base import ProjectionHandler

logger = logging.getLogger(__name__)


class IndexProjectionHandler(ProjectionHandler):
    """Index / Subscription Projection 핸들러

    미승인 구독은 index_value_until_updated_at을 갱신하지 않고 두어
    units * (index_value - index_value_until_updated_at) 로 미청구 금액을 표현함.
    승인된 구독의 잔액은 IndexUpdated 시점에 바로 더하므로 정산 시 다시 더하지 않음.

    Args:
        store: Ledger Entity 저장소
    """

    @property
    def handled_event_types(self) -> list[str]:
        return [
            EventTypes.INDEX_CREATED,
            EventTypes.INDEX_UPDATED,
            EventTypes.SUBSCRIPTION_APPROVED,
            EventTypes.SUBSCRIPTION_REVOKED,
            EventTypes.SUBSCRIPTION_UNITS_UPDATED,
            EventTypes.SUBSCRIPTION_DISTRIBUTION_CLAIMED,
        ]

    async def handle(self, event: ProtocolEvent) -> None:
        """이벤트 타입별 분기"""
        if event.name == EventTypes.INDEX_CREATED:
            await self._handle_index_created(event)
        elif event.name == EventTypes.INDEX_UPDATED:
            await self._handle_index_updated(event)
        elif event.name == EventTypes.SUBSCRIPTION_APPROVED:
            await self._handle_subscription_approval(event, approved=True)
        elif event.name == EventTypes.SUBSCRIPTION_REVOKED:
            await self._handle_subscription_approval(event, approved=False)
        elif event.name == EventTypes.SUBSCRIPTION_UNITS_UPDATED:
            await self._handle_subscription_units_updated(event)
        elif event.name == EventTypes.SUBSCRIPTION_DISTRIBUTION_CLAIMED:
            await self._handle_subscription_distribution_claimed(event)
        else:
            raise ValueError(f"Unsupported event for IndexProjectionHandler: {event.name}")

    async def _load_index(self, event: ProtocolEvent) -> Index:
        return await self.store.get_or_init_index(
            event.str_param("publisher"),
            event.str_param("token"),
            event.int_param("indexId"),
            event,
        )

    @staticmethod
    def _settle_subscription(subscription: Subscription, index: Index, event: ProtocolEvent) -> int:
        """마지막 동기화 이후 분배분을 수령 처리하고 index_value 동기화

        Returns:
            이번에 수령 처리된 금액
        """
        received = (index.index_value - subscription.index_value_until_updated_at) * subscription.units
        subscription.total_amount_received_until_updated_at += received
        subscription.index_value_until_updated_at = index.index_value
        subscription.updated_at_timestamp = event.timestamp
        subscription.updated_at_block_number = event.block_number
        return received

    # -------------------------------------------------------------------------
    # Index
    # -------------------------------------------------------------------------

    async def _handle_index_created(self, event: ProtocolEvent) -> None:
        """Index 생성 (params: token, publisher, indexId)"""
        index = await self._load_index(event)
        await self.store.save(index, event)

        await self._settle_and_persist_ats(index.publisher, index.token, event)

        await self._record_event(
            event,
            [index.token, index.publisher],
            {"token": index.token, "publisher": index.publisher, "index_id": str(index.index_id)},
        )

        logger.info(f"Index created: {index.id}", extra={"block": event.block_number})

    async def _handle_index_updated(self, event: ProtocolEvent) -> None:
        """Index 값 갱신 (분배)

        params: token, publisher, indexId, oldIndexValue, newIndexValue,
                totalUnitsPending, totalUnitsApproved
        """
        index = await self._load_index(event)

        old_index_value = event.int_param("oldIndexValue")
        new_index_value = event.int_param("newIndexValue")
        total_units_pending = event.int_param("totalUnitsPending")
        total_units_approved = event.int_param("totalUnitsApproved")

        distributed = (new_index_value - old_index_value) * (total_units_pending + total_units_approved)

        index.index_value = new_index_value
        index.total_units_pending = total_units_pending
        index.total_units_approved = total_units_approved
        index.total_amount_distributed_until_updated_at += distributed
        index.updated_at_timestamp = event.timestamp
        index.updated_at_block_number = event.block_number
        await self.store.save(index, event)

        stats = await self._load_settled_token_statistic(index.token, event)
        stats.total_amount_distributed_until_updated_at += distributed
        await self._persist_token_statistic(stats, event)

        await self._settle_and_persist_ats(index.publisher, index.token, event, balance_delta=-distributed)

        # 승인된 구독자는 분배 즉시 잔액에 반영 (미승인은 승인/청구 시점에 반영)
        index_delta = new_index_value - old_index_value
        if index_delta:
            for subscription in await self.store.list_subscriptions_for_index(index.id):
                if subscription.approved and subscription.units > 0:
                    await self._settle_and_persist_ats(
                        subscription.subscriber,
                        index.token,
                        event,
                        balance_delta=subscription.units * index_delta,
                    )

        await self._record_event(
            event,
            [index.token, index.publisher],
            {
                "token": index.token,
                "publisher": index.publisher,
                "index_id": str(index.index_id),
                "old_index_value": str(old_index_value),
                "new_index_value": str(new_index_value),
                "total_units_pending": str(total_units_pending),
                "total_units_approved": str(total_units_approved),
            },
        )

    # -------------------------------------------------------------------------
    # Subscription
    # -------------------------------------------------------------------------

    async def _handle_subscription_approval(self, event: ProtocolEvent, approved: bool) -> None:
        """구독 승인/취소 (params: token, subscriber, publisher, indexId)

        승인 시 미청구 분배분을 수령 처리.
        units는 pending ↔ approved 버킷 사이에서만 이동.
        """
        index = await self._load_index(event)
        subscriber = event.str_param("subscriber")
        subscription = await self.store.get_or_init_subscription(subscriber, index, event)

        received = self._settle_subscription(subscription, index, event)
        balance_delta = received if not subscription.approved else 0

        changed = subscription.approved != approved
        if changed:
            if approved:
                index.total_units_pending -= subscription.units
                index.total_units_approved += subscription.units
            else:
                index.total_units_approved -= subscription.units
                index.total_units_pending += subscription.units
            subscription.approved = approved

        index.updated_at_timestamp = event.timestamp
        index.updated_at_block_number = event.block_number

        await self.store.save(index, event)
        await self.store.save(subscription, event)

        ats = await self._load_settled_ats(subscriber, index.token, event, balance_delta)
        if changed and subscription.units > 0:
            ats.total_connected_memberships += 1 if approved else -1
        await self._persist_ats(ats, event)

        await self._record_event(
            event,
            [index.token, subscriber, index.publisher],
            {
                "token": index.token,
                "subscriber": subscriber,
                "publisher": index.publisher,
                "index_id": str(index.index_id),
                "subscription": subscription.id,
                "approved": approved,
            },
        )

    async def _handle_subscription_units_updated(self, event: ProtocolEvent) -> None:
        """구독 units 변경 (params: token, subscriber, publisher, indexId, units)"""
        index = await self._load_index(event)
        subscriber = event.str_param("subscriber")
        new_units = event.int_param("units")
        subscription = await self.store.get_or_init_subscription(subscriber, index, event)

        received = self._settle_subscription(subscription, index, event)
        balance_delta = received if not subscription.approved else 0

        previous_units = subscription.units
        units_delta = new_units - previous_units

        if subscription.approved:
            index.total_units_approved += units_delta
        else:
            index.total_units_pending += units_delta
        subscription.units = new_units

        became_active = previous_units == 0 and new_units > 0
        became_inactive = previous_units > 0 and new_units == 0
        if became_active:
            index.total_subscriptions_with_units += 1
        elif became_inactive:
            index.total_subscriptions_with_units -= 1

        index.updated_at_timestamp = event.timestamp
        index.updated_at_block_number = event.block_number

        await self.store.save(index, event)
        await self.store.save(subscription, event)

        stats = await self._load_settled_token_statistic(index.token, event)
        ats = await self._load_settled_ats(subscriber, index.token, event, balance_delta)
        if became_active:
            stats.total_memberships_with_units += 1
            ats.total_memberships_with_units += 1
            if subscription.approved:
                ats.total_connected_memberships += 1
        elif became_inactive:
            stats.total_memberships_with_units -= 1
            ats.total_memberships_with_units -= 1
            if subscription.approved:
                ats.total_connected_memberships -= 1
        await self._persist_token_statistic(stats, event)
        await self._persist_ats(ats, event)

        await self._record_event(
            event,
            [index.token, subscriber, index.publisher],
            {
                "token": index.token,
                "subscriber": subscriber,
                "publisher": index.publisher,
                "index_id": str(index.index_id),
                "subscription": subscription.id,
                "old_units": str(previous_units),
                "units": str(new_units),
            },
        )

    async def _handle_subscription_distribution_claimed(self, event: ProtocolEvent) -> None:
        """미청구 분배분 청구 (params: token, subscriber, publisher, indexId, amount)"""
        index = await self._load_index(event)
        subscriber = event.str_param("subscriber")
        amount = event.int_param("amount")
        subscription = await self.store.get_or_init_subscription(subscriber, index, event)

        self._settle_subscription(subscription, index, event)
        await self.store.save(subscription, event)

        await self._settle_and_persist_ats(subscriber, index.token, event, balance_delta=amount)

        await self._record_event(
            event,
            [index.token, subscriber, index.publisher],
            {
                "token": index.token,
                "subscriber": subscriber,
                "publisher": index.publisher,
                "index_id": str(index.index_id),
                "subscription": subscription.id,
                "amount": str(amount),
            },
        )
