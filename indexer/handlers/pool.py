"""
Pool Projection Handler

GDA Pool 이벤트를 처리하여 Pool / PoolMember / ATS / TokenStatistic 업데이트.

처리 이벤트:
- PoolCreated
- MemberUnitsUpdated
- DistributionClaimed
- PoolConnectionUpdated
- FlowDistributionUpdated
- InstantDistributionUpdated

모든 핸들러는 Pool을 먼저 정산한 뒤 Member를 정산함.
"""

import logging

from core.accumulator import (
    compute_per_unit_flow_rate,
    settle_member,
    settle_pool,
    truncating_div,
)
from core.domain.entities import Pool
from core.domain.events import EventTypes, ProtocolEvent
from indexer.handlers.base import ProjectionHandler

logger = logging.getLogger(__name__)


class PoolProjectionHandler(ProjectionHandler):
    """Pool Projection 핸들러

    Args:
        store: Ledger Entity 저장소
    """

    @property
    def handled_event_types(self) -> list[str]:
        return [
            EventTypes.POOL_CREATED,
            EventTypes.MEMBER_UNITS_UPDATED,
            EventTypes.DISTRIBUTION_CLAIMED,
            EventTypes.POOL_CONNECTION_UPDATED,
            EventTypes.FLOW_DISTRIBUTION_UPDATED,
            EventTypes.INSTANT_DISTRIBUTION_UPDATED,
        ]

    async def handle(self, event: ProtocolEvent) -> None:
        """이벤트 타입별 분기"""
        if event.name == EventTypes.POOL_CREATED:
            await self._handle_pool_created(event)
        elif event.name == EventTypes.MEMBER_UNITS_UPDATED:
            await self._handle_member_units_updated(event)
        elif event.name == EventTypes.DISTRIBUTION_CLAIMED:
            await self._handle_distribution_claimed(event)
        elif event.name == EventTypes.POOL_CONNECTION_UPDATED:
            await self._handle_pool_connection_updated(event)
        elif event.name == EventTypes.FLOW_DISTRIBUTION_UPDATED:
            await self._handle_flow_distribution_updated(event)
        elif event.name == EventTypes.INSTANT_DISTRIBUTION_UPDATED:
            await self._handle_instant_distribution_updated(event)
        else:
            raise ValueError(f"Unsupported event for PoolProjectionHandler: {event.name}")

    # -------------------------------------------------------------------------
    # PoolCreated
    # -------------------------------------------------------------------------

    async def _handle_pool_created(self, event: ProtocolEvent) -> None:
        """Pool 생성 (params: token, admin, pool)"""
        token = event.str_param("token")
        pool_id = event.str_param("pool")

        pool = await self.store.get_or_init_pool(pool_id, token, event)
        pool.admin = event.str_param("admin")
        await self.store.save(pool, event)

        stats = await self._load_settled_token_statistic(token, event)
        stats.total_number_of_pools += 1
        await self._persist_token_statistic(stats, event)

        await self._record_event(
            event,
            [token, pool_id, pool.admin],
            {"token": token, "pool": pool_id, "admin": pool.admin},
        )

        logger.info(f"Pool created: {pool_id}", extra={"token": token, "block": event.block_number})

    # -------------------------------------------------------------------------
    # MemberUnitsUpdated
    # -------------------------------------------------------------------------

    async def _handle_member_units_updated(self, event: ProtocolEvent) -> None:
        """Member unit 변경 (params: token, member, oldUnits, newUnits)

        1. Pool 정산 → Member 정산
        2. 변경 전 totalUnits 기준 Pool flow rate 재계산
        3. 단위당 flow rate 재분배, 나머지는 변경을 일으킨 Member에 귀속
        4. 연결/비연결 unit 버킷 갱신
        5. 활성화(0 → 양수) / 비활성화(양수 → 0) 카운터 전이
        6. 저장 + 감사 로그
        """
        token = event.str_param("token")
        account = event.str_param("member")
        new_units = event.int_param("newUnits")
        pool_id = event.address

        pool = await self.store.get_or_init_pool(pool_id, token, event)
        member = await self.store.get_or_init_pool_member(pool_id, account, event)

        previous_units = member.units
        units_delta = new_units - previous_units
        new_total_units = pool.total_units + units_delta

        settle_pool(pool, event.timestamp, event.block_number)
        settle_member(pool, member, event.timestamp, event.block_number)

        existing_pool_flow_rate = pool.per_unit_flow_rate * pool.total_units
        new_per_unit_flow_rate, remainder = compute_per_unit_flow_rate(
            existing_pool_flow_rate, new_total_units
        )
        pool.per_unit_flow_rate = new_per_unit_flow_rate
        pool.total_units = new_total_units

        member.synced_per_unit_flow_rate += remainder
        member.units = new_units

        if member.is_connected:
            pool.total_connected_units += units_delta
        else:
            pool.total_disconnected_units += units_delta

        became_active = previous_units == 0 and new_units > 0
        became_inactive = previous_units > 0 and new_units == 0

        if became_active:
            self._shift_member_count(pool, member.is_connected, 1)
        elif became_inactive:
            self._shift_member_count(pool, member.is_connected, -1)

        await self.store.save(member, event)
        await self.store.save(pool, event)

        await self._record_event(
            event,
            [token, pool_id, account],
            {
                "token": token,
                "pool": pool_id,
                "pool_member": member.id,
                "old_units": str(previous_units),
                "units": str(new_units),
                "total_units": str(pool.total_units),
            },
        )

        stats = await self._load_settled_token_statistic(token, event)
        ats = await self._load_settled_ats(account, token, event)

        if became_active:
            stats.total_memberships_with_units += 1
            ats.total_memberships_with_units += 1
            if member.is_connected:
                ats.total_connected_memberships += 1
        elif became_inactive:
            stats.total_memberships_with_units -= 1
            ats.total_memberships_with_units -= 1
            if member.is_connected:
                ats.total_connected_memberships -= 1

        await self._persist_token_statistic(stats, event)
        await self._persist_ats(ats, event)

        logger.debug(
            f"Member units updated: {member.id} {previous_units} -> {new_units}",
            extra={
                "pool": pool_id,
                "total_units": str(pool.total_units),
                "remainder": str(remainder),
            },
        )

    # -------------------------------------------------------------------------
    # DistributionClaimed
    # -------------------------------------------------------------------------

    async def _handle_distribution_claimed(self, event: ProtocolEvent) -> None:
        """분배금 청구 (params: token, member, claimedAmount, totalClaimed)"""
        token = event.str_param("token")
        account = event.str_param("member")
        claimed_amount = event.int_param("claimedAmount")
        total_claimed = event.int_param("totalClaimed")
        pool_id = event.address

        pool = await self.store.get_or_init_pool(pool_id, token, event)
        member = await self.store.get_or_init_pool_member(pool_id, account, event)

        settle_pool(pool, event.timestamp, event.block_number)
        settle_member(pool, member, event.timestamp, event.block_number)

        member.total_amount_claimed = total_claimed

        await self.store.save(pool, event)
        await self.store.save(member, event)

        stats = await self._load_settled_token_statistic(token, event)
        await self._persist_token_statistic(stats, event)

        await self._settle_and_persist_ats(account, token, event, balance_delta=claimed_amount)

        await self._record_event(
            event,
            [token, pool_id, account],
            {
                "token": token,
                "pool": pool_id,
                "pool_member": member.id,
                "claimed_amount": str(claimed_amount),
                "total_claimed": str(total_claimed),
            },
        )

    # -------------------------------------------------------------------------
    # PoolConnectionUpdated
    # -------------------------------------------------------------------------

    async def _handle_pool_connection_updated(self, event: ProtocolEvent) -> None:
        """Pool 연결 상태 변경 (params: token, pool, account, connected)

        이미 같은 상태면 정산만 하고 버킷은 움직이지 않음.
        """
        token = event.str_param("token")
        pool_id = event.str_param("pool")
        account = event.str_param("account")
        connected = event.bool_param("connected")

        pool = await self.store.get_or_init_pool(pool_id, token, event)
        member = await self.store.get_or_init_pool_member(pool_id, account, event)

        settle_pool(pool, event.timestamp, event.block_number)
        settle_member(pool, member, event.timestamp, event.block_number)

        changed = member.is_connected != connected
        if changed:
            direction = 1 if connected else -1
            pool.total_connected_units += direction * member.units
            pool.total_disconnected_units -= direction * member.units
            if member.units > 0:
                pool.total_connected_members += direction
                pool.total_disconnected_members -= direction
            member.is_connected = connected

        await self.store.save(pool, event)
        await self.store.save(member, event)

        ats = await self._load_settled_ats(account, token, event)
        if changed and member.units > 0:
            ats.total_connected_memberships += 1 if connected else -1
        await self._persist_ats(ats, event)

        await self._record_event(
            event,
            [token, pool_id, account],
            {
                "token": token,
                "pool": pool_id,
                "pool_member": member.id,
                "connected": connected,
            },
        )

    # -------------------------------------------------------------------------
    # FlowDistributionUpdated
    # -------------------------------------------------------------------------

    async def _handle_flow_distribution_updated(self, event: ProtocolEvent) -> None:
        """Pool 분배 flow rate 변경

        params: token, pool, distributor, oldFlowRate,
                newDistributorToPoolFlowRate, newTotalDistributionFlowRate,
                adjustmentFlowRate
        """
        token = event.str_param("token")
        pool_id = event.str_param("pool")
        distributor = event.str_param("distributor")
        new_total_flow_rate = event.int_param("newTotalDistributionFlowRate")
        adjustment_flow_rate = event.int_param("adjustmentFlowRate")

        pool = await self.store.get_or_init_pool(pool_id, token, event)
        settle_pool(pool, event.timestamp, event.block_number)

        pool.flow_rate = new_total_flow_rate
        pool.adjustment_flow_rate = adjustment_flow_rate
        pool.per_unit_flow_rate, _ = compute_per_unit_flow_rate(
            new_total_flow_rate - adjustment_flow_rate,
            pool.total_units,
        )
        await self.store.save(pool, event)

        stats = await self._load_settled_token_statistic(token, event)
        await self._persist_token_statistic(stats, event)
        await self._settle_and_persist_ats(distributor, token, event)

        await self._record_event(
            event,
            [token, pool_id, distributor],
            {
                "token": token,
                "pool": pool_id,
                "distributor": distributor,
                "new_total_distribution_flow_rate": str(new_total_flow_rate),
                "adjustment_flow_rate": str(adjustment_flow_rate),
            },
        )

    # -------------------------------------------------------------------------
    # InstantDistributionUpdated
    # -------------------------------------------------------------------------

    async def _handle_instant_distribution_updated(self, event: ProtocolEvent) -> None:
        """즉시 분배 (params: token, pool, distributor, requestedAmount, actualAmount)"""
        token = event.str_param("token")
        pool_id = event.str_param("pool")
        distributor = event.str_param("distributor")
        actual_amount = event.int_param("actualAmount")

        pool = await self.store.get_or_init_pool(pool_id, token, event)
        settle_pool(pool, event.timestamp, event.block_number)

        if pool.total_units > 0:
            pool.per_unit_settled_value += truncating_div(actual_amount, pool.total_units)
        pool.total_amount_instantly_distributed_until_updated_at += actual_amount
        pool.total_amount_distributed_until_updated_at += actual_amount
        await self.store.save(pool, event)

        stats = await self._load_settled_token_statistic(token, event)
        stats.total_amount_distributed_until_updated_at += actual_amount
        await self._persist_token_statistic(stats, event)

        await self._settle_and_persist_ats(distributor, token, event, balance_delta=-actual_amount)

        await self._record_event(
            event,
            [token, pool_id, distributor],
            {
                "token": token,
                "pool": pool_id,
                "distributor": distributor,
                "actual_amount": str(actual_amount),
            },
        )

    @staticmethod
    def _shift_member_count(pool: Pool, is_connected: bool, delta: int) -> None:
        """활성 멤버 카운터 증감 (연결 상태에 맞는 버킷)"""
        pool.total_members += delta
        if is_connected:
            pool.total_connected_members += delta
        else:
            pool.total_disconnected_members += delta
