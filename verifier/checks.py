"""
레코드 단위 검증

Subgraph 레코드와 온체인 값을 비교하여 불일치 감지.
compare_* 함수는 순수 비교, RecordChecker는 온체인 조회 후 비교하고
불일치가 있으면 RecordMismatchError를 던짐.
"""

import logging
from dataclasses import dataclass
from typing import Any

from adapters.interfaces import IChainReader
from adapters.models import FlowState, IndexState, SubscriptionState
from core.accumulator import pending_distribution
from core.errors import RecordMismatchError
from core.types import EntityKind
from verifier.models import (
    AccountTokenSnapshotRecord,
    IndexRecord,
    StreamRecord,
    SubscriptionRecord,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Mismatch:
    """불일치 정보"""
    kind: EntityKind
    entity_id: str
    expected: dict[str, Any]  # 온체인 값
    actual: dict[str, Any]    # Subgraph 값
    description: str


def _diff(
    kind: EntityKind,
    entity_id: str,
    expected: dict[str, Any],
    actual: dict[str, Any],
    label: str,
) -> list[Mismatch]:
    """필드별 비교, 하나라도 다르면 Mismatch 하나"""
    if expected == actual:
        return []
    return [
        Mismatch(
            kind=kind,
            entity_id=entity_id,
            expected=expected,
            actual=actual,
            description=(
                f"Values don't match for {label} {entity_id}: "
                f"subgraph={actual} contract={expected}"
            ),
        )
    ]


def compare_stream(record: StreamRecord, state: FlowState) -> list[Mismatch]:
    """Stream: updatedAtTimestamp, currentFlowRate 정확히 일치"""
    return _diff(
        EntityKind.STREAM,
        record.id,
        {
            "updated_at_timestamp": state.updated_at_timestamp,
            "current_flow_rate": state.flow_rate,
        },
        {
            "updated_at_timestamp": record.updated_at_timestamp,
            "current_flow_rate": record.current_flow_rate,
        },
        "stream",
    )


def compare_account_token_snapshot(
    record: AccountTokenSnapshotRecord,
    net_flow_rate: int,
) -> list[Mismatch]:
    """ATS: totalNetFlowRate 정확히 일치"""
    return _diff(
        EntityKind.ACCOUNT_TOKEN_SNAPSHOT,
        record.id,
        {"total_net_flow_rate": net_flow_rate},
        {"total_net_flow_rate": record.total_net_flow_rate},
        "account token snapshot",
    )


def compare_index(
    record: IndexRecord,
    state: IndexState,
    subscription_units_sum: int,
) -> list[Mismatch]:
    """Index: 존재 여부, 필드 일치, 구독 unit 합 == 온체인 총 unit"""
    if not state.exist:
        return [
            Mismatch(
                kind=EntityKind.INDEX,
                entity_id=record.id,
                expected={"exist": False},
                actual={"exist": True},
                description=f"Index {record.id} doesn't exist on chain",
            )
        ]

    mismatches = _diff(
        EntityKind.INDEX,
        record.id,
        {
            "index_value": state.index_value,
            "total_units_approved": state.total_units_approved,
            "total_units_pending": state.total_units_pending,
        },
        {
            "index_value": record.index_value,
            "total_units_approved": record.total_units_approved,
            "total_units_pending": record.total_units_pending,
        },
        "index",
    )

    if subscription_units_sum != state.total_units:
        mismatches.append(
            Mismatch(
                kind=EntityKind.INDEX,
                entity_id=record.id,
                expected={"total_units": state.total_units},
                actual={"subscription_units_sum": subscription_units_sum},
                description=(
                    f"Total subscription units != total index units for {record.id}: "
                    f"subscription units sum={subscription_units_sum}, "
                    f"index units sum={state.total_units}"
                ),
            )
        )

    return mismatches


def expected_pending_distribution(record: SubscriptionRecord) -> int:
    """Subgraph 레코드에서 계산한 미청구 분배량"""
    return pending_distribution(
        record.units,
        record.index.index_value,
        record.index_value_until_updated_at,
        record.approved,
    )


def compare_subscription(record: SubscriptionRecord, state: SubscriptionState) -> list[Mismatch]:
    """Subscription: 존재 여부, approved / units / pendingDistribution 일치"""
    if not state.exist:
        return [
            Mismatch(
                kind=EntityKind.SUBSCRIPTION,
                entity_id=record.id,
                expected={"exist": False},
                actual={"exist": True},
                description=f"Subscription {record.id} doesn't exist on chain",
            )
        ]

    return _diff(
        EntityKind.SUBSCRIPTION,
        record.id,
        {
            "approved": state.approved,
            "units": state.units,
            "pending_distribution": state.pending_distribution,
        },
        {
            "approved": record.approved,
            "units": record.units,
            "pending_distribution": expected_pending_distribution(record),
        },
        "subscription",
    )


def subscription_units_by_index(subscriptions: list[SubscriptionRecord]) -> dict[str, int]:
    """Index id별 구독 unit 합계"""
    totals: dict[str, int] = {}
    for subscription in subscriptions:
        totals[subscription.index.id] = totals.get(subscription.index.id, 0) + subscription.units
    return totals


class RecordChecker:
    """온체인 조회 + 비교

    모든 조회는 block_number 기준으로 고정.

    Args:
        reader: 온체인 조회 클라이언트
        block_number: 스냅샷 블록
    """

    def __init__(self, reader: IChainReader, block_number: int):
        self.reader = reader
        self.block_number = block_number

    @staticmethod
    def _raise_if_any(mismatches: list[Mismatch], authoritative_value: int | None = None) -> None:
        if mismatches:
            raise RecordMismatchError(mismatches, authoritative_value)

    async def check_stream(self, record: StreamRecord) -> None:
        state = await self.reader.get_flow(
            record.token.id,
            record.sender.id,
            record.receiver.id,
            self.block_number,
        )
        self._raise_if_any(compare_stream(record, state))

    async def check_account_token_snapshot(self, record: AccountTokenSnapshotRecord) -> int:
        """ATS 검증

        Returns:
            온체인 net flow rate (전역 합계용)

        Raises:
            RecordMismatchError: 불일치 (authoritative_value에 온체인 값 포함)
        """
        net_flow_rate = await self.reader.get_net_flow(
            record.token.id,
            record.account.id,
            self.block_number,
        )
        self._raise_if_any(
            compare_account_token_snapshot(record, net_flow_rate),
            authoritative_value=net_flow_rate,
        )
        return net_flow_rate

    async def check_index(self, record: IndexRecord, subscription_units_sum: int) -> None:
        state = await self.reader.get_index(
            record.token.id,
            record.publisher.id,
            record.index_id,
            self.block_number,
        )
        self._raise_if_any(compare_index(record, state, subscription_units_sum))

    async def check_subscription(self, record: SubscriptionRecord) -> None:
        state = await self.reader.get_subscription(
            record.index.token.id,
            record.index.publisher.id,
            record.index.index_id,
            record.subscriber.id,
            self.block_number,
        )
        self._raise_if_any(compare_subscription(record, state))
