"""
Ledger Entity 도메인 모델

Ledger Update Engine이 파생(derive)하는 회계 레코드.
모든 금액/flow rate/unit은 임의 정밀도 int (저장 시 문자열).
"""

from dataclasses import dataclass, fields
from typing import Any, ClassVar, TypeVar

from core.types import EntityKind


E = TypeVar("E", bound="LedgerEntity")


@dataclass
class LedgerEntity:
    """Ledger Entity 베이스

    to_dict/from_dict에서 int 필드는 문자열로 직렬화
    (uint256 범위 값을 SQLite INTEGER에 넣을 수 없음).
    """

    KIND: ClassVar[EntityKind]

    id: str

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환 (직렬화용)"""
        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.type is int:
                value = str(value)
            data[f.name] = value
        return data

    @classmethod
    def from_dict(cls: type[E], data: dict[str, Any]) -> E:
        """딕셔너리에서 생성 (역직렬화용)"""
        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            if f.type is int and value is not None:
                value = int(value)
            kwargs[f.name] = value
        return cls(**kwargs)


@dataclass
class Pool(LedgerEntity):
    """비례 분배 Pool

    total_units == total_connected_units + total_disconnected_units
    total_members == total_connected_members + total_disconnected_members
    """

    KIND: ClassVar[EntityKind] = EntityKind.POOL

    token: str = ""
    admin: str = ""
    total_units: int = 0
    total_connected_units: int = 0
    total_disconnected_units: int = 0
    total_members: int = 0
    total_connected_members: int = 0
    total_disconnected_members: int = 0
    per_unit_flow_rate: int = 0
    per_unit_settled_value: int = 0
    flow_rate: int = 0
    adjustment_flow_rate: int = 0
    total_amount_flowed_distributed_until_updated_at: int = 0
    total_amount_instantly_distributed_until_updated_at: int = 0
    total_amount_distributed_until_updated_at: int = 0
    created_at_timestamp: int = 0
    created_at_block_number: int = 0
    updated_at_timestamp: int = 0
    updated_at_block_number: int = 0


@dataclass
class PoolMember(LedgerEntity):
    """Pool 멤버

    pool_id는 Pool을 소유하지 않는 참조 (LedgerStore로 조회).
    생성 후 삭제하지 않고 units만 0으로 만듦.
    """

    KIND: ClassVar[EntityKind] = EntityKind.POOL_MEMBER

    pool_id: str = ""
    account: str = ""
    units: int = 0
    is_connected: bool = False
    synced_per_unit_flow_rate: int = 0
    synced_per_unit_settled_value: int = 0
    total_amount_received_until_updated_at: int = 0
    total_amount_claimed: int = 0
    created_at_timestamp: int = 0
    created_at_block_number: int = 0
    updated_at_timestamp: int = 0
    updated_at_block_number: int = 0

    @staticmethod
    def make_id(pool_id: str, account: str) -> str:
        return f"{pool_id}-{account}"


@dataclass
class AccountTokenSnapshot(LedgerEntity):
    """계정별/토큰별 집계 (ATS)"""

    KIND: ClassVar[EntityKind] = EntityKind.ACCOUNT_TOKEN_SNAPSHOT

    account: str = ""
    token: str = ""
    total_net_flow_rate: int = 0
    total_inflow_rate: int = 0
    total_outflow_rate: int = 0
    active_incoming_stream_count: int = 0
    active_outgoing_stream_count: int = 0
    total_memberships_with_units: int = 0
    total_connected_memberships: int = 0
    balance_until_updated_at: int = 0
    total_amount_streamed_in_until_updated_at: int = 0
    total_amount_streamed_out_until_updated_at: int = 0
    created_at_timestamp: int = 0
    updated_at_timestamp: int = 0
    updated_at_block_number: int = 0

    @staticmethod
    def make_id(account: str, token: str) -> str:
        return f"{account}-{token}"


@dataclass
class TokenStatistic(LedgerEntity):
    """토큰 단위 집계"""

    KIND: ClassVar[EntityKind] = EntityKind.TOKEN_STATISTIC

    total_outflow_rate: int = 0
    total_number_of_active_streams: int = 0
    total_number_of_pools: int = 0
    total_memberships_with_units: int = 0
    total_amount_streamed_until_updated_at: int = 0
    total_amount_distributed_until_updated_at: int = 0
    updated_at_timestamp: int = 0
    updated_at_block_number: int = 0


@dataclass
class Stream(LedgerEntity):
    """일정 속도 스트림 (CFA)

    current_flow_rate == 0 이면 논리적으로 삭제된 스트림.
    """

    KIND: ClassVar[EntityKind] = EntityKind.STREAM

    token: str = ""
    sender: str = ""
    receiver: str = ""
    current_flow_rate: int = 0
    streamed_until_updated_at: int = 0
    created_at_timestamp: int = 0
    created_at_block_number: int = 0
    updated_at_timestamp: int = 0
    updated_at_block_number: int = 0

    @staticmethod
    def make_id(sender: str, receiver: str, token: str, revision_index: int) -> str:
        return f"{sender}-{receiver}-{token}-{revision_index}"


@dataclass
class StreamRevision(LedgerEntity):
    """(sender, receiver, token) 별 스트림 리비전 추적

    스트림이 종료(flow rate 0)된 뒤 다시 열리면 revision_index 증가.
    """

    KIND: ClassVar[EntityKind] = EntityKind.STREAM_REVISION

    revision_index: int = 0
    most_recent_stream_id: str | None = None

    @staticmethod
    def make_id(sender: str, receiver: str, token: str) -> str:
        return f"{sender}-{receiver}-{token}"


@dataclass
class Index(LedgerEntity):
    """IDA Index (레거시 unit 가중 분배)

    Σ subscriptions.units == total_units_approved + total_units_pending
    """

    KIND: ClassVar[EntityKind] = EntityKind.INDEX

    token: str = ""
    publisher: str = ""
    index_id: int = 0
    index_value: int = 0
    total_units_approved: int = 0
    total_units_pending: int = 0
    total_subscriptions_with_units: int = 0
    total_amount_distributed_until_updated_at: int = 0
    created_at_timestamp: int = 0
    created_at_block_number: int = 0
    updated_at_timestamp: int = 0
    updated_at_block_number: int = 0

    @property
    def total_units(self) -> int:
        return self.total_units_approved + self.total_units_pending

    @staticmethod
    def make_id(publisher: str, token: str, index_id: int) -> str:
        return f"{publisher}-{token}-{index_id}"


@dataclass
class Subscription(LedgerEntity):
    """IDA Subscription"""

    KIND: ClassVar[EntityKind] = EntityKind.SUBSCRIPTION

    index: str = ""  # Index entity id
    subscriber: str = ""
    units: int = 0
    approved: bool = False
    index_value_until_updated_at: int = 0
    total_amount_received_until_updated_at: int = 0
    created_at_timestamp: int = 0
    created_at_block_number: int = 0
    updated_at_timestamp: int = 0
    updated_at_block_number: int = 0

    @staticmethod
    def make_id(subscriber: str, publisher: str, token: str, index_id: int) -> str:
        return f"{subscriber}-{publisher}-{token}-{index_id}"


ENTITY_CLASSES: dict[EntityKind, type[LedgerEntity]] = {
    cls.KIND: cls
    for cls in (
        Pool,
        PoolMember,
        AccountTokenSnapshot,
        TokenStatistic,
        Stream,
        StreamRevision,
        Index,
        Subscription,
    )
}
