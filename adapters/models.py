"""
어댑터 공통 데이터 모델

온체인 에이전트 조회 결과를 표준화한 모델.
모든 flow rate/unit/금액은 int 타입 사용.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class FlowState:
    """CFA 스트림 상태

    Attributes:
        updated_at_timestamp: 마지막 갱신 시각 (초)
        flow_rate: 현재 flow rate (0이면 스트림 없음)
    """

    updated_at_timestamp: int
    flow_rate: int


@dataclass(frozen=True)
class IndexState:
    """IDA Index 상태

    Attributes:
        exist: Index 존재 여부
        index_value: 현재 index value
        total_units_approved: 승인된 unit 합
        total_units_pending: 미승인 unit 합
    """

    exist: bool
    index_value: int
    total_units_approved: int
    total_units_pending: int

    @property
    def total_units(self) -> int:
        return self.total_units_approved + self.total_units_pending


@dataclass(frozen=True)
class SubscriptionState:
    """IDA Subscription 상태

    Attributes:
        exist: Subscription 존재 여부
        approved: 승인 여부
        units: 보유 unit
        pending_distribution: 미청구 분배량
    """

    exist: bool
    approved: bool
    units: int
    pending_distribution: int
