"""
Protocol Event 도메인 모델

온체인 프로토콜 이벤트 (Ledger Update Engine 입력).
모든 이벤트는 (block_number, log_index) 순서로 정확히 한 번 적용됨.
"""

from dataclasses import dataclass
from typing import Any

from core.types import EventPosition


@dataclass
class ProtocolEvent:
    """프로토콜 이벤트

    params 값은 JSON 호환 (BigInt는 10진 문자열).
    필수 파라미터가 없으면 KeyError로 실패 (잘못된 이벤트는 치명적 에러).
    """

    name: str
    address: str  # 이벤트를 발생시킨 컨트랙트 (Pool 이벤트는 pool 주소)
    block_number: int
    log_index: int
    timestamp: int
    transaction_hash: str
    params: dict[str, Any]

    def __post_init__(self) -> None:
        # Entity id가 주소로 만들어지므로 대소문자 하나로 통일
        self.address = self.address.lower()

    @property
    def position(self) -> EventPosition:
        """이벤트 순서 위치"""
        return EventPosition(self.block_number, self.log_index)

    @property
    def event_id(self) -> str:
        """감사 로그용 이벤트 ID"""
        return f"{self.name}-{self.transaction_hash}-{self.log_index}"

    def int_param(self, key: str) -> int:
        """정수 파라미터"""
        return int(self.params[key])

    def str_param(self, key: str) -> str:
        """주소/문자열 파라미터 (주소는 소문자로 정규화)"""
        return str(self.params[key]).lower()

    def bool_param(self, key: str) -> bool:
        """불리언 파라미터 ("true"/"false" 문자열 허용)"""
        value = self.params[key]
        if isinstance(value, str):
            return value.lower() == "true"
        return bool(value)

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환 (직렬화용)"""
        return {
            "name": self.name,
            "address": self.address,
            "block_number": self.block_number,
            "log_index": self.log_index,
            "timestamp": self.timestamp,
            "transaction_hash": self.transaction_hash,
            "params": self.params,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ProtocolEvent":
        """딕셔너리에서 생성 (역직렬화용)"""
        return ProtocolEvent(
            name=data["name"],
            address=str(data["address"]),
            block_number=int(data["block_number"]),
            log_index=int(data["log_index"]),
            timestamp=int(data["timestamp"]),
            transaction_hash=data.get("transaction_hash", ""),
            params=data.get("params", {}),
        )


class EventTypes:
    """Event Type 상수"""

    # CFA (Constant Flow Agreement)
    FLOW_UPDATED: str = "FlowUpdated"

    # GDA (General Distribution Agreement) / Pool
    POOL_CREATED: str = "PoolCreated"
    POOL_CONNECTION_UPDATED: str = "PoolConnectionUpdated"
    FLOW_DISTRIBUTION_UPDATED: str = "FlowDistributionUpdated"
    INSTANT_DISTRIBUTION_UPDATED: str = "InstantDistributionUpdated"
    MEMBER_UNITS_UPDATED: str = "MemberUnitsUpdated"
    DISTRIBUTION_CLAIMED: str = "DistributionClaimed"

    # IDA (Instant Distribution Agreement)
    INDEX_CREATED: str = "IndexCreated"
    INDEX_UPDATED: str = "IndexUpdated"
    SUBSCRIPTION_APPROVED: str = "SubscriptionApproved"
    SUBSCRIPTION_REVOKED: str = "SubscriptionRevoked"
    SUBSCRIPTION_UNITS_UPDATED: str = "SubscriptionUnitsUpdated"
    SUBSCRIPTION_DISTRIBUTION_CLAIMED: str = "SubscriptionDistributionClaimed"

    @classmethod
    def all_types(cls) -> list[str]:
        """모든 이벤트 타입 목록 반환"""
        return [
            value
            for name, value in vars(cls).items()
            if not name.startswith("_") and isinstance(value, str) and name.isupper()
        ]

    @classmethod
    def is_valid_type(cls, event_type: str) -> bool:
        """유효한 이벤트 타입인지 확인"""
        return event_type in cls.all_types()
