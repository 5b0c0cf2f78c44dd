"""
타입 정의 모듈

Enum, Dataclass 등 핵심 타입 정의
모든 Enum은 str을 상속하여 문자열 직렬화 가능
"""

from dataclasses import dataclass
from enum import Enum


class EntityKind(str, Enum):
    """Ledger Entity 종류"""

    POOL = "POOL"
    POOL_MEMBER = "POOL_MEMBER"
    ACCOUNT_TOKEN_SNAPSHOT = "ACCOUNT_TOKEN_SNAPSHOT"
    TOKEN_STATISTIC = "TOKEN_STATISTIC"
    STREAM = "STREAM"
    STREAM_REVISION = "STREAM_REVISION"
    INDEX = "INDEX"
    SUBSCRIPTION = "SUBSCRIPTION"


@dataclass(frozen=True, order=True)
class EventPosition:
    """이벤트 순서 위치 (불변, 비교 가능)

    (block_number, log_index) 사전식 순서로 이벤트 순서를 정의.
    Projector는 이 값이 엄격하게 증가하는 이벤트만 적용함.
    """

    block_number: int
    log_index: int

    def __str__(self) -> str:
        return f"{self.block_number}:{self.log_index}"

    @classmethod
    def genesis(cls) -> "EventPosition":
        """어떤 이벤트보다도 앞선 위치"""
        return cls(block_number=-1, log_index=-1)
