"""
어댑터 레이어

외부 서비스(Subgraph, 체인 RPC, DB)와의 연동을 담당.
Protocol 기반 인터페이스로 Mock 교체 가능.
"""

from adapters.interfaces import (
    IChainReader,
    ISubgraphClient,
)
from adapters.models import (
    FlowState,
    IndexState,
    SubscriptionState,
)

__all__ = [
    # Interfaces
    "IChainReader",
    "ISubgraphClient",
    # Models
    "FlowState",
    "IndexState",
    "SubscriptionState",
]
