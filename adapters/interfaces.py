"""
어댑터 인터페이스 정의

Protocol 기반으로 정의하여 의존성 주입 및 Mock 교체 가능.
모든 구현체는 이 Protocol을 준수해야 함.
"""

from typing import Any, Protocol, runtime_checkable

from adapters.models import FlowState, IndexState, SubscriptionState
from core.constants import NetworkInfo


@runtime_checkable
class ISubgraphClient(Protocol):
    """인덱싱된 Ledger(Subgraph) 클라이언트 인터페이스

    실패는 SubgraphQueryError로 전파.
    """

    async def query(
        self,
        query: str,
        variables: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """GraphQL 쿼리 실행

        Args:
            query: GraphQL 쿼리 문자열
            variables: 쿼리 변수

        Returns:
            응답의 data 필드 (페이지 쿼리는 {"response": [...]})
        """
        ...

    async def get_indexed_block_number(self) -> int:
        """가장 최근 인덱싱된 블록 번호"""
        ...

    async def close(self) -> None:
        """연결 종료"""
        ...


@runtime_checkable
class IChainReader(Protocol):
    """온체인 에이전트 조회 인터페이스

    block_number가 주어지면 해당 블록 기준으로 조회.
    실패는 ChainCallError로 전파.
    """

    async def get_chain_id(self) -> int:
        """연결된 네트워크의 chain id"""
        ...

    def use_network(self, network: NetworkInfo) -> None:
        """네트워크의 에이전트 컨트랙트 주소 바인딩"""
        ...

    async def get_net_flow(self, token: str, account: str, block_number: int | None = None) -> int:
        """계정의 net flow rate"""
        ...

    async def get_flow(
        self,
        token: str,
        sender: str,
        receiver: str,
        block_number: int | None = None,
    ) -> FlowState:
        """스트림 상태"""
        ...

    async def get_index(
        self,
        token: str,
        publisher: str,
        index_id: int,
        block_number: int | None = None,
    ) -> IndexState:
        """Index 상태"""
        ...

    async def get_subscription(
        self,
        token: str,
        publisher: str,
        index_id: int,
        subscriber: str,
        block_number: int | None = None,
    ) -> SubscriptionState:
        """Subscription 상태"""
        ...
