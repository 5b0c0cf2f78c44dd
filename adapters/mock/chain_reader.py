"""
Mock 온체인 조회 클라이언트

테스트용 메모리 내 에이전트 상태.
IChainReader Protocol 준수.
"""

from dataclasses import dataclass, field

from adapters.models import FlowState, IndexState, SubscriptionState
from core.constants import NetworkInfo
from core.errors import ChainCallError


@dataclass
class MockChainState:
    """Mock 상태 (메모리 내 저장, 주소는 소문자 키)"""

    chain_id: int = 137

    # (token, account) -> net flow rate
    net_flows: dict[tuple[str, str], int] = field(default_factory=dict)

    # (token, sender, receiver) -> FlowState
    flows: dict[tuple[str, str, str], FlowState] = field(default_factory=dict)

    # (token, publisher, index_id) -> IndexState
    indexes: dict[tuple[str, str, int], IndexState] = field(default_factory=dict)

    # (token, publisher, index_id, subscriber) -> SubscriptionState
    subscriptions: dict[tuple[str, str, int, str], SubscriptionState] = field(default_factory=dict)

    # 호출 시 실패시킬 키 (메서드명, 인자 튜플)
    failing_calls: set[tuple[str, tuple]] = field(default_factory=set)


class MockChainReader:
    """Mock 온체인 조회 클라이언트

    등록되지 않은 Flow는 (0, 0), Index/Subscription은 exist=False 반환.
    조회한 block_number는 block_numbers에 기록.

    사용 예시:
    ```python
    reader = MockChainReader()
    reader.set_net_flow("0xtoken", "0xalice", -100)
    reader.set_fail("getNetFlow", ("0xtoken", "0xbob"))

    assert await reader.get_net_flow("0xtoken", "0xalice", 100) == -100
    ```
    """

    def __init__(self, state: MockChainState | None = None):
        self.state = state or MockChainState()
        self.network: NetworkInfo | None = None
        self.call_count = 0
        self.block_numbers: list[int | None] = []

    # -------------------------------------------------------------------------
    # 상태 조작 메서드 (테스트용)
    # -------------------------------------------------------------------------

    def set_net_flow(self, token: str, account: str, flow_rate: int) -> None:
        self.state.net_flows[(token.lower(), account.lower())] = flow_rate

    def set_flow(self, token: str, sender: str, receiver: str, updated_at: int, flow_rate: int) -> None:
        self.state.flows[(token.lower(), sender.lower(), receiver.lower())] = FlowState(
            updated_at_timestamp=updated_at,
            flow_rate=flow_rate,
        )

    def set_index(
        self,
        token: str,
        publisher: str,
        index_id: int,
        index_value: int,
        total_units_approved: int,
        total_units_pending: int,
        exist: bool = True,
    ) -> None:
        self.state.indexes[(token.lower(), publisher.lower(), index_id)] = IndexState(
            exist=exist,
            index_value=index_value,
            total_units_approved=total_units_approved,
            total_units_pending=total_units_pending,
        )

    def set_subscription(
        self,
        token: str,
        publisher: str,
        index_id: int,
        subscriber: str,
        approved: bool,
        units: int,
        pending_distribution: int,
        exist: bool = True,
    ) -> None:
        key = (token.lower(), publisher.lower(), index_id, subscriber.lower())
        self.state.subscriptions[key] = SubscriptionState(
            exist=exist,
            approved=approved,
            units=units,
            pending_distribution=pending_distribution,
        )

    def set_fail(self, method: str, args: tuple) -> None:
        """해당 메서드/인자 조합 호출 시 ChainCallError 발생"""
        self.state.failing_calls.add((method, tuple(a.lower() if isinstance(a, str) else a for a in args)))

    def _record(self, method: str, args: tuple, block_number: int | None) -> None:
        self.call_count += 1
        self.block_numbers.append(block_number)
        if (method, args) in self.state.failing_calls:
            raise ChainCallError(method, args, "mock failure")

    # -------------------------------------------------------------------------
    # IChainReader
    # -------------------------------------------------------------------------

    async def get_chain_id(self) -> int:
        return self.state.chain_id

    def use_network(self, network: NetworkInfo) -> None:
        self.network = network

    async def get_net_flow(self, token: str, account: str, block_number: int | None = None) -> int:
        key = (token.lower(), account.lower())
        self._record("getNetFlow", key, block_number)
        return self.state.net_flows.get(key, 0)

    async def get_flow(
        self,
        token: str,
        sender: str,
        receiver: str,
        block_number: int | None = None,
    ) -> FlowState:
        key = (token.lower(), sender.lower(), receiver.lower())
        self._record("getFlow", key, block_number)
        return self.state.flows.get(key, FlowState(updated_at_timestamp=0, flow_rate=0))

    async def get_index(
        self,
        token: str,
        publisher: str,
        index_id: int,
        block_number: int | None = None,
    ) -> IndexState:
        key = (token.lower(), publisher.lower(), index_id)
        self._record("getIndex", key, block_number)
        return self.state.indexes.get(key, IndexState(False, 0, 0, 0))

    async def get_subscription(
        self,
        token: str,
        publisher: str,
        index_id: int,
        subscriber: str,
        block_number: int | None = None,
    ) -> SubscriptionState:
        key = (token.lower(), publisher.lower(), index_id, subscriber.lower())
        self._record("getSubscription", key, block_number)
        return self.state.subscriptions.get(key, SubscriptionState(False, False, 0, 0))
