"""
온체인 에이전트 조회 클라이언트

CFA / IDA 컨트랙트 view 함수를 특정 블록 기준으로 호출.
검증의 기준(authoritative) 값 제공.

모든 실패는 메서드명과 인자를 담은 ChainCallError로 변환 (재시도 없음).
"""

import logging
from typing import Any

from web3 import AsyncWeb3, Web3

from adapters.chain.abi import CFA_ABI, IDA_ABI
from adapters.models import FlowState, IndexState, SubscriptionState
from core.constants import NetworkInfo
from core.errors import ChainCallError

logger = logging.getLogger(__name__)


class ChainReader:
    """에이전트 컨트랙트 조회 클라이언트

    주소는 호출 전에 checksum 형식으로 변환.

    Args:
        rpc_url: JSON-RPC 엔드포인트

    사용 예시:
    ```python
    reader = ChainReader(rpc_url)
    chain_id = await reader.get_chain_id()
    reader.use_network(get_network_info(chain_id))
    net_flow = await reader.get_net_flow(token, account, block_number)
    ```
    """

    def __init__(self, rpc_url: str):
        self.rpc_url = rpc_url
        self.web3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
        self.network: NetworkInfo | None = None
        self._cfa: Any = None
        self._ida: Any = None

    def use_network(self, network: NetworkInfo) -> None:
        """네트워크의 CFA / IDA 컨트랙트 바인딩"""
        self.network = network
        self._cfa = self.web3.eth.contract(
            address=Web3.to_checksum_address(network.cfa_address),
            abi=CFA_ABI,
        )
        self._ida = self.web3.eth.contract(
            address=Web3.to_checksum_address(network.ida_address),
            abi=IDA_ABI,
        )

        logger.info(
            f"Initialized chain reader on {network.display_name}: "
            f"cfa={self._cfa.address}, ida={self._ida.address}"
        )

    @property
    def cfa(self) -> Any:
        if self._cfa is None:
            raise RuntimeError("use_network() must be called before contract reads")
        return self._cfa

    @property
    def ida(self) -> Any:
        if self._ida is None:
            raise RuntimeError("use_network() must be called before contract reads")
        return self._ida

    @staticmethod
    def checksum_address(address: str) -> str:
        """주소를 checksum 형식으로 변환"""
        return Web3.to_checksum_address(address)

    async def _call(
        self,
        contract: Any,
        function_name: str,
        args: tuple[Any, ...],
        block_number: int | None,
    ) -> Any:
        """view 함수 호출

        Raises:
            ChainCallError: 호출 실패
        """
        block_identifier = block_number if block_number is not None else "latest"
        try:
            function = getattr(contract.functions, function_name)
            return await function(*args).call(block_identifier=block_identifier)
        except Exception as e:
            logger.error(
                f"Error calling {function_name}: {e}",
                extra={"args": args, "block": block_identifier},
            )
            raise ChainCallError(function_name, args, str(e)) from e

    async def get_chain_id(self) -> int:
        """연결된 네트워크의 chain id"""
        try:
            return await self.web3.eth.chain_id
        except Exception as e:
            raise ChainCallError("eth_chainId", (), str(e)) from e

    async def get_net_flow(self, token: str, account: str, block_number: int | None = None) -> int:
        """계정의 CFA net flow rate"""
        args = (self.checksum_address(token), self.checksum_address(account))
        return int(await self._call(self.cfa, "getNetFlow", args, block_number))

    async def get_flow(
        self,
        token: str,
        sender: str,
        receiver: str,
        block_number: int | None = None,
    ) -> FlowState:
        """스트림 상태 (updatedAtTimestamp, flowRate)"""
        args = (
            self.checksum_address(token),
            self.checksum_address(sender),
            self.checksum_address(receiver),
        )
        timestamp, flow_rate, _deposit, _owed_deposit = await self._call(
            self.cfa, "getFlow", args, block_number
        )
        return FlowState(updated_at_timestamp=int(timestamp), flow_rate=int(flow_rate))

    async def get_index(
        self,
        token: str,
        publisher: str,
        index_id: int,
        block_number: int | None = None,
    ) -> IndexState:
        """IDA Index 상태"""
        args = (self.checksum_address(token), self.checksum_address(publisher), int(index_id))
        exist, index_value, approved, pending = await self._call(
            self.ida, "getIndex", args, block_number
        )
        return IndexState(
            exist=bool(exist),
            index_value=int(index_value),
            total_units_approved=int(approved),
            total_units_pending=int(pending),
        )

    async def get_subscription(
        self,
        token: str,
        publisher: str,
        index_id: int,
        subscriber: str,
        block_number: int | None = None,
    ) -> SubscriptionState:
        """IDA Subscription 상태"""
        args = (
            self.checksum_address(token),
            self.checksum_address(publisher),
            int(index_id),
            self.checksum_address(subscriber),
        )
        exist, approved, units, pending = await self._call(
            self.ida, "getSubscription", args, block_number
        )
        return SubscriptionState(
            exist=bool(exist),
            approved=bool(approved),
            units=int(units),
            pending_distribution=int(pending),
        )
