"""
ChainReader 테스트

컨트랙트 바인딩, 결과 변환, 에러 변환 (RPC 호출 없이 가짜 컨트랙트 사용)
"""

from typing import Any

import pytest

from adapters.chain.reader import ChainReader
from adapters.models import FlowState
from core.constants import NETWORKS
from core.errors import ChainCallError


TOKEN = "0x00000000000000000000000000000000000000aa"
ALICE = "0x0000000000000000000000000000000000000a11"
BOB = "0x0000000000000000000000000000000000000b0b"


class FakeCall:
    def __init__(self, contract: "FakeContract", name: str, args: tuple):
        self.contract = contract
        self.name = name
        self.args = args

    async def call(self, block_identifier: Any = "latest") -> Any:
        self.contract.calls.append((self.name, self.args, block_identifier))
        result = self.contract.results[self.name]
        if isinstance(result, Exception):
            raise result
        return result


class FakeFunctions:
    def __init__(self, contract: "FakeContract"):
        self._contract = contract

    def __getattr__(self, name: str):
        return lambda *args: FakeCall(self._contract, name, args)


class FakeContract:
    """web3 Contract의 functions.<name>(*args).call() 흉내"""

    def __init__(self, results: dict[str, Any]):
        self.results = results
        self.calls: list[tuple[str, tuple, Any]] = []
        self.functions = FakeFunctions(self)


@pytest.fixture
def reader() -> ChainReader:
    return ChainReader("http://localhost:8545")


class TestUseNetwork:
    """네트워크 바인딩"""

    def test_reads_require_network(self, reader: ChainReader) -> None:
        with pytest.raises(RuntimeError):
            _ = reader.cfa

    def test_binds_agreement_contracts(self, reader: ChainReader) -> None:
        network = NETWORKS[137]

        reader.use_network(network)

        assert reader.network == network
        assert reader.cfa.address == ChainReader.checksum_address(network.cfa_address)
        assert reader.ida.address == ChainReader.checksum_address(network.ida_address)


class TestReads:
    """view 함수 결과 변환"""

    @pytest.mark.asyncio
    async def test_get_net_flow_pinned_to_block(self, reader: ChainReader) -> None:
        cfa = FakeContract({"getNetFlow": -385802469135802})
        reader._cfa = cfa

        assert await reader.get_net_flow(TOKEN, ALICE, 1234) == -385802469135802

        name, args, block = cfa.calls[0]
        assert name == "getNetFlow"
        assert args == (ChainReader.checksum_address(TOKEN), ChainReader.checksum_address(ALICE))
        assert block == 1234

    @pytest.mark.asyncio
    async def test_latest_when_no_block(self, reader: ChainReader) -> None:
        cfa = FakeContract({"getNetFlow": 0})
        reader._cfa = cfa

        await reader.get_net_flow(TOKEN, ALICE)

        assert cfa.calls[0][2] == "latest"

    @pytest.mark.asyncio
    async def test_get_flow(self, reader: ChainReader) -> None:
        reader._cfa = FakeContract({"getFlow": (1700000000, 100, 5, 0)})

        state = await reader.get_flow(TOKEN, ALICE, BOB, 1)

        assert state == FlowState(updated_at_timestamp=1700000000, flow_rate=100)

    @pytest.mark.asyncio
    async def test_get_index_and_subscription(self, reader: ChainReader) -> None:
        reader._ida = FakeContract(
            {
                "getIndex": (True, 10, 6, 4),
                "getSubscription": (True, False, 4, 40),
            }
        )

        index = await reader.get_index(TOKEN, ALICE, 0, 1)
        subscription = await reader.get_subscription(TOKEN, ALICE, 0, BOB, 1)

        assert index.total_units == 10
        assert index.index_value == 10
        assert subscription.approved is False
        assert subscription.pending_distribution == 40

    @pytest.mark.asyncio
    async def test_call_error_wrapped(self, reader: ChainReader) -> None:
        reader._cfa = FakeContract({"getNetFlow": ValueError("execution reverted")})

        with pytest.raises(ChainCallError) as exc_info:
            await reader.get_net_flow(TOKEN, ALICE, 1)

        assert exc_info.value.method == "getNetFlow"
        assert "execution reverted" in exc_info.value.message
