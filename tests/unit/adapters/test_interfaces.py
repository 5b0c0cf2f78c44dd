"""
Protocol 인터페이스 테스트

Mock / 실제 구현체가 Protocol을 준수하는지 확인.
"""

import pytest

from adapters.chain.reader import ChainReader
from adapters.interfaces import IChainReader, ISubgraphClient
from adapters.mock.chain_reader import MockChainReader
from adapters.mock.subgraph_client import MockSubgraphClient
from adapters.subgraph.client import SubgraphClient
from core.errors import ChainCallError


class TestISubgraphClient:
    """ISubgraphClient Protocol 테스트"""

    def test_mock_client_implements_protocol(self) -> None:
        assert isinstance(MockSubgraphClient(), ISubgraphClient)

    def test_real_client_implements_protocol(self) -> None:
        assert isinstance(SubgraphClient("https://example.com"), ISubgraphClient)


class TestIChainReader:
    """IChainReader Protocol 테스트"""

    def test_mock_reader_implements_protocol(self) -> None:
        assert isinstance(MockChainReader(), IChainReader)

    def test_real_reader_implements_protocol(self) -> None:
        assert isinstance(ChainReader("http://localhost:8545"), IChainReader)


class TestMockChainReader:
    """MockChainReader 동작"""

    @pytest.mark.asyncio
    async def test_defaults_for_unknown_keys(self) -> None:
        reader = MockChainReader()

        assert await reader.get_net_flow("0xT", "0xA", 1) == 0
        assert (await reader.get_flow("0xT", "0xA", "0xB", 1)).flow_rate == 0
        assert (await reader.get_index("0xT", "0xP", 0, 1)).exist is False
        assert (await reader.get_subscription("0xT", "0xP", 0, "0xS", 1)).exist is False
        assert reader.call_count == 4

    @pytest.mark.asyncio
    async def test_addresses_case_insensitive(self) -> None:
        reader = MockChainReader()
        reader.set_net_flow("0xTOKEN", "0xALICE", -5)

        assert await reader.get_net_flow("0xtoken", "0xalice") == -5
        assert reader.block_numbers == [None]

    @pytest.mark.asyncio
    async def test_set_fail(self) -> None:
        reader = MockChainReader()
        reader.set_fail("getNetFlow", ("0xTOKEN", "0xALICE"))

        with pytest.raises(ChainCallError):
            await reader.get_net_flow("0xtoken", "0xalice", 1)
        assert await reader.get_net_flow("0xtoken", "0xbob", 1) == 0


class TestMockSubgraphClient:
    """MockSubgraphClient 동작"""

    @pytest.mark.asyncio
    async def test_page_filter(self) -> None:
        client = MockSubgraphClient(indexed_block_number=9)
        client.set_records("q", [{"id": str(i), "createdAtTimestamp": str(i)} for i in (3, 1, 2, 4)])

        data = await client.query("q", {"first": 2, "createdAt": 2})

        assert [r["id"] for r in data["response"]] == ["2", "3"]
        assert await client.get_indexed_block_number() == 9

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        client = MockSubgraphClient()

        await client.close()

        assert client.closed is True
