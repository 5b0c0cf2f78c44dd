"""
Mock Subgraph 클라이언트

테스트용 메모리 내 Subgraph.
ISubgraphClient Protocol 준수.
"""

from dataclasses import dataclass
from typing import Any

from adapters.subgraph.queries import TIEBREAK_QUERIES
from core.errors import SubgraphQueryError


@dataclass
class QueryCall:
    """쿼리 호출 기록"""

    query: str
    variables: dict[str, Any] | None


class MockSubgraphClient:
    """Mock Subgraph 클라이언트

    쿼리 문자열별로 레코드 컬렉션을 등록하면
    createdAtTimestamp_gte / first 조건으로 페이지를 돌려줌.
    lastId 변수가 있으면 (id 순 대체 쿼리) 원래 쿼리의 컬렉션에서
    createdAtTimestamp == createdAt, id > lastId 조건으로 id 순 페이지를 돌려줌.

    사용 예시:
    ```python
    client = MockSubgraphClient(indexed_block_number=100)
    client.set_records(GET_CURRENT_STREAMS, streams)

    data = await client.query(GET_CURRENT_STREAMS, {"blockNumber": 100, "first": 1000, "createdAt": 0})
    assert client.calls[0].variables["first"] == 1000
    ```
    """

    def __init__(self, indexed_block_number: int = 0):
        self.indexed_block_number = indexed_block_number
        self.collections: dict[str, list[dict[str, Any]]] = {}
        self.calls: list[QueryCall] = []
        self.failing_queries: set[str] = set()
        self._tie_to_base = {tie: base for base, tie in TIEBREAK_QUERIES.items()}
        self.closed = False

    # -------------------------------------------------------------------------
    # 상태 조작 메서드 (테스트용)
    # -------------------------------------------------------------------------

    def set_records(self, query: str, records: list[dict[str, Any]]) -> None:
        """쿼리에 대응하는 레코드 컬렉션 설정"""
        self.collections[query] = sorted(records, key=lambda r: int(r["createdAtTimestamp"]))

    def set_fail(self, query: str) -> None:
        """해당 쿼리 호출 시 SubgraphQueryError 발생"""
        self.failing_queries.add(query)

    # -------------------------------------------------------------------------
    # ISubgraphClient
    # -------------------------------------------------------------------------

    async def query(
        self,
        query: str,
        variables: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """페이지 쿼리 흉내"""
        self.calls.append(QueryCall(query=query, variables=dict(variables) if variables else None))

        if query in self.failing_queries:
            raise SubgraphQueryError(query, variables, "mock failure")

        variables = variables or {}
        created_at = int(variables.get("createdAt", 0))
        first = int(variables.get("first", 100))

        if "lastId" in variables:
            base_query = self._tie_to_base.get(query, query)
            last_id = str(variables["lastId"])
            records = sorted(
                (
                    r for r in self.collections.get(base_query, [])
                    if int(r["createdAtTimestamp"]) == created_at and r["id"] > last_id
                ),
                key=lambda r: r["id"],
            )
            return {"response": records[:first]}

        records = [
            r for r in self.collections.get(query, [])
            if int(r["createdAtTimestamp"]) >= created_at
        ]
        return {"response": records[:first]}

    async def get_indexed_block_number(self) -> int:
        return self.indexed_block_number

    async def close(self) -> None:
        self.closed = True
