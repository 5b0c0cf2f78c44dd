"""
Subgraph GraphQL 클라이언트

인덱싱된 Ledger(Subgraph)에 GraphQL 쿼리 전송.
모든 실패는 원본 쿼리/변수를 담은 SubgraphQueryError로 변환 (재시도 없음).
"""

import logging
from typing import Any

import httpx

from adapters.subgraph.queries import GET_META
from core.errors import SubgraphQueryError

logger = logging.getLogger(__name__)


class SubgraphClient:
    """Subgraph GraphQL 클라이언트

    Args:
        endpoint: Subgraph HTTP 엔드포인트
        timeout: HTTP 요청 타임아웃 (초)

    사용 예시:
    ```python
    client = SubgraphClient("https://.../subgraphs/name/protocol-matic")
    block_number = await client.get_indexed_block_number()
    data = await client.query(GET_CURRENT_STREAMS, {"blockNumber": block_number, ...})
    await client.close()
    ```
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = 30.0,
    ):
        self.endpoint = endpoint
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """HTTP 클라이언트 반환 (lazy initialization)"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """HTTP 클라이언트 종료"""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

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
            응답의 data 필드

        Raises:
            SubgraphQueryError: 전송/HTTP/GraphQL 에러
        """
        client = await self._get_client()
        payload: dict[str, Any] = {"query": query}
        if variables is not None:
            payload["variables"] = variables

        try:
            response = await client.post(self.endpoint, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Subgraph HTTP error: {e.response.status_code}",
                extra={"endpoint": self.endpoint, "variables": variables},
            )
            raise SubgraphQueryError(query, variables, str(e)) from e
        except httpx.RequestError as e:
            logger.error(
                f"Subgraph request error: {e}",
                extra={"endpoint": self.endpoint, "variables": variables},
            )
            raise SubgraphQueryError(query, variables, str(e)) from e
        except ValueError as e:
            raise SubgraphQueryError(query, variables, f"invalid JSON response: {e}") from e

        errors = body.get("errors")
        if errors:
            message = "; ".join(str(err.get("message", err)) for err in errors)
            logger.error(
                f"Subgraph GraphQL error: {message}",
                extra={"endpoint": self.endpoint, "variables": variables},
            )
            raise SubgraphQueryError(query, variables, message)

        data = body.get("data")
        if data is None:
            raise SubgraphQueryError(query, variables, "response has no data")
        return data

    async def get_indexed_block_number(self) -> int:
        """가장 최근 인덱싱된 블록 번호 (_meta.block.number)"""
        data = await self.query(GET_META)
        try:
            return int(data["_meta"]["block"]["number"])
        except (KeyError, TypeError, ValueError) as e:
            raise SubgraphQueryError(GET_META, None, f"malformed _meta response: {data}") from e

    async def __aenter__(self) -> "SubgraphClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
