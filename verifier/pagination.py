"""
페이지 조회 (Paginated Fetch Layer)

한 블록에 고정된 스냅샷을 createdAtTimestamp 커서로 끝까지 조회.

커서는 createdAtTimestamp_gte 이므로 페이지 경계의 레코드는
다음 페이지에 다시 포함될 수 있음. 중복 제거는 호출자 책임
(core.utils.dedup.unique_by).

가득 찬 페이지가 모두 같은 timestamp면 커서가 전진하지 못하므로
그 timestamp 안은 id 순 쿼리(TIEBREAK_QUERIES)로 끝까지 넘긴 뒤
다음 timestamp부터 이어서 조회.
"""

import logging
from typing import Any, TypeVar

from pydantic import BaseModel

from adapters.interfaces import ISubgraphClient
from adapters.subgraph.queries import TIEBREAK_QUERIES
from core.errors import PaginationStalledError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


async def fetch_all(
    client: ISubgraphClient,
    query: str,
    block_number: int,
    page_size: int,
    created_at: int = 0,
    tie_query: str | None = None,
) -> list[dict[str, Any]]:
    """모든 페이지 조회

    페이지 길이가 page_size보다 작으면 종료.

    Args:
        client: Subgraph 클라이언트
        query: 페이지 쿼리 (변수: blockNumber, first, createdAt)
        block_number: 스냅샷 블록 (모든 페이지 동일)
        page_size: 페이지 크기
        created_at: 시작 커서
        tie_query: 같은 timestamp 안에서 id로 넘기는 쿼리
            (None이면 TIEBREAK_QUERIES에서 찾음)

    Returns:
        조회한 레코드 (경계 중복 포함)

    Raises:
        SubgraphQueryError: 쿼리 실패
        PaginationStalledError: 가득 찬 페이지가 커서를 전진시키지 못하고 tie_query도 없음
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive: {page_size}")

    tie_query = tie_query or TIEBREAK_QUERIES.get(query)
    cursor = created_at
    results: list[dict[str, Any]] = []
    pages = 0

    while True:
        data = await client.query(
            query,
            {"blockNumber": block_number, "first": page_size, "createdAt": cursor},
        )
        page = data.get("response") or []
        results.extend(page)
        pages += 1

        if len(page) < page_size:
            break

        next_cursor = int(page[-1]["createdAtTimestamp"])
        if next_cursor > cursor:
            cursor = next_cursor
            continue

        if tie_query is None:
            raise PaginationStalledError(cursor, page_size)

        logger.warning(
            f"More than {page_size} records share createdAt={cursor}, paging by id",
            extra={"block_number": block_number},
        )
        tied, tie_pages = await _fetch_at_timestamp(client, tie_query, block_number, page_size, cursor)
        results.extend(tied)
        pages += tie_pages
        cursor += 1

    logger.debug(
        f"Fetched {len(results)} records in {pages} pages",
        extra={"block_number": block_number, "page_size": page_size},
    )
    return results


async def _fetch_at_timestamp(
    client: ISubgraphClient,
    tie_query: str,
    block_number: int,
    page_size: int,
    timestamp: int,
) -> tuple[list[dict[str, Any]], int]:
    """createdAtTimestamp == timestamp 인 레코드를 id 순으로 모두 조회

    Returns:
        (레코드, 페이지 수)
    """
    last_id = ""
    results: list[dict[str, Any]] = []
    pages = 0

    while True:
        data = await client.query(
            tie_query,
            {
                "blockNumber": block_number,
                "first": page_size,
                "createdAt": timestamp,
                "lastId": last_id,
            },
        )
        page = data.get("response") or []
        results.extend(page)
        pages += 1

        if len(page) < page_size:
            return results, pages
        last_id = page[-1]["id"]


async def fetch_all_records(
    client: ISubgraphClient,
    query: str,
    model: type[M],
    block_number: int,
    page_size: int,
) -> list[M]:
    """모든 페이지 조회 후 Pydantic 모델로 파싱"""
    raw = await fetch_all(client, query, block_number, page_size)
    return [model.model_validate(item) for item in raw]
