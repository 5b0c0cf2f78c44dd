"""
pytest 공통 fixture 정의

임시 Ledger DB, LedgerStore, 프로토콜 이벤트 생성 헬퍼
"""

import itertools
from pathlib import Path
from typing import Any, AsyncGenerator, Callable

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.domain.events import ProtocolEvent
from core.storage.ledger_store import LedgerStore
from core.storage.schema import init_schema


EventFactory = Callable[..., ProtocolEvent]


@pytest_asyncio.fixture
async def db(tmp_path: Path) -> AsyncGenerator[SQLiteAdapter, None]:
    """스키마가 초기화된 임시 Ledger DB"""
    adapter = SQLiteAdapter(tmp_path / "ledger.db")
    await adapter.connect()
    await init_schema(adapter)
    yield adapter
    await adapter.close()


@pytest_asyncio.fixture
async def store(db: SQLiteAdapter) -> LedgerStore:
    """LedgerStore"""
    return LedgerStore(db)


@pytest.fixture
def make_event() -> EventFactory:
    """순서가 증가하는 ProtocolEvent 생성기

    block_number를 주지 않으면 호출할 때마다 다음 블록.
    timestamp 기본값은 block_number * 10.
    """
    blocks = itertools.count(1)

    def _make(
        name: str,
        params: dict[str, Any],
        address: str = "",
        block_number: int | None = None,
        log_index: int = 0,
        timestamp: int | None = None,
    ) -> ProtocolEvent:
        if block_number is None:
            block_number = next(blocks)
        if timestamp is None:
            timestamp = block_number * 10
        return ProtocolEvent(
            name=name,
            address=address,
            block_number=block_number,
            log_index=log_index,
            timestamp=timestamp,
            transaction_hash=f"0xtx{block_number:06d}{log_index:03d}",
            params=params,
        )

    return _make
