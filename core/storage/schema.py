"""
Ledger DB 스키마

테이블 목록:
- ledger_entity: 파생 Ledger Entity (kind + id 기준 최신 상태)
- event_log: 처리한 프로토콜 이벤트 감사 로그 (append-only)
- snapshot_log: ATS / TokenStatistic 이벤트 시점 스냅샷 (append-only)
- checkpoint_store: 마지막으로 적용한 이벤트 위치와 timestamp
"""

import logging

from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


LEDGER_ENTITY_DDL = """
    CREATE TABLE IF NOT EXISTS ledger_entity (
        kind             TEXT NOT NULL,
        entity_id        TEXT NOT NULL,
        payload_json     TEXT NOT NULL,
        updated_at_block INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (kind, entity_id)
    )
"""

EVENT_LOG_DDL = """
    CREATE TABLE IF NOT EXISTS event_log (
        seq              INTEGER PRIMARY KEY AUTOINCREMENT,
        event_id         TEXT NOT NULL UNIQUE,
        name             TEXT NOT NULL,
        address          TEXT NOT NULL,
        block_number     INTEGER NOT NULL,
        log_index        INTEGER NOT NULL,
        timestamp        INTEGER NOT NULL,
        transaction_hash TEXT NOT NULL,
        addresses_json   TEXT NOT NULL,
        payload_json     TEXT NOT NULL
    )
"""

SNAPSHOT_LOG_DDL = """
    CREATE TABLE IF NOT EXISTS snapshot_log (
        seq              INTEGER PRIMARY KEY AUTOINCREMENT,
        kind             TEXT NOT NULL,
        entity_id        TEXT NOT NULL,
        event_id         TEXT NOT NULL,
        event_name       TEXT NOT NULL,
        block_number     INTEGER NOT NULL,
        log_index        INTEGER NOT NULL,
        timestamp        INTEGER NOT NULL,
        payload_json     TEXT NOT NULL
    )
"""

CHECKPOINT_DDL = """
    CREATE TABLE IF NOT EXISTS checkpoint_store (
        checkpoint_type  TEXT PRIMARY KEY,
        block_number     INTEGER NOT NULL,
        log_index        INTEGER NOT NULL,
        event_timestamp  INTEGER NOT NULL DEFAULT 0,
        updated_at       TEXT NOT NULL
    )
"""

INDEX_DDL = [
    "CREATE INDEX IF NOT EXISTS idx_ledger_entity_kind ON ledger_entity (kind)",
    "CREATE INDEX IF NOT EXISTS idx_event_log_position ON event_log (block_number, log_index)",
    "CREATE INDEX IF NOT EXISTS idx_snapshot_log_entity ON snapshot_log (kind, entity_id)",
]

# 버전별 마이그레이션 (대상 버전 → 실행할 DDL)
MIGRATIONS: dict[int, list[str]] = {
    2: [
        "ALTER TABLE checkpoint_store ADD COLUMN event_timestamp INTEGER NOT NULL DEFAULT 0",
    ],
}


SCHEMA_VERSION = 2


async def init_schema(adapter: SQLiteAdapter) -> None:
    """스키마 초기화 (테이블 생성, 이미 있으면 무시)

    기존 DB의 버전이 낮으면 MIGRATIONS를 순서대로 적용.

    Args:
        adapter: 연결된 SQLiteAdapter

    Raises:
        RuntimeError: DB의 스키마 버전이 지원 버전보다 높음
    """
    version = await adapter.get_user_version()
    if version > SCHEMA_VERSION:
        raise RuntimeError(
            f"Ledger DB schema version {version} is newer than supported {SCHEMA_VERSION}"
        )

    async with adapter.transaction():
        # 새 DB(version 0)는 최신 DDL로 생성되므로 마이그레이션 불필요
        if version > 0:
            for target in range(version + 1, SCHEMA_VERSION + 1):
                for ddl in MIGRATIONS.get(target, []):
                    await adapter.execute(ddl)
                logger.info(f"Ledger DB schema migrated to version {target}")

        for ddl in (LEDGER_ENTITY_DDL, EVENT_LOG_DDL, SNAPSHOT_LOG_DDL, CHECKPOINT_DDL):
            await adapter.execute(ddl)

        for ddl in INDEX_DDL:
            await adapter.execute(ddl)

        await adapter.set_user_version(SCHEMA_VERSION)
