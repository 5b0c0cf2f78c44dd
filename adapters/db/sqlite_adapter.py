"""
SQLite 어댑터

Ledger DB 연결 관리 (WAL 모드, autocommit 연결).
이벤트 하나의 Entity 변경과 체크포인트를 BEGIN IMMEDIATE 트랜잭션 하나로 묶음.

주의: SQLite alias로 time, count 사용 금지 (예약어)
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

logger = logging.getLogger(__name__)


async def create_connection(db_path: Path | str) -> aiosqlite.Connection:
    """SQLite 연결 생성

    isolation_level=None 으로 열어 sqlite3 모듈의 암묵적 BEGIN을 끄고
    트랜잭션 경계는 SQLiteAdapter.transaction()이 직접 관리.

    Args:
        db_path: DB 파일 경로

    Returns:
        aiosqlite 연결 객체
    """
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(str(db_path), isolation_level=None)
    await conn.execute("PRAGMA journal_mode=WAL")
    await conn.execute("PRAGMA synchronous=NORMAL")
    await conn.execute("PRAGMA busy_timeout=30000")  # 30초 대기

    logger.info("SQLite 연결 생성", extra={"db_path": str(db_path)})
    return conn


class SQLiteAdapter:
    """SQLite 어댑터

    트랜잭션 밖의 execute는 즉시 반영(autocommit).
    transaction() 안에서는 예외 시 블록 전체가 롤백됨.
    중첩 트랜잭션은 허용하지 않음.

    Args:
        db_path: DB 파일 경로

    사용 예시:
    ```python
    async with SQLiteAdapter(db_path) as adapter:
        async with adapter.transaction():
            await adapter.execute("INSERT INTO ...")
            await adapter.execute("UPDATE checkpoint_store ...")
    ```
    """

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self._conn: aiosqlite.Connection | None = None
        self._in_transaction = False

    @property
    def is_connected(self) -> bool:
        """연결 상태 확인"""
        return self._conn is not None

    @property
    def in_transaction(self) -> bool:
        """transaction() 블록 실행 중 여부"""
        return self._in_transaction

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Not connected to database")
        return self._conn

    async def connect(self) -> None:
        """연결 생성"""
        if self._conn is not None:
            return
        self._conn = await create_connection(self.db_path)

    async def close(self) -> None:
        """연결 종료"""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            self._in_transaction = False
            logger.info("SQLite 연결 종료")

    async def execute(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> aiosqlite.Cursor:
        """SQL 실행"""
        conn = self._require_conn()
        if parameters:
            return await conn.execute(sql, parameters)
        return await conn.execute(sql)

    async def fetchone(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> tuple[Any, ...] | None:
        """단일 행 조회"""
        cursor = await self.execute(sql, parameters)
        return await cursor.fetchone()

    async def fetchall(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> list[tuple[Any, ...]]:
        """전체 행 조회"""
        cursor = await self.execute(sql, parameters)
        return list(await cursor.fetchall())

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """트랜잭션 컨텍스트 매니저

        BEGIN IMMEDIATE로 쓰기 잠금을 먼저 잡고
        성공 시 COMMIT, 예외 시 ROLLBACK 후 예외 전파.

        Raises:
            RuntimeError: 연결 없음 또는 중첩 트랜잭션
        """
        conn = self._require_conn()
        if self._in_transaction:
            raise RuntimeError("Nested transactions are not supported")

        await conn.execute("BEGIN IMMEDIATE")
        self._in_transaction = True
        try:
            yield conn
        except BaseException:
            await conn.execute("ROLLBACK")
            raise
        else:
            await conn.execute("COMMIT")
        finally:
            self._in_transaction = False

    # -------------------------------------------------------------------------
    # 스키마 관리
    # -------------------------------------------------------------------------

    async def table_exists(self, table_name: str) -> bool:
        """테이블 존재 여부 확인"""
        result = await self.fetchone(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (table_name,),
        )
        return result is not None

    async def get_user_version(self) -> int:
        """PRAGMA user_version (스키마 버전)"""
        row = await self.fetchone("PRAGMA user_version")
        return int(row[0]) if row else 0

    async def set_user_version(self, version: int) -> None:
        """PRAGMA user_version 설정 (PRAGMA는 파라미터 바인딩 불가)"""
        await self.execute(f"PRAGMA user_version = {int(version)}")

    # -------------------------------------------------------------------------
    # 컨텍스트 매니저
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "SQLiteAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
