"""
LedgerStore - 파생 Ledger Entity 저장소

Pool, PoolMember, AccountTokenSnapshot, TokenStatistic, Stream,
StreamRevision, Index, Subscription 레코드를 (kind, id) 기준으로 보관.
get-or-init 으로 조회/생성하고, 핸들러가 변경한 뒤 save로 저장.

트랜잭션은 열지 않음 (이벤트 단위 트랜잭션은 Projector가 관리).
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, TypeVar

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.domain.entities import (
    AccountTokenSnapshot,
    Index,
    LedgerEntity,
    Pool,
    PoolMember,
    Stream,
    StreamRevision,
    Subscription,
    TokenStatistic,
)
from core.domain.events import ProtocolEvent
from core.types import EntityKind, EventPosition

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=LedgerEntity)


class LedgerStore:
    """Ledger Entity 저장소

    Args:
        db: SQLiteAdapter 인스턴스 (init_schema 완료 상태)

    사용 예시:
    ```python
    store = LedgerStore(db)
    pool = await store.get_or_init_pool(event.address, token, event)
    pool.total_units += 10
    await store.save(pool, event)
    ```
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    # -------------------------------------------------------------------------
    # 기본 조회/저장
    # -------------------------------------------------------------------------

    async def get(self, entity_cls: type[E], entity_id: str) -> E | None:
        """(kind, id)로 Entity 조회"""
        row = await self.db.fetchone(
            "SELECT payload_json FROM ledger_entity WHERE kind = ? AND entity_id = ?",
            (entity_cls.KIND.value, entity_id),
        )
        if row is None:
            return None
        return entity_cls.from_dict(json.loads(row[0]))

    async def save(self, entity: LedgerEntity, event: ProtocolEvent | None = None) -> None:
        """Entity 저장 (UPSERT)"""
        block_number = event.block_number if event else 0
        await self.db.execute(
            """
            INSERT INTO ledger_entity (kind, entity_id, payload_json, updated_at_block)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(kind, entity_id)
            DO UPDATE SET
                payload_json = excluded.payload_json,
                updated_at_block = excluded.updated_at_block
            """,
            (
                entity.KIND.value,
                entity.id,
                json.dumps(entity.to_dict(), ensure_ascii=False),
                block_number,
            ),
        )

    async def list_all(self, entity_cls: type[E]) -> list[E]:
        """특정 kind의 모든 Entity 조회 (id 순)"""
        rows = await self.db.fetchall(
            "SELECT payload_json FROM ledger_entity WHERE kind = ? ORDER BY entity_id",
            (entity_cls.KIND.value,),
        )
        return [entity_cls.from_dict(json.loads(row[0])) for row in rows]

    async def count(self, kind: EntityKind) -> int:
        """특정 kind의 Entity 수"""
        row = await self.db.fetchone(
            "SELECT COUNT(*) FROM ledger_entity WHERE kind = ?",
            (kind.value,),
        )
        return row[0] if row else 0

    async def list_subscriptions_for_index(self, index_id: str) -> list[Subscription]:
        """Index에 속한 Subscription 목록"""
        rows = await self.db.fetchall(
            """
            SELECT payload_json FROM ledger_entity
            WHERE kind = ? AND json_extract(payload_json, '$.index') = ?
            ORDER BY entity_id
            """,
            (EntityKind.SUBSCRIPTION.value, index_id),
        )
        return [Subscription.from_dict(json.loads(row[0])) for row in rows]

    # -------------------------------------------------------------------------
    # get-or-init
    # -------------------------------------------------------------------------

    async def get_or_init_pool(self, pool_id: str, token: str, event: ProtocolEvent) -> Pool:
        """Pool 조회, 없으면 이벤트 시점으로 생성"""
        pool = await self.get(Pool, pool_id)
        if pool is None:
            pool = Pool(
                id=pool_id,
                token=token,
                created_at_timestamp=event.timestamp,
                created_at_block_number=event.block_number,
                updated_at_timestamp=event.timestamp,
                updated_at_block_number=event.block_number,
            )
        return pool

    async def get_pool_for_member(self, member: PoolMember) -> Pool | None:
        """PoolMember가 참조하는 Pool 조회"""
        return await self.get(Pool, member.pool_id)

    async def get_or_init_pool_member(
        self,
        pool_id: str,
        account: str,
        event: ProtocolEvent,
    ) -> PoolMember:
        """PoolMember 조회, 없으면 units 0으로 생성"""
        member_id = PoolMember.make_id(pool_id, account)
        member = await self.get(PoolMember, member_id)
        if member is None:
            member = PoolMember(
                id=member_id,
                pool_id=pool_id,
                account=account,
                created_at_timestamp=event.timestamp,
                created_at_block_number=event.block_number,
                updated_at_timestamp=event.timestamp,
                updated_at_block_number=event.block_number,
            )
        return member

    async def get_or_init_account_token_snapshot(
        self,
        account: str,
        token: str,
        event: ProtocolEvent,
    ) -> AccountTokenSnapshot:
        """ATS 조회, 없으면 생성"""
        ats_id = AccountTokenSnapshot.make_id(account, token)
        ats = await self.get(AccountTokenSnapshot, ats_id)
        if ats is None:
            ats = AccountTokenSnapshot(
                id=ats_id,
                account=account,
                token=token,
                created_at_timestamp=event.timestamp,
                updated_at_timestamp=event.timestamp,
                updated_at_block_number=event.block_number,
            )
        return ats

    async def get_or_init_token_statistic(self, token: str, event: ProtocolEvent) -> TokenStatistic:
        """TokenStatistic 조회, 없으면 생성"""
        stats = await self.get(TokenStatistic, token)
        if stats is None:
            stats = TokenStatistic(
                id=token,
                updated_at_timestamp=event.timestamp,
                updated_at_block_number=event.block_number,
            )
        return stats

    async def get_or_init_stream_revision(
        self,
        sender: str,
        receiver: str,
        token: str,
    ) -> StreamRevision:
        """StreamRevision 조회, 없으면 revision 0으로 생성"""
        revision_id = StreamRevision.make_id(sender, receiver, token)
        revision = await self.get(StreamRevision, revision_id)
        if revision is None:
            revision = StreamRevision(id=revision_id)
        return revision

    async def get_or_init_stream(
        self,
        revision: StreamRevision,
        sender: str,
        receiver: str,
        token: str,
        event: ProtocolEvent,
    ) -> Stream:
        """현재 리비전의 Stream 조회, 없으면 생성"""
        stream_id = Stream.make_id(sender, receiver, token, revision.revision_index)
        stream = await self.get(Stream, stream_id)
        if stream is None:
            stream = Stream(
                id=stream_id,
                token=token,
                sender=sender,
                receiver=receiver,
                created_at_timestamp=event.timestamp,
                created_at_block_number=event.block_number,
                updated_at_timestamp=event.timestamp,
                updated_at_block_number=event.block_number,
            )
        return stream

    async def get_or_init_index(
        self,
        publisher: str,
        token: str,
        index_id: int,
        event: ProtocolEvent,
    ) -> Index:
        """Index 조회, 없으면 생성"""
        entity_id = Index.make_id(publisher, token, index_id)
        index = await self.get(Index, entity_id)
        if index is None:
            index = Index(
                id=entity_id,
                token=token,
                publisher=publisher,
                index_id=index_id,
                created_at_timestamp=event.timestamp,
                created_at_block_number=event.block_number,
                updated_at_timestamp=event.timestamp,
                updated_at_block_number=event.block_number,
            )
        return index

    async def get_or_init_subscription(
        self,
        subscriber: str,
        index: Index,
        event: ProtocolEvent,
    ) -> Subscription:
        """Subscription 조회, 없으면 현재 index_value 기준으로 생성"""
        entity_id = Subscription.make_id(subscriber, index.publisher, index.token, index.index_id)
        subscription = await self.get(Subscription, entity_id)
        if subscription is None:
            subscription = Subscription(
                id=entity_id,
                index=index.id,
                subscriber=subscriber,
                index_value_until_updated_at=index.index_value,
                created_at_timestamp=event.timestamp,
                created_at_block_number=event.block_number,
                updated_at_timestamp=event.timestamp,
                updated_at_block_number=event.block_number,
            )
        return subscription

    # -------------------------------------------------------------------------
    # 감사 로그
    # -------------------------------------------------------------------------

    async def append_event_log(
        self,
        event: ProtocolEvent,
        addresses: list[str],
        payload: dict[str, Any],
    ) -> None:
        """처리한 이벤트 감사 로그 기록 (event_id 중복 시 무시)"""
        await self.db.execute(
            """
            INSERT OR IGNORE INTO event_log (
                event_id, name, address, block_number, log_index,
                timestamp, transaction_hash, addresses_json, payload_json
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.event_id,
                event.name,
                event.address,
                event.block_number,
                event.log_index,
                event.timestamp,
                event.transaction_hash,
                json.dumps(addresses),
                json.dumps(payload, ensure_ascii=False),
            ),
        )

    async def append_snapshot_log(self, entity: LedgerEntity, event: ProtocolEvent) -> None:
        """ATS / TokenStatistic 이벤트 시점 스냅샷 기록"""
        await self.db.execute(
            """
            INSERT INTO snapshot_log (
                kind, entity_id, event_id, event_name,
                block_number, log_index, timestamp, payload_json
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entity.KIND.value,
                entity.id,
                event.event_id,
                event.name,
                event.block_number,
                event.log_index,
                event.timestamp,
                json.dumps(entity.to_dict(), ensure_ascii=False),
            ),
        )

    async def get_event_log(self, name: str | None = None) -> list[dict[str, Any]]:
        """감사 로그 조회 (적용 순서)"""
        sql = """
            SELECT event_id, name, block_number, log_index, timestamp, addresses_json, payload_json
            FROM event_log
        """
        params: tuple[Any, ...] = ()
        if name is not None:
            sql += " WHERE name = ?"
            params = (name,)
        sql += " ORDER BY block_number, log_index"

        rows = await self.db.fetchall(sql, params)
        return [
            {
                "event_id": row[0],
                "name": row[1],
                "block_number": row[2],
                "log_index": row[3],
                "timestamp": row[4],
                "addresses": json.loads(row[5]),
                "payload": json.loads(row[6]),
            }
            for row in rows
        ]

    # -------------------------------------------------------------------------
    # 체크포인트
    # -------------------------------------------------------------------------

    async def get_checkpoint(self, name: str) -> EventPosition:
        """마지막으로 적용한 이벤트 위치 (없으면 genesis)"""
        row = await self.db.fetchone(
            "SELECT block_number, log_index FROM checkpoint_store WHERE checkpoint_type = ?",
            (name,),
        )
        if row is None:
            return EventPosition.genesis()
        return EventPosition(block_number=row[0], log_index=row[1])

    async def get_checkpoint_timestamp(self, name: str) -> int:
        """마지막으로 적용한 이벤트의 block timestamp (없으면 0)"""
        row = await self.db.fetchone(
            "SELECT event_timestamp FROM checkpoint_store WHERE checkpoint_type = ?",
            (name,),
        )
        return row[0] if row else 0

    async def set_checkpoint(self, name: str, position: EventPosition, timestamp: int = 0) -> None:
        """체크포인트 설정 (이벤트 위치 + block timestamp)"""
        now = datetime.now(timezone.utc).isoformat()
        await self.db.execute(
            """
            INSERT INTO checkpoint_store
                (checkpoint_type, block_number, log_index, event_timestamp, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(checkpoint_type)
            DO UPDATE SET
                block_number = excluded.block_number,
                log_index = excluded.log_index,
                event_timestamp = excluded.event_timestamp,
                updated_at = excluded.updated_at
            """,
            (name, position.block_number, position.log_index, timestamp, now),
        )
