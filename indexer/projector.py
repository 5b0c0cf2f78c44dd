"""
Ledger Projector

프로토콜 이벤트를 (block_number, log_index) 순서대로 핸들러에 전달하여
파생 Ledger 업데이트. 체크포인트로 마지막 적용 위치와 timestamp 기억.
"""

import logging
from typing import Any, Iterable

from core.domain.events import ProtocolEvent
from core.errors import OutOfOrderEventError
from core.storage.ledger_store import LedgerStore
from core.types import EventPosition
from indexer.handlers.base import ProjectionHandler
from indexer.handlers.flow import FlowProjectionHandler
from indexer.handlers.index import IndexProjectionHandler
from indexer.handlers.pool import PoolProjectionHandler

logger = logging.getLogger(__name__)


class LedgerProjector:
    """Ledger Projector

    이벤트 하나를 하나의 트랜잭션으로 적용 (Entity 변경 + 체크포인트).
    핸들러 예외 시 롤백 후 예외 전파 (재시도 없음).

    Args:
        store: Ledger Entity 저장소
        checkpoint_name: 체크포인트 이름 (기본: ledger)

    사용 예시:
    ```python
    projector = LedgerProjector(store)

    for event in events:
        await projector.apply(event)

    print(projector.get_stats())
    ```
    """

    CHECKPOINT_NAME = "ledger"

    def __init__(
        self,
        store: LedgerStore,
        checkpoint_name: str = CHECKPOINT_NAME,
    ):
        self.store = store
        self.checkpoint_name = checkpoint_name

        # 핸들러 레지스트리
        self._handlers: dict[str, ProjectionHandler] = {}

        # 기본 핸들러 등록
        self._register_default_handlers()

        # 마지막 적용 위치와 timestamp (첫 apply 시 로드)
        self._last_position: EventPosition | None = None
        self._last_timestamp = 0

        # 통계
        self._processed_count = 0
        self._skipped_count = 0
        self._error_count = 0

    def _register_default_handlers(self) -> None:
        """기본 핸들러 등록"""
        for handler in (
            PoolProjectionHandler(self.store),
            FlowProjectionHandler(self.store),
            IndexProjectionHandler(self.store),
        ):
            self.register_handler(handler)

    def register_handler(self, handler: ProjectionHandler) -> None:
        """핸들러 등록

        Args:
            handler: Projection 핸들러
        """
        for event_type in handler.handled_event_types:
            self._handlers[event_type] = handler
            logger.debug(f"Projection handler registered: {event_type}")

    async def last_position(self) -> EventPosition:
        """마지막으로 적용한 이벤트 위치"""
        if self._last_position is None:
            self._last_position = await self.store.get_checkpoint(self.checkpoint_name)
            self._last_timestamp = await self.store.get_checkpoint_timestamp(self.checkpoint_name)
        return self._last_position

    async def apply(self, event: ProtocolEvent) -> bool:
        """이벤트 하나 적용

        Args:
            event: 프로토콜 이벤트

        Returns:
            핸들러가 처리했으면 True, 등록된 핸들러가 없으면 False
            (핸들러가 없어도 체크포인트는 진행)

        Raises:
            OutOfOrderEventError: 마지막 적용 위치보다 앞서거나 같은 이벤트,
                또는 마지막 적용 timestamp보다 앞선 timestamp
        """
        last = await self.last_position()
        if event.position <= last:
            self._error_count += 1
            raise OutOfOrderEventError(last, event.position, event.name)
        # block timestamp는 감소하지 않음
        if event.timestamp < self._last_timestamp:
            self._error_count += 1
            raise OutOfOrderEventError(
                last,
                event.position,
                event.name,
                last_timestamp=self._last_timestamp,
                event_timestamp=event.timestamp,
            )

        handler = self._handlers.get(event.name)

        try:
            async with self.store.db.transaction():
                if handler:
                    await handler.handle(event)
                await self.store.set_checkpoint(self.checkpoint_name, event.position, event.timestamp)
        except Exception as e:
            self._error_count += 1
            logger.error(
                f"Projection handler error: {e}",
                extra={
                    "event_id": event.event_id,
                    "event_name": event.name,
                    "position": str(event.position),
                },
            )
            raise

        self._last_position = event.position
        self._last_timestamp = event.timestamp

        if handler is None:
            self._skipped_count += 1
            logger.debug(f"No handler for event: {event.name}")
            return False

        self._processed_count += 1
        return True

    async def apply_all(self, events: Iterable[ProtocolEvent]) -> int:
        """이벤트 목록을 순서대로 적용

        Returns:
            핸들러가 처리한 이벤트 수
        """
        processed = 0
        for event in events:
            if await self.apply(event):
                processed += 1

        if processed > 0:
            logger.info(
                f"Projected {processed} events, last position: {self._last_position}"
            )
        return processed

    def get_stats(self) -> dict[str, Any]:
        """통계 반환"""
        return {
            "processed_count": self._processed_count,
            "skipped_count": self._skipped_count,
            "error_count": self._error_count,
            "last_position": str(self._last_position) if self._last_position else None,
            "handled_event_types": list(self._handlers.keys()),
        }

    def reset_stats(self) -> None:
        """통계 초기화"""
        self._processed_count = 0
        self._skipped_count = 0
        self._error_count = 0
