"""
Projection Handler 기본 클래스

모든 Ledger Projection Handler가 구현해야 할 인터페이스와
ATS / TokenStatistic 공통 정산 헬퍼 정의
"""

from abc import ABC, abstractmethod
from typing import Any

from core.accumulator import settle_account_token_snapshot, settle_token_statistic
from core.domain.entities import AccountTokenSnapshot, TokenStatistic
from core.domain.events import ProtocolEvent
from core.storage.ledger_store import LedgerStore


class ProjectionHandler(ABC):
    """Projection Handler 추상 클래스

    이벤트 타입별로 이 클래스를 상속하여 Ledger 업데이트 로직 구현.
    잘못된 이벤트는 예외로 전파 (재시도 없음).

    Args:
        store: Ledger Entity 저장소
    """

    def __init__(self, store: LedgerStore):
        self.store = store

    @abstractmethod
    async def handle(self, event: ProtocolEvent) -> None:
        """이벤트 처리하여 Ledger 업데이트

        Args:
            event: 처리할 이벤트
        """
        pass

    @property
    @abstractmethod
    def handled_event_types(self) -> list[str]:
        """처리하는 이벤트 타입 목록"""
        pass

    # -------------------------------------------------------------------------
    # 공통 헬퍼
    # -------------------------------------------------------------------------

    async def _load_settled_ats(
        self,
        account: str,
        token: str,
        event: ProtocolEvent,
        balance_delta: int = 0,
    ) -> AccountTokenSnapshot:
        """ATS 로드 후 이벤트 시점까지 정산 (저장은 하지 않음)"""
        ats = await self.store.get_or_init_account_token_snapshot(account, token, event)
        return settle_account_token_snapshot(
            ats, event.timestamp, event.block_number, balance_delta
        )

    async def _persist_ats(self, ats: AccountTokenSnapshot, event: ProtocolEvent) -> None:
        """ATS 저장 + 스냅샷 로그"""
        await self.store.save(ats, event)
        await self.store.append_snapshot_log(ats, event)

    async def _settle_and_persist_ats(
        self,
        account: str,
        token: str,
        event: ProtocolEvent,
        balance_delta: int = 0,
    ) -> AccountTokenSnapshot:
        """ATS 정산 → 저장 → 스냅샷 로그"""
        ats = await self._load_settled_ats(account, token, event, balance_delta)
        await self._persist_ats(ats, event)
        return ats

    async def _load_settled_token_statistic(self, token: str, event: ProtocolEvent) -> TokenStatistic:
        """TokenStatistic 로드 후 이벤트 시점까지 정산 (저장은 하지 않음)"""
        stats = await self.store.get_or_init_token_statistic(token, event)
        return settle_token_statistic(stats, event.timestamp, event.block_number)

    async def _persist_token_statistic(self, stats: TokenStatistic, event: ProtocolEvent) -> None:
        """TokenStatistic 저장 + 스냅샷 로그"""
        await self.store.save(stats, event)
        await self.store.append_snapshot_log(stats, event)

    async def _record_event(
        self,
        event: ProtocolEvent,
        addresses: list[str],
        payload: dict[str, Any],
    ) -> None:
        """감사 로그 엔티티 기록"""
        await self.store.append_event_log(event, addresses, payload)
