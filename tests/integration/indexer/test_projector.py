"""
LedgerProjector 통합 테스트

이벤트 순서 강제, 트랜잭션 롤백, 체크포인트 재개
"""

import pytest

from core.domain.entities import Pool, Stream
from core.domain.events import EventTypes, ProtocolEvent
from core.errors import OutOfOrderEventError
from core.storage.ledger_store import LedgerStore
from core.types import EntityKind, EventPosition
from indexer.handlers.base import ProjectionHandler
from indexer.projector import LedgerProjector


TOKEN = "0x00000000000000000000000000000000000000aa"
ALICE = "0x0000000000000000000000000000000000000a11"
BOB = "0x0000000000000000000000000000000000000b0b"
POOL = "0x00000000000000000000000000000000000000b1"
GDA = "0x00000000000000000000000000000000000000d0"


class ExplodingHandler(ProjectionHandler):
    """Entity를 저장한 뒤 실패하는 핸들러 (롤백 확인용)"""

    @property
    def handled_event_types(self) -> list[str]:
        return ["Explode"]

    async def handle(self, event: ProtocolEvent) -> None:
        await self.store.save(Pool(id="0xpartial", token=TOKEN), event)
        await self.store.append_event_log(event, [TOKEN], {})
        raise RuntimeError("handler failed")


def _flow(
    make_event, block: int, log_index: int = 0, rate: int = 100, timestamp: int | None = None
) -> ProtocolEvent:
    return make_event(
        EventTypes.FLOW_UPDATED,
        {"token": TOKEN, "sender": ALICE, "receiver": BOB, "flowRate": str(rate)},
        block_number=block,
        log_index=log_index,
        timestamp=timestamp,
    )


class TestOrdering:
    """이벤트 순서 강제"""

    @pytest.mark.asyncio
    async def test_applies_in_order(self, store: LedgerStore, make_event) -> None:
        projector = LedgerProjector(store)

        assert await projector.apply(_flow(make_event, 10, 0)) is True
        assert await projector.apply(_flow(make_event, 10, 1, rate=200)) is True
        assert await projector.apply(_flow(make_event, 11, 0, rate=300)) is True

        assert await projector.last_position() == EventPosition(11, 0)
        assert await store.get_checkpoint(LedgerProjector.CHECKPOINT_NAME) == EventPosition(11, 0)

    @pytest.mark.asyncio
    async def test_earlier_event_rejected(self, store: LedgerStore, make_event) -> None:
        projector = LedgerProjector(store)
        await projector.apply(_flow(make_event, 10, 5))

        with pytest.raises(OutOfOrderEventError) as exc_info:
            await projector.apply(_flow(make_event, 10, 4, rate=200))

        assert exc_info.value.last_position == EventPosition(10, 5)
        assert exc_info.value.event_position == EventPosition(10, 4)
        assert projector.get_stats()["error_count"] == 1

    @pytest.mark.asyncio
    async def test_same_position_rejected(self, store: LedgerStore, make_event) -> None:
        """같은 이벤트 재적용 금지 (정확히 한 번)"""
        projector = LedgerProjector(store)
        event = _flow(make_event, 10, 0)
        await projector.apply(event)

        with pytest.raises(OutOfOrderEventError):
            await projector.apply(event)

        stream = await store.get(Stream, Stream.make_id(ALICE, BOB, TOKEN, 0))
        assert stream.current_flow_rate == 100

    @pytest.mark.asyncio
    async def test_resumes_from_checkpoint(self, store: LedgerStore, make_event) -> None:
        """새 Projector도 저장된 체크포인트 이후만 허용"""
        await LedgerProjector(store).apply(_flow(make_event, 20, 0))

        resumed = LedgerProjector(store)
        assert await resumed.last_position() == EventPosition(20, 0)

        with pytest.raises(OutOfOrderEventError):
            await resumed.apply(_flow(make_event, 19, 0))
        assert await resumed.apply(_flow(make_event, 21, 0, rate=5)) is True


def _claim(make_event, block: int, ts: int) -> ProtocolEvent:
    """Pool 정산만 일으키는 0 청구"""
    return make_event(
        EventTypes.DISTRIBUTION_CLAIMED,
        {"token": TOKEN, "member": ALICE, "claimedAmount": "0", "totalClaimed": "0"},
        address=POOL,
        block_number=block,
        timestamp=ts,
    )


class TestTimestampOrdering:
    """block timestamp 역행 거부"""

    async def _flowing_pool(self, projector: LedgerProjector, make_event) -> None:
        """1 unit, 초당 10 분배 중인 Pool (ts=100)"""
        await projector.apply_all(
            [
                make_event(
                    EventTypes.POOL_CREATED,
                    {"token": TOKEN, "admin": BOB, "pool": POOL},
                    address=GDA,
                    block_number=1,
                    timestamp=100,
                ),
                make_event(
                    EventTypes.MEMBER_UNITS_UPDATED,
                    {"token": TOKEN, "member": ALICE, "oldUnits": "0", "newUnits": "1"},
                    address=POOL,
                    block_number=2,
                    timestamp=100,
                ),
                make_event(
                    EventTypes.FLOW_DISTRIBUTION_UPDATED,
                    {
                        "token": TOKEN,
                        "pool": POOL,
                        "distributor": BOB,
                        "oldFlowRate": "0",
                        "newDistributorToPoolFlowRate": "10",
                        "newTotalDistributionFlowRate": "10",
                        "adjustmentFlowRate": "0",
                    },
                    address=GDA,
                    block_number=3,
                    timestamp=100,
                ),
            ]
        )

    @pytest.mark.asyncio
    async def test_earlier_timestamp_rejected(self, store: LedgerStore, make_event) -> None:
        """ts 100 → 200 → 150 → 250: 150은 거부되고 누적 분배량은 구간별로 한 번만"""
        projector = LedgerProjector(store)
        await self._flowing_pool(projector, make_event)
        await projector.apply(_claim(make_event, block=4, ts=200))

        with pytest.raises(OutOfOrderEventError) as exc_info:
            await projector.apply(_claim(make_event, block=5, ts=150))

        assert exc_info.value.last_timestamp == 200
        assert exc_info.value.event_timestamp == 150
        assert "before last applied timestamp 200" in str(exc_info.value)
        assert projector.get_stats()["error_count"] == 1
        assert await projector.last_position() == EventPosition(4, 0)
        pool = await store.get(Pool, POOL)
        assert pool.total_amount_flowed_distributed_until_updated_at == 1000

        await projector.apply(_claim(make_event, block=6, ts=250))

        pool = await store.get(Pool, POOL)
        assert pool.total_amount_flowed_distributed_until_updated_at == 1500

    @pytest.mark.asyncio
    async def test_equal_timestamp_allowed(self, store: LedgerStore, make_event) -> None:
        """같은 블록/같은 timestamp의 이벤트는 정상 적용"""
        projector = LedgerProjector(store)
        await projector.apply(_flow(make_event, 10, 0))

        assert await projector.apply(_flow(make_event, 11, 0, rate=200, timestamp=100)) is True

    @pytest.mark.asyncio
    async def test_resumed_projector_rejects_earlier_timestamp(
        self, store: LedgerStore, make_event
    ) -> None:
        """체크포인트에 저장된 timestamp로 재시작 후에도 역행 거부"""
        await LedgerProjector(store).apply(_flow(make_event, 4, timestamp=200))

        assert await store.get_checkpoint_timestamp(LedgerProjector.CHECKPOINT_NAME) == 200

        resumed = LedgerProjector(store)
        with pytest.raises(OutOfOrderEventError):
            await resumed.apply(_flow(make_event, 5, rate=7, timestamp=199))


class TestTransaction:
    """이벤트 단위 트랜잭션"""

    @pytest.mark.asyncio
    async def test_handler_error_rolls_back(self, store: LedgerStore, make_event) -> None:
        projector = LedgerProjector(store)
        projector.register_handler(ExplodingHandler(store))
        await projector.apply(_flow(make_event, 1))

        with pytest.raises(RuntimeError, match="handler failed"):
            await projector.apply(make_event("Explode", {}, block_number=2))

        assert await store.get(Pool, "0xpartial") is None
        assert await store.get_event_log("Explode") == []
        assert await store.get_checkpoint(LedgerProjector.CHECKPOINT_NAME) == EventPosition(1, 0)
        assert await projector.last_position() == EventPosition(1, 0)
        assert store.db.in_transaction is False

        # 실패한 위치에서 다시 진행 가능
        assert await projector.apply(_flow(make_event, 2, rate=7)) is True

    @pytest.mark.asyncio
    async def test_unknown_event_advances_checkpoint(self, store: LedgerStore, make_event) -> None:
        """핸들러 없는 이벤트는 건너뛰지만 체크포인트는 진행"""
        projector = LedgerProjector(store)

        handled = await projector.apply(make_event("Transfer", {}, block_number=3))

        assert handled is False
        assert await store.get_checkpoint(LedgerProjector.CHECKPOINT_NAME) == EventPosition(3, 0)
        assert await store.count(EntityKind.POOL) == 0
        assert projector.get_stats()["skipped_count"] == 1


class TestStats:
    """통계"""

    @pytest.mark.asyncio
    async def test_apply_all_and_stats(self, store: LedgerStore, make_event) -> None:
        projector = LedgerProjector(store)

        processed = await projector.apply_all(
            [
                _flow(make_event, 1),
                make_event("Transfer", {}, block_number=2),
                _flow(make_event, 3, rate=50),
            ]
        )

        stats = projector.get_stats()
        assert processed == 2
        assert stats["processed_count"] == 2
        assert stats["skipped_count"] == 1
        assert stats["last_position"] == "3:0"
        assert EventTypes.MEMBER_UNITS_UPDATED in stats["handled_event_types"]

        projector.reset_stats()
        assert projector.get_stats()["processed_count"] == 0
