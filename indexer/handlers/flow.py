"""
Flow Projection Handler

CFA FlowUpdated 이벤트를 처리하여 Stream / StreamRevision / ATS / TokenStatistic 업데이트.

ATS의 net flow rate는 이 핸들러만 변경함
(검증 시 CFA getNetFlow와 비교하기 때문).
"""

import logging

from core.domain.entities import Stream, StreamRevision
from core.domain.events import EventTypes, ProtocolEvent
from indexer.handlers.base import ProjectionHandler

logger = logging.getLogger(__name__)


class FlowProjectionHandler(ProjectionHandler):
    """Flow Projection 핸들러

    스트림 생명주기:
    - 0 → 양수: 생성 (active 카운터 +1)
    - 양수 → 양수: 갱신
    - 양수 → 0: 삭제 (active 카운터 -1, 다음 리비전으로 이동)

    Args:
        store: Ledger Entity 저장소
    """

    @property
    def handled_event_types(self) -> list[str]:
        return [EventTypes.FLOW_UPDATED]

    async def handle(self, event: ProtocolEvent) -> None:
        """FlowUpdated 처리 (params: token, sender, receiver, flowRate)"""
        if event.name != EventTypes.FLOW_UPDATED:
            raise ValueError(f"Unsupported event for FlowProjectionHandler: {event.name}")

        token = event.str_param("token")
        sender = event.str_param("sender")
        receiver = event.str_param("receiver")
        new_flow_rate = event.int_param("flowRate")

        revision = await self.store.get_or_init_stream_revision(sender, receiver, token)
        stream = await self.store.get_or_init_stream(revision, sender, receiver, token, event)

        old_flow_rate = stream.current_flow_rate
        flow_rate_delta = new_flow_rate - old_flow_rate
        is_create = old_flow_rate == 0 and new_flow_rate > 0
        is_delete = old_flow_rate > 0 and new_flow_rate == 0

        self._update_stream(stream, new_flow_rate, event)
        await self.store.save(stream, event)

        revision.most_recent_stream_id = stream.id
        if is_delete:
            revision.revision_index += 1
        await self.store.save(revision, event)

        sender_ats = await self._load_settled_ats(sender, token, event)
        sender_ats.total_net_flow_rate -= flow_rate_delta
        sender_ats.total_outflow_rate += flow_rate_delta

        receiver_ats = await self._load_settled_ats(receiver, token, event)
        receiver_ats.total_net_flow_rate += flow_rate_delta
        receiver_ats.total_inflow_rate += flow_rate_delta

        if is_create:
            sender_ats.active_outgoing_stream_count += 1
            receiver_ats.active_incoming_stream_count += 1
        elif is_delete:
            sender_ats.active_outgoing_stream_count -= 1
            receiver_ats.active_incoming_stream_count -= 1

        await self._persist_ats(sender_ats, event)
        await self._persist_ats(receiver_ats, event)

        stats = await self._load_settled_token_statistic(token, event)
        stats.total_outflow_rate += flow_rate_delta
        if is_create:
            stats.total_number_of_active_streams += 1
        elif is_delete:
            stats.total_number_of_active_streams -= 1
        await self._persist_token_statistic(stats, event)

        await self._record_event(
            event,
            [token, sender, receiver],
            {
                "token": token,
                "sender": sender,
                "receiver": receiver,
                "stream": stream.id,
                "old_flow_rate": str(old_flow_rate),
                "flow_rate": str(new_flow_rate),
                "sender_net_flow_rate": str(sender_ats.total_net_flow_rate),
                "receiver_net_flow_rate": str(receiver_ats.total_net_flow_rate),
            },
        )

        logger.debug(
            f"Flow updated: {stream.id} {old_flow_rate} -> {new_flow_rate}",
            extra={"token": token, "block": event.block_number},
        )

    @staticmethod
    def _update_stream(stream: Stream, new_flow_rate: int, event: ProtocolEvent) -> None:
        """스트림 누적 금액 정산 후 새 flow rate 적용"""
        elapsed = event.timestamp - stream.updated_at_timestamp
        if elapsed > 0:
            stream.streamed_until_updated_at += stream.current_flow_rate * elapsed
        stream.current_flow_rate = new_flow_rate
        stream.updated_at_timestamp = event.timestamp
        stream.updated_at_block_number = event.block_number

    async def get_current_stream(self, sender: str, receiver: str, token: str) -> Stream | None:
        """가장 최근 리비전의 Stream 조회 (편의 메서드)"""
        revision = await self.store.get(StreamRevision, StreamRevision.make_id(sender, receiver, token))
        if revision is None or revision.most_recent_stream_id is None:
            return None
        return await self.store.get(Stream, revision.most_recent_stream_id)
