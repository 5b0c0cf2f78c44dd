"""
데이터 정합성 검증 (Invariant Verifier)

Subgraph의 파생 Ledger를 한 블록 기준으로 모두 조회하고
온체인 값과 레코드 단위로 비교한 뒤 전역 불변식 확인.

검증 순서: streams → indexes → subscriptions → account token snapshots
전역 불변식: 모든 ATS의 온체인 net flow rate 합 == 0
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Sequence, TypeVar

from adapters.interfaces import IChainReader, ISubgraphClient
from adapters.subgraph.queries import (
    GET_ACCOUNT_TOKEN_SNAPSHOTS,
    GET_CURRENT_STREAMS,
    GET_INDEXES,
    GET_SUBSCRIPTIONS,
)
from core.constants import Defaults
from core.errors import GlobalInvariantViolation, RecordMismatchError
from core.types import EntityKind
from core.utils.dedup import entity_id_key, stream_natural_key, unique_by
from verifier.checks import Mismatch, RecordChecker, subscription_units_by_index
from verifier.chunking import ChunkReport, TaskResult, run_in_chunks
from verifier.models import (
    AccountTokenSnapshotRecord,
    IndexRecord,
    StreamRecord,
    SubscriptionRecord,
)
from verifier.pagination import fetch_all_records

logger = logging.getLogger(__name__)

R = TypeVar("R")


@dataclass
class KindSummary:
    """Entity 종류별 집계"""

    total: int = 0       # 조회한 레코드 수 (경계 중복 포함)
    unique: int = 0      # 중복 제거 후
    passed: int = 0
    mismatched: int = 0
    failed: int = 0      # 온체인 조회 실패/타임아웃
    batches: int = 0


@dataclass
class CallFailure:
    """온체인 조회 실패 정보"""

    kind: EntityKind
    entity_id: str
    error: str


@dataclass
class IntegrityReport:
    """검증 결과

    Attributes:
        block_number: 스냅샷 블록
        summaries: 종류별 집계
        mismatches: 레코드 단위 불일치
        call_failures: 온체인 조회 실패
        net_flow_sum: 온체인 net flow rate 합계
        missing_net_flow_contributions: 조회 실패로 합계에서 빠진 ATS 수
    """

    block_number: int
    summaries: dict[EntityKind, KindSummary] = field(default_factory=dict)
    mismatches: list[Mismatch] = field(default_factory=list)
    call_failures: list[CallFailure] = field(default_factory=list)
    net_flow_sum: int = 0
    missing_net_flow_contributions: int = 0

    @property
    def global_invariant_holds(self) -> bool:
        """net flow 합 == 0 (모든 ATS 기여분이 있을 때만 확정)"""
        return self.net_flow_sum == 0 and self.missing_net_flow_contributions == 0

    @property
    def record_failure_count(self) -> int:
        return len(self.mismatches) + len(self.call_failures)

    def is_success(self, strict: bool = False) -> bool:
        """실행 성공 여부

        기본: 전역 불변식만 판단 (레코드 불일치는 보고만 함)
        strict: 레코드 불일치/조회 실패가 하나라도 있으면 실패
        """
        if not self.global_invariant_holds:
            return False
        if strict and self.record_failure_count > 0:
            return False
        return True

    def ensure_global_invariant(self) -> None:
        """전역 불변식 확인

        Raises:
            GlobalInvariantViolation: net flow 합 != 0 또는 ATS 기여분 누락
        """
        if self.missing_net_flow_contributions:
            raise GlobalInvariantViolation(
                f"Net flow sum could not be confirmed at block {self.block_number}: "
                f"{self.missing_net_flow_contributions} account token snapshots failed to load"
            )
        if self.net_flow_sum != 0:
            raise GlobalInvariantViolation(
                f"Net flow sum {self.net_flow_sum} != 0 at block {self.block_number}"
            )

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환 (로그/출력용)"""
        return {
            "block_number": self.block_number,
            "summaries": {
                kind.value: vars(summary) for kind, summary in self.summaries.items()
            },
            "mismatch_count": len(self.mismatches),
            "call_failure_count": len(self.call_failures),
            "net_flow_sum": str(self.net_flow_sum),
            "missing_net_flow_contributions": self.missing_net_flow_contributions,
            "global_invariant_holds": self.global_invariant_holds,
        }


def _sum_net_flow(acc: int | None, batch: list[TaskResult[int]]) -> int:
    """배치의 온체인 net flow rate를 합계에 더함

    불일치로 실패한 ATS도 온체인 값은 합계에 포함.
    """
    total = acc or 0
    for result in batch:
        if result.ok and result.value is not None:
            total += result.value
        elif isinstance(result.error, RecordMismatchError) and result.error.authoritative_value is not None:
            total += result.error.authoritative_value
    return total


class DataIntegrityVerifier:
    """데이터 정합성 검증기

    Args:
        subgraph: Subgraph 클라이언트
        reader: 온체인 조회 클라이언트
        page_size: 페이지 크기
        chunk_size: 동시 검증 배치 크기
        call_timeout: 온체인 조회 타임아웃 (초, None이면 무제한)

    사용 예시:
    ```python
    verifier = DataIntegrityVerifier(subgraph, reader)
    report = await verifier.run()
    if not report.is_success():
        sys.exit(1)
    ```
    """

    def __init__(
        self,
        subgraph: ISubgraphClient,
        reader: IChainReader,
        page_size: int = Defaults.PAGE_SIZE,
        chunk_size: int = Defaults.CHUNK_SIZE,
        call_timeout: float | None = Defaults.CALL_TIMEOUT_SEC,
    ):
        self.subgraph = subgraph
        self.reader = reader
        self.page_size = page_size
        self.chunk_size = chunk_size
        self.call_timeout = call_timeout

    async def run(self, block_number: int | None = None) -> IntegrityReport:
        """전체 검증 실행

        Args:
            block_number: 스냅샷 블록 (None이면 Subgraph의 최신 인덱싱 블록)

        Returns:
            IntegrityReport

        Raises:
            SubgraphQueryError: Subgraph 조회 실패
            PaginationStalledError: 페이지 커서 정체
        """
        if block_number is None:
            block_number = await self.subgraph.get_indexed_block_number()
        logger.info(f"Current block number used to query: {block_number}")

        report = IntegrityReport(block_number=block_number)

        logger.info("Querying all streams via the Subgraph...")
        streams = await self._fetch(GET_CURRENT_STREAMS, StreamRecord, block_number)
        logger.info("Querying all account token snapshots via the Subgraph...")
        snapshots = await self._fetch(GET_ACCOUNT_TOKEN_SNAPSHOTS, AccountTokenSnapshotRecord, block_number)
        logger.info("Querying all indexes via the Subgraph...")
        indexes = await self._fetch(GET_INDEXES, IndexRecord, block_number)
        logger.info("Querying all subscriptions via the Subgraph...")
        subscriptions = await self._fetch(GET_SUBSCRIPTIONS, SubscriptionRecord, block_number)

        logger.info("Filtering out duplicate entities...")
        unique_streams = self._dedup(report, EntityKind.STREAM, streams, stream_natural_key)
        unique_snapshots = self._dedup(report, EntityKind.ACCOUNT_TOKEN_SNAPSHOT, snapshots, entity_id_key)
        unique_indexes = self._dedup(report, EntityKind.INDEX, indexes, entity_id_key)
        unique_subscriptions = self._dedup(report, EntityKind.SUBSCRIPTION, subscriptions, entity_id_key)

        checker = RecordChecker(self.reader, block_number)
        units_by_index = subscription_units_by_index(unique_subscriptions)

        await self._verify_kind(
            report,
            EntityKind.STREAM,
            unique_streams,
            lambda r: lambda: checker.check_stream(r),
        )
        await self._verify_kind(
            report,
            EntityKind.INDEX,
            unique_indexes,
            lambda r: lambda: checker.check_index(r, units_by_index.get(r.id, 0)),
        )
        await self._verify_kind(
            report,
            EntityKind.SUBSCRIPTION,
            unique_subscriptions,
            lambda r: lambda: checker.check_subscription(r),
        )
        chunk_report = await self._verify_kind(
            report,
            EntityKind.ACCOUNT_TOKEN_SNAPSHOT,
            unique_snapshots,
            lambda r: lambda: checker.check_account_token_snapshot(r),
            reducer=_sum_net_flow,
            initial=0,
        )

        report.net_flow_sum = chunk_report.accumulated or 0
        report.missing_net_flow_contributions = report.summaries[EntityKind.ACCOUNT_TOKEN_SNAPSHOT].failed

        if report.global_invariant_holds:
            logger.info("'Net flow sum == 0' global invariant successful.")
        elif report.missing_net_flow_contributions:
            logger.error(
                f"Net flow sum could not be confirmed: "
                f"{report.missing_net_flow_contributions} account token snapshots failed to load",
                extra={"net_flow_sum": str(report.net_flow_sum)},
            )
        else:
            logger.error(f"'Net flow sum: {report.net_flow_sum} != 0' global invariant failed.")

        return report

    async def _fetch(self, query: str, model: type[R], block_number: int) -> list[R]:
        return await fetch_all_records(self.subgraph, query, model, block_number, self.page_size)

    @staticmethod
    def _dedup(
        report: IntegrityReport,
        kind: EntityKind,
        records: list[R],
        key: Callable[[R], Any],
    ) -> list[R]:
        unique = unique_by(records, key)
        report.summaries[kind] = KindSummary(total=len(records), unique=len(unique))
        logger.info(
            f"There are {len(unique)} unique {kind.value} records out of {len(records)} total."
        )
        return unique

    async def _verify_kind(
        self,
        report: IntegrityReport,
        kind: EntityKind,
        records: Sequence[Any],
        make_task: Callable[[Any], Callable[[], Awaitable[Any]]],
        reducer: Callable[[Any, list[TaskResult[Any]]], Any] | None = None,
        initial: Any = None,
    ) -> ChunkReport[Any, Any]:
        """한 종류의 레코드를 청크 단위로 검증하고 결과를 report에 반영"""
        logger.info(f"{kind.value} tests starting: validating {len(records)} records.")

        chunk_report = await run_in_chunks(
            [make_task(record) for record in records],
            self.chunk_size,
            timeout=self.call_timeout,
            reducer=reducer,
            initial=initial,
            label=kind.value,
        )

        summary = report.summaries[kind]
        summary.batches = chunk_report.batch_count
        for result in chunk_report.results:
            record = records[result.index]
            if result.ok:
                summary.passed += 1
            elif isinstance(result.error, RecordMismatchError):
                summary.mismatched += 1
                report.mismatches.extend(result.error.mismatches)
                logger.warning(str(result.error))
            else:
                summary.failed += 1
                logger.error(f"Failed to verify {kind.value} {record.id}: {result.error}")
                report.call_failures.append(
                    CallFailure(kind=kind, entity_id=record.id, error=str(result.error))
                )

        logger.info(
            f"{kind.value} tests finished: passed={summary.passed}, "
            f"mismatched={summary.mismatched}, failed={summary.failed}"
        )
        return chunk_report
