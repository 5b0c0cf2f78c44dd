"""
청크 단위 동시 실행 (Chunked Concurrency Controller)

N개의 검증 작업을 chunk_size 단위 배치로 나눠
배치 내부는 병렬, 배치 간은 순차 실행.

작업 하나의 실패는 기록만 하고 나머지 작업/배치는 계속 진행.
컨트롤러 자체는 작업 실패로 예외를 던지지 않음.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
A = TypeVar("A")

TaskFactory = Callable[[], Awaitable[T]]


@dataclass
class TaskResult(Generic[T]):
    """작업 하나의 결과

    Attributes:
        index: 입력 순서상 위치
        value: 성공 시 반환값
        error: 실패 시 예외 (타임아웃 포함)
    """

    index: int
    value: T | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ChunkReport(Generic[T, A]):
    """전체 실행 결과

    Attributes:
        results: 작업별 결과 (입력 순서)
        batch_count: 실행한 배치 수
        accumulated: reducer로 접은 값 (reducer 없으면 initial)
    """

    results: list[TaskResult[T]] = field(default_factory=list)
    batch_count: int = 0
    accumulated: A | None = None

    @property
    def failures(self) -> list[TaskResult[T]]:
        return [r for r in self.results if not r.ok]

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)


def partition(items: Sequence[T], chunk_size: int) -> list[Sequence[T]]:
    """ceil(N / chunk_size) 개의 순서 있는 배치로 분할"""
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive: {chunk_size}")
    return [items[i:i + chunk_size] for i in range(0, len(items), chunk_size)]


async def _run_one(factory: TaskFactory[T], timeout: float | None) -> T:
    if timeout is None:
        return await factory()
    return await asyncio.wait_for(factory(), timeout=timeout)


async def run_in_chunks(
    task_factories: Sequence[TaskFactory[T]],
    chunk_size: int,
    timeout: float | None = None,
    reducer: Callable[[A, list[TaskResult[T]]], A] | None = None,
    initial: A | None = None,
    label: str = "tasks",
) -> ChunkReport[T, A]:
    """작업을 배치 단위로 실행

    factory는 인자 없는 코루틴 함수. 배치가 시작될 때 호출되므로
    이전 배치가 끝나기 전에는 다음 배치 작업이 시작되지 않음.

    Args:
        task_factories: 작업 팩토리 목록
        chunk_size: 배치 크기
        timeout: 작업별 타임아웃 (초, None이면 무제한)
        reducer: 배치 완료 후 호출되는 fold 함수 (acc, batch_results) -> acc
        initial: fold 초기값
        label: 로그용 작업 이름

    Returns:
        ChunkReport
    """
    report: ChunkReport[T, A] = ChunkReport(accumulated=initial)
    batches = partition(list(task_factories), chunk_size)
    offset = 0

    for batch_no, batch in enumerate(batches, start=1):
        outcomes = await asyncio.gather(
            *(_run_one(factory, timeout) for factory in batch),
            return_exceptions=True,
        )

        batch_results: list[TaskResult[T]] = []
        for i, outcome in enumerate(outcomes):
            index = offset + i
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.TimeoutError):
                    outcome = TimeoutError(f"{label}[{index}] timed out after {timeout}s")
                logger.error(
                    f"{label}[{index}] failed: {outcome}",
                    extra={"label": label, "index": index, "batch": batch_no},
                )
                batch_results.append(TaskResult(index=index, error=outcome))
            else:
                batch_results.append(TaskResult(index=index, value=outcome))

        if reducer is not None:
            report.accumulated = reducer(report.accumulated, batch_results)

        report.results.extend(batch_results)
        report.batch_count += 1
        offset += len(batch)

        logger.debug(f"{label}: batch {batch_no}/{len(batches)} settled")

    if report.failures:
        logger.warning(
            f"{label}: {len(report.failures)} of {len(report.results)} failed "
            f"in {report.batch_count} batches"
        )

    return report
