"""
Dedup Key 생성 유틸리티

페이지 경계에서 중복 수집된 Subgraph 레코드 제거를 위한 natural key 함수 제공.
createdAtTimestamp_gte 커서 방식은 경계 레코드를 두 번 가져올 수 있음.
"""

from typing import Any, Callable, Iterable, TypeVar

T = TypeVar("T")


def make_stream_dedup_key(
    created_at_timestamp: int | str,
    sender: str,
    receiver: str,
    token: str,
) -> str:
    """Stream용 dedup_key 생성

    Args:
        created_at_timestamp: 생성 타임스탬프
        sender: 송신자 주소
        receiver: 수신자 주소
        token: 토큰 주소

    Returns:
        dedup_key: {created_at_timestamp}{sender}{receiver}{token}

    Example:
        >>> make_stream_dedup_key(1700000000, "0xa", "0xb", "0xt")
        '17000000000xa0xb0xt'
    """
    return f"{created_at_timestamp}{sender}{receiver}{token}"


def stream_natural_key(record: Any) -> str:
    """Stream 레코드(StreamRecord)의 natural key"""
    return make_stream_dedup_key(
        record.created_at_timestamp,
        record.sender.id,
        record.receiver.id,
        record.token.id,
    )


def entity_id_key(record: Any) -> str:
    """id 기준 natural key (ATS, Index, Subscription)"""
    return record.id


def unique_by(items: Iterable[T], key: Callable[[T], Any]) -> list[T]:
    """key 기준 중복 제거 (처음 나온 레코드 유지, 순서 보존)

    Example:
        >>> unique_by([1, 2, 1, 3], key=lambda x: x)
        [1, 2, 3]
    """
    seen: set[Any] = set()
    result: list[T] = []
    for item in items:
        k = key(item)
        if k in seen:
            continue
        seen.add(k)
        result.append(item)
    return result
