"""
유틸리티 패키지

natural key 기반 중복 제거 등 공통 유틸리티
"""

from core.utils.dedup import (
    entity_id_key,
    make_stream_dedup_key,
    stream_natural_key,
    unique_by,
)

__all__ = [
    "entity_id_key",
    "make_stream_dedup_key",
    "stream_natural_key",
    "unique_by",
]
