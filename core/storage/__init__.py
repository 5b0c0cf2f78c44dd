"""
스토리지 모듈

파생 Ledger Entity 저장소와 스키마 초기화 제공
"""

from core.storage.ledger_store import LedgerStore
from core.storage.schema import init_schema

__all__ = [
    "LedgerStore",
    "init_schema",
]
