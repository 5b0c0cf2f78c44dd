"""
Ledger Update Engine

프로토콜 이벤트를 순서대로 적용하여 파생 Ledger 업데이트
"""

from indexer.projector import LedgerProjector

__all__ = [
    "LedgerProjector",
]
