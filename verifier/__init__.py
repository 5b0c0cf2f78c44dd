"""
Verifier

Subgraph가 파생한 Ledger를 온체인 값과 대조하는 정합성 검증.
"""

from verifier.chunking import ChunkReport, TaskResult, partition, run_in_chunks
from verifier.integrity import DataIntegrityVerifier, IntegrityReport, KindSummary
from verifier.pagination import fetch_all, fetch_all_records

__all__ = [
    "ChunkReport",
    "DataIntegrityVerifier",
    "IntegrityReport",
    "KindSummary",
    "TaskResult",
    "fetch_all",
    "fetch_all_records",
    "partition",
    "run_in_chunks",
]
