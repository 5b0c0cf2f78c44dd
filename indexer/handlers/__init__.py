"""
Projection Handler 모듈

에이전트(CFA / GDA / IDA)별 Ledger 업데이트 핸들러
"""

from indexer.handlers.base import ProjectionHandler
from indexer.handlers.flow import FlowProjectionHandler
from indexer.handlers.index import IndexProjectionHandler
from indexer.handlers.pool import PoolProjectionHandler

__all__ = [
    "ProjectionHandler",
    "FlowProjectionHandler",
    "IndexProjectionHandler",
    "PoolProjectionHandler",
]
