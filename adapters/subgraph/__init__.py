"""
Subgraph 어댑터

인덱싱된 Ledger 조회 (GraphQL over HTTP).
ISubgraphClient Protocol 준수.
"""

from adapters.subgraph.client import SubgraphClient

__all__ = [
    "SubgraphClient",
]
