"""
온체인 어댑터

CFA / IDA 에이전트 컨트랙트 조회 (web3 AsyncHTTPProvider).
IChainReader Protocol 준수.
"""

from adapters.chain.reader import ChainReader

__all__ = [
    "ChainReader",
]
