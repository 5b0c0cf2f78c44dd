"""
Verifier 진입점 (데이터 정합성 검증)

verifier.yaml의 RPC로 chain id를 확인하고 해당 네트워크의 Subgraph를
온체인 값과 비교. 전역 불변식이 깨지면 non-zero 종료.

실행 방법:
    python -m verifier
    python -m verifier --config config/verifier.yaml --strict
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from adapters.chain.reader import ChainReader
from adapters.interfaces import IChainReader, ISubgraphClient
from adapters.subgraph.client import SubgraphClient
from core.config.loader import VerifierConfig, get_network_info, load_verifier_config
from core.constants import Paths
from core.errors import (
    ChainCallError,
    ConfigLoadError,
    GlobalInvariantViolation,
    PaginationStalledError,
    SubgraphQueryError,
    UnsupportedNetworkError,
)
from core.logging import setup_logging
from verifier.integrity import DataIntegrityVerifier

logger = logging.getLogger("verifier")


async def verify(
    config: VerifierConfig,
    reader: IChainReader | None = None,
    subgraph: ISubgraphClient | None = None,
    strict: bool = False,
    block_number: int | None = None,
) -> int:
    """검증 실행

    Args:
        config: Verifier 설정
        reader: 온체인 조회 클라이언트 (None이면 config.rpc_url로 생성)
        subgraph: Subgraph 클라이언트 (None이면 네트워크 엔드포인트로 생성)
        strict: 레코드 불일치도 실패로 처리
        block_number: 스냅샷 블록 (None이면 최신 인덱싱 블록)

    Returns:
        종료 코드 (0: 성공, 1: 실패)
    """
    if reader is None:
        reader = ChainReader(config.rpc_url)

    try:
        chain_id = await reader.get_chain_id()
        network = get_network_info(chain_id)
    except (ChainCallError, UnsupportedNetworkError) as e:
        logger.error(str(e))
        return 1

    reader.use_network(network)
    logger.info(f"Verifying {network.display_name} (chainId={chain_id})")

    if subgraph is None:
        subgraph = SubgraphClient(config.subgraph_endpoint or network.subgraph_endpoint)

    verifier = DataIntegrityVerifier(
        subgraph,
        reader,
        page_size=config.page_size,
        chunk_size=config.chunk_size,
        call_timeout=config.call_timeout_seconds,
    )

    try:
        report = await verifier.run(block_number)
    except (SubgraphQueryError, PaginationStalledError) as e:
        logger.error(f"Verification aborted: {e}")
        return 1
    finally:
        await subgraph.close()

    strict = strict or config.strict
    logger.info(f"Verification report: {json.dumps(report.to_dict())}")

    try:
        report.ensure_global_invariant()
    except GlobalInvariantViolation as e:
        logger.error(f"Verification failed: {e}")
        return 1

    if not report.is_success(strict):
        logger.error(
            f"Verification failed (strict): {len(report.mismatches)} mismatches, "
            f"{len(report.call_failures)} call failures"
        )
        return 1

    logger.info("Verification succeeded")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Subgraph Ledger 데이터 정합성 검증")
    parser.add_argument(
        "--config",
        type=Path,
        default=Paths.VERIFIER_CONFIG_FILE,
        help=f"설정 파일 경로 (기본: {Paths.VERIFIER_CONFIG_FILE})",
    )
    parser.add_argument(
        "--block",
        type=int,
        default=None,
        help="스냅샷 블록 (기본: Subgraph 최신 인덱싱 블록)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="레코드 불일치/조회 실패도 non-zero 종료",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="콘솔 DEBUG 로그",
    )
    args = parser.parse_args()

    setup_logging("verifier", console_level=logging.DEBUG if args.debug else logging.INFO)

    try:
        config = load_verifier_config(args.config)
    except ConfigLoadError as e:
        logger.error(str(e))
        return 1

    return asyncio.run(verify(config, strict=args.strict, block_number=args.block))


if __name__ == "__main__":
    sys.exit(main())
