"""
하드코딩 상수 - 변경될 일이 거의 없는 고정값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
"""

from dataclasses import dataclass
from pathlib import Path


# 프로젝트 루트 (이 파일 기준 2단계 상위: core/constants.py → flowledger/)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


@dataclass(frozen=True)
class NetworkInfo:
    """지원 네트워크 정보 (불변)

    subgraph 엔드포인트와 검증 대상 에이전트 컨트랙트 주소
    """

    name: str
    display_name: str
    subgraph_endpoint: str
    cfa_address: str
    ida_address: str


# chain_id → 네트워크 정보 (정적 매핑, 여기 없는 chain_id는 지원하지 않음)
NETWORKS: dict[int, NetworkInfo] = {
    137: NetworkInfo(
        name="matic",
        display_name="Polygon",
        subgraph_endpoint="https://api.thegraph.com/subgraphs/name/superfluid-finance/protocol-v1-matic",
        cfa_address="0x6EeE6060f715257b970700bc2656De21dEdF074C",
        ida_address="0xB0aABBA4B2783A72C52956CDEF62d438ecA2d7a1",
    ),
    100: NetworkInfo(
        name="xdai",
        display_name="Gnosis Chain",
        subgraph_endpoint="https://api.thegraph.com/subgraphs/name/superfluid-finance/protocol-v1-xdai",
        cfa_address="0xEbdA4ceF883A7B12c4E669Ebc58927FBa8447C7D",
        ida_address="0x7888ac96F987Eb10E291F34851ae0266eF912081",
    ),
    10: NetworkInfo(
        name="optimism-mainnet",
        display_name="Optimism",
        subgraph_endpoint="https://api.thegraph.com/subgraphs/name/superfluid-finance/protocol-v1-optimism-mainnet",
        cfa_address="0x204C6f131bb7F258b2Ea1593f5309911d8E458eD",
        ida_address="0xc4ce5118C3B20950ee288f086cb7FC166d222D4c",
    ),
    42161: NetworkInfo(
        name="arbitrum-one",
        display_name="Arbitrum One",
        subgraph_endpoint="https://api.thegraph.com/subgraphs/name/superfluid-finance/protocol-v1-arbitrum-one",
        cfa_address="0x731FdBB12944973B500518aea61942381d7e240D",
        ida_address="0x2319C7e07EB063340D2a0E36709B0D65fda75986",
    ),
}


class Defaults:
    """기본값 상수"""

    PAGE_SIZE: int = 1000  # subgraph 한 번에 반환하는 최대 레코드 수
    CHUNK_SIZE: int = 100  # 동시에 실행할 검증 호출 수
    CALL_TIMEOUT_SEC: float = 30.0


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    DATA_DIR: Path = PROJECT_ROOT / "data"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"
    INDEXER_LOGS_DIR: Path = LOGS_DIR / "indexer"
    VERIFIER_LOGS_DIR: Path = LOGS_DIR / "verifier"

    # 설정 파일
    VERIFIER_CONFIG_FILE: Path = CONFIG_DIR / "verifier.yaml"

    # DB 파일
    LEDGER_DB: Path = DATA_DIR / "flowledger.db"
