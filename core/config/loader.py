"""
설정 로더

verifier.yaml 로드 및 네트워크 설정 해석
"""

from dataclasses import dataclass
from pathlib import Path

import yaml

from core.constants import NETWORKS, Defaults, NetworkInfo, Paths
from core.errors import ConfigLoadError, UnsupportedNetworkError


@dataclass(frozen=True)
class VerifierConfig:
    """Verifier 실행 설정 (verifier.yaml에서 로드)

    불변 데이터 구조로 설정 변경 방지
    """

    rpc_url: str
    page_size: int = Defaults.PAGE_SIZE
    chunk_size: int = Defaults.CHUNK_SIZE
    call_timeout_seconds: float = Defaults.CALL_TIMEOUT_SEC
    strict: bool = False
    subgraph_endpoint: str | None = None  # 지정 시 네트워크 기본 엔드포인트 대신 사용


def load_verifier_config(path: Path | None = None) -> VerifierConfig:
    """verifier.yaml 파일 로드

    Args:
        path: verifier.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        VerifierConfig 인스턴스

    Raises:
        ConfigLoadError: 파일이 없거나 형식이 잘못된 경우
    """
    if path is None:
        path = Paths.VERIFIER_CONFIG_FILE

    if not path.exists():
        raise ConfigLoadError(f"verifier.yaml 파일을 찾을 수 없습니다: {path}")

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"verifier.yaml 파싱 실패: {e}") from e

    if data is None:
        raise ConfigLoadError("verifier.yaml이 비어 있습니다")
    if not isinstance(data, dict):
        raise ConfigLoadError("verifier.yaml 최상위는 매핑이어야 합니다")

    rpc_url = data.get("rpc_url")
    if not rpc_url:
        raise ConfigLoadError("verifier.yaml에 'rpc_url' 필드가 없습니다")

    try:
        page_size = int(data.get("page_size", Defaults.PAGE_SIZE))
        chunk_size = int(data.get("chunk_size", Defaults.CHUNK_SIZE))
        call_timeout = float(data.get("call_timeout_seconds", Defaults.CALL_TIMEOUT_SEC))
    except (TypeError, ValueError) as e:
        raise ConfigLoadError(f"verifier.yaml 숫자 필드 형식 오류: {e}") from e

    if page_size <= 0:
        raise ConfigLoadError(f"page_size는 양수여야 합니다: {page_size}")
    if chunk_size <= 0:
        raise ConfigLoadError(f"chunk_size는 양수여야 합니다: {chunk_size}")
    if call_timeout <= 0:
        raise ConfigLoadError(f"call_timeout_seconds는 양수여야 합니다: {call_timeout}")

    return VerifierConfig(
        rpc_url=rpc_url,
        page_size=page_size,
        chunk_size=chunk_size,
        call_timeout_seconds=call_timeout,
        strict=bool(data.get("strict", False)),
        subgraph_endpoint=data.get("subgraph_endpoint") or None,
    )


def get_network_info(chain_id: int) -> NetworkInfo:
    """chain_id에 해당하는 네트워크 정보 반환

    Args:
        chain_id: 체인 ID

    Returns:
        NetworkInfo 인스턴스

    Raises:
        UnsupportedNetworkError: 정적 매핑에 없는 chain_id
    """
    network = NETWORKS.get(chain_id)
    if network is None:
        raise UnsupportedNetworkError(chain_id)
    return network
