"""
예외 정의

구조적(치명적) 에러: 실행 전체를 중단하고 non-zero 종료
레코드 단위 에러: 로그로 보고하고 실행 계속
"""

from typing import Any


class ConfigLoadError(Exception):
    """설정 로드 실패 예외"""

    pass


class UnsupportedNetworkError(Exception):
    """지원하지 않는 네트워크 (chain_id) 예외"""

    def __init__(self, chain_id: int):
        self.chain_id = chain_id
        super().__init__(f"chainId {chain_id} is not a supported chainId.")


class SubgraphQueryError(Exception):
    """Subgraph 쿼리 실패

    디버깅을 위해 원본 쿼리와 변수를 보존.
    """

    def __init__(self, query: str, variables: dict[str, Any] | None, message: str):
        self.query = query
        self.variables = variables
        self.message = message
        super().__init__(
            f"Failed call to subgraph with query {query} "
            f"(variables={variables}) and error {message}"
        )


class PaginationStalledError(Exception):
    """페이지네이션 커서가 진행하지 않음

    한 페이지 전체가 같은 createdAtTimestamp를 가지면 다음 커서가
    이전과 동일해져 무한 루프가 됨. id 순 대체 쿼리가 없는 쿼리에서만 발생.
    """

    def __init__(self, cursor: int, page_size: int):
        self.cursor = cursor
        self.page_size = page_size
        super().__init__(
            f"Pagination cursor did not advance past createdAt={cursor}: at least "
            f"{page_size} records (page size) share this timestamp and the query "
            f"has no id tiebreak variant"
        )


class ChainCallError(Exception):
    """온체인 조회 실패

    호출한 메서드명과 인자를 보존.
    """

    def __init__(self, method: str, args: tuple[Any, ...], message: str):
        self.method = method
        self.args_ = args
        self.message = message
        super().__init__(f"Chain call {method}{args} failed: {message}")


class RecordMismatchError(Exception):
    """레코드 단위 불일치 (Subgraph 값 vs 온체인 값)

    authoritative_value: 불일치여도 전역 합계에 들어가야 하는 온체인 값
    (ATS net flow rate)
    """

    def __init__(self, mismatches: list[Any], authoritative_value: int | None = None):
        self.mismatches = mismatches
        self.authoritative_value = authoritative_value
        super().__init__("; ".join(m.description for m in mismatches))


class GlobalInvariantViolation(Exception):
    """전역 불변식 위반 (예: 전체 net flow 합 != 0)"""

    pass


class OutOfOrderEventError(Exception):
    """이벤트 순서 위반

    이미 적용된 위치보다 같거나 앞선 이벤트, 또는 위치는 뒤지만
    block timestamp가 마지막 적용 timestamp보다 앞선 이벤트가 들어온 경우.
    Ledger 상태가 정의되지 않으므로 치명적 에러로 취급.
    """

    def __init__(
        self,
        last_position: Any,
        event_position: Any,
        event_name: str,
        last_timestamp: int | None = None,
        event_timestamp: int | None = None,
    ):
        self.last_position = last_position
        self.event_position = event_position
        self.event_name = event_name
        self.last_timestamp = last_timestamp
        self.event_timestamp = event_timestamp
        if event_timestamp is not None:
            message = (
                f"{event_name} at {event_position} has timestamp {event_timestamp} "
                f"before last applied timestamp {last_timestamp}"
            )
        else:
            message = (
                f"{event_name} at {event_position} is not after last applied "
                f"position {last_position}"
            )
        super().__init__(message)
