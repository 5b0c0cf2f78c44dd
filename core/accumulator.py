"""
분배 누산기 계산 (Accumulator Math)

Pool의 단위당 flow rate 재분배와 정산(settlement) 계산.
모든 값은 정수 연산만 사용 (부동소수점/Decimal 금지).

정산 순서 규칙:
    Pool을 먼저 현재 시각까지 정산한 뒤 Member를 정산해야 함.
    Member를 먼저 정산하면 오래된 누산값 기준으로 계산되어 과소 지급됨.
"""

from core.domain.entities import AccountTokenSnapshot, Pool, PoolMember, TokenStatistic


def truncating_div(numerator: int, denominator: int) -> int:
    """0 방향으로 버리는 정수 나눗셈

    Python의 // 는 음수에서 -inf 방향으로 내림하므로
    BigInt.div와 같은 결과를 위해 부호를 분리해서 계산.
    """
    if denominator == 0:
        raise ZeroDivisionError("denominator must not be zero")
    quotient = abs(numerator) // abs(denominator)
    if (numerator < 0) != (denominator < 0):
        return -quotient
    return quotient


def compute_per_unit_flow_rate(
    existing_pool_flow_rate: int,
    new_total_units: int,
) -> tuple[int, int]:
    """새 총 unit 기준 단위당 flow rate와 나머지 계산

    Args:
        existing_pool_flow_rate: 변경 전 Pool 전체 flow rate
            (per_unit_flow_rate * total_units)
        new_total_units: 변경 후 총 unit (>= 0)

    Returns:
        (new_per_unit_flow_rate, remainder)
        new_total_units == 0 이면 (0, existing_pool_flow_rate)

    Example:
        >>> compute_per_unit_flow_rate(1000, 3)
        (333, 1)
    """
    if new_total_units == 0:
        return 0, existing_pool_flow_rate

    new_per_unit_flow_rate = truncating_div(existing_pool_flow_rate, new_total_units)
    remainder = existing_pool_flow_rate - new_per_unit_flow_rate * new_total_units
    return new_per_unit_flow_rate, remainder


def settle_pool(pool: Pool, timestamp: int, block_number: int) -> Pool:
    """Pool을 timestamp 시점까지 정산

    단위당 정산값 누산기와 누적 분배량을 경과 시간만큼 전진.

    Args:
        pool: 정산할 Pool (in-place 갱신)
        timestamp: 이벤트 블록 타임스탬프 (초)
        block_number: 이벤트 블록 번호

    Returns:
        갱신된 Pool (같은 객체)
    """
    elapsed = timestamp - pool.updated_at_timestamp
    if elapsed > 0:
        amount_flowed = pool.flow_rate * elapsed
        pool.per_unit_settled_value += pool.per_unit_flow_rate * elapsed
        pool.total_amount_flowed_distributed_until_updated_at += amount_flowed
        pool.total_amount_distributed_until_updated_at += amount_flowed

    pool.updated_at_timestamp = timestamp
    pool.updated_at_block_number = block_number
    return pool


def accrued_since_sync(current_accumulator: int, synced_accumulator: int, units: int) -> int:
    """마지막 동기화 이후 발생한 청구 가능 금액

    reward-per-share 방식: (현재 누산값 - 동기화된 누산값) * units
    """
    return (current_accumulator - synced_accumulator) * units


def settle_member(pool: Pool, member: PoolMember, timestamp: int, block_number: int) -> int:
    """Member를 Pool의 현재 누산값으로 정산

    반드시 settle_pool 이후에 호출해야 함.
    연속 두 번 호출하면 두 번째 호출의 증가분은 0 (멱등).

    Args:
        pool: 이미 정산된 Pool
        member: 정산할 PoolMember (in-place 갱신)
        timestamp: 이벤트 블록 타임스탬프
        block_number: 이벤트 블록 번호

    Returns:
        이번 정산으로 더해진 금액
    """
    accrued = accrued_since_sync(
        pool.per_unit_settled_value,
        member.synced_per_unit_settled_value,
        member.units,
    )
    member.total_amount_received_until_updated_at += accrued
    member.synced_per_unit_settled_value = pool.per_unit_settled_value
    member.synced_per_unit_flow_rate = pool.per_unit_flow_rate
    member.updated_at_timestamp = timestamp
    member.updated_at_block_number = block_number
    return accrued


def pending_distribution(
    units: int,
    index_value: int,
    index_value_until_updated_at: int,
    approved: bool,
) -> int:
    """Subscription의 미청구 분배량

    승인된 구독은 분배 즉시 수령하므로 0.
    미승인 구독은 units * (index_value - 마지막 동기화 index_value).
    """
    if approved:
        return 0
    return units * (index_value - index_value_until_updated_at)


def settle_account_token_snapshot(
    ats: AccountTokenSnapshot,
    timestamp: int,
    block_number: int,
    balance_delta: int = 0,
) -> AccountTokenSnapshot:
    """ATS 잔고/누적 스트리밍 금액을 timestamp 시점까지 정산

    Args:
        ats: 정산할 ATS (in-place 갱신)
        timestamp: 이벤트 블록 타임스탬프
        block_number: 이벤트 블록 번호
        balance_delta: 이벤트로 인한 즉시 잔고 변화 (예: 청구 금액)
    """
    elapsed = timestamp - ats.updated_at_timestamp
    if elapsed > 0:
        ats.balance_until_updated_at += ats.total_net_flow_rate * elapsed
        ats.total_amount_streamed_in_until_updated_at += ats.total_inflow_rate * elapsed
        ats.total_amount_streamed_out_until_updated_at += ats.total_outflow_rate * elapsed

    ats.balance_until_updated_at += balance_delta
    ats.updated_at_timestamp = timestamp
    ats.updated_at_block_number = block_number
    return ats


def settle_token_statistic(stats: TokenStatistic, timestamp: int, block_number: int) -> TokenStatistic:
    """토큰 누적 스트리밍 금액을 timestamp 시점까지 정산"""
    elapsed = timestamp - stats.updated_at_timestamp
    if elapsed > 0:
        stats.total_amount_streamed_until_updated_at += stats.total_outflow_rate * elapsed

    stats.updated_at_timestamp = timestamp
    stats.updated_at_block_number = block_number
    return stats
