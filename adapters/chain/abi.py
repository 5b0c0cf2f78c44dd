"""
에이전트 컨트랙트 최소 ABI

검증에 필요한 view 함수만 포함.
"""

from typing import Any


def _view(name: str, inputs: list[tuple[str, str]], outputs: list[tuple[str, str]]) -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "stateMutability": "view",
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t} for n, t in outputs],
    }


CFA_ABI: list[dict[str, Any]] = [
    _view(
        "getNetFlow",
        [("token", "address"), ("account", "address")],
        [("flowRate", "int96")],
    ),
    _view(
        "getFlow",
        [("token", "address"), ("sender", "address"), ("receiver", "address")],
        [
            ("timestamp", "uint256"),
            ("flowRate", "int96"),
            ("deposit", "uint256"),
            ("owedDeposit", "uint256"),
        ],
    ),
]

IDA_ABI: list[dict[str, Any]] = [
    _view(
        "getIndex",
        [("token", "address"), ("publisher", "address"), ("indexId", "uint32")],
        [
            ("exist", "bool"),
            ("indexValue", "uint128"),
            ("totalUnitsApproved", "uint128"),
            ("totalUnitsPending", "uint128"),
        ],
    ),
    _view(
        "getSubscription",
        [
            ("token", "address"),
            ("publisher", "address"),
            ("indexId", "uint32"),
            ("subscriber", "address"),
        ],
        [
            ("exist", "bool"),
            ("approved", "bool"),
            ("units", "uint128"),
            ("pendingDistribution", "uint256"),
        ],
    ),
]
