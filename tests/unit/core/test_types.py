"""
core/types.py 테스트

Enum 문자열 직렬화
"""

from core.types import EntityKind


class TestEntityKind:
    """EntityKind 테스트"""

    def test_str_enum(self) -> None:
        assert EntityKind.ACCOUNT_TOKEN_SNAPSHOT == "ACCOUNT_TOKEN_SNAPSHOT"
        assert EntityKind("STREAM") is EntityKind.STREAM
