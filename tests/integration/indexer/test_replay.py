"""
Indexer 재생 CLI 통합 테스트

JSONL 이벤트 파일 재생과 종료 코드
"""

import json
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.domain.entities import AccountTokenSnapshot
from core.domain.events import EventTypes
from core.storage.ledger_store import LedgerStore
from indexer import __main__ as indexer_main


TOKEN = "0x00000000000000000000000000000000000000AA"
ALICE = "0x0000000000000000000000000000000000000A11"
BOB = "0x0000000000000000000000000000000000000B0B"


def _line(block: int, rate: int, log_index: int = 0) -> str:
    return json.dumps(
        {
            "name": EventTypes.FLOW_UPDATED,
            "address": "0xCFA",
            "block_number": block,
            "log_index": log_index,
            "timestamp": block * 10,
            "transaction_hash": f"0x{block:04x}",
            "params": {"token": TOKEN, "sender": ALICE, "receiver": BOB, "flowRate": str(rate)},
        }
    )


def _write_events(path: Path, lines: list[str]) -> Path:
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


class TestReadEvents:
    """read_events 테스트"""

    def test_skips_blank_lines(self, tmp_path: Path) -> None:
        path = _write_events(tmp_path / "events.jsonl", [_line(1, 100), "", _line(2, 0)])

        events = list(indexer_main.read_events(path))

        assert [e.block_number for e in events] == [1, 2]
        assert events[0].address == "0xcfa"

    def test_malformed_line(self, tmp_path: Path) -> None:
        path = _write_events(tmp_path / "events.jsonl", [_line(1, 100), "{not json"])

        with pytest.raises(ValueError, match="events.jsonl:2"):
            list(indexer_main.read_events(path))


class TestReplay:
    """replay 테스트"""

    @pytest.mark.asyncio
    async def test_replay_builds_ledger(self, tmp_path: Path) -> None:
        db_path = tmp_path / "ledger.db"
        events = _write_events(tmp_path / "events.jsonl", [_line(1, 100), _line(2, 250)])

        processed = await indexer_main.replay(db_path, events)

        assert processed == 2
        async with SQLiteAdapter(db_path) as db:
            store = LedgerStore(db)
            alice = await store.get(
                AccountTokenSnapshot,
                AccountTokenSnapshot.make_id(ALICE.lower(), TOKEN.lower()),
            )
        assert alice.total_net_flow_rate == -250

    @pytest.mark.asyncio
    async def test_replay_resumes(self, tmp_path: Path) -> None:
        """같은 DB에 이어지는 파일 재생"""
        db_path = tmp_path / "ledger.db"
        await indexer_main.replay(db_path, _write_events(tmp_path / "a.jsonl", [_line(1, 100)]))

        processed = await indexer_main.replay(db_path, _write_events(tmp_path / "b.jsonl", [_line(2, 0)]))

        assert processed == 1


class TestMain:
    """main 종료 코드"""

    def _run(self, argv: list[str]) -> int:
        with patch.object(sys, "argv", ["indexer", *argv]), patch.object(indexer_main, "setup_logging"):
            return indexer_main.main()

    def test_success(self, tmp_path: Path) -> None:
        events = _write_events(tmp_path / "events.jsonl", [_line(1, 100)])

        assert self._run(["--db", str(tmp_path / "ledger.db"), "--events", str(events)]) == 0

    def test_missing_events_file(self, tmp_path: Path) -> None:
        assert self._run(["--db", str(tmp_path / "ledger.db"), "--events", str(tmp_path / "nope.jsonl")]) == 1

    def test_out_of_order(self, tmp_path: Path) -> None:
        events = _write_events(tmp_path / "events.jsonl", [_line(2, 100), _line(1, 50)])

        assert self._run(["--db", str(tmp_path / "ledger.db"), "--events", str(events)]) == 1

    def test_malformed_file(self, tmp_path: Path) -> None:
        events = _write_events(tmp_path / "events.jsonl", ["[1, 2]"])

        assert self._run(["--db", str(tmp_path / "ledger.db"), "--events", str(events)]) == 1
