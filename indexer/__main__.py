"""
Indexer 진입점 (이벤트 재생)

JSONL 파일의 프로토콜 이벤트를 순서대로 적용하여 Ledger DB 구축.
한 줄에 이벤트 하나 (ProtocolEvent.to_dict 형식).

실행 방법:
    python -m indexer --events events.jsonl
    python -m indexer --db data/flowledger.db --events events.jsonl
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Iterator

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.constants import Paths
from core.domain.events import ProtocolEvent
from core.errors import OutOfOrderEventError
from core.logging import setup_logging
from core.storage.ledger_store import LedgerStore
from core.storage.schema import init_schema
from indexer.projector import LedgerProjector

logger = logging.getLogger("indexer")


def read_events(path: Path) -> Iterator[ProtocolEvent]:
    """JSONL 파일에서 이벤트 읽기 (빈 줄 무시)"""
    with path.open("r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                yield ProtocolEvent.from_dict(json.loads(line))
            except (KeyError, TypeError, ValueError) as e:
                raise ValueError(f"{path}:{line_no}: malformed event: {e}") from e


async def replay(db_path: Path, events_path: Path) -> int:
    """이벤트 재생

    Returns:
        처리된 이벤트 수
    """
    async with SQLiteAdapter(db_path) as db:
        await init_schema(db)
        store = LedgerStore(db)
        projector = LedgerProjector(store)

        start = await projector.last_position()
        logger.info(f"Replaying {events_path} from position {start}")

        processed = await projector.apply_all(read_events(events_path))

        stats = projector.get_stats()
        logger.info(
            f"Replay completed: processed={stats['processed_count']}, "
            f"skipped={stats['skipped_count']}, last_position={stats['last_position']}"
        )
        return processed


def main() -> int:
    parser = argparse.ArgumentParser(description="프로토콜 이벤트 재생으로 Ledger 구축")
    parser.add_argument(
        "--db",
        type=Path,
        default=Paths.LEDGER_DB,
        help=f"Ledger DB 경로 (기본: {Paths.LEDGER_DB})",
    )
    parser.add_argument(
        "--events",
        type=Path,
        required=True,
        help="이벤트 JSONL 파일",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="콘솔 DEBUG 로그",
    )
    args = parser.parse_args()

    setup_logging("indexer", console_level=logging.DEBUG if args.debug else logging.INFO)

    if not args.events.exists():
        logger.error(f"Events file not found: {args.events}")
        return 1

    try:
        asyncio.run(replay(args.db, args.events))
    except OutOfOrderEventError as e:
        logger.error(f"Event ordering violated: {e}")
        return 1
    except (KeyError, ValueError) as e:
        logger.error(f"Replay failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
