#!/usr/bin/env python3
"""
PEACE - Quote Import Script
CSV（content,author）から名言を一括登録する

使い方:
    python backend/scripts/import_quotes.py --file quotes.csv [--dry-run] [--batch-size 100] [--workers 4]
"""
import argparse
import asyncio
import os
import sys
from pathlib import Path

# プロジェクトルートから実行されることを想定し、backendディレクトリをパスに追加
SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
BACKEND_DIR = os.path.dirname(SCRIPT_DIR)

sys.path.insert(0, BACKEND_DIR)

from app.core.config import settings  # noqa: E402
from app.core.logger import configure_logging  # noqa: E402
from app.db.base import async_session_maker, engine  # noqa: E402
from app.services.quote_importer import DEFAULT_BATCH_SIZE, QuoteImporter  # noqa: E402


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import quotes from a CSV file")
    parser.add_argument("--file", required=True, help="Path to the CSV file (content,author)")
    parser.add_argument("--dry-run", action="store_true", help="Validate rows without inserting")
    parser.add_argument("--batch-size", type=int, default=DEFAULT_BATCH_SIZE, help="Rows per insert batch")
    parser.add_argument("--workers", type=int, default=1, help="Concurrent insert batches")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
    importer = QuoteImporter(async_session_maker)
    try:
        stats = await importer.run(
            args.file,
            dry_run=args.dry_run,
            batch_size=args.batch_size,
            workers=args.workers,
        )
    finally:
        await engine.dispose()

    print(f"processed={stats.processed} skipped={stats.skipped} errors={stats.errors}")
    return 0


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging(settings.log_level, settings.log_format)

    if not Path(args.file).is_file():
        print(f"error: cannot open {args.file}", file=sys.stderr)
        return 1
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
