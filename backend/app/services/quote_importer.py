"""
PEACE - Quote CSV Importer
2列（content,author）の CSV から名言を一括登録する

- 1行目はヘッダーとして読み捨てる
- content が空の行、列が2未満の行はスキップ
- author が空なら "Unknown"
"""
import asyncio
import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.errors import AppError, ValidationError
from app.models.quote import Quote
from app.services.quote_service import QuoteService
from app.services.validators import validate_quote_author, validate_quote_content

logger = logging.getLogger(__name__)

UNKNOWN_AUTHOR = "Unknown"
DEFAULT_BATCH_SIZE = 100


@dataclass
class QuoteRow:
    row: int
    content: str
    author: str


@dataclass
class ParseResult:
    rows: List[QuoteRow] = field(default_factory=list)
    skipped: int = 0


@dataclass
class ImportStats:
    processed: int = 0
    skipped: int = 0
    errors: int = 0


def parse_quote_rows(lines: Iterable[str]) -> ParseResult:
    result = ParseResult()
    reader = csv.reader(lines)

    # ヘッダー
    next(reader, None)

    for row_number, columns in enumerate(reader, start=2):
        if len(columns) < 2:
            result.skipped += 1
            continue
        content = columns[0].strip()
        author = columns[1].strip()
        if not content:
            result.skipped += 1
            continue
        result.rows.append(QuoteRow(row=row_number, content=content, author=author or UNKNOWN_AUTHOR))
    return result


class QuoteImporter:
    """CSV → quotes テーブル"""

    def __init__(self, session_factory: Union[async_sessionmaker, Callable[[], AsyncSession]]):
        self.session_factory = session_factory

    async def run(
        self,
        path: Union[str, Path],
        dry_run: bool = False,
        batch_size: int = DEFAULT_BATCH_SIZE,
        workers: int = 1,
    ) -> ImportStats:
        if batch_size <= 0:
            raise ValidationError("batch size must be positive")

        with open(path, newline="", encoding="utf-8") as f:
            parsed = parse_quote_rows(f)

        stats = ImportStats(skipped=parsed.skipped)
        quotes: List[Quote] = []
        for item in parsed.rows:
            try:
                quotes.append(
                    Quote(
                        content=validate_quote_content(item.content),
                        author=validate_quote_author(item.author),
                    )
                )
            except ValidationError as e:
                logger.warning(f"Row {item.row} rejected: {e.message}")
                stats.errors += 1

        if dry_run:
            stats.processed = len(quotes)
            logger.info(f"Dry run: {stats.processed} quotes would be imported from {path}")
            return stats

        batches = [quotes[i:i + batch_size] for i in range(0, len(quotes), batch_size)]
        semaphore = asyncio.Semaphore(max(1, workers))

        async def _insert(batch: List[Quote]) -> Optional[int]:
            async with semaphore:
                async with self.session_factory() as session:
                    try:
                        return await QuoteService(session).create_quotes(batch)
                    except AppError as e:
                        logger.error(f"Batch of {len(batch)} quotes failed: {e.message}")
                        return None

        for inserted, batch in zip(await asyncio.gather(*(_insert(b) for b in batches)), batches):
            if inserted is None:
                stats.errors += len(batch)
            else:
                stats.processed += inserted

        logger.info(
            f"Quote import finished: processed={stats.processed} "
            f"skipped={stats.skipped} errors={stats.errors}"
        )
        return stats
