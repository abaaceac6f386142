"""
PEACE - Record Store
気分記録の永続化、期間検索、記録日の抽出
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Union

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError, session_errors
from app.core.timeutil import ensure_utc, to_utc_date, utc_now
from app.models.mood_record import MoodRecord

logger = logging.getLogger(__name__)


@dataclass
class RecordFilter:
    """
    記録検索条件

    started_at / ended_at は両端を含む。既定は作成日時の降順。
    """

    user_id: uuid.UUID
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    ascending: bool = False


def _as_uuid(value: Union[str, uuid.UUID]) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise NotFoundError("mental health record not found")


class RecordStore:
    """気分記録テーブルへのアクセス"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, record: MoodRecord) -> MoodRecord:
        self.session.add(record)
        async with session_errors(self.session, "record_store.create"):
            await self.session.commit()
            await self.session.refresh(record)
        return record

    async def get(self, record_id: Union[str, uuid.UUID]) -> MoodRecord:
        async with session_errors(self.session, "record_store.get"):
            result = await self.session.execute(
                select(MoodRecord)
                .where(
                    MoodRecord.id == _as_uuid(record_id),
                    MoodRecord.deleted_at.is_(None),
                )
                .execution_options(populate_existing=True)
            )
            record = result.scalar_one_or_none()
        if record is None:
            raise NotFoundError("mental health record not found")
        return record

    async def update(self, record: MoodRecord) -> MoodRecord:
        """可変フィールドを保存（対象が削除済みなら NotFound）"""
        async with session_errors(self.session, "record_store.update"):
            result = await self.session.execute(
                update(MoodRecord)
                .where(MoodRecord.id == record.id, MoodRecord.deleted_at.is_(None))
                .values(
                    happy_level=record.happy_level,
                    energy_level=record.energy_level,
                    notes=record.notes,
                    status=record.status,
                    updated_at=utc_now(),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self.session.rollback()
                raise NotFoundError("mental health record not found")
            await self.session.commit()
        return await self.get(record.id)

    async def delete(self, record_id: Union[str, uuid.UUID]) -> None:
        """論理削除"""
        now = utc_now()
        async with session_errors(self.session, "record_store.delete"):
            result = await self.session.execute(
                update(MoodRecord)
                .where(MoodRecord.id == _as_uuid(record_id), MoodRecord.deleted_at.is_(None))
                .values(deleted_at=now, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self.session.rollback()
                raise NotFoundError("mental health record not found")
            await self.session.commit()

    async def list_by_filter(self, record_filter: RecordFilter) -> List[MoodRecord]:
        query = select(MoodRecord).where(
            MoodRecord.user_id == record_filter.user_id,
            MoodRecord.deleted_at.is_(None),
        )
        if record_filter.started_at is not None:
            query = query.where(MoodRecord.created_at >= ensure_utc(record_filter.started_at))
        if record_filter.ended_at is not None:
            query = query.where(MoodRecord.created_at <= ensure_utc(record_filter.ended_at))

        if record_filter.ascending:
            query = query.order_by(MoodRecord.created_at.asc(), MoodRecord.id.asc())
        else:
            query = query.order_by(MoodRecord.created_at.desc(), MoodRecord.id.desc())

        if record_filter.offset:
            query = query.offset(record_filter.offset)
        if record_filter.limit:
            query = query.limit(record_filter.limit)

        async with session_errors(self.session, "record_store.list"):
            result = await self.session.execute(query)
            return list(result.scalars().all())

    async def distinct_days_for(self, user_id: Union[str, uuid.UUID]) -> List[date]:
        """記録のある UTC 日付を重複なしで新しい順に返す"""
        async with session_errors(self.session, "record_store.distinct_days"):
            result = await self.session.execute(
                select(MoodRecord.created_at)
                .where(
                    MoodRecord.user_id == _as_uuid(user_id),
                    MoodRecord.deleted_at.is_(None),
                )
                .order_by(MoodRecord.created_at.desc())
            )
            timestamps = result.scalars().all()

        days: List[date] = []
        for created_at in timestamps:
            day = to_utc_date(created_at)
            if not days or days[-1] != day:
                days.append(day)
        return days
