"""
PEACE - Record Service
気分記録の作成・更新・削除・取得と、ヒートマップ・連続記録日数の集計

ヒートマップは日ごとの平均を整数除算（切り捨て）の逐次平均で畳み込む。
既存クライアントとの互換のため、この切り捨て挙動は維持している。
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional, Union

from app.core.errors import ForbiddenError, NotFoundError, UnauthorizedError, ValidationError
from app.core.logger import trace_execution
from app.core.timeutil import format_date, parse_time, to_utc_date, utc_now
from app.models.mood_record import MoodRecord
from app.services.record_store import RecordFilter, RecordStore
from app.services.user_store import UserStore
from app.services.validators import normalize_notes, validate_level, validate_status

logger = logging.getLogger(__name__)

UserID = Union[str, uuid.UUID]

NOT_OWNER_MESSAGE = "unauthorized: user does not own this record"
DATE_FORMAT_HINT = "expected ISO 8601 (e.g., 2025-08-23T17:00:00.000Z)"


@dataclass
class DayAggregate:
    """1日分の逐次平均"""

    happy_level: int = 0
    energy_level: int = 0
    count: int = 0

    def admit(self, happy: int, energy: int) -> None:
        self.happy_level = (self.happy_level * self.count + happy) // (self.count + 1)
        self.energy_level = (self.energy_level * self.count + energy) // (self.count + 1)
        self.count += 1


@dataclass
class Heatmap:
    buckets: Dict[str, DayAggregate] = field(default_factory=dict)
    total_records: int = 0
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None


@dataclass
class Streak:
    streak: int
    last_entry_date: Optional[date] = None


def fold_heatmap(records: List[MoodRecord]) -> Dict[str, DayAggregate]:
    """記録を UTC 日付ごとに畳み込む（records は作成日時の昇順を想定）"""
    buckets: Dict[str, DayAggregate] = {}
    for record in records:
        day = format_date(to_utc_date(record.created_at))
        buckets.setdefault(day, DayAggregate()).admit(record.happy_level, record.energy_level)
    return buckets


def compute_streak(days: List[date], today: date) -> Streak:
    """
    今日または昨日を起点とした連続記録日数

    days は重複なしの降順。最新日が今日でも昨日でもなければ 0。
    """
    if not days:
        return Streak(streak=0, last_entry_date=None)

    latest = days[0]
    if latest not in (today, today - timedelta(days=1)):
        return Streak(streak=0, last_entry_date=latest)

    streak = 1
    for previous, current in zip(days, days[1:]):
        if current != previous - timedelta(days=1):
            break
        streak += 1
    return Streak(streak=streak, last_entry_date=latest)


def _parse_record_id(record_id: Union[str, uuid.UUID]) -> uuid.UUID:
    if isinstance(record_id, uuid.UUID):
        return record_id
    try:
        return uuid.UUID(str(record_id))
    except ValueError:
        raise ValidationError("invalid record id")


def _parse_bound(value: Optional[str], label: str) -> Optional[datetime]:
    if value is None or not value.strip():
        return None
    try:
        return parse_time(value)
    except ValueError:
        raise ValidationError(f"invalid {label} date format, {DATE_FORMAT_HINT}")


class RecordService:
    """気分記録オーケストレーター"""

    def __init__(
        self,
        record_store: RecordStore,
        user_store: UserStore,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.record_store = record_store
        self.user_store = user_store
        self.clock = clock

    @trace_execution("RecordService", "create")
    async def create(
        self,
        user_id: UserID,
        happy_level: int,
        energy_level: int,
        notes: Optional[str] = None,
        status: str = "private",
    ) -> MoodRecord:
        record = MoodRecord(
            happy_level=validate_level(happy_level, "happy level"),
            energy_level=validate_level(energy_level, "energy level"),
            notes=normalize_notes(notes),
            status=validate_status(status),
        )

        try:
            user = await self.user_store.get(user_id)
        except NotFoundError:
            raise UnauthorizedError("user not found")
        if not user.can_login():
            raise UnauthorizedError("user account is inactive")

        record.user_id = user.id
        record = await self.record_store.create(record)
        return await self.record_store.get(record.id)

    @trace_execution("RecordService", "update")
    async def update(
        self,
        record_id: Union[str, uuid.UUID],
        user_id: UserID,
        happy_level: int,
        energy_level: int,
        notes: Optional[str] = None,
        status: str = "private",
    ) -> MoodRecord:
        happy_level = validate_level(happy_level, "happy level")
        energy_level = validate_level(energy_level, "energy level")
        notes = normalize_notes(notes)
        status = validate_status(status)

        existing = await self._get_owned(record_id, user_id)
        existing.happy_level = happy_level
        existing.energy_level = energy_level
        existing.notes = notes
        existing.status = status
        return await self.record_store.update(existing)

    @trace_execution("RecordService", "delete")
    async def delete(self, record_id: Union[str, uuid.UUID], user_id: UserID) -> None:
        existing = await self._get_owned(record_id, user_id)
        await self.record_store.delete(existing.id)

    async def get_by_id(self, record_id: Union[str, uuid.UUID], user_id: UserID) -> MoodRecord:
        return await self._get_owned(record_id, user_id)

    async def list(
        self,
        user_id: UserID,
        started_at: Optional[str] = None,
        ended_at: Optional[str] = None,
        ascending: bool = False,
    ) -> List[MoodRecord]:
        record_filter = RecordFilter(
            user_id=uuid.UUID(str(user_id)),
            started_at=_parse_bound(started_at, "start"),
            ended_at=_parse_bound(ended_at, "end"),
            ascending=ascending,
        )
        return await self.record_store.list_by_filter(record_filter)

    @trace_execution("RecordService", "heatmap")
    async def heatmap(
        self,
        user_id: UserID,
        started_at: Optional[str] = None,
        ended_at: Optional[str] = None,
    ) -> Heatmap:
        records = await self.list(user_id, started_at, ended_at, ascending=True)
        return Heatmap(
            buckets=fold_heatmap(records),
            total_records=len(records),
            started_at=_parse_bound(started_at, "start"),
            ended_at=_parse_bound(ended_at, "end"),
        )

    @trace_execution("RecordService", "streak")
    async def streak(self, user_id: UserID) -> Streak:
        days = await self.record_store.distinct_days_for(user_id)
        return compute_streak(days, to_utc_date(self.clock()))

    async def _get_owned(self, record_id: Union[str, uuid.UUID], user_id: UserID) -> MoodRecord:
        record = await self.record_store.get(_parse_record_id(record_id))
        if str(record.user_id) != str(user_id):
            logger.warning(f"Record ownership check failed: record={record.id}")
            raise ForbiddenError(NOT_OWNER_MESSAGE)
        return record
