"""
PEACE - Mental Health Record Schemas
気分記録・ヒートマップ・連続記録日数のスキーマ
"""
import uuid
from typing import Dict, Optional

from pydantic import BaseModel

from app.schemas.common import UTCDateTime


class RecordCreate(BaseModel):
    """記録作成スキーマ"""

    happy_level: int
    energy_level: int
    notes: Optional[str] = None
    status: str = "private"


class RecordUpdate(BaseModel):
    """記録更新スキーマ（可変フィールドを丸ごと置き換える）"""

    happy_level: int
    energy_level: int
    notes: Optional[str] = None
    status: str = "private"


class RecordResponse(BaseModel):
    """記録レスポンススキーマ"""

    id: uuid.UUID
    user_id: uuid.UUID
    happy_level: int
    energy_level: int
    notes: Optional[str] = None
    status: str
    created_at: UTCDateTime
    updated_at: UTCDateTime

    model_config = {"from_attributes": True}


class HeatmapBucket(BaseModel):
    """1日分の集計"""

    happy_level: int
    energy_level: int
    count: int


class DateRange(BaseModel):
    started_at: Optional[UTCDateTime] = None
    ended_at: Optional[UTCDateTime] = None


class HeatmapResponse(BaseModel):
    data: Dict[str, HeatmapBucket]
    total_records: int
    date_range: DateRange


class StreakResponse(BaseModel):
    streak: int
    last_entry_date: Optional[str] = None
