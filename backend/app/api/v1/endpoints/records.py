"""
PEACE - Mental Health Record Endpoints
気分記録の CRUD、ヒートマップ、連続記録日数API
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_current_user_id, get_record_service
from app.api.responses import success
from app.core.timeutil import format_date
from app.schemas.mood_record import (
    DateRange,
    HeatmapBucket,
    HeatmapResponse,
    RecordCreate,
    RecordResponse,
    RecordUpdate,
    StreakResponse,
)
from app.services.record_service import RecordService

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_record(
    body: RecordCreate,
    user_id: str = Depends(get_current_user_id),
    record_service: RecordService = Depends(get_record_service),
):
    record = await record_service.create(
        user_id=user_id,
        happy_level=body.happy_level,
        energy_level=body.energy_level,
        notes=body.notes,
        status=body.status,
    )
    return success(
        "Mental health record created successfully",
        RecordResponse.model_validate(record),
        status_code=status.HTTP_201_CREATED,
    )


@router.get("")
async def list_records(
    started_at: Optional[str] = Query(default=None),
    ended_at: Optional[str] = Query(default=None),
    user_id: str = Depends(get_current_user_id),
    record_service: RecordService = Depends(get_record_service),
):
    """期間内の記録を新しい順に取得（started_at / ended_at は両端を含む）"""
    records = await record_service.list(user_id, started_at, ended_at)
    return success(
        "Mental health records retrieved successfully",
        [RecordResponse.model_validate(r) for r in records],
    )


@router.get("/heatmap")
async def get_heatmap(
    started_at: Optional[str] = Query(default=None),
    ended_at: Optional[str] = Query(default=None),
    user_id: str = Depends(get_current_user_id),
    record_service: RecordService = Depends(get_record_service),
):
    heatmap = await record_service.heatmap(user_id, started_at, ended_at)
    payload = HeatmapResponse(
        data={
            day: HeatmapBucket(
                happy_level=bucket.happy_level,
                energy_level=bucket.energy_level,
                count=bucket.count,
            )
            for day, bucket in heatmap.buckets.items()
        },
        total_records=heatmap.total_records,
        date_range=DateRange(started_at=heatmap.started_at, ended_at=heatmap.ended_at),
    )
    return success("Mental health heatmap retrieved successfully", payload)


@router.get("/streak")
async def get_streak(
    user_id: str = Depends(get_current_user_id),
    record_service: RecordService = Depends(get_record_service),
):
    streak = await record_service.streak(user_id)
    payload = StreakResponse(
        streak=streak.streak,
        last_entry_date=format_date(streak.last_entry_date) if streak.last_entry_date else None,
    )
    return success("Mental health streak retrieved successfully", payload)


@router.get("/{record_id}")
async def get_record(
    record_id: str,
    user_id: str = Depends(get_current_user_id),
    record_service: RecordService = Depends(get_record_service),
):
    record = await record_service.get_by_id(record_id, user_id)
    return success("Mental health record retrieved successfully", RecordResponse.model_validate(record))


@router.put("/{record_id}")
async def update_record(
    record_id: str,
    body: RecordUpdate,
    user_id: str = Depends(get_current_user_id),
    record_service: RecordService = Depends(get_record_service),
):
    record = await record_service.update(
        record_id=record_id,
        user_id=user_id,
        happy_level=body.happy_level,
        energy_level=body.energy_level,
        notes=body.notes,
        status=body.status,
    )
    return success("Mental health record updated successfully", RecordResponse.model_validate(record))


@router.delete("/{record_id}")
async def delete_record(
    record_id: str,
    user_id: str = Depends(get_current_user_id),
    record_service: RecordService = Depends(get_record_service),
):
    await record_service.delete(record_id, user_id)
    return success("Mental health record deleted successfully")
