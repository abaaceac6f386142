"""
PEACE - Common Schemas
レスポンスエンベロープと共通型
"""
from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import BaseModel, PlainSerializer

from app.core.timeutil import format_time

# RFC 3339（UTC, Z 付き）でシリアライズされる日時
UTCDateTime = Annotated[datetime, PlainSerializer(format_time, return_type=str)]


class APIResponse(BaseModel):
    """全エンドポイント共通のレスポンスエンベロープ"""

    code: str
    message: str
    data: Optional[Any] = None


class HealthResponse(BaseModel):
    status: str = "ok"
