"""
PEACE - Presence Schemas
オンライン状態と WebSocket メッセージのスキーマ
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from app.core.timeutil import format_time


class OnlineStatus(BaseModel):
    """
    ユーザー1人分のオンライン状態

    Redis には JSON として保存される。last_seen は Unix 秒。
    """

    user_id: str
    user_email: str
    is_online: bool
    last_seen: int

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, raw: str) -> "OnlineStatus":
        return cls.model_validate_json(raw)

    def to_public(self) -> Dict[str, Any]:
        """クライアント向け表現（last_seen は RFC 3339）"""
        return {
            "user_id": self.user_id,
            "user_email": self.user_email,
            "is_online": self.is_online,
            "last_seen": format_time(datetime.fromtimestamp(self.last_seen, tz=timezone.utc)),
        }


class WSMessage(BaseModel):
    """クライアントからのフレーム {type, data?}"""

    type: str = Field(..., min_length=1)
    data: Optional[Any] = None
