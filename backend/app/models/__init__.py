"""
PEACE - Database Models
データベースモデルの定義
"""
from app.models.user import User, AUTH_PROVIDER_LOCAL
from app.models.mood_record import MoodRecord, RecordStatus
from app.models.quote import Quote, Tag, quote_tags

__all__ = [
    "User",
    "AUTH_PROVIDER_LOCAL",
    "MoodRecord",
    "RecordStatus",
    "Quote",
    "Tag",
    "quote_tags",
]
