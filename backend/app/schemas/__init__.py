"""
PEACE - Pydantic Schemas
APIリクエスト・レスポンスのスキーマ定義
"""
from app.schemas.common import APIResponse, HealthResponse, UTCDateTime
from app.schemas.user import (
    RegisterRequest,
    LoginRequest,
    RefreshRequest,
    ProviderLoginRequest,
    UpdateProfileRequest,
    UpdatePasswordRequest,
    UserSummary,
    UserResponse,
    LoginResponse,
    TokenPair,
    AuthUrlResponse,
)
from app.schemas.mood_record import (
    RecordCreate,
    RecordUpdate,
    RecordResponse,
    HeatmapBucket,
    HeatmapResponse,
    StreakResponse,
)
from app.schemas.quote import (
    QuoteCreate,
    QuoteUpdate,
    QuoteResponse,
    TagCreate,
    TagUpdate,
    TagResponse,
    QuoteTagRequest,
)
from app.schemas.presence import OnlineStatus, WSMessage

__all__ = [
    # Common
    "APIResponse",
    "HealthResponse",
    "UTCDateTime",
    # User
    "RegisterRequest",
    "LoginRequest",
    "RefreshRequest",
    "ProviderLoginRequest",
    "UpdateProfileRequest",
    "UpdatePasswordRequest",
    "UserSummary",
    "UserResponse",
    "LoginResponse",
    "TokenPair",
    "AuthUrlResponse",
    # Records
    "RecordCreate",
    "RecordUpdate",
    "RecordResponse",
    "HeatmapBucket",
    "HeatmapResponse",
    "StreakResponse",
    # Quotes
    "QuoteCreate",
    "QuoteUpdate",
    "QuoteResponse",
    "TagCreate",
    "TagUpdate",
    "TagResponse",
    "QuoteTagRequest",
    # Presence
    "OnlineStatus",
    "WSMessage",
]
