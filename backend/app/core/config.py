"""
PEACE - Core Configuration
環境変数からシステム全体の設定を読み込む
"""
import json
import re
from datetime import timedelta
from functools import lru_cache
from typing import Annotated, Any, List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


# Go 形式の duration 文字列 ("24h", "1h30m", "500ms") を受け付ける
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {
    "h": 3600.0,
    "m": 60.0,
    "s": 1.0,
    "ms": 0.001,
}

MAX_JWT_LEEWAY_SECONDS = 60


def parse_duration(value: Any) -> timedelta:
    """整数秒・timedelta・Go 形式の文字列を timedelta に変換"""
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)
    if not isinstance(value, str):
        raise ValueError(f"unsupported duration value: {value!r}")

    text = value.strip().lower()
    if not text:
        raise ValueError("duration cannot be empty")
    if re.fullmatch(r"\d+(?:\.\d+)?", text):
        return timedelta(seconds=float(text))

    position = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            raise ValueError(f"invalid duration: {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position != len(text):
        raise ValueError(f"invalid duration: {value!r}")
    return timedelta(seconds=total)


def _split_list(v: Any) -> Any:
    if isinstance(v, str):
        # Try JSON list first: '["http://localhost:3000", "https://example.com"]'
        if v.startswith("["):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return [str(item).strip().rstrip("/") for item in parsed]
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated: "http://localhost:3000,https://example.com"
        return [item.strip().rstrip("/") for item in v.split(",") if item.strip()]
    if isinstance(v, list):
        return [str(item).strip().rstrip("/") for item in v]
    return v


class Settings(BaseSettings):
    """アプリケーション設定"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "PEACE"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"

    # API
    api_prefix: str = "/api"

    # Server
    server_host: str = "0.0.0.0"
    server_port: int = 8080
    websocket_port: int = 8081
    server_read_timeout: timedelta = timedelta(seconds=30)
    server_write_timeout: timedelta = timedelta(seconds=30)
    server_idle_timeout: timedelta = timedelta(seconds=60)
    server_shutdown_timeout: timedelta = timedelta(seconds=30)

    # PostgreSQL
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "peace"
    postgres_password: str = "peace"
    postgres_db: str = "peace"
    postgres_sslmode: str = "disable"
    database_url: Optional[str] = None
    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0
    redis_url: Optional[str] = None

    # JWT
    jwt_secret: str = Field(default="change-me-in-production-peace-secret-key")
    jwt_algorithm: str = "HS256"
    jwt_expiration: timedelta = timedelta(hours=24)
    jwt_refresh_expiration: timedelta = timedelta(hours=168)
    jwt_leeway: timedelta = timedelta(seconds=MAX_JWT_LEEWAY_SECONDS)

    # Google OAuth
    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_uri: str = "http://localhost:3000/auth/google/callback"

    # CORS
    cors_allowed_origins: Annotated[List[str], NoDecode] = ["http://localhost:3000", "http://localhost:8080"]
    cors_allowed_methods: Annotated[List[str], NoDecode] = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    # Presence / WebSocket
    presence_heartbeat_interval: timedelta = timedelta(seconds=10)
    presence_ttl: timedelta = timedelta(seconds=20)
    websocket_read_timeout: timedelta = timedelta(seconds=60)
    websocket_write_timeout: timedelta = timedelta(seconds=10)
    websocket_max_message_size: int = 1 << 20

    # Celery
    celery_broker_url: str = Field(default="redis://localhost:6379/1")
    celery_result_backend: str = Field(default="redis://localhost:6379/2")

    @field_validator("cors_allowed_origins", "cors_allowed_methods", mode="before")
    @classmethod
    def assemble_list(cls, v: Any) -> List[str]:
        return _split_list(v)

    @field_validator(
        "server_read_timeout",
        "server_write_timeout",
        "server_idle_timeout",
        "server_shutdown_timeout",
        "jwt_expiration",
        "jwt_refresh_expiration",
        "jwt_leeway",
        "presence_heartbeat_interval",
        "presence_ttl",
        "websocket_read_timeout",
        "websocket_write_timeout",
        mode="before",
    )
    @classmethod
    def parse_durations(cls, v: Any) -> timedelta:
        return parse_duration(v)

    @model_validator(mode="after")
    def check_consistency(self) -> "Settings":
        for name in (
            "jwt_expiration",
            "jwt_refresh_expiration",
            "presence_heartbeat_interval",
            "presence_ttl",
            "websocket_read_timeout",
            "websocket_write_timeout",
        ):
            if getattr(self, name).total_seconds() <= 0:
                raise ValueError(f"{name} must be positive")

        if self.jwt_leeway.total_seconds() > MAX_JWT_LEEWAY_SECONDS:
            raise ValueError("jwt_leeway cannot exceed 60 seconds")

        # 心拍が数回抜けても TTL 内に収まるよう 1.5〜3 倍に制限
        ratio = self.presence_ttl / self.presence_heartbeat_interval
        if not 1.5 <= ratio <= 3:
            raise ValueError("presence_ttl must be 1.5-3x presence_heartbeat_interval")

        if not self.database_url:
            self.database_url = (
                f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
                f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
            )
        if not self.redis_url:
            auth = f":{self.redis_password}@" if self.redis_password else ""
            self.redis_url = f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"
        return self

    def is_development(self) -> bool:
        return self.environment == "development"

    def is_production(self) -> bool:
        return self.environment == "production"

    def is_google_available(self) -> bool:
        """Google OAuth が設定済みかどうか"""
        return bool(self.google_client_id and self.google_client_secret)


@lru_cache
def get_settings() -> Settings:
    """設定のシングルトンインスタンスを取得"""
    return Settings()


settings = get_settings()
