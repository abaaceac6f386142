"""
PEACE - FastAPI Application
メインアプリケーションエントリーポイント
"""
import asyncio
import time
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.handlers import register_exception_handlers
from app.api.responses import envelope
from app.api.v1.endpoints import presence
from app.api.v1.router import api_router
from app.core.config import settings
from app.core.errors import CODE_BAD_REQUEST, CODE_SERVER_ERROR
from app.core.logger import configure_logging, get_traced_logger
from app.core.trace_context import generate_trace_id
from app.db.base import check_database, create_tables, engine
from app.db.redis import check_redis, close_redis

# ロギング設定（プロセスで一度だけ）
configure_logging(settings.log_level, settings.log_format)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """アプリケーションのライフサイクル管理"""
    logger.info("Starting PEACE application", version=settings.app_version, environment=settings.environment)
    app.state.shutdown_event = asyncio.Event()

    # ストアに接続できなければ起動を中止する
    await check_database()
    await check_redis()
    logger.info("Database and Redis connections verified")

    # データベーステーブルの作成（開発用）
    if settings.is_development():
        await create_tables()
        logger.info("Database tables created")

    yield

    logger.info("Shutting down PEACE application")
    app.state.shutdown_event.set()
    await close_redis()
    await engine.dispose()


# FastAPIアプリケーション
app = FastAPI(
    title=settings.app_name,
    description="""
    PEACE: メンタルヘルス記録のためのバックエンド

    気分の記録・ヒートマップ・連続記録日数、名言ライブラリ、
    WebSocket によるオンライン状態の共有を提供する
    """,
    version=settings.app_version,
    openapi_url=f"{settings.api_prefix}/openapi.json",
    docs_url=f"{settings.api_prefix}/docs",
    redoc_url=f"{settings.api_prefix}/redoc",
    lifespan=lifespan,
)

# --- Trace ID Middleware ---
_request_logger = get_traced_logger("Main")


class TraceIDMiddleware(BaseHTTPMiddleware):
    """リクエストごとに trace_id を生成し、レスポンスヘッダーに付与する"""

    async def dispatch(self, request: Request, call_next):
        trace_id = generate_trace_id()
        start = time.monotonic()

        _request_logger.info(
            "Request received",
            metadata={
                "method": request.method,
                "path": request.url.path,
            },
        )

        response: Response = await call_next(request)

        duration_ms = round((time.monotonic() - start) * 1000, 1)
        response.headers["X-Trace-ID"] = trace_id

        _request_logger.info(
            "Response sent",
            metadata={
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        return response


class RequestTimeoutMiddleware(BaseHTTPMiddleware):
    """
    HTTP の読み取り・書き込み期限

    - 読み取り: リクエストボディの受信が read_timeout を超えたら 408
    - 書き込み: 応答の開始が write_timeout を超えたら 503
    """

    def __init__(self, app, read_timeout: float, write_timeout: float):
        super().__init__(app)
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout

    async def dispatch(self, request: Request, call_next):
        try:
            await asyncio.wait_for(request.body(), timeout=self.read_timeout)
        except asyncio.TimeoutError:
            _request_logger.warning("Request read timed out", metadata={"path": request.url.path})
            return envelope(CODE_BAD_REQUEST, "request read timed out", status_code=408)

        try:
            return await asyncio.wait_for(call_next(request), timeout=self.write_timeout)
        except asyncio.TimeoutError:
            _request_logger.error("Request timed out", metadata={"path": request.url.path})
            return envelope(CODE_SERVER_ERROR, "request timed out", status_code=503)


# 期限（CORS より内側）
app.add_middleware(
    RequestTimeoutMiddleware,
    read_timeout=settings.server_read_timeout.total_seconds(),
    write_timeout=settings.server_write_timeout.total_seconds(),
)

# CORS設定
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=settings.cors_allowed_methods,
    allow_headers=["*"],
)

# Trace ID Middleware（CORSより内側に配置）
app.add_middleware(TraceIDMiddleware)

register_exception_handlers(app)

# APIルーターの登録
app.include_router(api_router, prefix=settings.api_prefix)

# WebSocket はルート直下（/ws）
app.include_router(presence.router)


@app.get("/health")
async def health_check():
    """ヘルスチェックエンドポイント"""
    return {"status": "ok"}


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}


def run() -> None:
    """peace-api エントリーポイント"""
    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        timeout_keep_alive=int(settings.server_idle_timeout.total_seconds()),
        timeout_graceful_shutdown=int(settings.server_shutdown_timeout.total_seconds()),
        ws_ping_interval=settings.presence_heartbeat_interval.total_seconds(),
        ws_ping_timeout=settings.websocket_read_timeout.total_seconds(),
        ws_max_size=settings.websocket_max_message_size,
        log_config=None,
    )


if __name__ == "__main__":
    run()
