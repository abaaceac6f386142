"""
PEACE - WebSocket Application
プレゼンス用 WebSocket を独立したポート（WEBSOCKET_PORT）で提供する
"""
import asyncio
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from app.api.handlers import register_exception_handlers
from app.api.v1.endpoints import presence
from app.core.config import settings
from app.core.logger import configure_logging
from app.db.redis import check_redis, close_redis

configure_logging(settings.log_level, settings.log_format)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting PEACE websocket server", port=settings.websocket_port)
    app.state.shutdown_event = asyncio.Event()
    await check_redis()
    yield
    logger.info("Shutting down PEACE websocket server")
    app.state.shutdown_event.set()
    await close_redis()


app = FastAPI(
    title=f"{settings.app_name} WebSocket",
    version=settings.app_version,
    openapi_url=None,
    docs_url=None,
    redoc_url=None,
    lifespan=lifespan,
)

register_exception_handlers(app)
app.include_router(presence.router)


@app.get("/health")
async def health_check():
    return {"status": "ok"}


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}


def run() -> None:
    """peace-ws エントリーポイント"""
    uvicorn.run(
        "app.websocket_main:app",
        host=settings.server_host,
        port=settings.websocket_port,
        timeout_graceful_shutdown=int(settings.server_shutdown_timeout.total_seconds()),
        ws_ping_interval=settings.presence_heartbeat_interval.total_seconds(),
        ws_ping_timeout=settings.websocket_read_timeout.total_seconds(),
        ws_max_size=settings.websocket_max_message_size,
        log_config=None,
    )


if __name__ == "__main__":
    run()
