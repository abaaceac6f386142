"""
PEACE - Presence WebSocket Endpoint
/ws: オンライン状態の双方向チャネル

認証:
  1. Authorization: Bearer <access-token>
  2. Sec-WebSocket-Protocol: "bearer, <token>" または "<token>"

1接続につき1タスクが (受信, 心拍タイマー, シャットダウン) を待ち受ける。
どの経路で終了しても、ソケットを閉じてオフラインに切り替える。

心拍はクライアントから最後に受信してから TTL 以内の場合のみ状態を更新する。
読み取り期限（既定 60 秒）を超えて無受信なら接続を閉じる。
"""
import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, WebSocket
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.websockets import WebSocketDisconnect, WebSocketState

from app.api.deps import get_presence_service, get_token_service
from app.core.config import settings
from app.core.errors import AppError, CODE_SERVER_ERROR, CODE_UNAUTHORIZED
from app.core.logger import get_traced_logger
from app.core.security import TokenClaims, TokenService
from app.core.trace_context import bind_user_id, generate_trace_id
from app.schemas.common import APIResponse
from app.schemas.presence import WSMessage
from app.services.presence_service import PresenceService

router = APIRouter()
logger = get_traced_logger("PresenceSocket")

BEARER_SUBPROTOCOL = "bearer"
CLOSE_NORMAL = 1000
CLOSE_GOING_AWAY = 1001
CLOSE_POLICY_VIOLATION = 1008
CLOSE_MESSAGE_TOO_BIG = 1009
CLOSE_INTERNAL_ERROR = 1011

SUPPORTED_EVENTS = [
    "get_amount_online_users",
    "get_online_users_list",
    "ping",
    "pong",
]


@dataclass
class ConnectionConfig:
    heartbeat_interval: float
    write_timeout: float
    max_message_size: int
    presence_ttl: float = 20.0
    read_timeout: float = 60.0


def get_connection_config() -> ConnectionConfig:
    return ConnectionConfig(
        heartbeat_interval=settings.presence_heartbeat_interval.total_seconds(),
        write_timeout=settings.websocket_write_timeout.total_seconds(),
        max_message_size=settings.websocket_max_message_size,
        presence_ttl=settings.presence_ttl.total_seconds(),
        read_timeout=settings.websocket_read_timeout.total_seconds(),
    )


def parse_subprotocols(subprotocols: List[str]) -> Tuple[Optional[str], bool]:
    """
    Sec-WebSocket-Protocol からトークンを取り出す

    戻り値: (token, bearer をオファーされたか)
    """
    parts = [p.strip() for item in subprotocols for p in item.split(",") if p.strip()]
    if not parts:
        return None, False
    if parts[0].lower() == BEARER_SUBPROTOCOL:
        return (parts[1] if len(parts) > 1 else None), True
    return parts[0], False


def extract_token(websocket: WebSocket) -> Tuple[Optional[str], bool]:
    """Authorization ヘッダーを優先し、なければサブプロトコルから取り出す"""
    subprotocol_token, offered_bearer = parse_subprotocols(websocket.scope.get("subprotocols") or [])
    scheme, _, credentials = websocket.headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip(), offered_bearer
    return subprotocol_token, offered_bearer


async def deny(websocket: WebSocket, status_code: int, code: str, message: str) -> None:
    """アップグレードを拒否（HTTP 応答が送れない環境ではポリシー違反で close）"""
    if "websocket.http.response" in websocket.scope.get("extensions", {}):
        payload = APIResponse(code=code, message=message).model_dump(mode="json")
        await websocket.send_denial_response(JSONResponse(status_code=status_code, content=payload))
    else:
        await websocket.close(code=CLOSE_POLICY_VIOLATION, reason=message)


class PresenceConnection:
    """1本の WebSocket 接続を所有する"""

    def __init__(
        self,
        websocket: WebSocket,
        claims: TokenClaims,
        presence: PresenceService,
        config: ConnectionConfig,
    ):
        self.websocket = websocket
        self.claims = claims
        self.presence = presence
        self.config = config

    @staticmethod
    def now() -> int:
        return int(time.time())

    async def send(self, message_type: str, data: Any) -> None:
        await asyncio.wait_for(
            self.websocket.send_text(json.dumps({"type": message_type, "data": data})),
            timeout=self.config.write_timeout,
        )

    async def send_error(self, code: str, message: str) -> None:
        await self.send("error", {"code": code, "message": message})

    async def send_welcome(self) -> None:
        await self.send(
            "connection_established",
            {
                "user_id": self.claims.user_id,
                "status": "online",
                "endpoint": "/ws",
                "message": "Connected to presence service",
                "supported_events": SUPPORTED_EVENTS,
            },
        )

    async def run(self, shutdown_event: Optional[asyncio.Event]) -> None:
        loop = asyncio.get_running_loop()
        receive_task: Optional[asyncio.Task] = None
        shutdown_task: Optional[asyncio.Task] = None
        if shutdown_event is not None:
            shutdown_task = asyncio.ensure_future(shutdown_event.wait())

        last_activity = loop.time()
        next_heartbeat = last_activity + self.config.heartbeat_interval
        close_code = CLOSE_NORMAL
        try:
            await self.send_welcome()
            while True:
                if receive_task is None:
                    receive_task = asyncio.ensure_future(self.websocket.receive())
                waiters = {receive_task}
                if shutdown_task is not None:
                    waiters.add(shutdown_task)

                read_deadline = last_activity + self.config.read_timeout
                timeout = max(0.0, min(next_heartbeat, read_deadline) - loop.time())
                done, _ = await asyncio.wait(
                    waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
                )

                if shutdown_task is not None and shutdown_task in done:
                    logger.info("Closing connection for server shutdown")
                    close_code = CLOSE_GOING_AWAY
                    break

                if receive_task in done:
                    message = receive_task.result()
                    receive_task = None
                    if message["type"] == "websocket.disconnect":
                        break
                    last_activity = loop.time()
                    text = message.get("text")
                    if text is None and message.get("bytes") is not None:
                        text = message["bytes"].decode("utf-8", errors="replace")
                    if text is None:
                        continue
                    if len(text.encode("utf-8")) > self.config.max_message_size:
                        logger.warning("Frame exceeds size limit, closing")
                        close_code = CLOSE_MESSAGE_TOO_BIG
                        break
                    await self.handle(text)

                silence = loop.time() - last_activity
                if silence > self.config.read_timeout:
                    logger.warning("Read deadline exceeded, closing connection")
                    close_code = CLOSE_GOING_AWAY
                    break

                if loop.time() >= next_heartbeat:
                    # 無応答のクライアントは更新せず、TTL で自然に消す
                    if silence < self.config.presence_ttl:
                        await self.presence.heartbeat(self.claims.user_id, self.claims.email)
                    next_heartbeat = loop.time() + self.config.heartbeat_interval
        except WebSocketDisconnect:
            logger.info("Client disconnected")
        except asyncio.TimeoutError:
            logger.warning("Write deadline exceeded, closing connection")
            close_code = CLOSE_GOING_AWAY
        except AppError as e:
            logger.error("Presence store failure", metadata={"error": e.message})
            close_code = CLOSE_INTERNAL_ERROR
        finally:
            for task in (receive_task, shutdown_task):
                if task is not None and not task.done():
                    task.cancel()
            await self.close(close_code)
            await self.mark_offline()

    async def handle(self, text: str) -> None:
        try:
            message = WSMessage.model_validate_json(text)
        except (PydanticValidationError, ValueError):
            await self.send_error("INVALID_MESSAGE", "Invalid JSON format")
            return

        try:
            if message.type == "ping":
                await self.presence.touch(self.claims.user_id)
                await self.send("pong", {"ts": self.now()})
            elif message.type == "pong":
                await self.presence.touch(self.claims.user_id)
            elif message.type == "get_amount_online_users":
                count = await self.presence.count_online()
                await self.send("amount_online_users", {"count": count, "ts": self.now()})
            elif message.type == "get_online_users_list":
                users = await self.presence.list_online()
                await self.send(
                    "online_users_list",
                    {
                        "users": [u.to_public() for u in users],
                        "count": len(users),
                        "ts": self.now(),
                    },
                )
            else:
                await self.send(
                    "error",
                    {
                        "code": "UNKNOWN_TYPE",
                        "message": "Unsupported message type",
                        "type": message.type,
                    },
                )
        except AppError as e:
            logger.error("Failed to handle message", metadata={"type": message.type, "error": e.message})
            await self.send_error("INTERNAL_ERROR", "Internal server error")

    async def close(self, code: int) -> None:
        if (
            self.websocket.application_state == WebSocketState.CONNECTED
            and self.websocket.client_state == WebSocketState.CONNECTED
        ):
            try:
                await asyncio.wait_for(self.websocket.close(code=code), timeout=self.config.write_timeout)
            except (RuntimeError, WebSocketDisconnect, asyncio.TimeoutError) as e:
                logger.debug("Socket already closed", metadata={"error": str(e)})

    async def mark_offline(self) -> None:
        try:
            await self.presence.set_offline(self.claims.user_id, self.claims.email)
        except AppError as e:
            # キーは TTL で自然に消えるため、ここでは記録のみ
            logger.error("Failed to mark user offline", metadata={"error": e.message})


@router.websocket("/ws")
async def presence_socket(
    websocket: WebSocket,
    tokens: TokenService = Depends(get_token_service),
    presence: PresenceService = Depends(get_presence_service),
    config: ConnectionConfig = Depends(get_connection_config),
):
    generate_trace_id()
    token, offered_bearer = extract_token(websocket)
    if not token:
        await deny(websocket, 401, CODE_UNAUTHORIZED, "authorization token is required")
        return

    try:
        claims = tokens.validate_access(token)
    except AppError as e:
        await deny(websocket, 401, CODE_UNAUTHORIZED, e.message)
        return
    bind_user_id(claims.user_id)

    try:
        await presence.set_online(claims.user_id, claims.email)
    except AppError as e:
        logger.error("Failed to mark user online", metadata={"error": e.message})
        await deny(websocket, 500, CODE_SERVER_ERROR, "failed to register presence")
        return

    await websocket.accept(subprotocol=BEARER_SUBPROTOCOL if offered_bearer else None)
    logger.info("WebSocket connection established")

    shutdown_event = getattr(websocket.app.state, "shutdown_event", None)
    connection = PresenceConnection(websocket, claims, presence, config)
    await connection.run(shutdown_event)
    logger.info("WebSocket connection closed")
