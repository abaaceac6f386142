"""
PEACE - Request Trace Context
contextvars を使用したリクエストスコープの trace_id / user_id 管理

リクエスト（または WebSocket 接続）単位で一意のIDを割り当て、
ログから処理フローと操作ユーザーを追跡可能にする。
"""
import uuid
from contextvars import ContextVar
from typing import Optional

_trace_id_var: ContextVar[str] = ContextVar("trace_id", default="no-trace")
_user_id_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)


def get_trace_id() -> str:
    """現在のスコープの trace_id を取得"""
    return _trace_id_var.get()


def set_trace_id(trace_id: str) -> None:
    _trace_id_var.set(trace_id)


def generate_trace_id() -> str:
    """新しい trace_id を生成して設定し、返す"""
    trace_id = uuid.uuid4().hex[:12]
    set_trace_id(trace_id)
    return trace_id


def get_user_id() -> Optional[str]:
    """認証済みユーザーの ID（未認証なら None）"""
    return _user_id_var.get()


def bind_user_id(user_id: Optional[str]) -> None:
    """認証依存関係から呼ばれ、以降のログに user_id を付与する"""
    _user_id_var.set(user_id)
