"""
PEACE - Structured Tracing Logger
ログ基盤の初期化、trace_id / user_id を自動付与する構造化ロガー、
処理の開始/終了を記録するデコレータ

ログ出力項目: timestamp, level, trace_id, user_id, module, message, metadata
"""
import functools
import logging
import sys
import time
from typing import Any, Callable, Dict, Optional

import structlog

from app.core.trace_context import get_trace_id, get_user_id

_configured = False


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    """
    プロセス全体のログ設定（起動時に一度だけ実行される）

    fmt: "json" または "pretty"（開発用のコンソール出力）
    """
    global _configured
    if _configured:
        return

    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    renderer = (
        structlog.dev.ConsoleRenderer()
        if fmt == "pretty"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_traced_logger(module: str) -> "TracedLogger":
    """モジュール名を紐づけた TracedLogger を取得"""
    return TracedLogger(module)


class TracedLogger:
    """
    trace_id / user_id を自動注入する構造化ロガー

    structlog をラップし、全てのログ出力に trace_id と module を付与する。
    """

    def __init__(self, module: str):
        self._module = module
        self._logger = structlog.get_logger()

    def _build_event(self, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        event: Dict[str, Any] = {
            "trace_id": get_trace_id(),
            "module": self._module,
        }
        user_id = get_user_id()
        if user_id:
            event["user_id"] = user_id
        if metadata:
            event["metadata"] = metadata
        return event

    def info(self, message: str, metadata: Optional[Dict[str, Any]] = None, **kwargs: Any) -> None:
        self._logger.info(message, **self._build_event(metadata), **kwargs)

    def warning(self, message: str, metadata: Optional[Dict[str, Any]] = None, **kwargs: Any) -> None:
        self._logger.warning(message, **self._build_event(metadata), **kwargs)

    def error(self, message: str, metadata: Optional[Dict[str, Any]] = None, **kwargs: Any) -> None:
        self._logger.error(message, **self._build_event(metadata), **kwargs)

    def debug(self, message: str, metadata: Optional[Dict[str, Any]] = None, **kwargs: Any) -> None:
        self._logger.debug(message, **self._build_event(metadata), **kwargs)

    def exception(self, message: str, metadata: Optional[Dict[str, Any]] = None, **kwargs: Any) -> None:
        """ERROR レベルでログ出力し、現在の例外のスタックトレースを含める"""
        self._logger.exception(message, **self._build_event(metadata), **kwargs)


def trace_execution(
    module: str,
    name: Optional[str] = None,
):
    """
    非同期関数の開始/終了を自動ログするデコレータ

    使い方:
        @trace_execution("AuthService", "login")
        async def login(self, email, password):
            ...

    ログ出力:
        [INFO] [trace_id] [AuthService] login started
        [INFO] [trace_id] [AuthService] login completed metadata={duration_ms=12.3}
    """
    def decorator(func: Callable) -> Callable:
        operation = name or func.__name__
        traced_logger = get_traced_logger(module)

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            traced_logger.debug(f"{operation} started")
            start = time.monotonic()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                duration_ms = round((time.monotonic() - start) * 1000, 1)
                traced_logger.warning(
                    f"{operation} failed",
                    metadata={
                        "duration_ms": duration_ms,
                        "error": str(e),
                        "error_type": e.__class__.__name__,
                    },
                )
                raise
            duration_ms = round((time.monotonic() - start) * 1000, 1)
            traced_logger.info(
                f"{operation} completed",
                metadata={"duration_ms": duration_ms},
            )
            return result

        return wrapper
    return decorator
