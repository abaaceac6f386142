"""
PEACE - API Responses
{code, message, data} エンベロープの生成
"""
from typing import Any, Optional

from fastapi.responses import JSONResponse

from app.core.errors import CODE_SUCCESS
from app.schemas.common import APIResponse


def envelope(
    code: str,
    message: str,
    data: Optional[Any] = None,
    status_code: int = 200,
) -> JSONResponse:
    payload = APIResponse(code=code, message=message, data=data)
    return JSONResponse(status_code=status_code, content=payload.model_dump(mode="json"))


def success(message: str, data: Optional[Any] = None, status_code: int = 200) -> JSONResponse:
    return envelope(CODE_SUCCESS, message, data, status_code)
