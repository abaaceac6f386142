"""
PEACE - API Router
すべての HTTP エンドポイントを統合（/api 配下にマウントされる）
"""
from fastapi import APIRouter

from app.api.v1.endpoints import auth, users, records, quotes, tags

api_router = APIRouter()

api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["認証"],
)

api_router.include_router(
    users.router,
    prefix="/user",
    tags=["ユーザー"],
)

api_router.include_router(
    records.router,
    prefix="/records",
    tags=["気分記録"],
)

api_router.include_router(
    quotes.router,
    prefix="/quotes",
    tags=["名言"],
)

api_router.include_router(
    tags.router,
    prefix="/tags",
    tags=["タグ"],
)
