"""
PEACE - Quote / Tag Schemas
"""
from typing import Optional

from pydantic import BaseModel

from app.schemas.common import UTCDateTime


class QuoteCreate(BaseModel):
    content: str
    author: str


class QuoteUpdate(BaseModel):
    content: str
    author: str


class QuoteResponse(BaseModel):
    id: int
    content: str
    author: str
    created_at: UTCDateTime
    updated_at: UTCDateTime

    model_config = {"from_attributes": True}


class TagCreate(BaseModel):
    name: str
    description: Optional[str] = None


class TagUpdate(BaseModel):
    name: str
    description: Optional[str] = None


class TagResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: UTCDateTime
    updated_at: UTCDateTime

    model_config = {"from_attributes": True}


class QuoteTagRequest(BaseModel):
    """名言へのタグ付け・解除"""

    tag_id: int
