"""
PEACE - Quote Endpoints
名言ライブラリとタグ付けAPI（認証不要）
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_quote_service
from app.api.responses import success
from app.schemas.quote import (
    QuoteCreate,
    QuoteResponse,
    QuoteTagRequest,
    QuoteUpdate,
    TagResponse,
)
from app.services.quote_service import QuoteService

router = APIRouter()


@router.get("")
async def list_quotes(
    author: Optional[str] = Query(default=None),
    content: Optional[str] = Query(default=None),
    quote_service: QuoteService = Depends(get_quote_service),
):
    quotes = await quote_service.list_quotes(author=author, content=content)
    return success("Quotes retrieved successfully", [QuoteResponse.model_validate(q) for q in quotes])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_quote(
    body: QuoteCreate,
    quote_service: QuoteService = Depends(get_quote_service),
):
    quote = await quote_service.create_quote(body.content, body.author)
    return success(
        "Quote created successfully",
        QuoteResponse.model_validate(quote),
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/random")
async def random_quote(quote_service: QuoteService = Depends(get_quote_service)):
    quote = await quote_service.random_quote()
    return success("Random quote retrieved successfully", QuoteResponse.model_validate(quote))


@router.get("/{quote_id}")
async def get_quote(quote_id: int, quote_service: QuoteService = Depends(get_quote_service)):
    quote = await quote_service.get_quote(quote_id)
    return success("Quote retrieved successfully", QuoteResponse.model_validate(quote))


@router.put("/{quote_id}")
async def update_quote(
    quote_id: int,
    body: QuoteUpdate,
    quote_service: QuoteService = Depends(get_quote_service),
):
    quote = await quote_service.update_quote(quote_id, body.content, body.author)
    return success("Quote updated successfully", QuoteResponse.model_validate(quote))


@router.delete("/{quote_id}")
async def delete_quote(quote_id: int, quote_service: QuoteService = Depends(get_quote_service)):
    await quote_service.delete_quote(quote_id)
    return success("Quote deleted successfully")


@router.get("/{quote_id}/tags")
async def list_quote_tags(quote_id: int, quote_service: QuoteService = Depends(get_quote_service)):
    tags = await quote_service.tags_for_quote(quote_id)
    return success("Quote tags retrieved successfully", [TagResponse.model_validate(t) for t in tags])


@router.post("/{quote_id}/tags")
async def add_quote_tag(
    quote_id: int,
    body: QuoteTagRequest,
    quote_service: QuoteService = Depends(get_quote_service),
):
    await quote_service.add_tag(quote_id, body.tag_id)
    return success("Tag added to quote successfully")


@router.delete("/{quote_id}/tags")
async def remove_quote_tag(
    quote_id: int,
    body: QuoteTagRequest,
    quote_service: QuoteService = Depends(get_quote_service),
):
    await quote_service.remove_tag(quote_id, body.tag_id)
    return success("Tag removed from quote successfully")
