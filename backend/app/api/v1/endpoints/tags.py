"""
PEACE - Tag Endpoints
"""
from fastapi import APIRouter, Depends, status

from app.api.deps import get_quote_service
from app.api.responses import success
from app.schemas.quote import TagCreate, TagResponse, TagUpdate
from app.services.quote_service import QuoteService

router = APIRouter()


@router.get("")
async def list_tags(quote_service: QuoteService = Depends(get_quote_service)):
    tags = await quote_service.list_tags()
    return success("Tags retrieved successfully", [TagResponse.model_validate(t) for t in tags])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_tag(body: TagCreate, quote_service: QuoteService = Depends(get_quote_service)):
    tag = await quote_service.create_tag(body.name, body.description)
    return success(
        "Tag created successfully",
        TagResponse.model_validate(tag),
        status_code=status.HTTP_201_CREATED,
    )


@router.put("/{tag_id}")
async def update_tag(
    tag_id: int,
    body: TagUpdate,
    quote_service: QuoteService = Depends(get_quote_service),
):
    tag = await quote_service.update_tag(tag_id, body.name, body.description)
    return success("Tag updated successfully", TagResponse.model_validate(tag))


@router.delete("/{tag_id}")
async def delete_tag(tag_id: int, quote_service: QuoteService = Depends(get_quote_service)):
    await quote_service.delete_tag(tag_id)
    return success("Tag deleted successfully")
