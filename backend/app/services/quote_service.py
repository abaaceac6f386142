"""
PEACE - Quote Service
名言とタグの CRUD、名言へのタグ付け
"""
import logging
from typing import List, Optional, Sequence

from sqlalchemy import delete as sa_delete
from sqlalchemy import func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, NotFoundError, session_errors
from app.core.logger import trace_execution
from app.core.timeutil import utc_now
from app.models.quote import Quote, Tag, quote_tags
from app.services.validators import (
    validate_quote_author,
    validate_quote_content,
    validate_tag_name,
)

logger = logging.getLogger(__name__)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class QuoteService:
    """名言ライブラリ"""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ---- Quotes ----

    async def list_quotes(
        self,
        author: Optional[str] = None,
        content: Optional[str] = None,
    ) -> List[Quote]:
        query = select(Quote).where(Quote.deleted_at.is_(None))
        if author and author.strip():
            query = query.where(
                Quote.author.ilike(f"%{_escape_like(author.strip())}%", escape="\\")
            )
        if content and content.strip():
            query = query.where(
                Quote.content.ilike(f"%{_escape_like(content.strip())}%", escape="\\")
            )
        query = query.order_by(Quote.id.asc())

        async with session_errors(self.session, "quote_service.list_quotes"):
            result = await self.session.execute(query)
            return list(result.scalars().all())

    async def get_quote(self, quote_id: int) -> Quote:
        async with session_errors(self.session, "quote_service.get_quote"):
            result = await self.session.execute(
                select(Quote)
                .where(Quote.id == quote_id, Quote.deleted_at.is_(None))
                .execution_options(populate_existing=True)
            )
            quote = result.scalar_one_or_none()
        if quote is None:
            raise NotFoundError("quote not found")
        return quote

    async def random_quote(self) -> Quote:
        async with session_errors(self.session, "quote_service.random_quote"):
            result = await self.session.execute(
                select(Quote)
                .where(Quote.deleted_at.is_(None))
                .order_by(func.random())
                .limit(1)
            )
            quote = result.scalar_one_or_none()
        if quote is None:
            raise NotFoundError("no quotes available")
        return quote

    @trace_execution("QuoteService", "create_quote")
    async def create_quote(self, content: str, author: str) -> Quote:
        quote = Quote(
            content=validate_quote_content(content),
            author=validate_quote_author(author),
        )
        self.session.add(quote)
        async with session_errors(self.session, "quote_service.create_quote"):
            await self.session.commit()
            await self.session.refresh(quote)
        return quote

    async def create_quotes(self, rows: Sequence[Quote]) -> int:
        """一括登録（インポート用）。検証済みの Quote を受け取る"""
        if not rows:
            return 0
        self.session.add_all(rows)
        async with session_errors(self.session, "quote_service.create_quotes"):
            await self.session.commit()
        return len(rows)

    @trace_execution("QuoteService", "update_quote")
    async def update_quote(self, quote_id: int, content: str, author: str) -> Quote:
        content = validate_quote_content(content)
        author = validate_quote_author(author)

        quote = await self.get_quote(quote_id)
        quote.content = content
        quote.author = author
        quote.updated_at = utc_now()
        async with session_errors(self.session, "quote_service.update_quote"):
            await self.session.commit()
            await self.session.refresh(quote)
        return quote

    @trace_execution("QuoteService", "delete_quote")
    async def delete_quote(self, quote_id: int) -> None:
        quote = await self.get_quote(quote_id)
        now = utc_now()
        quote.deleted_at = now
        quote.updated_at = now
        async with session_errors(self.session, "quote_service.delete_quote"):
            await self.session.commit()

    # ---- Tags ----

    async def list_tags(self) -> List[Tag]:
        async with session_errors(self.session, "quote_service.list_tags"):
            result = await self.session.execute(
                select(Tag).where(Tag.deleted_at.is_(None)).order_by(Tag.name.asc())
            )
            return list(result.scalars().all())

    async def get_tag(self, tag_id: int) -> Tag:
        async with session_errors(self.session, "quote_service.get_tag"):
            result = await self.session.execute(
                select(Tag)
                .where(Tag.id == tag_id, Tag.deleted_at.is_(None))
                .execution_options(populate_existing=True)
            )
            tag = result.scalar_one_or_none()
        if tag is None:
            raise NotFoundError("tag not found")
        return tag

    @trace_execution("QuoteService", "create_tag")
    async def create_tag(self, name: str, description: Optional[str] = None) -> Tag:
        name = validate_tag_name(name)
        await self._ensure_tag_name_free(name)

        tag = Tag(name=name, description=(description or "").strip() or None)
        self.session.add(tag)
        await self._commit_tag(tag, "quote_service.create_tag")
        return tag

    @trace_execution("QuoteService", "update_tag")
    async def update_tag(self, tag_id: int, name: str, description: Optional[str] = None) -> Tag:
        name = validate_tag_name(name)
        tag = await self.get_tag(tag_id)
        if name != tag.name:
            await self._ensure_tag_name_free(name)

        tag.name = name
        tag.description = (description or "").strip() or None
        tag.updated_at = utc_now()
        await self._commit_tag(tag, "quote_service.update_tag")
        return tag

    @trace_execution("QuoteService", "delete_tag")
    async def delete_tag(self, tag_id: int) -> None:
        tag = await self.get_tag(tag_id)
        now = utc_now()
        tag.deleted_at = now
        tag.updated_at = now
        async with session_errors(self.session, "quote_service.delete_tag"):
            await self.session.execute(sa_delete(quote_tags).where(quote_tags.c.tag_id == tag.id))
            await self.session.commit()

    # ---- Quote tags ----

    async def tags_for_quote(self, quote_id: int) -> List[Tag]:
        await self.get_quote(quote_id)
        async with session_errors(self.session, "quote_service.tags_for_quote"):
            result = await self.session.execute(
                select(Tag)
                .join(quote_tags, quote_tags.c.tag_id == Tag.id)
                .where(quote_tags.c.quote_id == quote_id, Tag.deleted_at.is_(None))
                .order_by(Tag.name.asc())
            )
            return list(result.scalars().all())

    @trace_execution("QuoteService", "add_tag")
    async def add_tag(self, quote_id: int, tag_id: int) -> None:
        """タグ付け（既に付いている場合は何もしない）"""
        await self.get_quote(quote_id)
        await self.get_tag(tag_id)
        if await self._has_tag(quote_id, tag_id):
            return
        async with session_errors(self.session, "quote_service.add_tag"):
            await self.session.execute(
                insert(quote_tags).values(quote_id=quote_id, tag_id=tag_id, created_at=utc_now())
            )
            await self.session.commit()

    @trace_execution("QuoteService", "remove_tag")
    async def remove_tag(self, quote_id: int, tag_id: int) -> None:
        await self.get_quote(quote_id)
        async with session_errors(self.session, "quote_service.remove_tag"):
            result = await self.session.execute(
                sa_delete(quote_tags).where(
                    quote_tags.c.quote_id == quote_id,
                    quote_tags.c.tag_id == tag_id,
                )
            )
            if result.rowcount == 0:
                await self.session.rollback()
                raise NotFoundError("tag is not attached to this quote")
            await self.session.commit()

    async def _has_tag(self, quote_id: int, tag_id: int) -> bool:
        async with session_errors(self.session, "quote_service.has_tag"):
            result = await self.session.execute(
                select(func.count())
                .select_from(quote_tags)
                .where(quote_tags.c.quote_id == quote_id, quote_tags.c.tag_id == tag_id)
            )
            return result.scalar_one() > 0

    async def _ensure_tag_name_free(self, name: str) -> None:
        async with session_errors(self.session, "quote_service.tag_name_check"):
            result = await self.session.execute(
                select(func.count())
                .select_from(Tag)
                .where(func.lower(Tag.name) == name.lower(), Tag.deleted_at.is_(None))
            )
            taken = result.scalar_one() > 0
        if taken:
            raise ConflictError("tag name already exists")

    async def _commit_tag(self, tag: Tag, operation: str) -> None:
        async with session_errors(self.session, operation):
            try:
                await self.session.commit()
            except IntegrityError as e:
                await self.session.rollback()
                raise ConflictError("tag name already exists") from e
            await self.session.refresh(tag)
