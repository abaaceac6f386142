"""
QuoteService テスト（名言・タグ・タグ付け）
"""
from __future__ import annotations

import pytest

from app.core.errors import ConflictError, InternalError, NotFoundError, ValidationError
from app.models.quote import Quote
from app.services.quote_service import QuoteService


@pytest.fixture
def quotes(session) -> QuoteService:
    return QuoteService(session)


class TestQuotes:
    async def test_create_and_get(self, quotes):
        quote = await quotes.create_quote("  Be here now.  ", "Ram Dass")
        fetched = await quotes.get_quote(quote.id)
        assert fetched.content == "Be here now."
        assert fetched.author == "Ram Dass"

    async def test_search_is_case_insensitive(self, quotes):
        await quotes.create_quote("Breathe in, breathe out", "Anon")
        await quotes.create_quote("100% effort", "Coach")
        await quotes.create_quote("Keep going", "Coach")

        assert len(await quotes.list_quotes(author="coach")) == 2
        assert [q.content for q in await quotes.list_quotes(content="BREATHE")] == [
            "Breathe in, breathe out"
        ]
        # % はワイルドカードではなく文字として扱う
        assert [q.content for q in await quotes.list_quotes(content="100%")] == ["100% effort"]
        assert await quotes.list_quotes(content="0%e") == []

    async def test_update(self, quotes):
        quote = await quotes.create_quote("Old", "A")
        updated = await quotes.update_quote(quote.id, "New", "B")
        assert (updated.content, updated.author) == ("New", "B")

    async def test_delete_hides_quote(self, quotes):
        quote = await quotes.create_quote("Gone", "A")
        await quotes.delete_quote(quote.id)
        with pytest.raises(NotFoundError):
            await quotes.get_quote(quote.id)
        assert await quotes.list_quotes() == []

    async def test_failed_commit_leaves_session_usable(self, quotes):
        # content の NOT NULL 違反で commit が失敗する
        with pytest.raises(InternalError):
            await quotes.create_quotes([Quote(content=None, author="A")])

        quote = await quotes.create_quote("Still works", "B")
        assert (await quotes.get_quote(quote.id)).content == "Still works"

    async def test_random(self, quotes):
        with pytest.raises(NotFoundError, match="no quotes available"):
            await quotes.random_quote()
        quote = await quotes.create_quote("Only one", "A")
        assert (await quotes.random_quote()).id == quote.id

    @pytest.mark.parametrize("content, author", [("", "A"), ("x" * 1001, "A"), ("ok", "")])
    async def test_invalid_quote(self, quotes, content, author):
        with pytest.raises(ValidationError):
            await quotes.create_quote(content, author)


class TestTags:
    async def test_create_list_update(self, quotes):
        calm = await quotes.create_tag("calm", "  ")
        await quotes.create_tag("anxiety", "for hard days")
        assert calm.description is None
        assert [t.name for t in await quotes.list_tags()] == ["anxiety", "calm"]

        updated = await quotes.update_tag(calm.id, "peace", "quiet")
        assert (updated.name, updated.description) == ("peace", "quiet")

    async def test_duplicate_name(self, quotes):
        await quotes.create_tag("calm")
        with pytest.raises(ConflictError):
            await quotes.create_tag("Calm")

    async def test_rename_to_existing(self, quotes):
        await quotes.create_tag("calm")
        other = await quotes.create_tag("focus")
        with pytest.raises(ConflictError):
            await quotes.update_tag(other.id, "calm")

    async def test_name_reusable_after_delete(self, quotes):
        tag = await quotes.create_tag("calm")
        await quotes.delete_tag(tag.id)
        again = await quotes.create_tag("calm")
        assert again.id != tag.id

    async def test_missing_tag(self, quotes):
        with pytest.raises(NotFoundError):
            await quotes.get_tag(999)


class TestQuoteTags:
    async def test_attach_detach(self, quotes):
        quote = await quotes.create_quote("Be kind", "A")
        tag = await quotes.create_tag("kindness")

        await quotes.add_tag(quote.id, tag.id)
        await quotes.add_tag(quote.id, tag.id)
        assert [t.id for t in await quotes.tags_for_quote(quote.id)] == [tag.id]

        await quotes.remove_tag(quote.id, tag.id)
        assert await quotes.tags_for_quote(quote.id) == []
        with pytest.raises(NotFoundError):
            await quotes.remove_tag(quote.id, tag.id)

    async def test_deleting_tag_detaches(self, quotes):
        quote = await quotes.create_quote("Be kind", "A")
        tag = await quotes.create_tag("kindness")
        await quotes.add_tag(quote.id, tag.id)
        await quotes.delete_tag(tag.id)
        assert await quotes.tags_for_quote(quote.id) == []

    async def test_unknown_quote_or_tag(self, quotes):
        quote = await quotes.create_quote("Be kind", "A")
        with pytest.raises(NotFoundError):
            await quotes.add_tag(quote.id, 42)
        with pytest.raises(NotFoundError):
            await quotes.tags_for_quote(999)
