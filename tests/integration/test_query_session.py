"""
Integration tests for queries executed through real sessions.

Runs against in-memory SQLite seeded with three blogs ("First" with two
posts, "Second" with one, "Third" with none).
"""

import pytest
import pytest_asyncio

from datasession.exceptions import CardinalityViolationError
from datasession.queries.strategy import QueryStrategy
from tests.mocks.blog_models import (
    Blog,
    GetBlogPostsAggregateQueryStrategy,
    GetBlogPostsQueryStrategy,
    Post,
)


@pytest.fixture(params=["create", "create_for_query"])
def session_kind(request):
    """Runs read tests with both tracking and query-only sessions."""
    return request.param


@pytest_asyncio.fixture
async def session(seeded_factory, session_kind):
    async with getattr(seeded_factory, session_kind)() as db_session:
        yield db_session


class TestAny:
    """Test any() through a strategy."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("First", True),
            ("Second", True),
            ("Third", False),
            ("Fourth", False),
            ("Zero", False),
            ("Other", False),
        ],
    )
    async def test_blog_has_posts(self, session, name, expected):
        result = await session.query(GetBlogPostsQueryStrategy(name)).any()

        assert result is expected


class TestCount:
    """Test count() and long_count()."""

    @pytest.mark.asyncio
    async def test_nested_strategy_counts_every_post(self, session):
        query = session.query(QueryStrategy.nested(Blog.posts))

        assert await query.count() == 3
        assert await query.long_count() == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "name,expected",
        [("First", 2), ("Second", 1), ("Third", 0), ("Fourth", 0)],
    )
    async def test_aggregate_strategy_count(self, session, name, expected):
        query = session.query(GetBlogPostsAggregateQueryStrategy(name))

        assert await query.count() == expected
        assert await query.long_count() == expected

    @pytest.mark.asyncio
    async def test_filtered_count(self, session):
        query = session.query(Post).where(Post.content.startswith("You"))

        assert await query.count() == 2

    @pytest.mark.asyncio
    async def test_same_query_executes_repeatedly(self, session):
        query = session.query(Blog)

        assert await query.count() == 3
        assert await query.count() == 3
        assert len(await query.to_list()) == 3


class TestSingleItemRetrieval:
    @pytest.mark.asyncio
    async def test_first_or_default_in_order(self, session):
        post = await session.query(
            GetBlogPostsQueryStrategy("First")
        ).first_or_default()

        assert post.title == "Nice"

    @pytest.mark.asyncio
    async def test_first_or_default_empty(self, session):
        post = await session.query(
            GetBlogPostsQueryStrategy("Third")
        ).first_or_default()

        assert post is None

    @pytest.mark.asyncio
    async def test_single_or_default_one_match(self, session):
        post = await session.query(
            GetBlogPostsQueryStrategy("Second")
        ).single_or_default()

        assert post.title == "Thank you"

    @pytest.mark.asyncio
    async def test_single_or_default_no_match(self, session):
        post = await session.query(
            GetBlogPostsAggregateQueryStrategy("Third")
        ).single_or_default()

        assert post is None

    @pytest.mark.asyncio
    async def test_single_or_default_many_matches(self, session):
        query = session.query(GetBlogPostsQueryStrategy("First"))

        with pytest.raises(CardinalityViolationError):
            await query.single_or_default()


class TestToList:
    @pytest.mark.asyncio
    async def test_all_posts(self, session):
        posts = await session.query(QueryStrategy.nested(Blog.posts)).to_list()

        assert sorted(p.title for p in posts) == [
            "Nice",
            "Thank you",
            "The worst",
        ]

    @pytest.mark.asyncio
    async def test_ordered_posts_of_blog(self, session):
        posts = await session.query(GetBlogPostsQueryStrategy("First")).to_list()

        assert [p.title for p in posts] == ["Nice", "The worst"]

    @pytest.mark.asyncio
    async def test_for_entity_strategy(self, session):
        strategy = QueryStrategy.for_entity(
            Blog, lambda source: source.where(Blog.name != "Third")
        )

        blogs = await session.query(strategy).to_list()

        assert {b.name for b in blogs} == {"First", "Second"}


class TestToPagedList:
    """Test paging over blogs ordered by id."""

    @pytest.mark.asyncio
    async def test_single_page(self, session):
        page = await session.query(Blog).order_by(Blog.id).to_paged_list(1, 10)

        assert [b.name for b in page] == ["First", "Second", "Third"]
        assert page.total_count == 3
        assert page.page_count == 1
        assert page.is_first_page is True
        assert page.is_last_page is True
        assert page.has_next_page is False
        assert page.has_previous_page is False
        assert page.first_item_on_page == 1
        assert page.last_item_on_page == 3

    @pytest.mark.asyncio
    async def test_full_first_page(self, session):
        page = await session.query(Blog).order_by(Blog.id).to_paged_list(1, 2)

        assert [b.name for b in page] == ["First", "Second"]
        assert page.total_count == 3
        assert page.page_count == 2
        assert page.has_next_page is True
        assert page.last_item_on_page == 2

    @pytest.mark.asyncio
    async def test_partial_last_page(self, session):
        page = await session.query(Blog).order_by(Blog.id).to_paged_list(2, 2)

        assert [b.name for b in page] == ["Third"]
        assert page.total_count == 3
        assert page.page_count == 2
        assert page.is_first_page is False
        assert page.is_last_page is True
        assert page.has_previous_page is True
        assert page.first_item_on_page == 3
        assert page.last_item_on_page == 3

    @pytest.mark.asyncio
    async def test_page_past_end(self, session):
        page = await session.query(Blog).order_by(Blog.id).to_paged_list(3, 2)

        assert len(page) == 0
        assert page.total_count == 0
        assert page.page_count == 0
        assert page.is_first_page is False
        assert page.is_last_page is False
        assert page.has_next_page is False
        assert page.has_previous_page is False
        assert page.first_item_on_page == 0
        assert page.last_item_on_page == 0

    @pytest.mark.asyncio
    async def test_page_of_strategy_results(self, session):
        page = await session.query(
            GetBlogPostsQueryStrategy("First")
        ).to_paged_list(2, 1)

        assert [p.title for p in page] == ["The worst"]
        assert page.total_count == 2


class TestWindowedStrategies:
    """Test strategies that carry their own OFFSET/LIMIT."""

    @staticmethod
    def _first_blog_only():
        return QueryStrategy.for_entity(
            Blog, lambda source: source.order_by(Blog.name).limit(1)
        )

    @staticmethod
    def _all_but_first_blog():
        return QueryStrategy.for_entity(
            Blog, lambda source: source.order_by(Blog.name).offset(1)
        )

    @pytest.mark.asyncio
    async def test_single_or_default_with_limit_one(self, session):
        blog = await session.query(self._first_blog_only()).single_or_default()

        assert blog.name == "First"

    @pytest.mark.asyncio
    async def test_first_or_default_with_offset(self, session):
        blog = await session.query(
            self._all_but_first_blog()
        ).first_or_default()

        assert blog.name == "Second"

    @pytest.mark.asyncio
    async def test_paged_items_agree_with_count(self, session):
        query = session.query(self._first_blog_only())

        page = await query.to_paged_list(1, 10)

        assert [b.name for b in page] == ["First"]
        assert page.total_count == 1
        assert await query.count() == 1
        assert len(await query.to_list()) == 1

    @pytest.mark.asyncio
    async def test_full_page_over_offset_strategy(self, session):
        query = session.query(self._all_but_first_blog())

        page = await query.to_paged_list(1, 1)

        assert [b.name for b in page] == ["Second"]
        assert page.total_count == 2
        assert page.page_count == 2
        assert await query.count() == 2

    @pytest.mark.asyncio
    async def test_page_past_strategy_limit(self, session):
        page = await session.query(self._first_blog_only()).to_paged_list(2, 1)

        assert len(page) == 0
        assert page.total_count == 0
