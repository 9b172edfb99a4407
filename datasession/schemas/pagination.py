"""
Page metadata calculation and paged result container.

``calculate_page_metadata`` is pure arithmetic: it assumes the caller has
already fetched at most ``page_size`` items with an OFFSET/LIMIT window and
obtained the total count independently.
"""

import math
from collections.abc import Iterable, Iterator, Sequence
from typing import Generic, TypeVar, overload

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Annotated

T = TypeVar("T")


class PageMetadata(BaseModel):  # type: ignore[misc]
    """
    Navigation and count metadata for one page of results.

    All values are derived from (page, page_size, total_count, item_count)
    by ``calculate_page_metadata``; instances are frozen.

    Attributes:
        page: Current page number (1-indexed).
        page_size: Requested number of items per page.
        total_count: Number of items across all pages.
        page_count: Number of pages, 0 when there are no items.
        first_item_on_page: 1-indexed position of the first item on this
            page, 0 when the page is empty.
        last_item_on_page: 1-indexed position of the last item on this
            page, 0 when the page is empty.
        is_first_page: Page is the first of a non-empty result set.
        is_last_page: Page is the last of a non-empty result set.
        has_next_page: A page after this one exists.
        has_previous_page: A page before this one exists.
    """

    model_config = ConfigDict(frozen=True)

    page: Annotated[int, Field(ge=1)]
    page_size: Annotated[int, Field(ge=1)]
    total_count: Annotated[int, Field(ge=0)]
    page_count: Annotated[int, Field(ge=0)]
    first_item_on_page: Annotated[int, Field(ge=0)]
    last_item_on_page: Annotated[int, Field(ge=0)]
    is_first_page: bool
    is_last_page: bool
    has_next_page: bool
    has_previous_page: bool


def calculate_page_metadata(
    page: int, page_size: int, total_count: int, item_count: int
) -> PageMetadata:
    """
    Calculate page metadata from the page window and total count.

    Args:
        page: Page number (1-indexed).
        page_size: Number of items per page.
        total_count: Number of items across all pages.
        item_count: Number of items actually fetched for this page.

    Returns:
        PageMetadata consistent with the given inputs.

    Raises:
        ValueError: If any argument is out of range.

    Example:
        >>> meta = calculate_page_metadata(2, 2, 3, 1)
        >>> meta.page_count, meta.first_item_on_page, meta.is_last_page
        (2, 3, True)
    """
    if page < 1:
        raise ValueError("page must be >= 1")
    if page_size < 1:
        raise ValueError("page_size must be >= 1")
    if total_count < 0:
        raise ValueError("total_count must be >= 0")
    if item_count < 0 or item_count > page_size:
        raise ValueError("item_count must be between 0 and page_size")

    page_count = math.ceil(total_count / page_size) if total_count > 0 else 0

    if item_count == 0:
        first_item = 0
        last_item = 0
    else:
        first_item = (page - 1) * page_size + 1
        last_item = first_item + item_count - 1

    # An empty result set has no first page: page 1 of nothing is not
    # reported as first.
    return PageMetadata(
        page=page,
        page_size=page_size,
        total_count=total_count,
        page_count=page_count,
        first_item_on_page=first_item,
        last_item_on_page=last_item,
        is_first_page=page == 1 and page_count > 0,
        is_last_page=page == page_count and page_count > 0,
        has_next_page=page < page_count,
        has_previous_page=page > 1 and page_count > 0,
    )


class PagedResult(Sequence[T], Generic[T]):
    """
    Items of one page plus the page's derived metadata.

    Behaves as an immutable sequence of the page's items. Metadata fields
    are exposed both on ``meta`` and as read-only properties.

    Example:
        ```python
        paged = await session.query(Blog).to_paged_list(page=2, page_size=10)
        for blog in paged:
            ...
        if paged.has_next_page:
            ...
        ```
    """

    __slots__ = ("_items", "_meta")

    def __init__(self, items: Iterable[T], meta: PageMetadata):
        self._items: tuple[T, ...] = tuple(items)
        if len(self._items) > meta.page_size:
            raise ValueError("A page cannot hold more items than page_size")
        self._meta = meta

    @classmethod
    def create(
        cls, items: Iterable[T], page: int, page_size: int, total_count: int
    ) -> "PagedResult[T]":
        """
        Build a paged result, computing its metadata from the items.

        Args:
            items: Items fetched for the page.
            page: Page number (1-indexed).
            page_size: Number of items per page.
            total_count: Number of items across all pages.

        Returns:
            PagedResult with consistent metadata.
        """
        materialized = tuple(items)
        meta = calculate_page_metadata(
            page, page_size, total_count, len(materialized)
        )
        return cls(materialized, meta)

    @classmethod
    def empty(cls, page: int, page_size: int) -> "PagedResult[T]":
        """Build a page with no items and zero counts."""
        return cls.create((), page, page_size, 0)

    @property
    def meta(self) -> PageMetadata:
        return self._meta

    @property
    def items(self) -> tuple[T, ...]:
        return self._items

    @property
    def page(self) -> int:
        return self._meta.page

    @property
    def page_size(self) -> int:
        return self._meta.page_size

    @property
    def total_count(self) -> int:
        return self._meta.total_count

    @property
    def page_count(self) -> int:
        return self._meta.page_count

    @property
    def first_item_on_page(self) -> int:
        return self._meta.first_item_on_page

    @property
    def last_item_on_page(self) -> int:
        return self._meta.last_item_on_page

    @property
    def is_first_page(self) -> bool:
        return self._meta.is_first_page

    @property
    def is_last_page(self) -> bool:
        return self._meta.is_last_page

    @property
    def has_next_page(self) -> bool:
        return self._meta.has_next_page

    @property
    def has_previous_page(self) -> bool:
        return self._meta.has_previous_page

    @overload
    def __getitem__(self, index: int) -> T: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[T, ...]: ...

    def __getitem__(self, index: int | slice) -> T | tuple[T, ...]:
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __repr__(self) -> str:
        return (
            f"PagedResult(page={self.page}, page_size={self.page_size}, "
            f"total_count={self.total_count}, items={len(self._items)})"
        )
