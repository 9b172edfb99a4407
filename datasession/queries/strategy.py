"""
Reusable query strategies.

A query strategy encapsulates how a statement is derived from the full
collection of one entity class: filters, projections, or flattening into a
related collection. Strategies only build statements; they never execute
anything, so they can be tested without a session.

Example:
    ```python
    class PublishedPostsOfBlog(QueryStrategy[Blog, Post]):
        entity = Blog

        def __init__(self, blog_name: str):
            self.blog_name = blog_name

        def shape(self, source: Select) -> Select:
            blogs = source.where(Blog.name == self.blog_name)
            return flatten(blogs, Blog.posts).order_by(Post.published_at)


    posts = await session.query(PublishedPostsOfBlog("First")).to_list()
    ```
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, TypeVar

from sqlalchemy import Select
from sqlalchemy.orm import InstrumentedAttribute, RelationshipProperty, aliased
from sqlmodel import select

TSource = TypeVar("TSource")
TResult = TypeVar("TResult")


def flatten(source: Select, relationship: InstrumentedAttribute[Any]) -> Select:
    """
    Flatten a statement over a parent entity into its related entities.

    The source statement becomes a subquery, so filters applied to the
    parents are kept.

    Args:
        source: Statement selecting the parent entity, e.g.
            ``select(Blog).where(Blog.name == "First")``.
        relationship: Relationship attribute of the parent, e.g.
            ``Blog.posts``.

    Returns:
        Statement selecting the related entity rows.

    Raises:
        TypeError: If ``relationship`` is not a relationship attribute.
    """
    prop = getattr(relationship, "property", None)
    if not isinstance(prop, RelationshipProperty):
        raise TypeError(f"{relationship!r} is not a relationship attribute")

    target = prop.mapper.class_
    parent = aliased(relationship.class_, source.subquery())
    return select(target).join_from(
        parent, target, getattr(parent, relationship.key)
    )


class QueryStrategy(ABC, Generic[TSource, TResult]):
    """
    Base class for reusable, named query shaping logic.

    Subclasses set ``entity`` to the class whose full collection is the
    starting point and implement ``shape``.

    Type Parameters:
        TSource: The entity class the strategy starts from.
        TResult: The type of the rows the shaped statement yields.

    Attributes:
        entity: The SQLModel class selected by the source statement.
    """

    entity: type[TSource]

    @abstractmethod
    def shape(self, source: Select) -> Select:
        """
        Derive the statement to execute from the source statement.

        Args:
            source: ``select(entity)`` over the full collection.

        Returns:
            The shaped, still unexecuted statement.
        """
        ...

    def build(self) -> Select:
        """
        Build the shaped statement from the full entity collection.

        Returns:
            The statement produced by ``shape``.
        """
        entity = getattr(self, "entity", None)
        if entity is None:
            raise TypeError(
                f"{type(self).__name__} does not define an entity"
            )
        return self.shape(select(entity))

    @staticmethod
    def for_entity(
        entity: type[TSource], shape: Callable[[Select], Select]
    ) -> "QueryStrategy[TSource, Any]":
        """
        Create a strategy from a shaping function.

        Args:
            entity: The entity class the source statement selects.
            shape: Function deriving the statement from the source.

        Returns:
            Strategy applying ``shape`` to ``select(entity)``.

        Example:
            ```python
            strategy = QueryStrategy.for_entity(
                Blog, lambda source: flatten(source, Blog.posts)
            )
            ```
        """
        if shape is None:
            raise ValueError("shape must not be None")
        return _CallableQueryStrategy(entity, shape)

    @staticmethod
    def nested(
        relationship: InstrumentedAttribute[Any],
    ) -> "QueryStrategy[Any, Any]":
        """
        Create a strategy flattening a relationship of every parent.

        Args:
            relationship: Relationship attribute, e.g. ``Blog.posts``.

        Returns:
            Strategy selecting the related entities of all parents.
        """
        prop = getattr(relationship, "property", None)
        if not isinstance(prop, RelationshipProperty):
            raise TypeError(f"{relationship!r} is not a relationship attribute")
        return _CallableQueryStrategy(
            relationship.class_, lambda source: flatten(source, relationship)
        )


class _CallableQueryStrategy(QueryStrategy[TSource, TResult]):
    """Strategy delegating to a shaping function."""

    def __init__(
        self, entity: type[TSource], shape: Callable[[Select], Select]
    ):
        self.entity = entity
        self._shape = shape

    def shape(self, source: Select) -> Select:
        return self._shape(source)

    def __repr__(self) -> str:
        return f"QueryStrategy(entity={self.entity.__name__})"
