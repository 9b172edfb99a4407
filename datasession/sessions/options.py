"""
Per-entity query options.

Options registered for an entity class are applied to every query whose
result type is that class, e.g. eager loading of relationships that the
caller always needs.

Example:
    ```python
    selector = EntityOptionsSelector()
    selector.register(Blog, EntityOptions(eager_load=("posts",)))
    factory = SessionFactory(session_maker, options_selector=selector)
    ```
"""

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Select
from sqlalchemy.orm import selectinload

from datasession.logging import logger


@dataclass(frozen=True)
class EntityOptions:
    """
    Query options for one entity class.

    Attributes:
        eager_load: Relationship names loaded with SELECT IN eager loading
            (prevents N+1 queries).
        execution_options: SQLAlchemy execution options set on the
            statement (e.g. ``{"yield_per": 100}``).
    """

    eager_load: tuple[str, ...] = ()
    execution_options: dict[str, Any] = field(default_factory=dict)

    def apply(self, statement: Select, entity: type) -> Select:
        """
        Apply the options to a statement selecting the entity.

        Args:
            statement: Statement whose result type is ``entity``.
            entity: The entity class the options were registered for.

        Returns:
            Statement with loader and execution options applied.
        """
        for relationship in self.eager_load:
            if hasattr(entity, relationship):
                statement = statement.options(
                    selectinload(getattr(entity, relationship))
                )
            else:
                logger.warning(
                    f"Relationship '{relationship}' not found on {entity.__name__}"
                )

        if self.execution_options:
            statement = statement.execution_options(**self.execution_options)

        return statement


class EntityOptionsSelector:
    """
    Registry resolving the query options of an entity class.

    Lookups follow the class MRO, so options registered for a base class
    apply to its subclasses unless they register their own.
    """

    def __init__(self, options: dict[type, EntityOptions] | None = None):
        self._options: dict[type, EntityOptions] = dict(options or {})

    def register(self, entity: type, options: EntityOptions) -> None:
        self._options[entity] = options

    def get(self, entity: type) -> EntityOptions | None:
        """
        Get the options for an entity class.

        Args:
            entity: Entity class being queried.

        Returns:
            Registered options, or None when nothing is registered.
        """
        for klass in entity.__mro__:
            options = self._options.get(klass)
            if options is not None:
                return options
        return None
