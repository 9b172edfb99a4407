"""
Deferred queries and reusable query strategies.
"""

from datasession.queries.query import Query
from datasession.queries.strategy import QueryStrategy, flatten

__all__ = ["Query", "QueryStrategy", "flatten"]
