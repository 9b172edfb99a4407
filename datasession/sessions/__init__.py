"""
Unit-of-work sessions and the factory producing them.
"""

from datasession.sessions.factory import SessionFactory
from datasession.sessions.options import EntityOptions, EntityOptionsSelector
from datasession.sessions.session import Session
from datasession.sessions.tracking import ChangeTracking, SessionState

__all__ = [
    "ChangeTracking",
    "EntityOptions",
    "EntityOptionsSelector",
    "Session",
    "SessionFactory",
    "SessionState",
]
