from enum import Enum


class ChangeTracking(str, Enum):
    """
    Change tracking mode of a session.

    DEFAULT resolves to the DB_DEFAULT_CHANGE_TRACKING setting when the
    session is created. The resolved mode never changes afterwards.
    """

    DEFAULT = "default"
    ENABLE = "enable"
    DISABLE = "disable"


class SessionState(str, Enum):
    """
    Lifecycle state of a session.

    Sessions leave the factory ACTIVE; ``close()`` moves them to DISPOSED.
    """

    ACTIVE = "active"
    DISPOSED = "disposed"
