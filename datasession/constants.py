"""
Library-level constants for hardcoded data access behavior.

These values are safety limits and should NEVER be changed via environment
variables. For configurable values (connection pools, default page size,
slow query threshold, etc.), see datasession/settings.py.
"""

# ============================================================================
# Pagination Safety Limits
# ============================================================================

# Maximum allowed page size to prevent excessive database loads
# Hard safety limit regardless of what the caller requests
# Default page size is configurable (Settings.DEFAULT_PAGE_SIZE)
MAX_PAGE_SIZE = 1000


# ============================================================================
# Query Monitoring
# ============================================================================

# Maximum number of SQL statement characters written to slow query logs
SLOW_QUERY_STATEMENT_PREVIEW_CHARS = 500


# ============================================================================
# Logging
# ============================================================================

# Upper bound for a single structured (JSON) log line
MAX_LOG_SIZE_BYTES = 250_000
