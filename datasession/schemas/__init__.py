from datasession.schemas.pagination import (
    PagedResult,
    PageMetadata,
    calculate_page_metadata,
)

__all__ = ["PagedResult", "PageMetadata", "calculate_page_metadata"]
