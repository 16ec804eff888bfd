import math

from pydantic import BaseModel, ConfigDict, Field


TOTAL_HEADER = "X-WP-Total"
TOTAL_PAGES_HEADER = "X-WP-TotalPages"

class PaginationEnvelope(BaseModel):
    """Collection totals exposed next to a page of results."""
    total_count: int = Field(ge=0)
    total_pages: int = Field(ge=0)

    model_config = ConfigDict(frozen=True)

    def headers(self) -> dict[str, str]:
        return {
            TOTAL_HEADER: str(self.total_count),
            TOTAL_PAGES_HEADER: str(self.total_pages),
        }


def envelope(total: int, page_size: int) -> PaginationEnvelope:
    """Computes totals from the unpaginated match count.

    Args:
        total (int): Number of records matching the filter, all pages included.
        page_size (int): Requested page size, at least 1.

    Returns:
        PaginationEnvelope: ``total_pages = ceil(total / page_size)``.
    """
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    return PaginationEnvelope(total_count=total, total_pages=math.ceil(total / page_size))
