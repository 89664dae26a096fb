"""
Shared schema base and the paginated preview envelope.
"""

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Trims strings and re-validates on attribute assignment."""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True
    )


class PaginatedResponse(BaseModel):
    """One page of preview rows with the totals a table pager needs."""
    data: list[dict]
    total: int
    page: int
    page_size: int
    total_pages: int

    @classmethod
    def create(cls, data: list[dict], total: int, page: int, page_size: int) -> "PaginatedResponse":
        return cls(
            data=data,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=-(-total // page_size)
        )
