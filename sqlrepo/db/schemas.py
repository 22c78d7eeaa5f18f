"""
Pydantic schemas returned by repository operations.
"""
import math
from typing import Any, List

from pydantic import BaseModel, ConfigDict, computed_field


class Page(BaseModel):
    """One page of entities plus the totals needed to render pagination."""

    items: List[Any]
    total_items: int
    page: int
    per_page: int
    model_config = ConfigDict(arbitrary_types_allowed=True)

    @computed_field
    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_items / self.per_page) if self.per_page > 0 else 0

    @computed_field
    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages
