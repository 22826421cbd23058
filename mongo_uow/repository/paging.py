"""Paging request/response models for find_many_page."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from mongo_uow.config import settings


class Paging(BaseModel):
    """Zero-based page request; `sorter` maps field -> 1 / -1."""
    index: int = Field(default=0, ge=0)
    size: int = Field(default_factory=lambda: settings.DEFAULT_PAGE_SIZE, gt=0)
    sorter: Optional[Dict[str, int]] = None


class Page(Paging):
    total: int = 0
    items: List[Any] = Field(default_factory=list)

    @classmethod
    def empty(cls, paging: Paging) -> "Page":
        return cls(index=paging.index, size=paging.size, sorter=paging.sorter)


def default_paging() -> Paging:
    return Paging()
