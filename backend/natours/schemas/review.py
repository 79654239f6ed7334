"""
Pydantic schemas for review endpoints.
"""
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

__all__ = ["ReviewCreateIn", "ReviewUpdateIn"]


class ReviewCreateIn(BaseModel):
    review: str = Field(min_length=1)
    rating: float = Field(default=0, ge=0, le=5)
    # Filled from the nested route and the session when omitted
    tour: Optional[UUID] = None
    user: Optional[UUID] = None


class ReviewUpdateIn(BaseModel):
    review: Optional[str] = Field(default=None, min_length=1)
    rating: Optional[float] = Field(default=None, ge=0, le=5)
