"""
Pydantic schemas for tour endpoints.
"""
import datetime as dt
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from natours.models.tour import Difficulty

__all__ = ["GeoPoint", "TourLocation", "TourCreateIn", "TourUpdateIn"]


def _check_name_length(v: str) -> str:
    if len(v) < 10:
        raise ValueError("A tour name must have more than or equal to 10 characters")
    if len(v) > 40:
        raise ValueError("A tour name must have less than or equal to 40 characters")
    return v


class GeoPoint(BaseModel):
    """GeoJSON point; coordinates are [lng, lat]."""
    type: Literal["Point"] = "Point"
    coordinates: List[float] = Field(min_length=2, max_length=2)
    address: Optional[str] = None
    description: Optional[str] = None


class TourLocation(GeoPoint):
    day: Optional[int] = None


class TourCreateIn(BaseModel):
    name: str
    duration: int = Field(gt=0)
    maxGroupSize: int = Field(gt=0)
    difficulty: Difficulty
    price: float = Field(gt=0)
    priceDiscount: Optional[float] = Field(default=None, ge=0)
    summary: str
    description: Optional[str] = None
    imageCover: str
    images: List[str] = []
    startDates: List[dt.datetime] = []
    secretTour: bool = False
    startLocation: Optional[GeoPoint] = None
    locations: List[TourLocation] = []
    guides: List[UUID] = []

    @field_validator("name", "summary", "description")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("name")
    @classmethod
    def name_length(cls, v: str) -> str:
        return _check_name_length(v)

    @field_validator("summary")
    @classmethod
    def summary_required(cls, v: str) -> str:
        if not v:
            raise ValueError("A tour must have a summary")
        return v

    @model_validator(mode="after")
    def discount_below_price(self):
        if self.priceDiscount is not None and self.priceDiscount >= self.price:
            raise ValueError(f"Discount price ({self.priceDiscount}) should be below regular price")
        return self


class TourUpdateIn(BaseModel):
    """Partial update; cross-field checks run against the stored tour in tour_service."""
    name: Optional[str] = None
    duration: Optional[int] = Field(default=None, gt=0)
    maxGroupSize: Optional[int] = Field(default=None, gt=0)
    difficulty: Optional[Difficulty] = None
    price: Optional[float] = Field(default=None, gt=0)
    priceDiscount: Optional[float] = Field(default=None, ge=0)
    summary: Optional[str] = None
    description: Optional[str] = None
    imageCover: Optional[str] = None
    images: Optional[List[str]] = None
    startDates: Optional[List[dt.datetime]] = None
    secretTour: Optional[bool] = None
    startLocation: Optional[GeoPoint] = None
    locations: Optional[List[TourLocation]] = None
    guides: Optional[List[UUID]] = None

    @field_validator("name")
    @classmethod
    def name_length(cls, v):
        if v is None:
            return v
        return _check_name_length(v.strip())
