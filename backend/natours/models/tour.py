"""
Database model for tours.
A tour is the bookable product: pricing, difficulty, schedule (start dates),
GeoJSON start location and stops, and the users assigned as guides.
"""
import uuid
from enum import Enum

from tortoise import fields, models


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    DIFFICULT = "difficult"


class Tour(models.Model):
    """
    Tour database model.

    Relationships:
    - Has many Reviews (one-to-many, via related_name="reviews" in Review)
    - Many-to-many with User through guides (weak reference, no cascade)

    Derived fields (slug, ratings_average, ratings_quantity) are written by
    natours.services.tour_service and natours.services.review_service, never
    directly from request bodies.
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    name = fields.CharField(max_length=40, unique=True)
    slug = fields.CharField(max_length=64, index=True)
    duration = fields.IntField()
    max_group_size = fields.IntField()
    difficulty = fields.CharEnumField(Difficulty, max_length=16)
    ratings_average = fields.FloatField(default=4.5)
    ratings_quantity = fields.IntField(default=0)
    price = fields.FloatField(index=True)
    price_discount = fields.FloatField(null=True)
    summary = fields.TextField()
    description = fields.TextField(null=True)
    image_cover = fields.CharField(max_length=256)
    images = fields.JSONField(default=list)
    created_at = fields.DatetimeField(auto_now_add=True)
    start_dates = fields.JSONField(default=list)  # ISO-8601 strings
    secret_tour = fields.BooleanField(default=False)
    start_location = fields.JSONField(null=True)  # GeoJSON Point + address/description
    locations = fields.JSONField(default=list)  # GeoJSON Points + address/description/day
    guides = fields.ManyToManyField("models.User", related_name="guided_tours", through="tour_guides")

    class Meta:
        table = "tours"

    @property
    def duration_weeks(self) -> float:
        return self.duration / 7
