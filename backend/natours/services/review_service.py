"""
Reviews: serialization, persistence hooks and rating recomputation.

Every write path calls calc_average_ratings explicitly so a tour's
ratings_average / ratings_quantity always reflect its reviews.
"""
import logging
import math

from fastapi import Request
from tortoise.functions import Avg, Count

from natours.core.errors import BadRequestError, NotFoundError
from natours.models.review import Review
from natours.models.tour import Tour
from natours.models.user import User
from natours.schemas.review import ReviewCreateIn, ReviewUpdateIn
from natours.services.handler_factory import Entity, parse_id

logger = logging.getLogger("uvicorn.error")

DEFAULT_RATINGS_AVERAGE = 4.5


def round_rating(value: float) -> float:
    """Round half up to one decimal: 4.666 -> 4.7, 4.25 -> 4.3."""
    return math.floor(value * 10 + 0.5) / 10


def author_to_dict(user: User) -> dict:
    return {"id": str(user.id), "name": user.name, "photo": user.photo}


def review_to_dict(r: Review, populate: tuple = ()) -> dict:
    return {
        "id": str(r.id),
        "review": r.review,
        "rating": r.rating,
        "createdAt": r.created_at.isoformat() if r.created_at else None,
        "tour": str(r.tour_id),
        "user": author_to_dict(r.user),
    }


async def calc_average_ratings(tour_id) -> tuple[int, float]:
    """Recompute and store a tour's rating aggregate from its reviews."""
    rows = await (
        Review.filter(tour_id=tour_id)
        .annotate(n_rating=Count("id"), avg_rating=Avg("rating"))
        .group_by("tour_id")
        .values("n_rating", "avg_rating")
    )
    if rows and rows[0]["n_rating"]:
        quantity, average = rows[0]["n_rating"], round_rating(float(rows[0]["avg_rating"]))
    else:
        quantity, average = 0, DEFAULT_RATINGS_AVERAGE
    await Tour.filter(id=tour_id).update(ratings_quantity=quantity, ratings_average=average)
    logger.debug("[reviews] tour=%s ratingsQuantity=%s ratingsAverage=%s", tour_id, quantity, average)
    return quantity, average


async def create_review(values: dict, request: Request) -> Review:
    # Nested routes supply the tour, the session supplies the author
    raw_tour = values.get("tour") or request.path_params.get("tour_id")
    if raw_tour is None:
        raise BadRequestError("Review must belong to a tour")
    tour_id = parse_id(raw_tour)
    user_id = values.get("user") or request.state.user.id

    if not await Tour.exists(id=tour_id):
        raise NotFoundError("No tour found with that ID")
    if not await User.exists(id=user_id, active=True):
        raise NotFoundError("No user found with that ID")

    review = await Review.create(
        review=values["review"],
        rating=values["rating"],
        tour_id=tour_id,
        user_id=user_id,
    )
    await calc_average_ratings(tour_id)
    return review


async def update_review(review: Review, values: dict, request: Request) -> Review:
    changes = {k: v for k, v in values.items() if k in ("review", "rating") and v is not None}
    review.update_from_dict(changes)
    await review.save()
    await calc_average_ratings(review.tour_id)
    return review


async def delete_review(review: Review, request: Request) -> None:
    tour_id = review.tour_id
    await review.delete()
    await calc_average_ratings(tour_id)


REVIEWS = Entity(
    name="review",
    model=Review,
    serialize=review_to_dict,
    filter_fields={
        "rating": "rating",
        "createdAt": "created_at",
    },
    create_schema=ReviewCreateIn,
    update_schema=ReviewUpdateIn,
    prefetch=("user",),
    parent=("tour_id", "tour_id"),
    create=create_review,
    update=update_review,
    delete=delete_review,
)
