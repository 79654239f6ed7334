"""
Tours: serialization, persistence hooks, statistics and geo queries.

Derived data is computed here around the persistence calls:
- slug from name on create and rename
- priceDiscount < price checked against the merged stored/new values
- guides resolved to active users before being linked
"""
import datetime as dt
from collections import defaultdict

from fastapi import Request
from slugify import slugify
from tortoise.functions import Avg, Count, Max, Min, Sum

from natours.core.errors import BadRequestError, ValidationFailedError
from natours.models.tour import Difficulty, Tour
from natours.models.user import User
from natours.schemas.tour import TourCreateIn, TourUpdateIn
from natours.services import geo
from natours.services.handler_factory import Entity
from natours.services.review_service import review_to_dict
from natours.services.user_service import guide_to_dict

# API name -> column for the writable scalar/JSON fields
TOUR_COLUMNS = {
    "name": "name",
    "duration": "duration",
    "maxGroupSize": "max_group_size",
    "difficulty": "difficulty",
    "price": "price",
    "priceDiscount": "price_discount",
    "summary": "summary",
    "description": "description",
    "imageCover": "image_cover",
    "images": "images",
    "startDates": "start_dates",
    "secretTour": "secret_tour",
    "startLocation": "start_location",
    "locations": "locations",
}
NULLABLE = {"priceDiscount", "description", "startLocation"}

STATS_MIN_RATING = 4.5
TOP_CHEAP_PARAMS = {
    "limit": "5",
    "sort": "-ratingsAverage,price",
    "fields": "name,price,ratingsAverage,summary,difficulty",
}


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def tour_to_dict(t: Tour, populate: tuple = ()) -> dict:
    doc = {
        "id": str(t.id),
        "name": t.name,
        "slug": t.slug,
        "duration": t.duration,
        "durationWeeks": t.duration_weeks,
        "maxGroupSize": t.max_group_size,
        "difficulty": Difficulty(t.difficulty).value,
        "ratingsAverage": t.ratings_average,
        "ratingsQuantity": t.ratings_quantity,
        "price": t.price,
        "priceDiscount": t.price_discount,
        "summary": t.summary,
        "description": t.description,
        "imageCover": t.image_cover,
        "images": t.images or [],
        "createdAt": _iso(t.created_at),
        "startDates": t.start_dates or [],
        "secretTour": t.secret_tour,
        "startLocation": t.start_location,
        "locations": t.locations or [],
        "guides": [guide_to_dict(g) for g in t.guides],
    }
    if "reviews" in populate:
        doc["reviews"] = [review_to_dict(r) for r in t.reviews]
    return doc


def _to_columns(values: dict) -> dict:
    columns = {}
    for api_name, value in values.items():
        column = TOUR_COLUMNS.get(api_name)
        if column is None:
            continue
        if value is None and api_name not in NULLABLE:
            raise ValidationFailedError(f"Invalid input data. {api_name}: must not be null")
        if api_name == "startDates":
            value = [d.isoformat() for d in value]
        columns[column] = value
    return columns


def _check_discount(price: float, discount: float | None) -> None:
    if discount is not None and discount >= price:
        raise ValidationFailedError(
            f"Invalid input data. priceDiscount: Discount price ({discount}) should be below regular price"
        )


async def _set_guides(tour: Tour, guide_ids: list) -> None:
    wanted = {str(g) for g in guide_ids}
    guides = await User.filter(id__in=list(wanted), active=True) if wanted else []
    if len(guides) != len(wanted):
        missing = wanted - {str(g.id) for g in guides}
        raise BadRequestError(f"No user found for guide id(s): {', '.join(sorted(missing))}")
    await tour.guides.clear()
    if guides:
        await tour.guides.add(*guides)


async def create_tour(values: dict, request: Request) -> Tour:
    guide_ids = values.pop("guides", None) or []
    columns = _to_columns(values)
    _check_discount(columns["price"], columns.get("price_discount"))
    columns["slug"] = slugify(columns["name"])
    tour = await Tour.create(**columns)
    if guide_ids:
        await _set_guides(tour, guide_ids)
    return tour


async def update_tour(tour: Tour, values: dict, request: Request) -> Tour:
    guide_ids = values.pop("guides", None)
    columns = _to_columns(values)
    _check_discount(
        columns.get("price", tour.price),
        columns["price_discount"] if "price_discount" in columns else tour.price_discount,
    )
    if "name" in columns:
        columns["slug"] = slugify(columns["name"])
    tour.update_from_dict(columns)
    await tour.save()
    if guide_ids is not None:
        await _set_guides(tour, guide_ids)
    return tour


TOURS = Entity(
    name="tour",
    model=Tour,
    serialize=tour_to_dict,
    filter_fields={
        "name": "name",
        "slug": "slug",
        "duration": "duration",
        "maxGroupSize": "max_group_size",
        "difficulty": "difficulty",
        "ratingsAverage": "ratings_average",
        "ratingsQuantity": "ratings_quantity",
        "price": "price",
        "priceDiscount": "price_discount",
        "createdAt": "created_at",
    },
    create_schema=TourCreateIn,
    update_schema=TourUpdateIn,
    hidden_fields=frozenset({"createdAt"}),
    prefetch=("guides",),
    base_filter={"secret_tour": False},
    create=create_tour,
    update=update_tour,
)


# ------------------------------------------------------------------------------
# Aggregations
# ------------------------------------------------------------------------------
async def tour_stats() -> list[dict]:
    """Per-difficulty figures for well-rated tours, easy tours excluded, cheapest first."""
    rows = await (
        Tour.filter(ratings_average__gte=STATS_MIN_RATING)
        .exclude(difficulty=Difficulty.EASY)
        .annotate(
            num_tours=Count("id"),
            num_ratings=Sum("ratings_quantity"),
            avg_rating=Avg("ratings_average"),
            avg_price=Avg("price"),
            min_price=Min("price"),
            max_price=Max("price"),
            avg_price_discount=Avg("price_discount"),
        )
        .group_by("difficulty")
        .order_by("avg_price")
        .values(
            "difficulty",
            "num_tours",
            "num_ratings",
            "avg_rating",
            "avg_price",
            "min_price",
            "max_price",
            "avg_price_discount",
        )
    )
    return [
        {
            "difficulty": Difficulty(row["difficulty"]).value.upper(),
            "numTours": row["num_tours"],
            "numRatings": row["num_ratings"] or 0,
            "avgRating": row["avg_rating"],
            "avgPrice": row["avg_price"],
            "minPrice": row["min_price"],
            "maxPrice": row["max_price"],
            "avgPriceDiscount": row["avg_price_discount"],
        }
        for row in rows
    ]


def _parse_start_date(raw) -> dt.datetime:
    if isinstance(raw, dt.datetime):
        return raw
    return dt.datetime.fromisoformat(str(raw).replace("Z", "+00:00"))


async def monthly_plan(year: int) -> list[dict]:
    """Tour starts in `year` grouped by month, busiest month first."""
    by_month: dict[int, list[str]] = defaultdict(list)
    for tour in await Tour.all():
        for raw in tour.start_dates or []:
            started = _parse_start_date(raw)
            if started.year == year:
                by_month[started.month].append(tour.name)
    plan = [
        {"month": month, "numTourStarts": len(names), "tours": names}
        for month, names in by_month.items()
    ]
    plan.sort(key=lambda p: (-p["numTourStarts"], p["month"]))
    return plan[:12]


async def tours_within(distance: float, latlng: str, unit: str) -> list[Tour]:
    lat, lng = geo.parse_latlng(latlng)
    radians = geo.radius_in_radians(distance, unit)
    tours = await TOURS.queryset().prefetch_related(*TOURS.prefetch)
    return [t for t in tours if geo.within_radius(t.start_location, lat, lng, radians)]


async def distances(latlng: str, unit: str) -> list[dict]:
    lat, lng = geo.parse_latlng(latlng)
    geo.check_unit(unit)
    tours = await TOURS.queryset()
    result = [
        {"id": str(t.id), "name": t.name, "distance": geo.distance_in_unit(t.start_location, lat, lng, unit)}
        for t in tours
        if geo.point_lat_lng(t.start_location) is not None
    ]
    result.sort(key=lambda d: d["distance"])
    return result
