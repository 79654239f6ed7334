from fastapi import APIRouter, Depends, Path, status

from natours.api.v1.deps import restrict_to
from natours.models.user import Role
from natours.services import handler_factory as factory
from natours.services import tour_service
from natours.services.tour_service import TOURS, TOP_CHEAP_PARAMS, tour_to_dict

router = APIRouter(prefix="/tours", tags=["tours"])

editors = [Depends(restrict_to(Role.ADMIN, Role.LEAD_GUIDE))]


# ===== Aliases & aggregations (registered before /{id}) =====
router.add_api_route("/top-5-cheap", factory.get_all(TOURS, preset=TOP_CHEAP_PARAMS), methods=["GET"])


@router.get("/tour-stats")
async def get_tour_stats():
    """Per-difficulty statistics for tours rated 4.5 and above."""
    return {"status": "success", "data": {"stats": await tour_service.tour_stats()}}


@router.get(
    "/monthly-plan/{year}",
    dependencies=[Depends(restrict_to(Role.ADMIN, Role.LEAD_GUIDE, Role.GUIDE))],
)
async def get_monthly_plan(year: int = Path(ge=1970, le=9999)):
    """Tour starts per month of `year`, busiest month first."""
    return {"status": "success", "data": {"plan": await tour_service.monthly_plan(year)}}


@router.get("/tours-within/{distance}/center/{latlng}/unit/{unit}")
async def get_tours_within(distance: float, latlng: str, unit: str):
    """
    Tours starting within `distance` of `latlng`.

    Example: /tours-within/233/center/34.11,-118.11/unit/mi
    """
    tours = await tour_service.tours_within(distance, latlng, unit)
    return {"status": "success", "results": len(tours), "data": {"data": [tour_to_dict(t) for t in tours]}}


@router.get("/distances/{latlng}/unit/{unit}")
async def get_distances(latlng: str, unit: str):
    """Distance from `latlng` to every tour's start location, nearest first."""
    return {"status": "success", "data": {"data": await tour_service.distances(latlng, unit)}}


# ===== CRUD =====
router.add_api_route("", factory.get_all(TOURS), methods=["GET"])
router.add_api_route(
    "",
    factory.create_one(TOURS),
    methods=["POST"],
    status_code=status.HTTP_201_CREATED,
    dependencies=editors,
)
router.add_api_route("/{id}", factory.get_one(TOURS, populate=("reviews", "reviews__user")), methods=["GET"])
router.add_api_route("/{id}", factory.update_one(TOURS), methods=["PATCH"], dependencies=editors)
router.add_api_route(
    "/{id}",
    factory.delete_one(TOURS),
    methods=["DELETE"],
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=editors,
)
