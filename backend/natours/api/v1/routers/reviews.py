from fastapi import APIRouter, Depends, status

from natours.api.v1.deps import protect, restrict_to
from natours.models.user import Role
from natours.services import handler_factory as factory
from natours.services.review_service import REVIEWS

# Every review route requires a logged-in user
router = APIRouter(tags=["reviews"], dependencies=[Depends(protect)])

authors = [Depends(restrict_to(Role.USER))]
moderators = [Depends(restrict_to(Role.USER, Role.ADMIN))]

list_reviews = factory.get_all(REVIEWS)
create_review = factory.create_one(REVIEWS)

# Top-level and nested under a tour; the nested form scopes reads and fills in the tour
for path in ("/reviews", "/tours/{tour_id}/reviews"):
    router.add_api_route(path, list_reviews, methods=["GET"])
    router.add_api_route(
        path,
        create_review,
        methods=["POST"],
        status_code=status.HTTP_201_CREATED,
        dependencies=authors,
    )

router.add_api_route("/reviews/{id}", factory.get_one(REVIEWS), methods=["GET"])
router.add_api_route("/reviews/{id}", factory.update_one(REVIEWS), methods=["PATCH"], dependencies=moderators)
router.add_api_route(
    "/reviews/{id}",
    factory.delete_one(REVIEWS),
    methods=["DELETE"],
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=moderators,
)
