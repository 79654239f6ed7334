"""
Users: serialization and the admin-facing Entity.
Password and reset fields never leave this module's serializers.
"""
from fastapi import Request

from natours.models.review import Review
from natours.models.user import Role, User
from natours.schemas.user import UserUpdateIn
from natours.services.handler_factory import Entity
from natours.services.review_service import calc_average_ratings


def user_to_dict(u: User, populate: tuple = ()) -> dict:
    return {
        "id": str(u.id),
        "name": u.name,
        "email": u.email,
        "photo": u.photo,
        "role": Role(u.role).value,
        "createdAt": u.created_at.isoformat() if u.created_at else None,
    }


def guide_to_dict(u: User) -> dict:
    """Public view of a user embedded in tours."""
    return {
        "id": str(u.id),
        "name": u.name,
        "email": u.email,
        "photo": u.photo,
        "role": Role(u.role).value,
    }


async def update_user(user: User, values: dict, request: Request) -> User:
    changes = {k: v for k, v in values.items() if v is not None}
    if "email" in changes:
        changes["email"] = changes["email"].lower()
    user.update_from_dict(changes)
    await user.save()
    return user


async def delete_user(user: User, request: Request) -> None:
    # The cascade removes the user's reviews; their tours need new aggregates
    tour_ids = set(await Review.filter(user_id=user.id).values_list("tour_id", flat=True))
    await user.delete()
    for tour_id in tour_ids:
        await calc_average_ratings(tour_id)


USERS = Entity(
    name="user",
    model=User,
    serialize=user_to_dict,
    filter_fields={
        "name": "name",
        "email": "email",
        "role": "role",
        "createdAt": "created_at",
    },
    update_schema=UserUpdateIn,
    base_filter={"active": True},
    update=update_user,
    delete=delete_user,
)
