import uuid

import pytest

from natours.models.review import Review
from natours.models.tour import Tour
from natours.models.user import Role, User


pytestmark = pytest.mark.asyncio

USERS_URL = "/api/v1/users"


async def test_me(client, login_as):
    user, headers = await login_as(Role.GUIDE, name="Kate Morrison")
    resp = await client.get(f"{USERS_URL}/me", headers=headers)
    assert resp.status_code == 200
    doc = resp.json()["data"]["data"]
    assert doc["id"] == str(user.id)
    assert doc["name"] == "Kate Morrison"
    assert doc["role"] == "guide"
    assert doc["photo"] == "default.jpg"
    assert not {"password", "passwordHash", "passwordResetToken", "active"} & set(doc)


async def test_update_me(client, login_as):
    user, headers = await login_as(Role.USER)

    resp = await client.patch(
        f"{USERS_URL}/updateMe",
        json={"name": "Miyah Myles", "email": "Miyah@Example.com", "role": "admin"},
        headers=headers,
    )
    assert resp.status_code == 200
    doc = resp.json()["data"]["user"]
    assert doc["name"] == "Miyah Myles"
    assert doc["email"] == "miyah@example.com"
    # role is not a profile field
    assert doc["role"] == "user"
    assert (await User.get(id=user.id)).role == Role.USER


async def test_update_me_rejects_password(client, login_as):
    _, headers = await login_as(Role.USER)
    resp = await client.patch(
        f"{USERS_URL}/updateMe",
        json={"password": "newpass123", "passwordConfirm": "newpass123"},
        headers=headers,
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "This route is not for password updates. Please use /updateMyPassword."


async def test_delete_me_deactivates(client, login_as):
    user, headers = await login_as(Role.USER)

    resp = await client.delete(f"{USERS_URL}/deleteMe", headers=headers)
    assert resp.status_code == 204

    stored = await User.get(id=user.id)
    assert stored.active is False

    # Inactive users disappear from token resolution and login
    me = await client.get(f"{USERS_URL}/me", headers=headers)
    assert me.status_code == 401
    login = await client.post(f"{USERS_URL}/login", json={"email": user.email, "password": "test1234"})
    assert login.status_code == 401


async def test_admin_routes_are_admin_only(client, login_as):
    _, headers = await login_as(Role.LEAD_GUIDE)
    resp = await client.get(USERS_URL, headers=headers)
    assert resp.status_code == 403


async def test_admin_user_management_flow(client, login_as, create_user):
    admin, admin_headers = await login_as(Role.ADMIN)
    member, _ = await create_user(name="Member One", email="member1@example.com")
    await create_user(name="Gone Away", email="gone@example.com", active=False)

    listing = await client.get(USERS_URL, headers=admin_headers, params={"sort": "email"})
    assert listing.status_code == 200
    emails = [u["email"] for u in listing.json()["data"]["data"]]
    assert "member1@example.com" in emails
    assert "gone@example.com" not in emails
    assert emails == sorted(emails)

    by_role = await client.get(USERS_URL, headers=admin_headers, params={"role": "admin"})
    assert [u["id"] for u in by_role.json()["data"]["data"]] == [str(admin.id)]

    detail = await client.get(f"{USERS_URL}/{member.id}", headers=admin_headers)
    assert detail.status_code == 200
    assert detail.json()["data"]["data"]["name"] == "Member One"

    update = await client.patch(
        f"{USERS_URL}/{member.id}",
        headers=admin_headers,
        json={"email": "Member1+Updated@example.com", "role": "lead-guide"},
    )
    assert update.status_code == 200
    assert update.json()["data"]["data"]["email"] == "member1+updated@example.com"
    assert update.json()["data"]["data"]["role"] == "lead-guide"

    bad_role = await client.patch(f"{USERS_URL}/{member.id}", headers=admin_headers, json={"role": "superuser"})
    assert bad_role.status_code == 400

    first = await client.delete(f"{USERS_URL}/{member.id}", headers=admin_headers)
    assert first.status_code == 204
    second = await client.delete(f"{USERS_URL}/{member.id}", headers=admin_headers)
    assert second.status_code == 404

    assert (await client.get(f"{USERS_URL}/{uuid.uuid4()}", headers=admin_headers)).status_code == 404


async def test_create_user_route_points_to_signup(client, login_as):
    _, headers = await login_as(Role.ADMIN)
    resp = await client.post(USERS_URL, json={"name": "x"}, headers=headers)
    assert resp.status_code == 500
    assert resp.json() == {"status": "error", "message": "This route is not defined! Please use /signup instead"}


async def test_deleting_user_refreshes_tour_ratings(client, login_as, create_tour):
    tour = await create_tour(name="The Forest Hiker")
    harsh, harsh_headers = await login_as(Role.USER, email="harsh@example.com")
    _, kind_headers = await login_as(Role.USER, email="kind@example.com")
    _, admin_headers = await login_as(Role.ADMIN)

    for headers, rating in ((harsh_headers, 1), (kind_headers, 5)):
        resp = await client.post(
            f"/api/v1/tours/{tour.id}/reviews",
            json={"review": "Honest opinion", "rating": rating},
            headers=headers,
        )
        assert resp.status_code == 201, resp.text

    stored = await Tour.get(id=tour.id)
    assert (stored.ratings_average, stored.ratings_quantity) == (3.0, 2)

    resp = await client.delete(f"{USERS_URL}/{harsh.id}", headers=admin_headers)
    assert resp.status_code == 204

    assert await Review.filter(tour_id=tour.id).count() == 1
    stored = await Tour.get(id=tour.id)
    assert (stored.ratings_average, stored.ratings_quantity) == (5.0, 1)
