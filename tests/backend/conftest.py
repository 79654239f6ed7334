import datetime as dt
import os
import uuid

TEST_DB_URL = "sqlite://:memory:?cache=shared"
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ.setdefault("ENV", "development")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from slugify import slugify  # noqa: E402
from tortoise import Tortoise  # noqa: E402

from natours.core import db as db_module  # noqa: E402
from natours.core.security import hash_password  # noqa: E402
from natours.main import app  # noqa: E402
from natours.models.tour import Difficulty, Tour  # noqa: E402
from natours.models.user import Role, User  # noqa: E402


db_module.DB_URL = TEST_DB_URL
db_module.TORTOISE_ORM["connections"]["default"] = TEST_DB_URL

DEFAULT_PASSWORD = "test1234"


async def _init_test_db() -> None:
    """
    Initialize a clean in-memory SQLite database for every test.
    Ensures tables are recreated from scratch.
    """
    if Tortoise._inited:
        await Tortoise.close_connections()
    await Tortoise.init(config=db_module.TORTOISE_ORM)
    await Tortoise.generate_schemas()


@pytest_asyncio.fixture
async def db():
    """Fresh database without an HTTP client, for service-level tests."""
    await _init_test_db()
    yield
    await Tortoise.close_connections()


@pytest_asyncio.fixture
async def client():
    """
    Provide an HTTPX AsyncClient bound to the FastAPI app with a fresh DB.
    Unhandled errors come back as 500 responses instead of being re-raised.
    """
    await _init_test_db()
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client
    await Tortoise.close_connections()


@pytest.fixture
def create_user():
    """
    Factory fixture to create users directly via ORM.
    """

    async def _create_user(
        role: Role = Role.USER,
        password: str = DEFAULT_PASSWORD,
        email: str | None = None,
        name: str = "Test User",
        active: bool = True,
    ) -> tuple[User, str]:
        user = await User.create(
            name=name,
            email=email or f"{role.value}_{uuid.uuid4().hex[:6]}@example.com",
            password_hash=hash_password(password),
            role=role,
            active=active,
        )
        return user, password

    return _create_user


@pytest.fixture
def create_tour():
    """
    Factory fixture to create tours directly via ORM.
    Keyword arguments override the column defaults.
    """

    async def _create_tour(**overrides) -> Tour:
        name = overrides.pop("name", f"Test Tour {uuid.uuid4().hex[:6]}")
        values = {
            "name": name,
            "slug": slugify(name),
            "duration": 5,
            "max_group_size": 10,
            "difficulty": Difficulty.MEDIUM,
            "price": 500.0,
            "summary": "A tour used in tests",
            "image_cover": "tour-cover.jpg",
            "start_dates": [dt.datetime(2021, 6, 1, 9, tzinfo=dt.timezone.utc).isoformat()],
        }
        values.update(overrides)
        return await Tour.create(**values)

    return _create_tour


@pytest_asyncio.fixture
async def auth_header_factory(client):
    """
    Helper fixture to obtain Authorization headers via the login endpoint.
    """

    async def _get_headers(email: str, password: str = DEFAULT_PASSWORD) -> dict[str, str]:
        resp = await client.post(
            "/api/v1/users/login",
            json={"email": email, "password": password},
        )
        assert resp.status_code == 200, resp.text
        token = resp.json()["token"]
        return {"Authorization": f"Bearer {token}"}

    return _get_headers


@pytest_asyncio.fixture
async def login_as(create_user, auth_header_factory):
    """Create a user with `role` and return (user, headers)."""

    async def _login_as(role: Role = Role.USER, **kwargs) -> tuple[User, dict[str, str]]:
        user, password = await create_user(role=role, **kwargs)
        headers = await auth_header_factory(user.email, password)
        return user, headers

    return _login_as
