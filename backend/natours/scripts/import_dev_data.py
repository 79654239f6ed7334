"""
Development data loader.

Usage:
    python -m natours.scripts.import_dev_data --import [--dir dev-data/data]
    python -m natours.scripts.import_dev_data --delete

--import: load users.json, tours.json and reviews.json (in that order, so
          tours can reference their guides and reviews their tour/author)
--delete: remove every review, tour and user

Records in the files are keyed by their own `_id` strings; those are mapped
to the ids the database assigns. User records carry a plaintext `password`,
which is hashed on the way in.
"""
import argparse
import asyncio
import json
import logging
from pathlib import Path

from tortoise import Tortoise
from tortoise.transactions import in_transaction

from natours.core.db import TORTOISE_ORM
from natours.core.security import hash_password
from natours.models.review import Review
from natours.models.tour import Tour
from natours.models.user import Role, User
from natours.schemas.tour import TourCreateIn
from natours.services.review_service import calc_average_ratings
from natours.services.tour_service import create_tour

logger = logging.getLogger("natours.dev_data")

DEFAULT_DIR = Path("dev-data") / "data"


def _load(directory: Path, name: str) -> list[dict]:
    with open(directory / name, encoding="utf-8") as fh:
        return json.load(fh)


async def import_data(directory: Path) -> dict[str, int]:
    """Load the three collections from `directory`; returns the count per collection."""
    users = _load(directory, "users.json")
    tours = _load(directory, "tours.json")
    reviews = _load(directory, "reviews.json")

    user_ids: dict[str, object] = {}
    tour_ids: dict[str, object] = {}

    # All or nothing; a bad record leaves the database as it was
    async with in_transaction():
        for raw in users:
            user = await User.create(
                name=raw["name"].strip(),
                email=raw["email"].lower(),
                photo=raw.get("photo") or "default.jpg",
                role=Role(raw.get("role", Role.USER.value)),
                active=raw.get("active", True),
                password_hash=hash_password(raw["password"]),
            )
            user_ids[raw["_id"]] = user.id

        for raw in tours:
            payload = {k: v for k, v in raw.items() if k not in ("_id", "ratingsAverage", "ratingsQuantity")}
            payload["guides"] = [user_ids[g] for g in raw.get("guides", [])]
            values = TourCreateIn.model_validate(payload).model_dump()
            tour = await create_tour(values, None)
            tour_ids[raw["_id"]] = tour.id

        for raw in reviews:
            await Review.create(
                review=raw["review"],
                rating=raw["rating"],
                tour_id=tour_ids[raw["tour"]],
                user_id=user_ids[raw["user"]],
            )

        # Ratings are derived from the reviews just loaded
        for tour_id in tour_ids.values():
            await calc_average_ratings(tour_id)

    counts = {"users": len(users), "tours": len(tours), "reviews": len(reviews)}
    logger.info("Data successfully loaded: %s", counts)
    return counts


async def delete_data() -> None:
    # Reviews first; they reference both tours and users
    await Review.all().delete()
    await Tour.all().delete()
    await User.all().delete()
    logger.info("Data successfully deleted.")


async def _run(args: argparse.Namespace) -> None:
    await Tortoise.init(config=TORTOISE_ORM)
    try:
        if args.do_import:
            await import_data(Path(args.dir))
        else:
            await delete_data()
    finally:
        await Tortoise.close_connections()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Load or remove Natours development data")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--import", dest="do_import", action="store_true", help="Load the JSON files")
    group.add_argument("--delete", dest="do_delete", action="store_true", help="Delete all tours, users and reviews")
    parser.add_argument("--dir", default=str(DEFAULT_DIR), help="Directory holding the JSON files")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    asyncio.run(_run(args))


if __name__ == "__main__":
    main()
