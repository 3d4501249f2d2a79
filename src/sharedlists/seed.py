from __future__ import annotations

import argparse
import logging
import random
import re
from uuid import uuid4

from faker import Faker

from . import lists, sharing
from .config import seed_value
from .db import get_connection, init_db
from .pages import create_page
from .users import OAuthProfile, upsert_oauth_user
from .validators import USERNAME_MAX, USERNAME_MIN

logger = logging.getLogger(__name__)

LIST_TITLES = (
    "Groceries",
    "To do",
    "Packing",
    "Reading list",
    "Errands",
    "Gift ideas",
    "Chores",
    "Movies to watch",
)
PUBLIC_PAGE_RATIO = 0.3
SHARE_RATIO = 0.5
CHECKED_RATIO = 0.35


def _unique_usernames(faker: Faker, count: int, rng: random.Random) -> list[str]:
    usernames: list[str] = []
    seen: set[str] = set()
    while len(usernames) < count:
        handle = re.sub(r"[^a-z0-9_.-]+", "", faker.user_name().lower())
        if len(handle) < USERNAME_MIN:
            handle = f"user{handle}"
        if rng.random() < 0.2:
            handle = f"{handle}{rng.randint(1, 999)}"
        handle = handle[:USERNAME_MAX]
        if handle not in seen:
            seen.add(handle)
            usernames.append(handle)
    return usernames


def _slug(faker: Faker, index: int) -> str:
    words = "-".join(faker.words(nb=2))
    slug = re.sub(r"[^a-z0-9-]+", "", words.lower()).strip("-") or "page"
    return f"{slug[:40]}-{index}"


def seed_database(
    users: int,
    pages: int,
    lists_per_page: int,
    items_per_list: int,
    seed: int | None,
) -> None:
    """Fill an empty database with demo data; a database that already has users is left alone."""
    init_db()
    rng = random.Random(seed)
    faker = Faker()
    if seed is not None:
        Faker.seed(seed)

    with get_connection() as conn:
        existing = conn.execute("SELECT id FROM users LIMIT 1").fetchone()
        if existing:
            logger.info("database already has users; skipping seed")
            return

        user_rows = []
        for username in _unique_usernames(faker, users, rng):
            profile = OAuthProfile(
                external_id=f"seed-{uuid4()}",
                username=username,
                display_name=faker.name(),
                profile_image_url=f"https://i.pravatar.cc/150?u={username}",
                email=f"{username}@example.com",
            )
            user_rows.append(upsert_oauth_user(conn, profile))

        slug_index = 0
        for owner in user_rows:
            for _ in range(pages):
                page = create_page(
                    conn,
                    owner["id"],
                    {
                        "title": faker.catch_phrase()[:200],
                        "description": faker.sentence(nb_words=10),
                    },
                )
                page_row = conn.execute(
                    "SELECT * FROM pages WHERE id = ?", (page["id"],)
                ).fetchone()

                for list_index in range(lists_per_page):
                    created_list = lists.create_list(
                        conn,
                        page["id"],
                        {
                            "title": LIST_TITLES[list_index % len(LIST_TITLES)],
                            "show_checkboxes": rng.random() > 0.2,
                            "show_progress": rng.random() > 0.3,
                        },
                    )
                    for _ in range(items_per_list):
                        lists.create_item(
                            conn,
                            created_list["id"],
                            {
                                "content": faker.sentence(nb_words=4).rstrip("."),
                                "checked": rng.random() < CHECKED_RATIO,
                            },
                        )

                others = [u for u in user_rows if u["id"] != owner["id"]]
                if others and rng.random() < SHARE_RATIO:
                    for collaborator in rng.sample(others, k=min(2, len(others))):
                        sharing.grant_permission(
                            conn,
                            page_row,
                            owner["id"],
                            {"user_id": collaborator["id"], "can_edit": rng.random() < 0.5},
                        )

                if rng.random() < PUBLIC_PAGE_RATIO:
                    slug_index += 1
                    sharing.set_public_slug(
                        conn, page_row, {"public_slug": _slug(faker, slug_index)}
                    )

    logger.info("seeded %d users with %d pages each", users, pages)


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed Shared Lists demo data")
    parser.add_argument("--users", type=int, default=5)
    parser.add_argument("--pages", type=int, default=3, help="Pages per user.")
    parser.add_argument("--lists-per-page", type=int, default=3)
    parser.add_argument("--items-per-list", type=int, default=6)
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    seed_database(
        users=args.users,
        pages=args.pages,
        lists_per_page=args.lists_per_page,
        items_per_list=args.items_per_list,
        seed=seed_value(),
    )


if __name__ == "__main__":
    main()
