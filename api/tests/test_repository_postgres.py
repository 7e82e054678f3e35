"""
Repository SQL against a real PostgreSQL.

Set TEST_DATABASE_URL to run these. Each test applies db/schema.sql inside a
private schema on one connection and rolls everything back afterwards, so the
target database is left untouched.
"""

import os
import unittest
from pathlib import Path

import asyncpg

from auth import repository as auth_repository
from collection import repository as collection_repository
from core import config
from core.db import Transaction, _init_connection
from image import repository as image_repository
from item import repository as item_repository
from tag import repository as tag_repository
from tag.normalize import normalize_name, normalize_names
from user import repository as user_repository

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "").strip()
SCHEMA_SQL = Path(__file__).resolve().parents[2] / "db" / "schema.sql"


@unittest.skipUnless(TEST_DATABASE_URL, "TEST_DATABASE_URL is not set")
class PostgresRepositoryTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.conn = await asyncpg.connect(config._sanitize_database_url(TEST_DATABASE_URL))
        await _init_connection(self.conn)
        self.tx = self.conn.transaction()
        await self.tx.start()
        await self.conn.execute("CREATE SCHEMA stylebook_test")
        await self.conn.execute("SET LOCAL search_path TO stylebook_test")
        await self.conn.execute(SCHEMA_SQL.read_text())
        self.db = Transaction(self.conn)

    async def asyncTearDown(self):
        await self.tx.rollback()
        await self.conn.close()

    async def count(self, table):
        return await self.conn.fetchval(f"SELECT count(*) FROM {table}")

    async def make_user(self, name):
        return await auth_repository.create_user(
            self.db,
            email=f"{name}@email.com",
            password_hash="not-a-real-hash",
            name=name,
        )

    async def make_item(self, creator, brand="nike"):
        brand_row = await tag_repository.upsert_brand(self.db, brand)
        inserted = await item_repository.insert_item(
            self.db,
            name="Shirt",
            description="desc",
            brand_id=int(brand_row["id"]),
            creator_id=int(creator["id"]),
        )
        return int(inserted["id"])


class TagRepositoryTests(PostgresRepositoryTestCase):
    async def test_equivalent_brand_spellings_share_one_row(self):
        first = await tag_repository.upsert_brand(self.db, normalize_name("Men's Wear"))
        second = await tag_repository.upsert_brand(self.db, normalize_name("mens wear"))

        self.assertEqual(first["id"], second["id"])
        self.assertEqual(second["name"], "menswear")
        self.assertEqual(await self.count("brands"), 1)

    async def test_upsert_tags_returns_existing_and_new_rows(self):
        first = await tag_repository.upsert_tags(self.db, ["denim", "summer"])
        second = await tag_repository.upsert_tags(self.db, ["summer", "linen"])

        ids = {row["name"]: row["id"] for row in first}
        self.assertEqual({row["name"] for row in second}, {"summer", "linen"})
        self.assertEqual(next(r["id"] for r in second if r["name"] == "summer"), ids["summer"])
        self.assertEqual(await self.count("tags"), 3)

    async def test_item_tags_are_replaced_as_a_set(self):
        owner = await self.make_user("owner")
        item_id = await self.make_item(owner)

        await tag_repository.replace_item_tags(self.db, item_id, normalize_names(["Denim", "Summer"]))
        await tag_repository.replace_item_tags(self.db, item_id, ["linen"])
        self.assertEqual((await item_repository.get_item(self.db, item_id))["tags"], ["linen"])

        await tag_repository.replace_item_tags(self.db, item_id, [])
        self.assertEqual((await item_repository.get_item(self.db, item_id))["tags"], [])


class ItemRepositoryTests(PostgresRepositoryTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.owner = await self.make_user("owner")
        self.other = await self.make_user("other")
        self.item_id = await self.make_item(self.owner)

    async def test_switching_vote_keeps_one_row(self):
        up = await item_repository.upsert_vote(
            self.db, user_id=int(self.other["id"]), item_id=self.item_id, vote=1
        )
        down = await item_repository.upsert_vote(
            self.db, user_id=int(self.other["id"]), item_id=self.item_id, vote=-1
        )

        self.assertEqual(up["id"], down["id"])
        self.assertEqual(down["vote"], -1)
        self.assertEqual(await self.count("item_votes"), 1)
        item = await item_repository.get_item(self.db, self.item_id)
        self.assertEqual(item["vote_score"], -1)

    async def test_favoriting_twice_returns_existing_row(self):
        first = await item_repository.upsert_favorite(
            self.db, user_id=int(self.other["id"]), item_id=self.item_id
        )
        second = await item_repository.upsert_favorite(
            self.db, user_id=int(self.other["id"]), item_id=self.item_id
        )

        self.assertEqual(first["id"], second["id"])
        self.assertEqual(await self.count("favorite_items"), 1)
        self.assertTrue(
            await item_repository.delete_favorite(self.db, user_id=int(self.other["id"]), item_id=self.item_id)
        )
        self.assertFalse(
            await item_repository.delete_favorite(self.db, user_id=int(self.other["id"]), item_id=self.item_id)
        )

    async def test_update_by_non_owner_leaves_row_alone(self):
        updated = await item_repository.update_item(
            self.db,
            self.item_id,
            owner_id=int(self.other["id"]),
            name="Stolen",
            description="nope",
            brand_id=1,
            creator_id=int(self.other["id"]),
        )

        self.assertIsNone(updated)
        row = await item_repository.get_item(self.db, self.item_id)
        self.assertEqual(row["name"], "Shirt")
        self.assertEqual(row["creator_id"], self.owner["id"])

    async def test_delete_is_owner_scoped(self):
        self.assertFalse(await item_repository.delete_item(self.db, self.item_id, owner_id=int(self.other["id"])))
        self.assertTrue(await item_repository.item_exists(self.db, self.item_id))
        self.assertTrue(await item_repository.delete_item(self.db, self.item_id, owner_id=int(self.owner["id"])))
        self.assertFalse(await item_repository.item_exists(self.db, self.item_id))

    async def test_detail_decodes_images_and_viewer_state(self):
        image = await image_repository.create_image(
            self.db, url="https://img.example/1.jpg", uploader_id=int(self.owner["id"])
        )
        await item_repository.replace_item_images(self.db, self.item_id, [int(image["id"])])
        await item_repository.upsert_vote(self.db, user_id=int(self.other["id"]), item_id=self.item_id, vote=1)

        detail = await item_repository.get_item_detail(self.db, self.item_id, viewer_id=int(self.other["id"]))

        self.assertEqual(detail["images"], [{"id": image["id"], "url": "https://img.example/1.jpg"}])
        self.assertEqual(detail["styles"], [])
        self.assertEqual(detail["my_vote"], 1)
        self.assertFalse(detail["is_favorited"])
        self.assertEqual(detail["brand"], "nike")

    async def test_unknown_image_ids_are_not_reported_as_existing(self):
        image = await image_repository.create_image(
            self.db, url="https://img.example/1.jpg", uploader_id=int(self.owner["id"])
        )
        found = await image_repository.existing_image_ids(self.db, [int(image["id"]), int(image["id"]) + 100])
        self.assertEqual(found, {int(image["id"])})


class CollectionRepositoryTests(PostgresRepositoryTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.author = await self.make_user("author")
        self.other = await self.make_user("other")
        inserted = await collection_repository.insert_collection(
            self.db, name="Summer", description="light looks", author_id=int(self.author["id"])
        )
        self.collection_id = int(inserted["id"])

    async def test_liking_twice_returns_existing_row(self):
        first = await collection_repository.upsert_like(
            self.db, user_id=int(self.other["id"]), collection_id=self.collection_id
        )
        second = await collection_repository.upsert_like(
            self.db, user_id=int(self.other["id"]), collection_id=self.collection_id
        )

        self.assertEqual(first["id"], second["id"])
        collection = await collection_repository.get_collection(self.db, self.collection_id)
        self.assertEqual(collection["like_count"], 1)

    async def test_delete_is_author_scoped(self):
        self.assertFalse(
            await collection_repository.delete_collection(
                self.db, self.collection_id, author_id=int(self.other["id"])
            )
        )
        self.assertTrue(await collection_repository.collection_exists(self.db, self.collection_id))
        self.assertTrue(
            await collection_repository.delete_collection(
                self.db, self.collection_id, author_id=int(self.author["id"])
            )
        )
        self.assertFalse(await collection_repository.collection_exists(self.db, self.collection_id))

    async def test_update_by_non_author_leaves_row_alone(self):
        updated = await collection_repository.update_collection(
            self.db,
            self.collection_id,
            author_id=int(self.other["id"]),
            name="Mine",
            description="mine",
        )
        self.assertIsNone(updated)
        row = await collection_repository.get_collection(self.db, self.collection_id)
        self.assertEqual(row["name"], "Summer")


class UserRepositoryTests(PostgresRepositoryTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.user = await self.make_user("tester")

    async def test_find_user_by_id_name_or_email(self):
        for ref in (str(self.user["id"]), "tester", "TESTER@email.com"):
            found = await user_repository.find_user(self.db, ref)
            self.assertEqual(found["id"], self.user["id"], ref)

    async def test_find_user_with_non_ascii_or_huge_digits(self):
        self.assertIsNone(await user_repository.find_user(self.db, "²"))
        self.assertIsNone(await user_repository.find_user(self.db, "9" * 20))

    async def test_subscription_is_inserted_once(self):
        other = await self.make_user("other")
        first = await user_repository.insert_subscription(
            self.db, subscriber_id=int(other["id"]), user_id=int(self.user["id"])
        )
        second = await user_repository.insert_subscription(
            self.db, subscriber_id=int(other["id"]), user_id=int(self.user["id"])
        )
        self.assertIsNotNone(first)
        self.assertIsNone(second)


if __name__ == "__main__":
    unittest.main()
