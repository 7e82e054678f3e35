import unittest
from unittest.mock import AsyncMock, patch

from fastapi import HTTPException

from fakes import FakeDatabase, item_row
from image import service as image_service
from item import repository as item_repository
from item import schemas, service
from tag import repository as tag_repository
from user import repository as user_repository

CALLER_ID = 1


class ItemServiceTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.db = FakeDatabase()
        self.mocks = {}
        self._patch(image_service, "ensure_images_exist")
        self._patch(user_repository, "find_user", return_value=None)
        self._patch(tag_repository, "upsert_brand", return_value={"id": 3, "name": "nike"})
        self._patch(tag_repository, "replace_item_tags")
        self._patch(item_repository, "insert_item", return_value={"id": 10})
        self._patch(item_repository, "replace_item_images")
        self._patch(item_repository, "get_item", return_value=item_row())
        self._patch(item_repository, "list_items", return_value=[])
        self._patch(item_repository, "item_exists", return_value=True)
        self._patch(item_repository, "get_owned_item", return_value=None)
        self._patch(item_repository, "update_item", return_value={"id": 10})
        self._patch(item_repository, "delete_item", return_value=True)
        self._patch(item_repository, "upsert_favorite", return_value={"id": 7})
        self._patch(item_repository, "delete_favorite", return_value=True)
        self._patch(item_repository, "upsert_vote")
        self._patch(item_repository, "delete_vote", return_value=True)

    def _patch(self, target, name, **kwargs):
        patcher = patch.object(target, name, new=AsyncMock(**kwargs))
        self.mocks[name] = patcher.start()
        self.addCleanup(patcher.stop)


class CreateItemTests(ItemServiceTestCase):
    def _payload(self, **overrides):
        data = {"name": "Shirt", "description": "desc", "brand": "Nike", "images": [1]}
        data.update(overrides)
        return schemas.ItemCreateRequest(**data)

    async def test_creates_item_with_normalized_brand(self):
        item = await service.create_item(self.db, self._payload(), user_id=CALLER_ID)

        self.mocks["upsert_brand"].assert_awaited_once_with(self.db, "nike")
        self.mocks["insert_item"].assert_awaited_once_with(
            self.db,
            name="Shirt",
            description="desc",
            brand_id=3,
            creator_id=CALLER_ID,
        )
        self.mocks["replace_item_images"].assert_awaited_once_with(self.db, 10, [1])
        self.mocks["replace_item_tags"].assert_not_awaited()
        self.assertEqual(item["brand"], "nike")
        self.assertEqual(item["creator"], {"id": CALLER_ID, "name": "tester"})
        self.assertEqual(self.db.committed, 1)

    async def test_empty_images_is_rejected_before_any_write(self):
        with self.assertRaises(HTTPException) as ctx:
            await service.create_item(self.db, self._payload(images=[]), user_id=CALLER_ID)

        self.assertEqual(ctx.exception.status_code, 400)
        self.mocks["insert_item"].assert_not_awaited()
        self.mocks["upsert_brand"].assert_not_awaited()

    async def test_missing_images_is_rejected(self):
        with self.assertRaises(HTTPException) as ctx:
            await service.create_item(self.db, self._payload(images=None), user_id=CALLER_ID)
        self.assertEqual(ctx.exception.status_code, 400)

    async def test_name_and_description_are_required(self):
        for overrides in ({"name": None}, {"description": "   "}):
            with self.assertRaises(HTTPException) as ctx:
                await service.create_item(self.db, self._payload(**overrides), user_id=CALLER_ID)
            self.assertEqual(ctx.exception.status_code, 400)
        self.mocks["insert_item"].assert_not_awaited()

    async def test_brand_that_normalizes_to_nothing_is_rejected(self):
        for brand in (None, "", "!!!"):
            with self.assertRaises(HTTPException) as ctx:
                await service.create_item(self.db, self._payload(brand=brand), user_id=CALLER_ID)
            self.assertEqual(ctx.exception.status_code, 400)

    async def test_tags_are_normalized_and_deduplicated(self):
        payload = self._payload(tags=["Summer!", "summer", "Men's Wear"])
        await service.create_item(self.db, payload, user_id=CALLER_ID)

        self.mocks["replace_item_tags"].assert_awaited_once_with(self.db, 10, ["summer", "menswear"])

    async def test_unknown_creator_defaults_to_caller(self):
        await service.create_item(self.db, self._payload(creator="nobody"), user_id=CALLER_ID)

        self.mocks["find_user"].assert_awaited_once_with(self.db, "nobody")
        self.assertEqual(self.mocks["insert_item"].await_args.kwargs["creator_id"], CALLER_ID)

    async def test_matching_creator_is_used(self):
        self.mocks["find_user"].return_value = {"id": 42}
        await service.create_item(self.db, self._payload(creator="friend@email.com"), user_id=CALLER_ID)

        self.assertEqual(self.mocks["insert_item"].await_args.kwargs["creator_id"], 42)

    async def test_unknown_image_rolls_back(self):
        self.mocks["ensure_images_exist"].side_effect = HTTPException(status_code=400, detail="Unknown image ids: [1]")

        with self.assertRaises(HTTPException):
            await service.create_item(self.db, self._payload(), user_id=CALLER_ID)

        self.mocks["insert_item"].assert_not_awaited()
        self.assertEqual(self.db.rolled_back, 1)


class ReadItemTests(ItemServiceTestCase):
    async def test_empty_listing_is_not_found(self):
        with self.assertRaises(HTTPException) as ctx:
            await service.list_items(self.db)
        self.assertEqual(ctx.exception.status_code, 404)

    async def test_listing_shapes_rows(self):
        self.mocks["list_items"].return_value = [item_row(tags=["denim"], vote_score=3)]
        items = await service.list_items(self.db)
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0]["tags"], ["denim"])
        self.assertEqual(items[0]["vote_score"], 3)

    async def test_missing_item_is_not_found(self):
        with patch.object(item_repository, "get_item_detail", new=AsyncMock(return_value=None)):
            with self.assertRaises(HTTPException) as ctx:
                await service.get_item(self.db, 99, viewer_id=CALLER_ID)
        self.assertEqual(ctx.exception.status_code, 404)

    async def test_detail_includes_styles_and_viewer_state(self):
        row = item_row(styles=[{"id": 5, "name": "Casual", "published": True}], my_vote=-1, is_favorited=True)
        with patch.object(item_repository, "get_item_detail", new=AsyncMock(return_value=row)):
            item = await service.get_item(self.db, 10, viewer_id=CALLER_ID)
        self.assertEqual(item["styles"][0]["name"], "Casual")
        self.assertEqual(item["my_vote"], -1)
        self.assertTrue(item["is_favorited"])


class FavoriteAndVoteTests(ItemServiceTestCase):
    async def test_favorite_is_idempotent_and_returns_relation_id(self):
        first = await service.favorite_item(self.db, 10, user_id=CALLER_ID)
        second = await service.favorite_item(self.db, 10, user_id=CALLER_ID)
        self.assertEqual(first, {"id": 7})
        self.assertEqual(second, {"id": 7})

    async def test_favorite_missing_item(self):
        self.mocks["item_exists"].return_value = False
        with self.assertRaises(HTTPException) as ctx:
            await service.favorite_item(self.db, 10, user_id=CALLER_ID)
        self.assertEqual(ctx.exception.status_code, 404)
        self.mocks["upsert_favorite"].assert_not_awaited()

    async def test_unfavorite_when_not_favorited(self):
        self.mocks["delete_favorite"].return_value = False
        with self.assertRaises(HTTPException) as ctx:
            await service.unfavorite_item(self.db, 10, user_id=CALLER_ID)
        self.assertEqual(ctx.exception.status_code, 400)

    async def test_upvote_then_downvote_overwrites_polarity(self):
        self.mocks["upsert_vote"].side_effect = [
            {"id": 1, "user_id": CALLER_ID, "item_id": 10, "vote": 1},
            {"id": 1, "user_id": CALLER_ID, "item_id": 10, "vote": -1},
        ]
        up = await service.upvote_item(self.db, 10, user_id=CALLER_ID)
        down = await service.downvote_item(self.db, 10, user_id=CALLER_ID)

        self.assertEqual(up["vote"], 1)
        self.assertEqual(down["vote"], -1)
        self.assertEqual(up["id"], down["id"])
        self.mocks["upsert_vote"].assert_any_await(self.db, user_id=CALLER_ID, item_id=10, vote=1)
        self.mocks["upsert_vote"].assert_any_await(self.db, user_id=CALLER_ID, item_id=10, vote=-1)

    async def test_unvote_without_vote(self):
        self.mocks["delete_vote"].return_value = False
        with self.assertRaises(HTTPException) as ctx:
            await service.unvote_item(self.db, 10, user_id=CALLER_ID)
        self.assertEqual(ctx.exception.status_code, 400)

    async def test_vote_on_missing_item(self):
        self.mocks["item_exists"].return_value = False
        with self.assertRaises(HTTPException) as ctx:
            await service.downvote_item(self.db, 10, user_id=CALLER_ID)
        self.assertEqual(ctx.exception.status_code, 404)


class UpdateAndDeleteItemTests(ItemServiceTestCase):
    def _owned(self, **overrides):
        row = {"id": 10, "name": "Shirt", "description": "desc", "brand_id": 3, "creator_id": CALLER_ID}
        row.update(overrides)
        self.mocks["get_owned_item"].return_value = row

    async def test_update_without_ownership_never_writes(self):
        with self.assertRaises(HTTPException) as ctx:
            await service.update_item(
                self.db, 10, schemas.ItemUpdateRequest(name="New"), user_id=CALLER_ID
            )
        self.assertEqual(ctx.exception.status_code, 404)
        self.mocks["update_item"].assert_not_awaited()

    async def test_blank_name_falls_back_to_stored_value(self):
        self._owned()
        await service.update_item(
            self.db,
            10,
            schemas.ItemUpdateRequest(name="   ", description="better desc"),
            user_id=CALLER_ID,
        )
        self.mocks["update_item"].assert_awaited_once_with(
            self.db,
            10,
            owner_id=CALLER_ID,
            name="Shirt",
            description="better desc",
            brand_id=3,
            creator_id=CALLER_ID,
        )

    async def test_empty_images_rejected(self):
        with self.assertRaises(HTTPException) as ctx:
            await service.update_item(self.db, 10, schemas.ItemUpdateRequest(images=[]), user_id=CALLER_ID)
        self.assertEqual(ctx.exception.status_code, 400)
        self.mocks["get_owned_item"].assert_not_awaited()

    async def test_supplied_tags_replace_the_set(self):
        self._owned()
        await service.update_item(
            self.db, 10, schemas.ItemUpdateRequest(tags=["Denim", "DENIM"]), user_id=CALLER_ID
        )
        self.mocks["replace_item_tags"].assert_awaited_once_with(self.db, 10, ["denim"])

    async def test_omitted_tags_and_images_are_untouched(self):
        self._owned()
        await service.update_item(self.db, 10, schemas.ItemUpdateRequest(), user_id=CALLER_ID)
        self.mocks["replace_item_tags"].assert_not_awaited()
        self.mocks["replace_item_images"].assert_not_awaited()

    async def test_brand_change_is_upserted(self):
        self._owned()
        self.mocks["upsert_brand"].return_value = {"id": 9, "name": "adidas"}
        await service.update_item(self.db, 10, schemas.ItemUpdateRequest(brand="Adidas"), user_id=CALLER_ID)
        self.mocks["upsert_brand"].assert_awaited_once_with(self.db, "adidas")
        self.assertEqual(self.mocks["update_item"].await_args.kwargs["brand_id"], 9)

    async def test_images_are_replaced_when_supplied(self):
        self._owned()
        await service.update_item(self.db, 10, schemas.ItemUpdateRequest(images=[2, 2, 3]), user_id=CALLER_ID)
        self.mocks["ensure_images_exist"].assert_awaited_once_with(self.db, [2, 3])
        self.mocks["replace_item_images"].assert_awaited_once_with(self.db, 10, [2, 3])

    async def test_delete_requires_ownership(self):
        self.mocks["delete_item"].return_value = False
        with self.assertRaises(HTTPException) as ctx:
            await service.delete_item(self.db, 10, user_id=CALLER_ID)
        self.assertEqual(ctx.exception.status_code, 404)

    async def test_delete_owned_item(self):
        await service.delete_item(self.db, 10, user_id=CALLER_ID)
        self.mocks["delete_item"].assert_awaited_once_with(self.db, 10, owner_id=CALLER_ID)


if __name__ == "__main__":
    unittest.main()
