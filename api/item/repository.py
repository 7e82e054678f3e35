"""
Item persistence: items, their image links, favorites and votes.
"""

from __future__ import annotations

from core.db import Executor

_ITEM_SELECT = """
    SELECT
      i.id,
      i.name,
      i.description,
      i.brand_id,
      i.creator_id,
      i.created_at,
      i.updated_at,
      b.name AS brand,
      u.name AS creator_name,
      COALESCE(t.names, '{}'::text[]) AS tags,
      COALESCE(img.images, '[]'::json) AS images,
      COALESCE(v.score, 0) AS vote_score,
      COALESCE(f.favorite_count, 0) AS favorite_count
    FROM items i
    JOIN brands b ON b.id = i.brand_id
    JOIN users u ON u.id = i.creator_id
    LEFT JOIN LATERAL (
      SELECT array_agg(tg.name ORDER BY tg.name) AS names
      FROM item_tags it
      JOIN tags tg ON tg.id = it.tag_id
      WHERE it.item_id = i.id
    ) t ON true
    LEFT JOIN LATERAL (
      SELECT json_agg(json_build_object('id', im.id, 'url', im.url) ORDER BY im.id) AS images
      FROM item_images ii
      JOIN images im ON im.id = ii.image_id
      WHERE ii.item_id = i.id
    ) img ON true
    LEFT JOIN LATERAL (
      SELECT sum(iv.vote) AS score
      FROM item_votes iv
      WHERE iv.item_id = i.id
    ) v ON true
    LEFT JOIN LATERAL (
      SELECT count(*) AS favorite_count
      FROM favorite_items fi
      WHERE fi.item_id = i.id
    ) f ON true
"""


async def list_items(conn: Executor) -> list[dict]:
    return await conn.fetch_all(
        f"""
        {_ITEM_SELECT}
        ORDER BY i.created_at DESC, i.id DESC
        """
    )


async def get_item(conn: Executor, item_id: int) -> dict | None:
    return await conn.fetch_one(
        f"""
        {_ITEM_SELECT}
        WHERE i.id = $1
        """,
        item_id,
    )


async def get_item_detail(conn: Executor, item_id: int, *, viewer_id: int) -> dict | None:
    """
    Item with its styles plus the viewer's own vote and favorite state.
    """
    return await conn.fetch_one(
        f"""
        SELECT
          base.*,
          COALESCE(st.styles, '[]'::json) AS styles,
          (
            SELECT mv.vote
            FROM item_votes mv
            WHERE mv.item_id = base.id
              AND mv.user_id = $2
          ) AS my_vote,
          EXISTS (
            SELECT 1
            FROM favorite_items mf
            WHERE mf.item_id = base.id
              AND mf.user_id = $2
          ) AS is_favorited
        FROM ({_ITEM_SELECT} WHERE i.id = $1) base
        LEFT JOIN LATERAL (
          SELECT json_agg(
                   json_build_object('id', s.id, 'name', s.name, 'published', s.published)
                   ORDER BY s.id
                 ) AS styles
          FROM style_items si
          JOIN styles s ON s.id = si.style_id
          WHERE si.item_id = base.id
        ) st ON true
        """,
        item_id,
        viewer_id,
    )


async def item_exists(conn: Executor, item_id: int) -> bool:
    row = await conn.fetch_one("SELECT 1 AS ok FROM items WHERE id = $1", item_id)
    return row is not None


async def get_owned_item(conn: Executor, item_id: int, *, user_id: int) -> dict | None:
    return await conn.fetch_one(
        """
        SELECT id, name, description, brand_id, creator_id
        FROM items
        WHERE id = $1
          AND creator_id = $2
        """,
        item_id,
        user_id,
    )


async def insert_item(
    conn: Executor,
    *,
    name: str,
    description: str,
    brand_id: int,
    creator_id: int,
) -> dict:
    row = await conn.fetch_one(
        """
        INSERT INTO items (name, description, brand_id, creator_id)
        VALUES ($1, $2, $3, $4)
        RETURNING id
        """,
        name,
        description,
        brand_id,
        creator_id,
    )
    if row is None:
        raise RuntimeError("Failed to insert item.")
    return row


async def update_item(
    conn: Executor,
    item_id: int,
    *,
    owner_id: int,
    name: str,
    description: str,
    brand_id: int,
    creator_id: int,
) -> dict | None:
    return await conn.fetch_one(
        """
        UPDATE items
        SET name = $3,
            description = $4,
            brand_id = $5,
            creator_id = $6,
            updated_at = now()
        WHERE id = $1
          AND creator_id = $2
        RETURNING id
        """,
        item_id,
        owner_id,
        name,
        description,
        brand_id,
        creator_id,
    )


async def delete_item(conn: Executor, item_id: int, *, owner_id: int) -> bool:
    row = await conn.fetch_one(
        """
        DELETE FROM items
        WHERE id = $1
          AND creator_id = $2
        RETURNING id
        """,
        item_id,
        owner_id,
    )
    return row is not None


async def replace_item_images(conn: Executor, item_id: int, image_ids: list[int]) -> None:
    await conn.execute("DELETE FROM item_images WHERE item_id = $1", item_id)
    await conn.execute(
        """
        INSERT INTO item_images (item_id, image_id)
        SELECT $1, unnest($2::bigint[])
        ON CONFLICT DO NOTHING
        """,
        item_id,
        image_ids,
    )


async def upsert_favorite(conn: Executor, *, user_id: int, item_id: int) -> dict:
    # The update branch is a no-op; it only makes RETURNING yield the existing row.
    row = await conn.fetch_one(
        """
        INSERT INTO favorite_items (user_id, item_id)
        VALUES ($1, $2)
        ON CONFLICT (user_id, item_id) DO UPDATE
        SET user_id = favorite_items.user_id
        RETURNING id, user_id, item_id, created_at
        """,
        user_id,
        item_id,
    )
    if row is None:
        raise RuntimeError("Failed to upsert favorite.")
    return row


async def delete_favorite(conn: Executor, *, user_id: int, item_id: int) -> bool:
    row = await conn.fetch_one(
        """
        DELETE FROM favorite_items
        WHERE user_id = $1
          AND item_id = $2
        RETURNING id
        """,
        user_id,
        item_id,
    )
    return row is not None


async def upsert_vote(conn: Executor, *, user_id: int, item_id: int, vote: int) -> dict:
    row = await conn.fetch_one(
        """
        INSERT INTO item_votes (user_id, item_id, vote)
        VALUES ($1, $2, $3)
        ON CONFLICT (user_id, item_id) DO UPDATE
        SET vote = EXCLUDED.vote,
            updated_at = now()
        RETURNING id, user_id, item_id, vote, created_at, updated_at
        """,
        user_id,
        item_id,
        vote,
    )
    if row is None:
        raise RuntimeError("Failed to upsert vote.")
    return row


async def delete_vote(conn: Executor, *, user_id: int, item_id: int) -> bool:
    row = await conn.fetch_one(
        """
        DELETE FROM item_votes
        WHERE user_id = $1
          AND item_id = $2
        RETURNING id
        """,
        user_id,
        item_id,
    )
    return row is not None
