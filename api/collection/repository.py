"""
Collection persistence: collections, likes and the styles filed under them.
"""

from __future__ import annotations

from core.db import Executor

_COLLECTION_SELECT = """
    SELECT
      c.id,
      c.name,
      c.description,
      c.author_id,
      c.created_at,
      c.updated_at,
      u.name AS author_name,
      COALESCE(t.names, '{}'::text[]) AS tags,
      COALESCE(l.like_count, 0) AS like_count
    FROM collections c
    JOIN users u ON u.id = c.author_id
    LEFT JOIN LATERAL (
      SELECT array_agg(tg.name ORDER BY tg.name) AS names
      FROM collection_tags ct
      JOIN tags tg ON tg.id = ct.tag_id
      WHERE ct.collection_id = c.id
    ) t ON true
    LEFT JOIN LATERAL (
      SELECT count(*) AS like_count
      FROM liked_collections lc
      WHERE lc.collection_id = c.id
    ) l ON true
"""


async def list_collections(conn: Executor) -> list[dict]:
    return await conn.fetch_all(
        f"""
        {_COLLECTION_SELECT}
        ORDER BY c.created_at DESC, c.id DESC
        """
    )


async def get_collection(conn: Executor, collection_id: int) -> dict | None:
    return await conn.fetch_one(
        f"""
        {_COLLECTION_SELECT}
        WHERE c.id = $1
        """,
        collection_id,
    )


async def collection_exists(conn: Executor, collection_id: int) -> bool:
    row = await conn.fetch_one("SELECT 1 AS ok FROM collections WHERE id = $1", collection_id)
    return row is not None


async def get_owned_collection(conn: Executor, collection_id: int, *, user_id: int) -> dict | None:
    return await conn.fetch_one(
        """
        SELECT id, name, description, author_id
        FROM collections
        WHERE id = $1
          AND author_id = $2
        """,
        collection_id,
        user_id,
    )


async def insert_collection(conn: Executor, *, name: str, description: str, author_id: int) -> dict:
    row = await conn.fetch_one(
        """
        INSERT INTO collections (name, description, author_id)
        VALUES ($1, $2, $3)
        RETURNING id
        """,
        name,
        description,
        author_id,
    )
    if row is None:
        raise RuntimeError("Failed to insert collection.")
    return row


async def update_collection(
    conn: Executor,
    collection_id: int,
    *,
    author_id: int,
    name: str,
    description: str,
) -> dict | None:
    return await conn.fetch_one(
        """
        UPDATE collections
        SET name = $3,
            description = $4,
            updated_at = now()
        WHERE id = $1
          AND author_id = $2
        RETURNING id
        """,
        collection_id,
        author_id,
        name,
        description,
    )


async def delete_collection(conn: Executor, collection_id: int, *, author_id: int) -> bool:
    row = await conn.fetch_one(
        """
        DELETE FROM collections
        WHERE id = $1
          AND author_id = $2
        RETURNING id
        """,
        collection_id,
        author_id,
    )
    return row is not None


async def upsert_like(conn: Executor, *, user_id: int, collection_id: int) -> dict:
    row = await conn.fetch_one(
        """
        INSERT INTO liked_collections (user_id, collection_id)
        VALUES ($1, $2)
        ON CONFLICT (user_id, collection_id) DO UPDATE
        SET user_id = liked_collections.user_id
        RETURNING id, user_id, collection_id, created_at
        """,
        user_id,
        collection_id,
    )
    if row is None:
        raise RuntimeError("Failed to upsert like.")
    return row


async def delete_like(conn: Executor, *, user_id: int, collection_id: int) -> bool:
    row = await conn.fetch_one(
        """
        DELETE FROM liked_collections
        WHERE user_id = $1
          AND collection_id = $2
        RETURNING id
        """,
        user_id,
        collection_id,
    )
    return row is not None


async def list_styles(conn: Executor, collection_id: int) -> list[dict]:
    return await conn.fetch_all(
        """
        SELECT
          s.id,
          s.name,
          s.description,
          s.published,
          s.created_at,
          COALESCE(t.names, '{}'::text[]) AS tags,
          COALESCE(l.like_count, 0) AS like_count
        FROM styles s
        LEFT JOIN LATERAL (
          SELECT array_agg(tg.name ORDER BY tg.name) AS names
          FROM style_tags st
          JOIN tags tg ON tg.id = st.tag_id
          WHERE st.style_id = s.id
        ) t ON true
        LEFT JOIN LATERAL (
          SELECT count(*) AS like_count
          FROM liked_styles ls
          WHERE ls.style_id = s.id
        ) l ON true
        WHERE s.collection_id = $1
        ORDER BY s.created_at DESC, s.id DESC
        """,
        collection_id,
    )
