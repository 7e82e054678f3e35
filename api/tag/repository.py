"""
Tag and brand persistence ("connect or create" by unique name).

Callers must pass names through `tag.normalize` first; these helpers store
whatever they are given.
"""

from __future__ import annotations

from core.db import Executor


async def upsert_brand(conn: Executor, name: str) -> dict:
    # DO UPDATE (not DO NOTHING) so RETURNING also yields the existing row.
    row = await conn.fetch_one(
        """
        INSERT INTO brands (name)
        VALUES ($1)
        ON CONFLICT (name) DO UPDATE
        SET name = EXCLUDED.name
        RETURNING id, name
        """,
        name,
    )
    if row is None:
        raise RuntimeError("Failed to upsert brand.")
    return row


async def upsert_tags(conn: Executor, names: list[str]) -> list[dict]:
    if not names:
        return []
    return await conn.fetch_all(
        """
        INSERT INTO tags (name)
        SELECT unnest($1::text[])
        ON CONFLICT (name) DO UPDATE
        SET name = EXCLUDED.name
        RETURNING id, name
        """,
        names,
    )


async def replace_item_tags(conn: Executor, item_id: int, names: list[str]) -> None:
    tags = await upsert_tags(conn, names)
    await conn.execute("DELETE FROM item_tags WHERE item_id = $1", item_id)
    if not tags:
        return None
    await conn.execute(
        """
        INSERT INTO item_tags (item_id, tag_id)
        SELECT $1, unnest($2::bigint[])
        ON CONFLICT DO NOTHING
        """,
        item_id,
        [int(tag["id"]) for tag in tags],
    )


async def replace_collection_tags(conn: Executor, collection_id: int, names: list[str]) -> None:
    tags = await upsert_tags(conn, names)
    await conn.execute("DELETE FROM collection_tags WHERE collection_id = $1", collection_id)
    if not tags:
        return None
    await conn.execute(
        """
        INSERT INTO collection_tags (collection_id, tag_id)
        SELECT $1, unnest($2::bigint[])
        ON CONFLICT DO NOTHING
        """,
        collection_id,
        [int(tag["id"]) for tag in tags],
    )
