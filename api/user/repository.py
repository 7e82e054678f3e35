"""
User persistence: lookups, profiles and subscriptions.
"""

from __future__ import annotations

from core.db import MAX_ID, Executor

_USER_DETAIL_SELECT = """
    SELECT
      u.id,
      u.email,
      u.name,
      u.is_active,
      u.created_at,
      p.firstname,
      p.lastname,
      p.bio,
      (SELECT count(*) FROM items i WHERE i.creator_id = u.id) AS item_count,
      (SELECT count(*) FROM collections c WHERE c.author_id = u.id) AS collection_count,
      (SELECT count(*) FROM user_subscriptions s WHERE s.user_id = u.id) AS subscriber_count,
      (SELECT count(*) FROM user_subscriptions s WHERE s.subscriber_id = u.id) AS subscription_count
    FROM users u
    LEFT JOIN profiles p ON p.user_id = u.id
"""


def _user_ref(ref: int | str) -> tuple[int | None, str]:
    text = str(ref).strip()
    # str.isdigit() also accepts "²" and other non-ASCII digits int() rejects.
    if not (text.isascii() and text.isdigit()):
        return None, text
    user_id = int(text)
    return (user_id if user_id <= MAX_ID else None), text


async def find_user(conn: Executor, ref: int | str) -> dict | None:
    """
    Resolve a user by id, display name or email (in that order of preference).
    """
    user_id, text = _user_ref(ref)
    if user_id is None and not text:
        return None
    return await conn.fetch_one(
        """
        SELECT id, email, name, is_active, created_at
        FROM users
        WHERE id = $1
           OR name = $2
           OR lower(email) = lower($2)
        ORDER BY CASE
                   WHEN id = $1 THEN 0
                   WHEN name = $2 THEN 1
                   ELSE 2
                 END
        LIMIT 1
        """,
        user_id,
        text,
    )


async def list_users(conn: Executor, *, exclude_user_id: int) -> list[dict]:
    return await conn.fetch_all(
        """
        SELECT
          u.id,
          u.name,
          u.created_at,
          (SELECT count(*) FROM user_subscriptions s WHERE s.user_id = u.id) AS subscriber_count
        FROM users u
        WHERE u.id <> $1
          AND u.is_active = true
        ORDER BY u.created_at DESC, u.id DESC
        """,
        exclude_user_id,
    )


async def get_user_detail(conn: Executor, user_id: int) -> dict | None:
    return await conn.fetch_one(
        f"""
        {_USER_DETAIL_SELECT}
        WHERE u.id = $1
        """,
        user_id,
    )


async def update_account(conn: Executor, user_id: int, *, name: str | None, email: str) -> dict | None:
    return await conn.fetch_one(
        """
        UPDATE users
        SET name = $2,
            email = $3,
            updated_at = now()
        WHERE id = $1
        RETURNING id, email, name, is_active, created_at, updated_at
        """,
        user_id,
        name,
        email,
    )


async def update_password(conn: Executor, user_id: int, *, password_hash: str) -> None:
    await conn.execute(
        """
        UPDATE users
        SET password_hash = $2,
            updated_at = now()
        WHERE id = $1
        """,
        user_id,
        password_hash,
    )


async def get_profile(conn: Executor, user_id: int) -> dict | None:
    return await conn.fetch_one(
        """
        SELECT user_id, firstname, lastname, bio, updated_at
        FROM profiles
        WHERE user_id = $1
        """,
        user_id,
    )


async def upsert_profile(
    conn: Executor,
    user_id: int,
    *,
    firstname: str | None,
    lastname: str | None,
    bio: str | None,
) -> dict:
    row = await conn.fetch_one(
        """
        INSERT INTO profiles (user_id, firstname, lastname, bio)
        VALUES ($1, $2, $3, $4)
        ON CONFLICT (user_id) DO UPDATE
        SET firstname = EXCLUDED.firstname,
            lastname = EXCLUDED.lastname,
            bio = EXCLUDED.bio,
            updated_at = now()
        RETURNING user_id, firstname, lastname, bio, updated_at
        """,
        user_id,
        firstname,
        lastname,
        bio,
    )
    if row is None:
        raise RuntimeError("Failed to upsert profile.")
    return row


async def insert_subscription(conn: Executor, *, subscriber_id: int, user_id: int) -> dict | None:
    """
    Return the new subscription, or None when it already exists.
    """
    return await conn.fetch_one(
        """
        INSERT INTO user_subscriptions (subscriber_id, user_id)
        VALUES ($1, $2)
        ON CONFLICT (subscriber_id, user_id) DO NOTHING
        RETURNING subscriber_id, user_id, created_at
        """,
        subscriber_id,
        user_id,
    )


async def delete_subscription(conn: Executor, *, subscriber_id: int, user_id: int) -> bool:
    row = await conn.fetch_one(
        """
        DELETE FROM user_subscriptions
        WHERE subscriber_id = $1
          AND user_id = $2
        RETURNING user_id
        """,
        subscriber_id,
        user_id,
    )
    return row is not None
