"""Draft entry queries"""
import json
import logging
from typing import Optional
from uuid import UUID
from tracklog.db.connection import db
from tracklog.models.tracking import DraftEntry

logger = logging.getLogger(__name__)

_DRAFT_COLUMNS = "id, user_id, tracker_id, data, custom_enum_values, created_at, updated_at"


async def insert_draft(draft: DraftEntry) -> DraftEntry:
    """Insert draft"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                INSERT INTO draft_entries ({_DRAFT_COLUMNS})
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                RETURNING {_DRAFT_COLUMNS}
                """,
                (
                    draft.id,
                    draft.user_id,
                    draft.tracker_id,
                    json.dumps(draft.data),
                    json.dumps(draft.custom_enum_values),
                    draft.created_at,
                    draft.updated_at
                )
            )
            row = await cur.fetchone()
            await conn.commit()

    logger.info(f"Saved draft {draft.id} for user {draft.user_id}")
    return DraftEntry.model_validate(row)


async def get_draft(user_id: str, draft_id: UUID) -> Optional[DraftEntry]:
    """Get user's draft by id"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {_DRAFT_COLUMNS} FROM draft_entries WHERE id = %s AND user_id = %s",
                (draft_id, user_id)
            )
            row = await cur.fetchone()
            return DraftEntry.model_validate(row) if row else None


async def get_drafts(user_id: str) -> list[DraftEntry]:
    """Get user's drafts, most recently updated first"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {_DRAFT_COLUMNS}
                FROM draft_entries
                WHERE user_id = %s
                ORDER BY updated_at DESC
                """,
                (user_id,)
            )
            rows = await cur.fetchall()
            return [DraftEntry.model_validate(row) for row in rows]


async def get_drafts_for_tracker(tracker_id: UUID) -> list[DraftEntry]:
    """Get every user's drafts of a tracker"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {_DRAFT_COLUMNS} FROM draft_entries WHERE tracker_id = %s",
                (tracker_id,)
            )
            rows = await cur.fetchall()
            return [DraftEntry.model_validate(row) for row in rows]


async def update_draft(draft: DraftEntry) -> Optional[DraftEntry]:
    """Replace draft tracker, data and custom enum values; bump updated_at"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                UPDATE draft_entries
                SET tracker_id = %s, data = %s, custom_enum_values = %s, updated_at = NOW()
                WHERE id = %s AND user_id = %s
                RETURNING {_DRAFT_COLUMNS}
                """,
                (
                    draft.tracker_id,
                    json.dumps(draft.data),
                    json.dumps(draft.custom_enum_values),
                    draft.id,
                    draft.user_id
                )
            )
            row = await cur.fetchone()
            await conn.commit()

    return DraftEntry.model_validate(row) if row else None


async def delete_draft(user_id: str, draft_id: UUID) -> bool:
    """Delete user's draft"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "DELETE FROM draft_entries WHERE id = %s AND user_id = %s",
                (draft_id, user_id)
            )
            deleted = cur.rowcount > 0
            await conn.commit()

    return deleted


async def delete_drafts_for_tracker(tracker_id: UUID) -> int:
    """Delete every draft of a tracker"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute("DELETE FROM draft_entries WHERE tracker_id = %s", (tracker_id,))
            deleted = cur.rowcount
            await conn.commit()

    logger.info(f"Deleted {deleted} drafts of tracker {tracker_id}")
    return deleted
