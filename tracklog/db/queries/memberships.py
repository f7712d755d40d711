"""User tracker membership queries

Each statement keeps the two lists duplicate-free and mutually exclusive
for a given tracker id.
"""
import logging
from typing import Optional
from tracklog.db.connection import db
from tracklog.models.tracking import UserTrackerMembership

logger = logging.getLogger(__name__)


async def get_membership(user_id: str) -> Optional[UserTrackerMembership]:
    """Get user's membership document"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT user_id, tracker_ids, deleted_tracker_ids FROM user_trackers WHERE user_id = %s",
                (user_id,)
            )
            row = await cur.fetchone()
            return UserTrackerMembership.model_validate(row) if row else None


async def ensure_membership(user_id: str) -> UserTrackerMembership:
    """Get user's membership document, creating an empty one if missing"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO user_trackers (user_id, tracker_ids, deleted_tracker_ids)
                VALUES (%s, '{}', '{}')
                ON CONFLICT (user_id) DO NOTHING
                """,
                (user_id,)
            )
            await cur.execute(
                "SELECT user_id, tracker_ids, deleted_tracker_ids FROM user_trackers WHERE user_id = %s",
                (user_id,)
            )
            row = await cur.fetchone()
            await conn.commit()

    return UserTrackerMembership.model_validate(row)


async def add_tracker_to_user(user_id: str, tracker_id: str) -> None:
    """Append tracker to the active list (if absent) and pull it from the deleted list"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO user_trackers (user_id, tracker_ids, deleted_tracker_ids)
                VALUES (%s, ARRAY[%s]::text[], '{}')
                ON CONFLICT (user_id) DO UPDATE SET
                    tracker_ids = CASE
                        WHEN %s = ANY(user_trackers.tracker_ids) THEN user_trackers.tracker_ids
                        ELSE array_append(user_trackers.tracker_ids, %s)
                    END,
                    deleted_tracker_ids = array_remove(user_trackers.deleted_tracker_ids, %s)
                """,
                (user_id, tracker_id, tracker_id, tracker_id, tracker_id)
            )
            await conn.commit()
    logger.info(f"Added tracker {tracker_id} to user {user_id}")


async def move_tracker_to_deleted(user_id: str, tracker_id: str) -> None:
    """Pull tracker from the active list and add it to the deleted list (if absent)"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                UPDATE user_trackers SET
                    tracker_ids = array_remove(tracker_ids, %s),
                    deleted_tracker_ids = CASE
                        WHEN %s = ANY(deleted_tracker_ids) THEN deleted_tracker_ids
                        ELSE array_append(deleted_tracker_ids, %s)
                    END
                WHERE user_id = %s
                """,
                (tracker_id, tracker_id, tracker_id, user_id)
            )
            await conn.commit()
    logger.info(f"Moved tracker {tracker_id} to deleted list for user {user_id}")


async def set_tracker_order(user_id: str, tracker_ids: list[str]) -> None:
    """Replace the active list order"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "UPDATE user_trackers SET tracker_ids = %s::text[] WHERE user_id = %s",
                (list(tracker_ids), user_id)
            )
            await conn.commit()


async def remove_tracker_from_all_users(tracker_id: str) -> int:
    """Pull tracker from every user's active and deleted lists"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                UPDATE user_trackers SET
                    tracker_ids = array_remove(tracker_ids, %s),
                    deleted_tracker_ids = array_remove(deleted_tracker_ids, %s)
                WHERE %s = ANY(tracker_ids) OR %s = ANY(deleted_tracker_ids)
                """,
                (tracker_id, tracker_id, tracker_id, tracker_id)
            )
            updated = cur.rowcount
            await conn.commit()

    logger.info(f"Removed tracker {tracker_id} from {updated} user(s)")
    return updated
