"""Log entry queries"""
import json
import logging
from typing import Optional
from uuid import UUID
from tracklog.db.connection import db
from tracklog.models.tracking import LogEntry

logger = logging.getLogger(__name__)

_ENTRY_COLUMNS = "id, tracker_id, user_id, data, created_at, deleted_at, linked_from_log_id"


async def insert_log_entry(entry: LogEntry) -> LogEntry:
    """Insert log entry"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                INSERT INTO log_entries ({_ENTRY_COLUMNS})
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                RETURNING {_ENTRY_COLUMNS}
                """,
                (
                    entry.id,
                    entry.tracker_id,
                    entry.user_id,
                    json.dumps(entry.data),
                    entry.created_at,
                    entry.deleted_at,
                    entry.linked_from_log_id
                )
            )
            row = await cur.fetchone()
            await conn.commit()

    logger.info(f"Saved log entry {entry.id} for user {entry.user_id}")
    return LogEntry.model_validate(row)


async def get_log_entry(entry_id: UUID) -> Optional[LogEntry]:
    """Get log entry by id"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {_ENTRY_COLUMNS} FROM log_entries WHERE id = %s",
                (entry_id,)
            )
            row = await cur.fetchone()
            return LogEntry.model_validate(row) if row else None


async def get_log_entries(
    user_id: str,
    tracker_id: Optional[UUID] = None,
    include_deleted: bool = False,
    limit: Optional[int] = None,
    skip: int = 0
) -> list[LogEntry]:
    """Get user's log entries, newest first, optionally for one tracker"""
    conditions = ["user_id = %s"]
    params: list = [user_id]

    if tracker_id is not None:
        conditions.append("tracker_id = %s")
        params.append(tracker_id)

    if not include_deleted:
        conditions.append("deleted_at IS NULL")

    query = f"""
        SELECT {_ENTRY_COLUMNS}
        FROM log_entries
        WHERE {' AND '.join(conditions)}
        ORDER BY created_at DESC
    """

    if limit is not None:
        query += " LIMIT %s"
        params.append(limit)
    if skip:
        query += " OFFSET %s"
        params.append(skip)

    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(query, tuple(params))
            rows = await cur.fetchall()
            return [LogEntry.model_validate(row) for row in rows]


async def get_last_log_entries(user_id: str) -> list[LogEntry]:
    """Get newest undeleted entry per tracker for user"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT DISTINCT ON (tracker_id) {_ENTRY_COLUMNS}
                FROM log_entries
                WHERE user_id = %s AND deleted_at IS NULL
                ORDER BY tracker_id, created_at DESC
                """,
                (user_id,)
            )
            rows = await cur.fetchall()
            return [LogEntry.model_validate(row) for row in rows]


async def mark_log_entry_deleted(entry_id: UUID, user_id: str) -> bool:
    """
    Set deleted_at on an undeleted entry owned by user.

    Returns:
        False when the entry is missing, already deleted or foreign
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                UPDATE log_entries
                SET deleted_at = NOW()
                WHERE id = %s AND user_id = %s AND deleted_at IS NULL
                """,
                (entry_id, user_id)
            )
            updated = cur.rowcount > 0
            await conn.commit()

    return updated


async def delete_log_entry(entry_id: UUID) -> bool:
    """Remove log entry"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute("DELETE FROM log_entries WHERE id = %s", (entry_id,))
            deleted = cur.rowcount > 0
            await conn.commit()

    return deleted


async def delete_log_entries_for_tracker(tracker_id: UUID) -> int:
    """Remove every entry of a tracker"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute("DELETE FROM log_entries WHERE tracker_id = %s", (tracker_id,))
            deleted = cur.rowcount
            await conn.commit()

    logger.info(f"Deleted {deleted} log entries of tracker {tracker_id}")
    return deleted
