"""Tracker document queries"""
import json
import logging
from typing import Optional
from uuid import UUID
from tracklog.db.connection import db
from tracklog.models.tracking import Tracker

logger = logging.getLogger(__name__)


async def get_tracker_by_id(tracker_id: UUID) -> Optional[Tracker]:
    """Get tracker by id"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT id, name, schema, created_at, updated_at FROM trackers WHERE id = %s",
                (tracker_id,)
            )
            row = await cur.fetchone()
            return Tracker.model_validate(row) if row else None


async def get_tracker_by_name(name: str) -> Optional[Tracker]:
    """Get tracker by exact (normalized) name"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT id, name, schema, created_at, updated_at FROM trackers WHERE name = %s",
                (name,)
            )
            row = await cur.fetchone()
            return Tracker.model_validate(row) if row else None


async def get_all_trackers() -> list[Tracker]:
    """Get every tracker"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT id, name, schema, created_at, updated_at FROM trackers ORDER BY name"
            )
            rows = await cur.fetchall()
            return [Tracker.model_validate(row) for row in rows]


async def get_trackers_by_ids(tracker_ids: list[str]) -> list[Tracker]:
    """Get trackers by ids (unordered)"""
    if not tracker_ids:
        return []

    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT id, name, schema, created_at, updated_at
                FROM trackers
                WHERE id = ANY(%s::uuid[])
                """,
                (list(tracker_ids),)
            )
            rows = await cur.fetchall()
            return [Tracker.model_validate(row) for row in rows]


async def insert_tracker(tracker: Tracker) -> Tracker:
    """
    Insert tracker unless one with the same name exists.

    Returns:
        The stored tracker: the new one, or the existing one when a
        concurrent create won the unique name
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO trackers (id, name, schema, created_at, updated_at)
                VALUES (%s, %s, %s, %s, %s)
                ON CONFLICT (name) DO NOTHING
                RETURNING id, name, schema, created_at, updated_at
                """,
                (
                    tracker.id,
                    tracker.name,
                    json.dumps(tracker.tracker_schema),
                    tracker.created_at,
                    tracker.updated_at
                )
            )
            row = await cur.fetchone()

            if row is None:
                await cur.execute(
                    "SELECT id, name, schema, created_at, updated_at FROM trackers WHERE name = %s",
                    (tracker.name,)
                )
                row = await cur.fetchone()
                logger.info(f"Tracker '{tracker.name}' already existed, reusing {row['id']}")
            else:
                logger.info(f"Created tracker '{tracker.name}' ({tracker.id})")

            await conn.commit()

    return Tracker.model_validate(row)


async def update_tracker_schema(tracker_id: UUID, schema: dict) -> Optional[Tracker]:
    """Replace tracker schema and bump updated_at"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                UPDATE trackers
                SET schema = %s, updated_at = NOW()
                WHERE id = %s
                RETURNING id, name, schema, created_at, updated_at
                """,
                (json.dumps(schema), tracker_id)
            )
            row = await cur.fetchone()
            await conn.commit()

    return Tracker.model_validate(row) if row else None


async def delete_tracker(tracker_id: UUID) -> bool:
    """Delete tracker document"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute("DELETE FROM trackers WHERE id = %s", (tracker_id,))
            deleted = cur.rowcount > 0
            await conn.commit()

    logger.info(f"Deleted tracker {tracker_id}: {deleted}")
    return deleted
