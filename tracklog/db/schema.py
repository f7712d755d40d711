"""
Document tables.

Each table holds one kind of document. Free-form parts (tracker schemas,
entry data, custom enum values) are JSONB; membership lists are TEXT[] so
that add-to-set and pull can be expressed as single UPDATE statements.

ensure_schema() is idempotent and runs at startup.
"""
import logging

from tracklog.db.connection import db

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS trackers (
        id UUID PRIMARY KEY,
        name TEXT NOT NULL UNIQUE,
        schema JSONB NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_trackers (
        user_id TEXT PRIMARY KEY,
        tracker_ids TEXT[] NOT NULL DEFAULT '{}',
        deleted_tracker_ids TEXT[] NOT NULL DEFAULT '{}'
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS log_entries (
        id UUID PRIMARY KEY,
        tracker_id UUID NOT NULL,
        user_id TEXT NOT NULL,
        data JSONB NOT NULL DEFAULT '{}',
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        deleted_at TIMESTAMPTZ,
        linked_from_log_id UUID
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_log_entries_user_tracker_created
        ON log_entries (user_id, tracker_id, created_at DESC)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_log_entries_tracker
        ON log_entries (tracker_id)
    """,
    """
    CREATE TABLE IF NOT EXISTS draft_entries (
        id UUID PRIMARY KEY,
        user_id TEXT NOT NULL,
        tracker_id UUID NOT NULL,
        data JSONB NOT NULL DEFAULT '{}',
        custom_enum_values JSONB NOT NULL DEFAULT '{}',
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_draft_entries_user_updated
        ON draft_entries (user_id, updated_at DESC)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_draft_entries_user_tracker
        ON draft_entries (user_id, tracker_id)
    """,
]


async def ensure_schema() -> None:
    """Create tables and indexes if they don't exist"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            for statement in SCHEMA_STATEMENTS:
                await cur.execute(statement)
            await conn.commit()
    logger.info(f"Database schema ensured ({len(SCHEMA_STATEMENTS)} statements)")
