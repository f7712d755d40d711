"""Global test fixtures and utilities for tracklog tests"""
import pytest
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock, patch
from uuid import UUID

from tracklog.models.tracking import DraftEntry, LogEntry, Tracker, UserTrackerMembership
from tracklog.utils.datetime_helpers import now_utc


# ============================================================================
# In-memory document store
# ============================================================================

class FakeQueries:
    """
    In-memory stand-in for tracklog.db.queries.

    Same function names and signatures; documents are copied on the way in
    and out so services cannot mutate stored state behind its back.
    """

    def __init__(self):
        self.trackers: Dict[UUID, Tracker] = {}
        self.memberships: Dict[str, UserTrackerMembership] = {}
        self.entries: Dict[UUID, LogEntry] = {}
        self.drafts: Dict[UUID, DraftEntry] = {}

    # ---- seeding helpers (sync) ----

    def add_tracker(self, name: str, schema: Dict[str, Any], members: Optional[List[str]] = None) -> Tracker:
        tracker = Tracker(name=name, schema=schema)
        self.trackers[tracker.id] = tracker
        for user_id in members or []:
            membership = self.memberships.setdefault(user_id, UserTrackerMembership(user_id=user_id))
            membership.tracker_ids.append(str(tracker.id))
        return tracker

    def add_draft(self, draft: DraftEntry) -> DraftEntry:
        self.drafts[draft.id] = draft
        return draft

    # ---- trackers ----

    async def get_tracker_by_id(self, tracker_id):
        tracker = self.trackers.get(tracker_id)
        return tracker.model_copy(deep=True) if tracker else None

    async def get_tracker_by_name(self, name):
        for tracker in self.trackers.values():
            if tracker.name == name:
                return tracker.model_copy(deep=True)
        return None

    async def get_all_trackers(self):
        return [t.model_copy(deep=True) for t in sorted(self.trackers.values(), key=lambda t: t.name)]

    async def get_trackers_by_ids(self, tracker_ids):
        wanted = {str(tracker_id) for tracker_id in tracker_ids}
        return [t.model_copy(deep=True) for t in self.trackers.values() if str(t.id) in wanted]

    async def insert_tracker(self, tracker):
        existing = await self.get_tracker_by_name(tracker.name)
        if existing:
            return existing
        self.trackers[tracker.id] = tracker.model_copy(deep=True)
        return tracker.model_copy(deep=True)

    async def update_tracker_schema(self, tracker_id, schema):
        tracker = self.trackers.get(tracker_id)
        if tracker is None:
            return None
        updated = tracker.model_copy(update={"tracker_schema": schema, "updated_at": now_utc()}, deep=True)
        self.trackers[tracker_id] = updated
        return updated.model_copy(deep=True)

    async def delete_tracker(self, tracker_id):
        return self.trackers.pop(tracker_id, None) is not None

    # ---- memberships ----

    async def get_membership(self, user_id):
        membership = self.memberships.get(user_id)
        return membership.model_copy(deep=True) if membership else None

    async def ensure_membership(self, user_id):
        self.memberships.setdefault(user_id, UserTrackerMembership(user_id=user_id))
        return await self.get_membership(user_id)

    async def add_tracker_to_user(self, user_id, tracker_id):
        membership = self.memberships.setdefault(user_id, UserTrackerMembership(user_id=user_id))
        if tracker_id not in membership.tracker_ids:
            membership.tracker_ids.append(tracker_id)
        membership.deleted_tracker_ids = [t for t in membership.deleted_tracker_ids if t != tracker_id]

    async def move_tracker_to_deleted(self, user_id, tracker_id):
        membership = self.memberships.get(user_id)
        if membership is None:
            return
        membership.tracker_ids = [t for t in membership.tracker_ids if t != tracker_id]
        if tracker_id not in membership.deleted_tracker_ids:
            membership.deleted_tracker_ids.append(tracker_id)

    async def set_tracker_order(self, user_id, tracker_ids):
        self.memberships[user_id].tracker_ids = list(tracker_ids)

    async def remove_tracker_from_all_users(self, tracker_id):
        updated = 0
        for membership in self.memberships.values():
            if tracker_id in membership.tracker_ids or tracker_id in membership.deleted_tracker_ids:
                membership.tracker_ids = [t for t in membership.tracker_ids if t != tracker_id]
                membership.deleted_tracker_ids = [t for t in membership.deleted_tracker_ids if t != tracker_id]
                updated += 1
        return updated

    # ---- log entries ----

    async def insert_log_entry(self, entry):
        self.entries[entry.id] = entry.model_copy(deep=True)
        return entry.model_copy(deep=True)

    async def get_log_entry(self, entry_id):
        entry = self.entries.get(entry_id)
        return entry.model_copy(deep=True) if entry else None

    async def get_log_entries(self, user_id, tracker_id=None, include_deleted=False, limit=None, skip=0):
        entries = [
            e for e in self.entries.values()
            if e.user_id == user_id
            and (tracker_id is None or e.tracker_id == tracker_id)
            and (include_deleted or e.deleted_at is None)
        ]
        entries.sort(key=lambda e: e.created_at, reverse=True)
        entries = entries[skip:]
        if limit is not None:
            entries = entries[:limit]
        return [e.model_copy(deep=True) for e in entries]

    async def get_last_log_entries(self, user_id):
        latest: Dict[UUID, LogEntry] = {}
        for entry in self.entries.values():
            if entry.user_id != user_id or entry.deleted_at is not None:
                continue
            current = latest.get(entry.tracker_id)
            if current is None or entry.created_at > current.created_at:
                latest[entry.tracker_id] = entry
        return [e.model_copy(deep=True) for e in latest.values()]

    async def mark_log_entry_deleted(self, entry_id, user_id):
        entry = self.entries.get(entry_id)
        if entry is None or entry.user_id != user_id or entry.deleted_at is not None:
            return False
        entry.deleted_at = now_utc()
        return True

    async def delete_log_entry(self, entry_id):
        return self.entries.pop(entry_id, None) is not None

    async def delete_log_entries_for_tracker(self, tracker_id):
        doomed = [e.id for e in self.entries.values() if e.tracker_id == tracker_id]
        for entry_id in doomed:
            del self.entries[entry_id]
        return len(doomed)

    # ---- drafts ----

    async def insert_draft(self, draft):
        self.drafts[draft.id] = draft.model_copy(deep=True)
        return draft.model_copy(deep=True)

    async def get_draft(self, user_id, draft_id):
        draft = self.drafts.get(draft_id)
        if draft is None or draft.user_id != user_id:
            return None
        return draft.model_copy(deep=True)

    async def get_drafts(self, user_id):
        drafts = [d for d in self.drafts.values() if d.user_id == user_id]
        drafts.sort(key=lambda d: d.updated_at, reverse=True)
        return [d.model_copy(deep=True) for d in drafts]

    async def get_drafts_for_tracker(self, tracker_id):
        return [d.model_copy(deep=True) for d in self.drafts.values() if d.tracker_id == tracker_id]

    async def update_draft(self, draft):
        existing = self.drafts.get(draft.id)
        if existing is None or existing.user_id != draft.user_id:
            return None
        updated = existing.model_copy(update={
            "tracker_id": draft.tracker_id,
            "data": draft.data,
            "custom_enum_values": draft.custom_enum_values,
            "updated_at": now_utc(),
        }, deep=True)
        self.drafts[draft.id] = updated
        return updated.model_copy(deep=True)

    async def delete_draft(self, user_id, draft_id):
        draft = self.drafts.get(draft_id)
        if draft is None or draft.user_id != user_id:
            return False
        del self.drafts[draft_id]
        return True

    async def delete_drafts_for_tracker(self, tracker_id):
        doomed = [d.id for d in self.drafts.values() if d.tracker_id == tracker_id]
        for draft_id in doomed:
            del self.drafts[draft_id]
        return len(doomed)


# ============================================================================
# Store & Service Fixtures
# ============================================================================

@pytest.fixture
def fake_queries():
    """Patch every service's queries module with one in-memory store"""
    fake = FakeQueries()
    with patch("tracklog.services.tracker_service.queries", fake), \
            patch("tracklog.services.log_entry_service.queries", fake), \
            patch("tracklog.services.draft_service.queries", fake):
        yield fake


@pytest.fixture
def mock_db():
    """Mock database wrapper (services never touch it directly)"""
    return MagicMock()


@pytest.fixture
def tracker_service(mock_db):
    from tracklog.services.tracker_service import TrackerService
    return TrackerService(mock_db)


@pytest.fixture
def log_entry_service(mock_db):
    from tracklog.services.log_entry_service import LogEntryService
    return LogEntryService(mock_db)


@pytest.fixture
def draft_service(mock_db):
    from tracklog.services.draft_service import DraftService
    return DraftService(mock_db)


# ============================================================================
# User & Schema Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "user-123"


@pytest.fixture
def admin_user_id():
    """Admin user ID"""
    return "admin-1"


@pytest.fixture
def test_api_key():
    """Standard test API key"""
    return "test_api_key_12345"


@pytest.fixture
def mood_schema():
    """Single enum field"""
    return {
        "type": "object",
        "properties": {
            "mood": {"type": "string", "title": "Mood", "enum": ["happy", "sad"]},
        },
        "required": ["mood"],
    }


@pytest.fixture
def smoking_schema():
    """Flag-style link to the cravings tracker"""
    return {
        "type": "object",
        "properties": {
            "craving": {
                "type": "boolean",
                "createLinkedLog": {
                    "trackerName": "cravings",
                    "dataMapping": {"time": "loggedAt"},
                },
            },
            "loggedAt": {"type": "string", "format": "date-time"},
        },
    }


@pytest.fixture
def cravings_schema():
    return {
        "type": "object",
        "properties": {
            "time": {"type": "string", "format": "date-time"},
            "intensity": {"type": "number", "minimum": 1, "maximum": 10},
        },
        "required": ["time"],
    }


@pytest.fixture
def drinking_schema():
    """Nested-object-style link: peeLog depends on peed, which links to pee"""
    return {
        "type": "object",
        "properties": {
            "amountMl": {"type": "number"},
            "drankAt": {"type": "string", "format": "date-time"},
            "peed": {
                "type": "boolean",
                "createLinkedLog": {
                    "trackerName": "pee",
                    "dataMapping": {"time": "drankAt"},
                },
            },
            "peeLog": {
                "type": "object",
                "dependsOn": "peed",
                "properties": {
                    "time": {"type": "string", "format": "date-time"},
                    "color": {"type": "string", "enum": ["clear", "yellow"]},
                },
            },
        },
    }


@pytest.fixture
def pee_schema():
    return {
        "type": "object",
        "properties": {
            "time": {"type": "string", "format": "date-time"},
            "color": {"type": "string", "enum": ["clear", "yellow"]},
        },
        "required": ["time"],
    }


@pytest.fixture
def fixed_now():
    return datetime(2024, 6, 1, 12, 30, 0, tzinfo=timezone.utc)
