"""Unit tests for TrackerService"""
import pytest
from uuid import uuid4

from tracklog.exceptions import (
    AuthorizationError,
    InvalidIdError,
    RecordNotFoundError,
    ValidationFailedError,
)
from tracklog.models.tracking import DraftEntry, LogEntry


# ============================================================================
# Create / list
# ============================================================================

@pytest.mark.asyncio
async def test_create_tracker_normalizes_name(tracker_service, fake_queries, test_user_id, mood_schema):
    tracker = await tracker_service.create(test_user_id, "Daily Mood!", mood_schema)

    assert tracker.name == "daily_mood"
    assert fake_queries.memberships[test_user_id].tracker_ids == [str(tracker.id)]


@pytest.mark.asyncio
async def test_create_reuses_existing_tracker(tracker_service, fake_queries, mood_schema):
    first = await tracker_service.create("alice", "Mood", mood_schema)
    second = await tracker_service.create("bob", "  MOOD ", {"type": "object", "properties": {}})

    assert second.id == first.id
    assert len(fake_queries.trackers) == 1
    # Reuse never replaces the shared schema
    assert second.tracker_schema["properties"]["mood"]["enum"] == ["happy", "sad"]
    assert fake_queries.memberships["bob"].tracker_ids == [str(first.id)]


@pytest.mark.asyncio
async def test_create_rejects_empty_name(tracker_service, fake_queries, test_user_id, mood_schema):
    with pytest.raises(ValidationFailedError) as exc_info:
        await tracker_service.create(test_user_id, "!!!", mood_schema)

    assert "name" in exc_info.value.field_errors


@pytest.mark.asyncio
async def test_create_rejects_invalid_schema(tracker_service, fake_queries, test_user_id):
    with pytest.raises(ValidationFailedError) as exc_info:
        await tracker_service.create(test_user_id, "bad", {"type": "object", "properties": {"x": {"type": "uuid"}}})

    assert any(key.startswith("properties.x") for key in exc_info.value.field_errors)
    assert fake_queries.trackers == {}


@pytest.mark.asyncio
async def test_create_restores_soft_deleted_membership(tracker_service, fake_queries, test_user_id, mood_schema):
    tracker = await tracker_service.create(test_user_id, "mood", mood_schema)
    await tracker_service.soft_delete(test_user_id, str(tracker.id))

    await tracker_service.create(test_user_id, "mood", mood_schema)

    membership = fake_queries.memberships[test_user_id]
    assert membership.tracker_ids == [str(tracker.id)]
    assert membership.deleted_tracker_ids == []


@pytest.mark.asyncio
async def test_list_for_user_follows_order(tracker_service, fake_queries, test_user_id, mood_schema):
    a = fake_queries.add_tracker("a", mood_schema, members=[test_user_id])
    b = fake_queries.add_tracker("b", mood_schema, members=[test_user_id])
    fake_queries.memberships[test_user_id].tracker_ids = [str(b.id), str(a.id)]

    trackers = await tracker_service.list_for_user(test_user_id)

    assert [t.name for t in trackers] == ["b", "a"]
    assert all(t.is_deleted is False for t in trackers)


@pytest.mark.asyncio
async def test_list_for_user_creates_membership(tracker_service, fake_queries):
    assert await tracker_service.list_for_user("newcomer") == []
    assert "newcomer" in fake_queries.memberships


@pytest.mark.asyncio
async def test_list_includes_deleted_when_asked(tracker_service, fake_queries, test_user_id, mood_schema):
    a = fake_queries.add_tracker("a", mood_schema, members=[test_user_id])
    b = fake_queries.add_tracker("b", mood_schema, members=[test_user_id])
    await tracker_service.soft_delete(test_user_id, str(a.id))

    active = await tracker_service.list_for_user(test_user_id)
    everything = await tracker_service.list_for_user(test_user_id, include_deleted=True)

    assert [t.id for t in active] == [b.id]
    assert [(t.id, t.is_deleted) for t in everything] == [(b.id, False), (a.id, True)]


# ============================================================================
# Update / delete / restore
# ============================================================================

@pytest.mark.asyncio
async def test_update_schema_replaces_document(tracker_service, fake_queries, test_user_id, mood_schema):
    tracker = fake_queries.add_tracker("mood", mood_schema, members=[test_user_id])
    new_schema = {"type": "object", "properties": {"score": {"type": "number"}}}

    updated = await tracker_service.update_schema(test_user_id, str(tracker.id), new_schema)

    assert updated.tracker_schema == {"type": "object", "properties": {"score": {"type": "number"}}}
    assert fake_queries.trackers[tracker.id].tracker_schema == updated.tracker_schema


@pytest.mark.asyncio
async def test_update_schema_allowed_for_deleted_membership(tracker_service, fake_queries, test_user_id, mood_schema):
    tracker = fake_queries.add_tracker("mood", mood_schema, members=[test_user_id])
    await tracker_service.soft_delete(test_user_id, str(tracker.id))

    updated = await tracker_service.update_schema(test_user_id, str(tracker.id), mood_schema)

    assert updated.id == tracker.id


@pytest.mark.asyncio
async def test_update_schema_requires_membership(tracker_service, fake_queries, mood_schema):
    tracker = fake_queries.add_tracker("mood", mood_schema, members=["owner"])

    with pytest.raises(RecordNotFoundError):
        await tracker_service.update_schema("stranger", str(tracker.id), mood_schema)


@pytest.mark.asyncio
async def test_malformed_tracker_id(tracker_service, fake_queries, test_user_id):
    with pytest.raises(InvalidIdError):
        await tracker_service.soft_delete(test_user_id, "not-a-uuid")


@pytest.mark.asyncio
async def test_soft_delete_requires_active_membership(tracker_service, fake_queries, test_user_id, mood_schema):
    tracker = fake_queries.add_tracker("mood", mood_schema, members=[test_user_id])
    await tracker_service.soft_delete(test_user_id, str(tracker.id))

    with pytest.raises(RecordNotFoundError):
        await tracker_service.soft_delete(test_user_id, str(tracker.id))


@pytest.mark.asyncio
async def test_restore_moves_back_to_end(tracker_service, fake_queries, test_user_id, mood_schema):
    a = fake_queries.add_tracker("a", mood_schema, members=[test_user_id])
    b = fake_queries.add_tracker("b", mood_schema, members=[test_user_id])
    await tracker_service.soft_delete(test_user_id, str(a.id))

    await tracker_service.restore(test_user_id, str(a.id))

    membership = fake_queries.memberships[test_user_id]
    assert membership.tracker_ids == [str(b.id), str(a.id)]
    assert membership.deleted_tracker_ids == []


@pytest.mark.asyncio
async def test_restore_requires_deleted_membership(tracker_service, fake_queries, test_user_id, mood_schema):
    tracker = fake_queries.add_tracker("mood", mood_schema, members=[test_user_id])

    with pytest.raises(RecordNotFoundError):
        await tracker_service.restore(test_user_id, str(tracker.id))


@pytest.mark.asyncio
async def test_permanent_delete_requires_admin(tracker_service, fake_queries, test_user_id, mood_schema):
    tracker = fake_queries.add_tracker("mood", mood_schema, members=[test_user_id])

    with pytest.raises(AuthorizationError):
        await tracker_service.permanent_delete(test_user_id, str(tracker.id), is_admin=False)

    assert tracker.id in fake_queries.trackers


@pytest.mark.asyncio
async def test_permanent_delete_purges_everything(
    tracker_service, log_entry_service, draft_service, fake_queries, admin_user_id, mood_schema
):
    tracker = fake_queries.add_tracker("mood", mood_schema, members=["alice", "bob"])
    other = fake_queries.add_tracker("other", mood_schema, members=["alice"])
    await tracker_service.soft_delete("bob", str(tracker.id))
    await log_entry_service.create_log_entry("alice", str(tracker.id), {"mood": "sad"})
    kept = await log_entry_service.create_log_entry("alice", str(other.id), {"mood": "sad"})
    await draft_service.save_draft("alice", str(tracker.id), {})

    await tracker_service.permanent_delete(admin_user_id, str(tracker.id), is_admin=True)

    alice = await tracker_service.list_for_user("alice", include_deleted=True)
    bob = await tracker_service.list_for_user("bob", include_deleted=True)
    assert [t.id for t in alice] == [other.id]
    assert bob == []

    entries = await log_entry_service.list_all_log_entries("alice", include_deleted=True)
    assert [e.id for e in entries] == [kept.id]
    assert await draft_service.list_drafts("alice") == []

    with pytest.raises(RecordNotFoundError):
        await tracker_service.update_schema("alice", str(tracker.id), mood_schema)


@pytest.mark.asyncio
async def test_permanent_delete_missing_tracker(tracker_service, fake_queries, admin_user_id):
    with pytest.raises(RecordNotFoundError):
        await tracker_service.permanent_delete(admin_user_id, str(uuid4()), is_admin=True)


# ============================================================================
# Reorder
# ============================================================================

@pytest.mark.asyncio
async def test_reorder(tracker_service, fake_queries, test_user_id, mood_schema):
    a = fake_queries.add_tracker("a", mood_schema, members=[test_user_id])
    b = fake_queries.add_tracker("b", mood_schema, members=[test_user_id])
    c = fake_queries.add_tracker("c", mood_schema, members=[test_user_id])

    ordered = await tracker_service.reorder(test_user_id, [str(c.id), str(a.id), str(b.id)])

    assert ordered == [str(c.id), str(a.id), str(b.id)]
    assert fake_queries.memberships[test_user_id].tracker_ids == ordered


@pytest.mark.asyncio
async def test_reorder_keeps_unlisted_trackers(tracker_service, fake_queries, test_user_id, mood_schema):
    a = fake_queries.add_tracker("a", mood_schema, members=[test_user_id])
    b = fake_queries.add_tracker("b", mood_schema, members=[test_user_id])
    c = fake_queries.add_tracker("c", mood_schema, members=[test_user_id])

    ordered = await tracker_service.reorder(test_user_id, [str(c.id)])

    assert ordered == [str(c.id), str(a.id), str(b.id)]


@pytest.mark.asyncio
async def test_reorder_rejects_duplicates(tracker_service, fake_queries, test_user_id, mood_schema):
    a = fake_queries.add_tracker("a", mood_schema, members=[test_user_id])

    with pytest.raises(ValidationFailedError):
        await tracker_service.reorder(test_user_id, [str(a.id), str(a.id)])


@pytest.mark.asyncio
async def test_reorder_rejects_foreign_tracker(tracker_service, fake_queries, test_user_id, mood_schema):
    mine = fake_queries.add_tracker("mine", mood_schema, members=[test_user_id])
    theirs = fake_queries.add_tracker("theirs", mood_schema, members=["someone-else"])

    with pytest.raises(RecordNotFoundError):
        await tracker_service.reorder(test_user_id, [str(theirs.id), str(mine.id)])

    assert fake_queries.memberships[test_user_id].tracker_ids == [str(mine.id)]


@pytest.mark.asyncio
async def test_reorder_rejects_unknown_and_malformed_ids(tracker_service, fake_queries, test_user_id):
    with pytest.raises(RecordNotFoundError):
        await tracker_service.reorder(test_user_id, [str(uuid4())])
    with pytest.raises(InvalidIdError):
        await tracker_service.reorder(test_user_id, ["nope"])


# ============================================================================
# Enum value removal
# ============================================================================

@pytest.mark.asyncio
async def test_remove_enum_value_scrubs_drafts(tracker_service, fake_queries, admin_user_id, mood_schema):
    tracker = fake_queries.add_tracker("mood", mood_schema, members=["alice"])
    await fake_queries.insert_log_entry(LogEntry(tracker_id=tracker.id, user_id="alice", data={"mood": "sad"}))
    affected = fake_queries.add_draft(DraftEntry(
        user_id="alice",
        tracker_id=tracker.id,
        data={"mood": "sad", "note": "x"},
        custom_enum_values={"mood": ["sad", "meh"]},
    ))
    untouched = fake_queries.add_draft(DraftEntry(user_id="alice", tracker_id=tracker.id, data={"mood": "happy"}))

    updated = await tracker_service.remove_enum_value(admin_user_id, str(tracker.id), "mood", "sad", is_admin=True)

    assert updated.tracker_schema["properties"]["mood"]["enum"] == ["happy"]
    assert fake_queries.drafts[affected.id].data == {"note": "x"}
    assert fake_queries.drafts[affected.id].custom_enum_values == {"mood": ["meh"]}
    assert fake_queries.drafts[untouched.id].data == {"mood": "happy"}
    # History keeps the value
    assert [e.data["mood"] for e in fake_queries.entries.values()] == ["sad"]


@pytest.mark.asyncio
async def test_remove_enum_value_requires_admin(tracker_service, fake_queries, test_user_id, mood_schema):
    tracker = fake_queries.add_tracker("mood", mood_schema, members=[test_user_id])

    with pytest.raises(AuthorizationError):
        await tracker_service.remove_enum_value(test_user_id, str(tracker.id), "mood", "sad")


@pytest.mark.asyncio
async def test_remove_enum_value_unknown_value(tracker_service, fake_queries, admin_user_id, mood_schema):
    tracker = fake_queries.add_tracker("mood", mood_schema)

    with pytest.raises(RecordNotFoundError):
        await tracker_service.remove_enum_value(admin_user_id, str(tracker.id), "mood", "angry", is_admin=True)
    with pytest.raises(RecordNotFoundError):
        await tracker_service.remove_enum_value(admin_user_id, str(tracker.id), "nope", "sad", is_admin=True)
