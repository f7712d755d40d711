"""
TrackerService - Tracker Lifecycle Business Logic

Trackers are shared documents, unique by normalized name. What a user sees
is governed by their membership document: an ordered list of active
tracker ids and a list of soft-deleted ones.
"""

import logging
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from pydantic import ValidationError

from tracklog.db import queries
from tracklog.exceptions import (
    AuthorizationError,
    RecordNotFoundError,
    ValidationFailedError,
)
from tracklog.models.schema import (
    get_field,
    normalize_tracker_name,
    parse_tracker_schema,
    remove_enum_value,
)
from tracklog.models.tracking import DraftEntry, Tracker, UserTrackerMembership
from tracklog.utils.ids import parse_id

logger = logging.getLogger(__name__)


def _schema_field_errors(error: ValidationError) -> Dict[str, List[str]]:
    field_errors: Dict[str, List[str]] = {}
    for item in error.errors():
        key = ".".join(str(part) for part in item["loc"]) or "schema"
        field_errors.setdefault(key, []).append(item["msg"])
    return field_errors


def check_schema_document(schema: Dict[str, Any], user_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Check a submitted tracker schema and return its stored form.

    Raises:
        ValidationFailedError: If the document is not a valid tracker schema
    """
    try:
        return parse_tracker_schema(schema)
    except ValidationError as e:
        raise ValidationFailedError(
            message="Invalid tracker schema",
            field_errors=_schema_field_errors(e),
            user_id=user_id,
            operation="check_schema_document"
        )


async def load_member_tracker(
    user_id: str,
    tracker_id: Union[str, UUID],
    allow_deleted: bool = False,
    membership: Optional[UserTrackerMembership] = None
) -> Tracker:
    """
    Load a tracker the user is a member of.

    Args:
        user_id: Acting user
        tracker_id: Tracker id (string or UUID)
        allow_deleted: Also accept membership through the deleted list
        membership: Already loaded membership document, if any

    Raises:
        InvalidIdError: Malformed tracker id
        RecordNotFoundError: Tracker missing, or user not a member
    """
    tid = parse_id(tracker_id, "Tracker")

    if membership is None:
        membership = await queries.get_membership(user_id)

    is_member = membership is not None and (
        membership.is_member(tid) if allow_deleted else membership.is_active_member(tid)
    )

    tracker = await queries.get_tracker_by_id(tid) if is_member else None
    if tracker is None:
        raise RecordNotFoundError(
            message=f"Tracker {tid} not found for user {user_id}",
            record_type="Tracker",
            record_id=str(tid),
            user_id=user_id
        )
    return tracker


def _require_admin(is_admin: bool, user_id: str, operation: str) -> None:
    if not is_admin:
        raise AuthorizationError(
            message=f"{operation} requires admin privileges",
            resource=operation,
            user_id=user_id,
            operation=operation
        )


def _scrub_draft_value(draft: DraftEntry, path: str, value: str) -> bool:
    """Remove value from a draft's data at path and from its custom enum values"""
    changed = False

    parts = path.split(".")
    container: Any = draft.data
    for part in parts[:-1]:
        container = container.get(part) if isinstance(container, dict) else None
    if isinstance(container, dict) and parts[-1] in container:
        current = container[parts[-1]]
        if current == value:
            del container[parts[-1]]
            changed = True
        elif isinstance(current, list) and value in current:
            container[parts[-1]] = [v for v in current if v != value]
            changed = True

    custom = draft.custom_enum_values.get(path)
    if custom and value in custom:
        remaining = [v for v in custom if v != value]
        if remaining:
            draft.custom_enum_values[path] = remaining
        else:
            del draft.custom_enum_values[path]
        changed = True

    return changed


class TrackerService:
    """
    Service for tracker lifecycle and per-user membership.

    Responsibilities:
    - Create-or-reuse trackers by normalized name
    - Schema replacement and admin enum value removal
    - Soft delete, restore, permanent delete
    - Per-user ordering
    """

    def __init__(self, db_connection):
        """
        Initialize TrackerService.

        Args:
            db_connection: Database connection instance
        """
        self.db = db_connection

    async def list_for_user(self, user_id: str, include_deleted: bool = False) -> List[Tracker]:
        """
        Get user's trackers in their chosen order.

        Args:
            user_id: User identifier
            include_deleted: Append soft-deleted trackers after the active ones

        Returns:
            Trackers annotated with is_deleted
        """
        membership = await queries.ensure_membership(user_id)

        ids = list(membership.tracker_ids)
        if include_deleted:
            ids += membership.deleted_tracker_ids

        by_id = {str(t.id): t for t in await queries.get_trackers_by_ids(ids)}

        trackers = []
        for tracker_id in membership.tracker_ids:
            if tracker_id in by_id:
                trackers.append(by_id[tracker_id].model_copy(update={"is_deleted": False}))
        if include_deleted:
            for tracker_id in membership.deleted_tracker_ids:
                if tracker_id in by_id:
                    trackers.append(by_id[tracker_id].model_copy(update={"is_deleted": True}))

        return trackers

    async def create(self, user_id: str, name: str, schema: Dict[str, Any]) -> Tracker:
        """
        Create a tracker, or reuse the existing one with the same name, and
        make it active for the user.

        Raises:
            ValidationFailedError: Empty name after normalization, or invalid schema
        """
        normalized = normalize_tracker_name(name or "")
        if not normalized:
            raise ValidationFailedError(
                message="Tracker name is required",
                field_errors={"name": ["Tracker name is required"]},
                user_id=user_id,
                operation="create_tracker"
            )

        document = check_schema_document(schema, user_id)

        tracker = await queries.get_tracker_by_name(normalized)
        if tracker is None:
            tracker = await queries.insert_tracker(Tracker(name=normalized, schema=document))
        else:
            logger.info(f"Reusing existing tracker '{normalized}' ({tracker.id}) for user {user_id}")

        await queries.add_tracker_to_user(user_id, str(tracker.id))
        return tracker

    async def update_schema(
        self,
        user_id: str,
        tracker_id: Union[str, UUID],
        schema: Dict[str, Any]
    ) -> Tracker:
        """Replace a tracker's schema (member through either list)"""
        tracker = await load_member_tracker(user_id, tracker_id, allow_deleted=True)
        document = check_schema_document(schema, user_id)

        updated = await queries.update_tracker_schema(tracker.id, document)
        if updated is None:
            raise RecordNotFoundError(
                message=f"Tracker {tracker.id} disappeared during update",
                record_type="Tracker",
                record_id=str(tracker.id),
                user_id=user_id
            )

        logger.info(f"Updated schema of tracker {tracker.id} by user {user_id}")
        return updated

    async def soft_delete(self, user_id: str, tracker_id: Union[str, UUID]) -> None:
        """Move tracker from user's active list to deleted list"""
        tracker = await load_member_tracker(user_id, tracker_id)
        await queries.move_tracker_to_deleted(user_id, str(tracker.id))

    async def restore(self, user_id: str, tracker_id: Union[str, UUID]) -> None:
        """Move a soft-deleted tracker back to the end of the active list"""
        tid = parse_id(tracker_id, "Tracker")
        membership = await queries.get_membership(user_id)

        if membership is None or str(tid) not in membership.deleted_tracker_ids:
            raise RecordNotFoundError(
                message=f"Tracker {tid} is not deleted for user {user_id}",
                record_type="Tracker",
                record_id=str(tid),
                user_id=user_id
            )

        tracker = await load_member_tracker(user_id, tid, allow_deleted=True, membership=membership)
        await queries.add_tracker_to_user(user_id, str(tracker.id))

    async def permanent_delete(
        self,
        user_id: str,
        tracker_id: Union[str, UUID],
        is_admin: bool = False
    ) -> None:
        """
        Remove a tracker for everyone: the document, every membership
        reference, and all of its entries and drafts.
        """
        _require_admin(is_admin, user_id, "permanent_delete_tracker")
        tid = parse_id(tracker_id, "Tracker")

        tracker = await queries.get_tracker_by_id(tid)
        if tracker is None:
            raise RecordNotFoundError(
                message=f"Tracker {tid} not found",
                record_type="Tracker",
                record_id=str(tid),
                user_id=user_id
            )

        await queries.remove_tracker_from_all_users(str(tid))
        entries = await queries.delete_log_entries_for_tracker(tid)
        drafts = await queries.delete_drafts_for_tracker(tid)
        await queries.delete_tracker(tid)

        logger.info(
            f"Permanently deleted tracker {tid} ('{tracker.name}') "
            f"with {entries} entries and {drafts} drafts"
        )

    async def reorder(self, user_id: str, tracker_ids: List[str]) -> List[str]:
        """
        Set the order of the user's active trackers.

        Active trackers missing from tracker_ids keep their membership and
        follow the listed ones in their previous order.

        Returns:
            The stored active list
        """
        parsed = [str(parse_id(tracker_id, "Tracker")) for tracker_id in tracker_ids]
        if len(set(parsed)) != len(parsed):
            raise ValidationFailedError(
                message="Tracker order contains duplicates",
                field_errors={"trackerIds": ["Tracker ids must be unique"]},
                user_id=user_id,
                operation="reorder_trackers"
            )

        membership = await queries.ensure_membership(user_id)
        existing = {str(t.id) for t in await queries.get_trackers_by_ids(parsed)}

        for tracker_id in parsed:
            if tracker_id not in existing or not membership.is_active_member(tracker_id):
                raise RecordNotFoundError(
                    message=f"Tracker {tracker_id} not active for user {user_id}",
                    record_type="Tracker",
                    record_id=tracker_id,
                    user_id=user_id
                )

        ordered = parsed + [t for t in membership.tracker_ids if t not in set(parsed)]
        await queries.set_tracker_order(user_id, ordered)
        return ordered

    async def remove_enum_value(
        self,
        user_id: str,
        tracker_id: Union[str, UUID],
        field_path: str,
        value: str,
        is_admin: bool = False
    ) -> Tracker:
        """
        Remove one enum value from a tracker schema and from that tracker's
        drafts. Historical entries keep the value.
        """
        _require_admin(is_admin, user_id, "remove_enum_value")
        tid = parse_id(tracker_id, "Tracker")

        tracker = await queries.get_tracker_by_id(tid)
        if tracker is None:
            raise RecordNotFoundError(
                message=f"Tracker {tid} not found",
                record_type="Tracker",
                record_id=str(tid),
                user_id=user_id
            )

        if get_field(tracker.tracker_schema, field_path) is None:
            raise RecordNotFoundError(
                message=f"Field {field_path} not found in tracker {tid}",
                record_type="Field",
                record_id=field_path,
                user_id=user_id
            )

        schema, removed = remove_enum_value(tracker.tracker_schema, field_path, value)
        if not removed:
            raise RecordNotFoundError(
                message=f"Enum value {value!r} not found at {field_path} in tracker {tid}",
                record_type="Enum value",
                record_id=value,
                user_id=user_id
            )

        updated = await queries.update_tracker_schema(tid, schema)

        scrubbed = 0
        for draft in await queries.get_drafts_for_tracker(tid):
            if _scrub_draft_value(draft, field_path, value):
                await queries.update_draft(draft)
                scrubbed += 1

        logger.info(
            f"Removed enum value {value!r} from {field_path} of tracker {tid}; "
            f"scrubbed {scrubbed} draft(s)"
        )
        return updated or tracker.model_copy(update={"tracker_schema": schema})
