"""
LogEntryService - Log Entry Business Logic

Creates entries against a tracker's schema and runs the linked-log cascade:
after the primary entry is stored, every link the schema declares for the
submitted data is attempted independently. A link that cannot be created is
skipped and reported; it never fails the primary submission, and nothing
already written is rolled back.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

import psycopg

from tracklog.config import ENABLE_NAME_DERIVED_LINKS, MAX_PAGE_LIMIT
from tracklog.db import queries
from tracklog.exceptions import (
    AuthorizationError,
    RecordNotFoundError,
    ValidationFailedError,
    wrap_external_exception,
)
from tracklog.models.schema import normalize_tracker_name, union_enum_values
from tracklog.models.tracking import (
    CreatedLogEntry,
    LogEntry,
    SkippedLinkedLog,
    Tracker,
    UserTrackerMembership,
)
from tracklog.monitoring import (
    track_enum_values_added,
    track_linked_log_skipped,
    track_log_entry_created,
    track_validation_failure,
)
from tracklog.services.linked_logs import LinkTrigger, build_linked_payload, discover_link_triggers
from tracklog.services.tracker_service import load_member_tracker
from tracklog.utils.datetime_helpers import now_utc, to_utc
from tracklog.utils.form_values import strip_disabled_nested_objects
from tracklog.utils.ids import parse_id
from tracklog.utils.schema_validation import validate_against_schema

logger = logging.getLogger(__name__)

# Skip reasons reported in skippedLinkedLogs and the skip counter
SKIP_TRACKER_NOT_FOUND = "tracker_not_found"
SKIP_NOT_MEMBER = "not_member"
SKIP_VALIDATION_FAILED = "validation_failed"
SKIP_ERROR = "error"


def _loose_name(name: str) -> str:
    return name.lower().replace(" ", "").replace("_", "")


def _check_paging(limit: Optional[int], skip: int, user_id: str) -> Optional[int]:
    if skip < 0 or (limit is not None and limit < 1):
        raise ValidationFailedError(
            message="Invalid paging parameters",
            field_errors={"limit" if skip >= 0 else "skip": ["Out of range"]},
            user_id=user_id,
            operation="list_log_entries"
        )
    return min(limit, MAX_PAGE_LIMIT) if limit is not None else None


class LogEntryService:
    """
    Service for log entries.

    Responsibilities:
    - Validate and store entries, growing enum lists from submissions
    - Linked-log cascade
    - Listing, soft delete and permanent delete
    """

    def __init__(self, db_connection):
        """
        Initialize LogEntryService.

        Args:
            db_connection: Database connection instance
        """
        self.db = db_connection

    async def resolve_target_tracker(self, tracker_name: str) -> Optional[Tracker]:
        """
        Find a linked tracker by name: exact normalized match first, then a
        case- and space-insensitive scan of every tracker.
        """
        normalized = normalize_tracker_name(tracker_name)
        if not normalized:
            return None

        tracker = await queries.get_tracker_by_name(normalized)
        if tracker is not None:
            return tracker

        wanted = _loose_name(normalized)
        for candidate in await queries.get_all_trackers():
            if _loose_name(candidate.name) == wanted:
                return candidate
        return None

    async def create_log_entry(
        self,
        user_id: str,
        tracker_id: Union[str, UUID],
        data: Dict[str, Any],
        custom_enum_values: Optional[Dict[str, List[str]]] = None,
        created_at: Optional[datetime] = None,
        draft_id: Optional[Union[str, UUID]] = None,
        is_admin: bool = False
    ) -> CreatedLogEntry:
        """
        Validate and store an entry, then create its linked logs.

        Args:
            user_id: Acting user (must be an active member of the tracker)
            tracker_id: Tracker id
            data: Entry payload
            custom_enum_values: New enum values by dotted field path; accepted
                by validation and appended to the tracker schema
            created_at: Timestamp override, honored for admins only
            draft_id: Draft to delete once the entry is stored
            is_admin: Whether user_id holds admin privileges

        Returns:
            CreatedLogEntry with created_linked_logs and skipped_linked_logs

        Raises:
            InvalidIdError: Malformed tracker or draft id
            RecordNotFoundError: Tracker missing or not active for user
            ValidationFailedError: Payload does not match the schema
        """
        membership = await queries.get_membership(user_id)
        tracker = await load_member_tracker(user_id, tracker_id, membership=membership)
        parsed_draft_id = parse_id(draft_id, "Draft") if draft_id is not None else None

        # Nested objects whose dependsOn field is off are not part of the entry
        data = strip_disabled_nested_objects(data or {}, tracker.properties)

        result = validate_against_schema(tracker.tracker_schema, data, custom_enum_values)
        if not result.is_valid:
            track_validation_failure()
            raise ValidationFailedError(
                message="Validation failed",
                field_errors=result.field_errors,
                errors=result.errors,
                user_id=user_id,
                operation="create_log_entry",
                context={"tracker_id": str(tracker.id)}
            )

        schema = tracker.tracker_schema
        if custom_enum_values:
            schema = await self._apply_enum_additions(tracker, custom_enum_values)

        if created_at is not None and not is_admin:
            logger.warning(f"Ignoring createdAt override from non-admin user {user_id}")
            created_at = None

        entry = LogEntry(
            tracker_id=tracker.id,
            user_id=user_id,
            data=data,
            created_at=to_utc(created_at) if created_at else now_utc()
        )

        try:
            saved = await queries.insert_log_entry(entry)
        except psycopg.Error as e:
            raise wrap_external_exception(
                e,
                operation="create_log_entry",
                user_id=user_id,
                context={"tracker_id": str(tracker.id)}
            )
        track_log_entry_created("primary")

        triggers = discover_link_triggers(schema, data, allow_name_fallback=ENABLE_NAME_DERIVED_LINKS)
        created_ids: List[UUID] = []
        skipped: List[SkippedLinkedLog] = []

        for trigger in triggers:
            try:
                outcome = await self._create_linked_log(trigger, saved, membership)
            except Exception as e:
                logger.error(
                    f"Linked log for field {trigger.field} of entry {saved.id} failed: {e}",
                    exc_info=True
                )
                outcome = SkippedLinkedLog(
                    field=trigger.field,
                    tracker_name=trigger.tracker_name,
                    reason=SKIP_ERROR
                )

            if isinstance(outcome, SkippedLinkedLog):
                track_linked_log_skipped(outcome.reason)
                skipped.append(outcome)
            else:
                created_ids.append(outcome)

        if parsed_draft_id is not None:
            if not await queries.delete_draft(user_id, parsed_draft_id):
                logger.info(f"Draft {parsed_draft_id} already gone after submitting entry {saved.id}")

        logger.info(
            f"Created log entry {saved.id} in tracker {tracker.id} for user {user_id} "
            f"({len(created_ids)} linked, {len(skipped)} skipped)"
        )

        return CreatedLogEntry(
            **saved.model_dump(exclude={"is_deleted"}),
            created_linked_logs=created_ids,
            skipped_linked_logs=skipped
        )

    async def _apply_enum_additions(
        self,
        tracker: Tracker,
        custom_enum_values: Dict[str, List[str]]
    ) -> Dict[str, Any]:
        """Re-read the tracker, union the new values in, write back if anything changed"""
        current = await queries.get_tracker_by_id(tracker.id) or tracker
        schema, added = union_enum_values(current.tracker_schema, custom_enum_values)

        if not added:
            return current.tracker_schema

        await queries.update_tracker_schema(tracker.id, schema)
        count = sum(len(values) for values in added.values())
        track_enum_values_added(count)
        logger.info(f"Added {count} enum value(s) to tracker {tracker.id}: {added}")
        return schema

    async def _create_linked_log(
        self,
        trigger: LinkTrigger,
        primary: LogEntry,
        membership: Optional[UserTrackerMembership]
    ) -> Union[UUID, SkippedLinkedLog]:
        def skip(reason: str, field_errors: Optional[Dict[str, List[str]]] = None) -> SkippedLinkedLog:
            return SkippedLinkedLog(
                field=trigger.field,
                tracker_name=trigger.tracker_name,
                reason=reason,
                field_errors=field_errors or {}
            )

        target = await self.resolve_target_tracker(trigger.tracker_name)
        if target is None:
            logger.warning(
                f"Linked tracker '{trigger.tracker_name}' for field {trigger.field} not found; skipping"
            )
            return skip(SKIP_TRACKER_NOT_FOUND)

        if membership is None or not membership.is_active_member(target.id):
            logger.warning(
                f"User {primary.user_id} is not a member of linked tracker {target.name}; skipping"
            )
            return skip(SKIP_NOT_MEMBER)

        payload = build_linked_payload(
            trigger,
            primary.data,
            target.tracker_schema,
            primary_created_at=primary.created_at,
            now=now_utc()
        )

        result = validate_against_schema(target.tracker_schema, payload)
        if not result.is_valid:
            logger.warning(
                f"Linked log for tracker {target.name} failed validation; skipping: {result.errors}"
            )
            return skip(SKIP_VALIDATION_FAILED, result.field_errors)

        linked = await queries.insert_log_entry(LogEntry(
            tracker_id=target.id,
            user_id=primary.user_id,
            data=payload,
            linked_from_log_id=primary.id
        ))
        track_log_entry_created("linked")
        logger.info(f"Created linked log {linked.id} in tracker {target.name} from entry {primary.id}")
        return linked.id

    async def list_log_entries(
        self,
        user_id: str,
        tracker_id: Union[str, UUID],
        include_deleted: bool = False,
        limit: Optional[int] = None,
        skip: int = 0
    ) -> List[LogEntry]:
        """Entries of one tracker, newest first"""
        limit = _check_paging(limit, skip, user_id)
        tracker = await load_member_tracker(user_id, tracker_id, allow_deleted=include_deleted)
        return await queries.get_log_entries(
            user_id,
            tracker_id=tracker.id,
            include_deleted=include_deleted,
            limit=limit,
            skip=skip
        )

    async def list_all_log_entries(
        self,
        user_id: str,
        include_deleted: bool = False,
        limit: Optional[int] = None,
        skip: int = 0
    ) -> List[LogEntry]:
        """Entries across all of the user's trackers, newest first"""
        limit = _check_paging(limit, skip, user_id)
        return await queries.get_log_entries(
            user_id,
            include_deleted=include_deleted,
            limit=limit,
            skip=skip
        )

    async def get_last_log_entries(self, user_id: str) -> Dict[str, LogEntry]:
        """Newest undeleted entry per tracker, keyed by tracker id"""
        entries = await queries.get_last_log_entries(user_id)
        return {str(entry.tracker_id): entry for entry in entries}

    async def delete_log_entry(self, user_id: str, log_entry_id: Union[str, UUID]) -> None:
        """Soft-delete one of the user's entries"""
        entry_id = parse_id(log_entry_id, "Log entry")
        if not await queries.mark_log_entry_deleted(entry_id, user_id):
            raise RecordNotFoundError(
                message=f"Log entry {entry_id} not found, already deleted or foreign",
                record_type="Log entry",
                record_id=str(entry_id),
                user_id=user_id
            )
        logger.info(f"Soft-deleted log entry {entry_id} for user {user_id}")

    async def permanently_delete_log_entry(
        self,
        user_id: str,
        log_entry_id: Union[str, UUID],
        is_admin: bool = False
    ) -> None:
        """Remove an entry document (admin)"""
        if not is_admin:
            raise AuthorizationError(
                message="Permanent entry deletion requires admin privileges",
                resource="permanent_delete_log_entry",
                user_id=user_id,
                operation="permanently_delete_log_entry"
            )

        entry_id = parse_id(log_entry_id, "Log entry")
        if await queries.get_log_entry(entry_id) is None or not await queries.delete_log_entry(entry_id):
            raise RecordNotFoundError(
                message=f"Log entry {entry_id} not found",
                record_type="Log entry",
                record_id=str(entry_id),
                user_id=user_id
            )
        logger.info(f"Permanently deleted log entry {entry_id} by admin {user_id}")
