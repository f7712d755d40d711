"""
DraftService - Draft Entry Business Logic

Drafts hold in-progress form state. They are never validated against the
tracker schema; only tracker membership is checked. Date-time and time
values are normalized to their stored ISO form on save.
"""

import logging
from datetime import tzinfo
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from tracklog.db import queries
from tracklog.exceptions import RecordNotFoundError
from tracklog.models.tracking import DraftEntry
from tracklog.services.tracker_service import load_member_tracker
from tracklog.utils.form_values import to_form_data, to_iso_data
from tracklog.utils.ids import parse_id

logger = logging.getLogger(__name__)


class DraftService:
    """Service for saving, loading and editing drafts"""

    def __init__(self, db_connection):
        self.db = db_connection

    async def save_draft(
        self,
        user_id: str,
        tracker_id: Union[str, UUID],
        data: Dict[str, Any],
        custom_enum_values: Optional[Dict[str, List[str]]] = None
    ) -> DraftEntry:
        """
        Save a new draft.

        Raises:
            RecordNotFoundError: Tracker missing or not active for user
        """
        tracker = await load_member_tracker(user_id, tracker_id)
        draft = DraftEntry(
            user_id=user_id,
            tracker_id=tracker.id,
            data=to_iso_data(data or {}, tracker.properties),
            custom_enum_values=custom_enum_values or {}
        )
        return await queries.insert_draft(draft)

    async def list_drafts(self, user_id: str) -> List[DraftEntry]:
        """User's drafts, most recently updated first"""
        return await queries.get_drafts(user_id)

    async def get_draft(self, user_id: str, draft_id: Union[str, UUID]) -> DraftEntry:
        """Get one of the user's drafts"""
        did = parse_id(draft_id, "Draft")
        draft = await queries.get_draft(user_id, did)
        if draft is None:
            raise RecordNotFoundError(
                message=f"Draft {did} not found for user {user_id}",
                record_type="Draft",
                record_id=str(did),
                user_id=user_id
            )
        return draft

    async def update_draft(
        self,
        user_id: str,
        draft_id: Union[str, UUID],
        tracker_id: Union[str, UUID],
        data: Dict[str, Any],
        custom_enum_values: Optional[Dict[str, List[str]]] = None
    ) -> DraftEntry:
        """
        Replace a draft's contents. Moving a draft to another tracker
        requires active membership in that tracker.
        """
        draft = await self.get_draft(user_id, draft_id)
        tid = parse_id(tracker_id, "Tracker")

        if tid != draft.tracker_id:
            tracker = await load_member_tracker(user_id, tid)
        else:
            tracker = await queries.get_tracker_by_id(tid)
        properties = tracker.properties if tracker else {}

        changed = draft.model_copy(update={
            "tracker_id": tid,
            "data": to_iso_data(data or {}, properties),
            "custom_enum_values": custom_enum_values or {},
        })
        updated = await queries.update_draft(changed)
        if updated is None:
            raise RecordNotFoundError(
                message=f"Draft {draft.id} disappeared during update",
                record_type="Draft",
                record_id=str(draft.id),
                user_id=user_id
            )
        return updated

    async def delete_draft(self, user_id: str, draft_id: Union[str, UUID]) -> None:
        """Delete one of the user's drafts"""
        did = parse_id(draft_id, "Draft")
        if not await queries.delete_draft(user_id, did):
            raise RecordNotFoundError(
                message=f"Draft {did} not found for user {user_id}",
                record_type="Draft",
                record_id=str(did),
                user_id=user_id
            )
        logger.info(f"Deleted draft {did} for user {user_id}")

    async def get_draft_form(
        self,
        user_id: str,
        draft_id: Union[str, UUID],
        tz: Optional[tzinfo] = None
    ) -> DraftEntry:
        """Get a draft with its data converted to form values"""
        draft = await self.get_draft(user_id, draft_id)
        tracker = await queries.get_tracker_by_id(draft.tracker_id)
        properties = tracker.properties if tracker else {}
        return draft.model_copy(update={"data": to_form_data(draft.data, properties, tz)})
