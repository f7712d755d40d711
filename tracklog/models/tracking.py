"""Tracker, log entry, membership and draft models"""
from typing import Optional, Any, Dict, List
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, computed_field
from uuid import UUID, uuid4

from tracklog.utils.datetime_helpers import now_utc


class TrackLogModel(BaseModel):
    """Base model: snake_case attributes, camelCase on the wire"""
    model_config = ConfigDict(populate_by_name=True)

    def to_response(self) -> Dict[str, Any]:
        """Serialize for API responses (camelCase keys, ISO datetimes)"""
        return self.model_dump(mode="json", by_alias=True)


class Tracker(TrackLogModel):
    """Shared, schema-described record type"""
    id: UUID = Field(default_factory=uuid4)
    name: str
    tracker_schema: Dict[str, Any] = Field(..., alias="schema")
    created_at: datetime = Field(default_factory=now_utc, alias="createdAt")
    updated_at: datetime = Field(default_factory=now_utc, alias="updatedAt")
    # Only set when listing with deleted trackers included
    is_deleted: Optional[bool] = Field(default=None, alias="isDeleted")

    @property
    def properties(self) -> Dict[str, Any]:
        return self.tracker_schema.get("properties") or {}


class LogEntry(TrackLogModel):
    """One recorded instance of tracker data"""
    id: UUID = Field(default_factory=uuid4)
    tracker_id: UUID = Field(..., alias="trackerId")
    user_id: str = Field(..., alias="userId")
    data: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=now_utc, alias="createdAt")
    deleted_at: Optional[datetime] = Field(default=None, alias="deletedAt")
    # Back-reference to the entry whose submission created this one
    linked_from_log_id: Optional[UUID] = Field(default=None, alias="linkedFromLogId")

    @computed_field(alias="isDeleted")
    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class SkippedLinkedLog(TrackLogModel):
    """A linked log that was not created, and why"""
    field: str
    tracker_name: str = Field(..., alias="trackerName")
    reason: str
    field_errors: Dict[str, List[str]] = Field(default_factory=dict, alias="fieldErrors")


class CreatedLogEntry(LogEntry):
    """Primary entry plus the outcome of its linked-log cascade"""
    created_linked_logs: List[UUID] = Field(default_factory=list, alias="createdLinkedLogs")
    skipped_linked_logs: List[SkippedLinkedLog] = Field(default_factory=list, alias="skippedLinkedLogs")


class UserTrackerMembership(TrackLogModel):
    """A user's ordered active trackers and soft-deleted trackers"""
    user_id: str = Field(..., alias="userId")
    tracker_ids: List[str] = Field(default_factory=list, alias="trackerIds")
    deleted_tracker_ids: List[str] = Field(default_factory=list, alias="deletedTrackerIds")

    def is_active_member(self, tracker_id: str) -> bool:
        return str(tracker_id) in self.tracker_ids

    def is_member(self, tracker_id: str) -> bool:
        """Member through either list"""
        tracker_id = str(tracker_id)
        return tracker_id in self.tracker_ids or tracker_id in self.deleted_tracker_ids


class DraftEntry(TrackLogModel):
    """Unsubmitted, unvalidated entry data"""
    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., alias="userId")
    tracker_id: UUID = Field(..., alias="trackerId")
    data: Dict[str, Any] = Field(default_factory=dict)
    custom_enum_values: Dict[str, List[str]] = Field(default_factory=dict, alias="customEnumValues")
    created_at: datetime = Field(default_factory=now_utc, alias="createdAt")
    updated_at: datetime = Field(default_factory=now_utc, alias="updatedAt")
