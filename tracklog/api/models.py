"""Pydantic models for API request/response validation"""
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime


class ApiModel(BaseModel):
    """Request bodies use the camelCase wire names"""
    model_config = ConfigDict(populate_by_name=True)


class TrackerCreateRequest(ApiModel):
    """Request to create (or reuse) a tracker"""
    name: str = Field(..., description="Tracker name (normalized on save)")
    tracker_schema: Dict[str, Any] = Field(..., alias="schema", description="Tracker schema document")


class TrackerUpdateRequest(ApiModel):
    """Request to replace a tracker schema"""
    tracker_schema: Dict[str, Any] = Field(..., alias="schema", description="New tracker schema document")


class TrackerOrderRequest(ApiModel):
    """Request to reorder the user's active trackers"""
    tracker_ids: List[str] = Field(..., alias="trackerIds", description="Tracker ids in display order")


class EnumValueRemoveRequest(ApiModel):
    """Request to remove one enum value from a tracker field"""
    field: str = Field(..., description="Dotted field path")
    value: str = Field(..., description="Enum value to remove")


class LogEntryCreateRequest(ApiModel):
    """Request to submit a log entry"""
    data: Dict[str, Any] = Field(default_factory=dict, description="Entry payload")
    custom_enum_values: Optional[Dict[str, List[str]]] = Field(
        default=None,
        alias="customEnumValues",
        description="New enum values by dotted field path"
    )
    created_at: Optional[datetime] = Field(
        default=None,
        alias="createdAt",
        description="Timestamp override (admins only)"
    )
    draft_id: Optional[str] = Field(
        default=None,
        alias="draftId",
        description="Draft to delete after a successful submission"
    )


class DraftRequest(ApiModel):
    """Request to save or replace a draft"""
    tracker_id: str = Field(..., alias="trackerId", description="Tracker the draft belongs to")
    data: Dict[str, Any] = Field(default_factory=dict, description="Unvalidated form data")
    custom_enum_values: Optional[Dict[str, List[str]]] = Field(default=None, alias="customEnumValues")


class TrackerOrderResponse(ApiModel):
    """Stored active tracker order"""
    tracker_ids: List[str] = Field(..., alias="trackerIds")


class SuccessResponse(BaseModel):
    """Result of a delete/restore"""
    success: bool = True


class HealthCheckResponse(BaseModel):
    """Health check response"""
    status: str = Field(..., description="Service status")
    database: str = Field(..., description="Database connection status")
    timestamp: datetime = Field(..., description="Check timestamp")
