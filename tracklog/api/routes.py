"""API routes for tracklog"""
import logging
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from fastapi import APIRouter, Depends, Query, Request, status

from tracklog.api.models import (
    TrackerCreateRequest, TrackerUpdateRequest, TrackerOrderRequest,
    TrackerOrderResponse, EnumValueRemoveRequest,
    LogEntryCreateRequest, DraftRequest,
    SuccessResponse, HealthCheckResponse
)
from tracklog.api.auth import verify_api_key, is_admin
from tracklog.api.middleware import limiter
from tracklog.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from tracklog.db.connection import db
from tracklog.exceptions import ValidationFailedError
from tracklog.monitoring import track_request
from tracklog.services.container import ServiceContainer, get_container

logger = logging.getLogger(__name__)

router = APIRouter()


def get_services() -> ServiceContainer:
    """Service container dependency"""
    return get_container()


# ==========================================
# Trackers
# ==========================================

@router.get("/api/v1/users/{user_id}/trackers")
@limiter.limit("60/minute")
async def list_trackers(
    request: Request,
    user_id: str,
    include_deleted: bool = Query(False, alias="includeDeleted"),
    services: ServiceContainer = Depends(get_services),
    api_key: str = Depends(verify_api_key)
):
    """List user's trackers in display order (Rate limit: 60/minute)"""
    with track_request("GET", "/trackers"):
        trackers = await services.tracker_service.list_for_user(user_id, include_deleted)
    return [tracker.to_response() for tracker in trackers]


@router.post("/api/v1/users/{user_id}/trackers", status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
async def create_tracker(
    request: Request,
    user_id: str,
    body: TrackerCreateRequest,
    services: ServiceContainer = Depends(get_services),
    api_key: str = Depends(verify_api_key)
):
    """Create a tracker, or join the existing one with the same name (Rate limit: 30/minute)"""
    with track_request("POST", "/trackers"):
        tracker = await services.tracker_service.create(user_id, body.name, body.tracker_schema)
    return tracker.to_response()


@router.put("/api/v1/users/{user_id}/trackers/order", response_model=TrackerOrderResponse)
@limiter.limit("30/minute")
async def reorder_trackers(
    request: Request,
    user_id: str,
    body: TrackerOrderRequest,
    services: ServiceContainer = Depends(get_services),
    api_key: str = Depends(verify_api_key)
):
    """Set the order of the user's active trackers (Rate limit: 30/minute)"""
    with track_request("PUT", "/trackers/order"):
        ordered = await services.tracker_service.reorder(user_id, body.tracker_ids)
    return TrackerOrderResponse(tracker_ids=ordered).model_dump(by_alias=True)


@router.put("/api/v1/users/{user_id}/trackers/{tracker_id}")
@limiter.limit("30/minute")
async def update_tracker(
    request: Request,
    user_id: str,
    tracker_id: str,
    body: TrackerUpdateRequest,
    services: ServiceContainer = Depends(get_services),
    api_key: str = Depends(verify_api_key)
):
    """Replace a tracker's schema (Rate limit: 30/minute)"""
    with track_request("PUT", "/trackers/{tracker_id}"):
        tracker = await services.tracker_service.update_schema(user_id, tracker_id, body.tracker_schema)
    return tracker.to_response()


@router.delete("/api/v1/users/{user_id}/trackers/{tracker_id}", response_model=SuccessResponse)
@limiter.limit("30/minute")
async def delete_tracker(
    request: Request,
    user_id: str,
    tracker_id: str,
    permanent: bool = False,
    services: ServiceContainer = Depends(get_services),
    api_key: str = Depends(verify_api_key)
):
    """
    Delete a tracker for the user (soft), or for everyone (permanent, admin only)

    Rate limit: 30/minute
    """
    with track_request("DELETE", "/trackers/{tracker_id}"):
        if permanent:
            logger.info(f"Permanent tracker delete requested: user={user_id}, tracker={tracker_id}")
            await services.tracker_service.permanent_delete(user_id, tracker_id, is_admin(user_id))
        else:
            await services.tracker_service.soft_delete(user_id, tracker_id)
    return SuccessResponse()


@router.post("/api/v1/users/{user_id}/trackers/{tracker_id}/restore", response_model=SuccessResponse)
@limiter.limit("30/minute")
async def restore_tracker(
    request: Request,
    user_id: str,
    tracker_id: str,
    services: ServiceContainer = Depends(get_services),
    api_key: str = Depends(verify_api_key)
):
    """Restore a soft-deleted tracker (Rate limit: 30/minute)"""
    with track_request("POST", "/trackers/{tracker_id}/restore"):
        await services.tracker_service.restore(user_id, tracker_id)
    return SuccessResponse()


@router.delete("/api/v1/users/{user_id}/trackers/{tracker_id}/enum-values")
@limiter.limit("30/minute")
async def remove_enum_value(
    request: Request,
    user_id: str,
    tracker_id: str,
    body: EnumValueRemoveRequest,
    services: ServiceContainer = Depends(get_services),
    api_key: str = Depends(verify_api_key)
):
    """Remove one enum value from a tracker field (admin only, Rate limit: 30/minute)"""
    with track_request("DELETE", "/trackers/{tracker_id}/enum-values"):
        tracker = await services.tracker_service.remove_enum_value(
            user_id, tracker_id, body.field, body.value, is_admin(user_id)
        )
    return tracker.to_response()


# ==========================================
# Log entries
# ==========================================

@router.post("/api/v1/users/{user_id}/trackers/{tracker_id}/entries", status_code=status.HTTP_201_CREATED)
@limiter.limit("60/minute")
async def create_log_entry(
    request: Request,
    user_id: str,
    tracker_id: str,
    body: LogEntryCreateRequest,
    services: ServiceContainer = Depends(get_services),
    api_key: str = Depends(verify_api_key)
):
    """
    Submit a log entry and create its linked logs

    Validation failures return 400 with fieldErrors keyed by dotted field path.
    Rate limit: 60/minute
    """
    with track_request("POST", "/trackers/{tracker_id}/entries"):
        entry = await services.log_entry_service.create_log_entry(
            user_id,
            tracker_id,
            body.data,
            custom_enum_values=body.custom_enum_values,
            created_at=body.created_at,
            draft_id=body.draft_id,
            is_admin=is_admin(user_id)
        )
    return entry.to_response()


@router.get("/api/v1/users/{user_id}/trackers/{tracker_id}/entries")
@limiter.limit("60/minute")
async def list_tracker_entries(
    request: Request,
    user_id: str,
    tracker_id: str,
    include_deleted: bool = Query(False, alias="includeDeleted"),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    skip: int = Query(0, ge=0),
    services: ServiceContainer = Depends(get_services),
    api_key: str = Depends(verify_api_key)
):
    """List a tracker's entries, newest first (Rate limit: 60/minute)"""
    with track_request("GET", "/trackers/{tracker_id}/entries"):
        entries = await services.log_entry_service.list_log_entries(
            user_id, tracker_id, include_deleted=include_deleted, limit=limit, skip=skip
        )
    return [entry.to_response() for entry in entries]


@router.get("/api/v1/users/{user_id}/entries")
@limiter.limit("60/minute")
async def list_all_entries(
    request: Request,
    user_id: str,
    include_deleted: bool = Query(False, alias="includeDeleted"),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    skip: int = Query(0, ge=0),
    services: ServiceContainer = Depends(get_services),
    api_key: str = Depends(verify_api_key)
):
    """List the user's entries across trackers, newest first (Rate limit: 60/minute)"""
    with track_request("GET", "/entries"):
        entries = await services.log_entry_service.list_all_log_entries(
            user_id, include_deleted=include_deleted, limit=limit, skip=skip
        )
    return [entry.to_response() for entry in entries]


@router.get("/api/v1/users/{user_id}/entries/last")
@limiter.limit("60/minute")
async def last_entries(
    request: Request,
    user_id: str,
    services: ServiceContainer = Depends(get_services),
    api_key: str = Depends(verify_api_key)
):
    """Newest entry per tracker, keyed by tracker id (Rate limit: 60/minute)"""
    with track_request("GET", "/entries/last"):
        entries = await services.log_entry_service.get_last_log_entries(user_id)
    return {tracker_id: entry.to_response() for tracker_id, entry in entries.items()}


@router.delete("/api/v1/users/{user_id}/entries/{entry_id}", response_model=SuccessResponse)
@limiter.limit("60/minute")
async def delete_entry(
    request: Request,
    user_id: str,
    entry_id: str,
    permanent: bool = False,
    services: ServiceContainer = Depends(get_services),
    api_key: str = Depends(verify_api_key)
):
    """Soft-delete an entry, or remove it (permanent, admin only) (Rate limit: 60/minute)"""
    with track_request("DELETE", "/entries/{entry_id}"):
        if permanent:
            await services.log_entry_service.permanently_delete_log_entry(
                user_id, entry_id, is_admin(user_id)
            )
        else:
            await services.log_entry_service.delete_log_entry(user_id, entry_id)
    return SuccessResponse()


# ==========================================
# Drafts
# ==========================================

@router.get("/api/v1/users/{user_id}/drafts")
@limiter.limit("60/minute")
async def list_drafts(
    request: Request,
    user_id: str,
    services: ServiceContainer = Depends(get_services),
    api_key: str = Depends(verify_api_key)
):
    """List drafts, most recently updated first (Rate limit: 60/minute)"""
    with track_request("GET", "/drafts"):
        drafts = await services.draft_service.list_drafts(user_id)
    return [draft.to_response() for draft in drafts]


@router.post("/api/v1/users/{user_id}/drafts", status_code=status.HTTP_201_CREATED)
@limiter.limit("60/minute")
async def save_draft(
    request: Request,
    user_id: str,
    body: DraftRequest,
    services: ServiceContainer = Depends(get_services),
    api_key: str = Depends(verify_api_key)
):
    """Save a draft (Rate limit: 60/minute)"""
    with track_request("POST", "/drafts"):
        draft = await services.draft_service.save_draft(
            user_id, body.tracker_id, body.data, body.custom_enum_values
        )
    return draft.to_response()


@router.get("/api/v1/users/{user_id}/drafts/{draft_id}")
@limiter.limit("60/minute")
async def get_draft(
    request: Request,
    user_id: str,
    draft_id: str,
    services: ServiceContainer = Depends(get_services),
    api_key: str = Depends(verify_api_key)
):
    """Get a draft (Rate limit: 60/minute)"""
    with track_request("GET", "/drafts/{draft_id}"):
        draft = await services.draft_service.get_draft(user_id, draft_id)
    return draft.to_response()


@router.get("/api/v1/users/{user_id}/drafts/{draft_id}/form")
@limiter.limit("60/minute")
async def get_draft_form(
    request: Request,
    user_id: str,
    draft_id: str,
    tz: Optional[str] = None,
    services: ServiceContainer = Depends(get_services),
    api_key: str = Depends(verify_api_key)
):
    """
    Get a draft with date-times and times converted to form input values

    tz is an IANA zone name; date-times are rendered in UTC without it.
    Rate limit: 60/minute
    """
    zone = None
    if tz:
        try:
            zone = ZoneInfo(tz)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValidationFailedError(
                message=f"Unknown timezone: {tz}",
                field_errors={"tz": [f"Unknown timezone: {tz}"]},
                user_id=user_id
            )

    with track_request("GET", "/drafts/{draft_id}/form"):
        draft = await services.draft_service.get_draft_form(user_id, draft_id, zone)
    return draft.to_response()


@router.put("/api/v1/users/{user_id}/drafts/{draft_id}")
@limiter.limit("60/minute")
async def update_draft(
    request: Request,
    user_id: str,
    draft_id: str,
    body: DraftRequest,
    services: ServiceContainer = Depends(get_services),
    api_key: str = Depends(verify_api_key)
):
    """Replace a draft (Rate limit: 60/minute)"""
    with track_request("PUT", "/drafts/{draft_id}"):
        draft = await services.draft_service.update_draft(
            user_id, draft_id, body.tracker_id, body.data, body.custom_enum_values
        )
    return draft.to_response()


@router.delete("/api/v1/users/{user_id}/drafts/{draft_id}", response_model=SuccessResponse)
@limiter.limit("60/minute")
async def delete_draft(
    request: Request,
    user_id: str,
    draft_id: str,
    services: ServiceContainer = Depends(get_services),
    api_key: str = Depends(verify_api_key)
):
    """Delete a draft (Rate limit: 60/minute)"""
    with track_request("DELETE", "/drafts/{draft_id}"):
        await services.draft_service.delete_draft(user_id, draft_id)
    return SuccessResponse()


# ==========================================
# Health
# ==========================================

@router.get("/health", response_model=HealthCheckResponse)
@limiter.limit("60/minute")
async def health_check(request: Request):
    """Health check endpoint (Rate limit: 60/minute for monitoring systems)"""
    db_status = "connected" if await db.ping() else "disconnected"

    return HealthCheckResponse(
        status="healthy" if db_status == "connected" else "degraded",
        database=db_status,
        timestamp=datetime.now(timezone.utc)
    )
