"""
Service Layer Package

Business logic between the HTTP layer (FastAPI routes) and the data access
layer (database queries).

Services:
- TrackerService: Tracker lifecycle, membership, ordering, enum removal
- LogEntryService: Entry validation, linked-log cascade, deletion
- DraftService: Draft storage and form-value conversion
"""

from tracklog.services.container import ServiceContainer, get_container, init_container

__all__ = [
    "ServiceContainer",
    "get_container",
    "init_container",
]
