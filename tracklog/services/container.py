"""
Service Container - Dependency Injection Container

Simple DI container for managing service instances and their dependencies.
Uses lazy loading to only instantiate services when first accessed.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Simple dependency injection container for services.

    Services are lazy-loaded on first access via properties.
    The database wrapper is injected.
    """

    # Infrastructure dependencies (injected)
    db: object  # Database instance

    # Services (lazy-loaded via properties)
    _tracker_service: Optional[object] = field(default=None, init=False, repr=False)
    _log_entry_service: Optional[object] = field(default=None, init=False, repr=False)
    _draft_service: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def tracker_service(self):
        """Get TrackerService instance (lazy-loaded)"""
        if self._tracker_service is None:
            from tracklog.services.tracker_service import TrackerService
            self._tracker_service = TrackerService(self.db)
            logger.debug("TrackerService instantiated")
        return self._tracker_service

    @property
    def log_entry_service(self):
        """Get LogEntryService instance (lazy-loaded)"""
        if self._log_entry_service is None:
            from tracklog.services.log_entry_service import LogEntryService
            self._log_entry_service = LogEntryService(self.db)
            logger.debug("LogEntryService instantiated")
        return self._log_entry_service

    @property
    def draft_service(self):
        """Get DraftService instance (lazy-loaded)"""
        if self._draft_service is None:
            from tracklog.services.draft_service import DraftService
            self._draft_service = DraftService(self.db)
            logger.debug("DraftService instantiated")
        return self._draft_service


# Global container instance (initialized at application startup)
_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """
    Get the global service container.

    Returns:
        ServiceContainer: The global container instance

    Raises:
        RuntimeError: If container not initialized (call init_container first)
    """
    if _container is None:
        raise RuntimeError(
            "Service container not initialized. "
            "Call init_container() at startup before using services."
        )
    return _container


def init_container(db: object) -> ServiceContainer:
    """
    Initialize the global service container.

    Args:
        db: Database instance

    Returns:
        ServiceContainer: The initialized container
    """
    global _container

    _container = ServiceContainer(db=db)

    logger.info("Service container initialized")
    return _container
