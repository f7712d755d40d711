"""
Standardized exception hierarchy for tracklog
Provides rich context, consistent logging, and user-friendly error messages
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any, List
from uuid import uuid4
import logging

import psycopg

logger = logging.getLogger(__name__)


class TrackLogError(Exception):
    """
    Base exception for all tracklog errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging

    Example:
        raise TrackLogError(
            message="Failed to save log entry",
            user_id="user-1",
            operation="create_log_entry",
            context={"tracker_id": "abc-123"}
        )
    """

    # Expected conditions (not found, bad input) override this with WARNING
    log_level: int = logging.ERROR

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "An error occurred. Please try again."
        self.timestamp = datetime.now(timezone.utc)

        # Auto-log on creation
        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # Avoid conflict with logging's 'message' field
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,  # Avoid conflict with logging's 'context'
            "timestamp": self.timestamp.isoformat()
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.log(self.log_level, f"{self.__class__.__name__}: {self.message}", extra=log_data, exc_info=self.cause)
        else:
            logger.log(self.log_level, f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for API responses"""
        return {
            "error": self.user_message,
            "type": self.__class__.__name__,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Validation Errors (User Input)
# ==========================================

class ValidationFailedError(TrackLogError):
    """
    Raised when a payload does not satisfy a tracker schema, or a request
    is structurally invalid

    Carries per-field messages keyed by dotted field path so callers can
    attach them to the matching form input.

    Example:
        raise ValidationFailedError(
            message="Log entry does not match tracker schema",
            field_errors={"peeLog.time": ["This field is required"]},
            user_id="user-1"
        )
    """

    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        field_errors: Optional[Dict[str, List[str]]] = None,
        errors: Optional[List[str]] = None,
        **kwargs
    ):
        self.field_errors = field_errors or {}
        self.errors = errors or []
        super().__init__(
            message=message,
            user_message=message,
            context={"field_errors": self.field_errors, **(kwargs.pop("context", None) or {})},
            **kwargs
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["fieldErrors"] = self.field_errors
        if self.errors:
            data["errors"] = self.errors
        return data


class InvalidIdError(TrackLogError):
    """Identifier is malformed (not a UUID)"""

    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs
    ):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(
            message=message,
            user_message=f"Invalid {(record_type or 'record').lower()} ID",
            context={"record_type": record_type, "record_id": record_id, **(kwargs.pop("context", None) or {})},
            **kwargs
        )


# ==========================================
# Database Errors
# ==========================================

class DatabaseError(TrackLogError):
    """
    Base class for database-related errors
    """
    pass


class ConnectionError(DatabaseError):
    """Database connection failed"""

    def __init__(self, message: str = "Database connection failed", **kwargs):
        super().__init__(
            message=message,
            user_message="We're having trouble connecting to the database. Please try again in a moment.",
            **kwargs
        )


class QueryError(DatabaseError):
    """Database query execution failed"""

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        **kwargs
    ):
        self.query = query
        super().__init__(
            message=message,
            user_message="We encountered an issue saving your data. Please try again.",
            context={"query": query, **(kwargs.pop("context", None) or {})},
            **kwargs
        )


class RecordNotFoundError(DatabaseError):
    """
    Requested record does not exist or is not accessible to the user

    Absence and missing membership are reported identically so callers
    cannot discover the existence of other users' records.
    """

    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs
    ):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(
            message=message,
            user_message=f"{record_type or 'Record'} not found",
            context={"record_type": record_type, "record_id": record_id, **(kwargs.pop("context", None) or {})},
            **kwargs
        )


# ==========================================
# Authorization
# ==========================================

class AuthorizationError(TrackLogError):
    """User lacks permission for requested operation"""

    log_level = logging.WARNING

    def __init__(
        self,
        message: str = "Insufficient permissions",
        resource: Optional[str] = None,
        **kwargs
    ):
        self.resource = resource
        super().__init__(
            message=message,
            user_message=f"You don't have permission to access {resource or 'this resource'}.",
            context={"resource": resource, **(kwargs.pop("context", None) or {})},
            **kwargs
        )


# ==========================================
# Configuration Errors
# ==========================================

class ConfigurationError(TrackLogError):
    """System configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        self.config_key = config_key
        super().__init__(
            message=message,
            user_message="The system is not properly configured. Please contact support.",
            context={"config_key": config_key, **(kwargs.pop("context", None) or {})},
            **kwargs
        )


# ==========================================
# Helper Functions
# ==========================================

def wrap_external_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> TrackLogError:
    """
    Wrap external exceptions (psycopg, etc.) into our exception hierarchy

    Args:
        error: Original exception
        operation: What operation was being performed
        user_id: User ID if applicable
        context: Additional context

    Returns:
        Appropriate TrackLogError subclass

    Example:
        try:
            await queries.insert_log_entry(entry)
        except psycopg.Error as e:
            raise wrap_external_exception(
                e,
                operation="create_log_entry",
                user_id="user-1",
            )
    """
    if isinstance(error, psycopg.OperationalError):
        return ConnectionError(
            message=f"Database connection failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )
    elif isinstance(error, psycopg.Error):
        return QueryError(
            message=f"Database query failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )

    # Generic fallback
    return TrackLogError(
        message=f"{operation} failed: {str(error)}",
        user_id=user_id,
        operation=operation,
        context=context,
        cause=error
    )
