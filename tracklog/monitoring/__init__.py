"""Monitoring infrastructure for tracklog"""
from tracklog.monitoring.sentry_config import init_sentry, capture_exception
from tracklog.monitoring.prometheus_metrics import (
    metrics,
    track_request,
    track_log_entry_created,
    track_linked_log_skipped,
    track_enum_values_added,
    track_validation_failure
)

__all__ = [
    "init_sentry",
    "capture_exception",
    "metrics",
    "track_request",
    "track_log_entry_created",
    "track_linked_log_skipped",
    "track_enum_values_added",
    "track_validation_failure"
]
