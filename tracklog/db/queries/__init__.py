"""
Database queries - Re-export all functions.

All imports like 'from tracklog.db.queries import get_tracker_by_id' and the
'from tracklog.db import queries' pattern used by the services resolve here.

Module organization:
- trackers.py: Tracker documents (shared, unique by name)
- memberships.py: Per-user active/deleted tracker lists
- logs.py: Log entries, soft and permanent deletion
- drafts.py: Unsubmitted draft entries
"""

# Tracker operations
from tracklog.db.queries.trackers import (
    get_tracker_by_id,
    get_tracker_by_name,
    get_all_trackers,
    get_trackers_by_ids,
    insert_tracker,
    update_tracker_schema,
    delete_tracker,
)

# Membership operations
from tracklog.db.queries.memberships import (
    get_membership,
    ensure_membership,
    add_tracker_to_user,
    move_tracker_to_deleted,
    set_tracker_order,
    remove_tracker_from_all_users,
)

# Log entry operations
from tracklog.db.queries.logs import (
    insert_log_entry,
    get_log_entry,
    get_log_entries,
    get_last_log_entries,
    mark_log_entry_deleted,
    delete_log_entry,
    delete_log_entries_for_tracker,
)

# Draft operations
from tracklog.db.queries.drafts import (
    insert_draft,
    get_draft,
    get_drafts,
    get_drafts_for_tracker,
    update_draft,
    delete_draft,
    delete_drafts_for_tracker,
)

__all__ = [
    # Trackers (7 functions)
    "get_tracker_by_id",
    "get_tracker_by_name",
    "get_all_trackers",
    "get_trackers_by_ids",
    "insert_tracker",
    "update_tracker_schema",
    "delete_tracker",

    # Memberships (6 functions)
    "get_membership",
    "ensure_membership",
    "add_tracker_to_user",
    "move_tracker_to_deleted",
    "set_tracker_order",
    "remove_tracker_from_all_users",

    # Log entries (7 functions)
    "insert_log_entry",
    "get_log_entry",
    "get_log_entries",
    "get_last_log_entries",
    "mark_log_entry_deleted",
    "delete_log_entry",
    "delete_log_entries_for_tracker",

    # Drafts (7 functions)
    "insert_draft",
    "get_draft",
    "get_drafts",
    "get_drafts_for_tracker",
    "update_draft",
    "delete_draft",
    "delete_drafts_for_tracker",
]
