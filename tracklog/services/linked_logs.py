"""
Linked log discovery and payload building

A tracker schema can declare that submitting an entry also creates an entry
in another tracker, in one of two styles:

- flag: a field carries createLinkedLog; when its submitted value is truthy
  the linked entry is built from createLinkedLog.dataMapping alone
- nestedObject: an object field F declares dependsOn = D; when data[D] is
  true and data[F] is an object, the linked entry is data[F] itself, with
  D's createLinkedLog.dataMapping filling any empty targets

Both styles resolve to LinkTrigger values before anything is looked up or
written. Everything here is pure; the service does the I/O.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from tracklog.models.schema import DATE_TIME_FORMATS, normalize_tracker_name
from tracklog.utils.datetime_helpers import format_date, format_iso_z, format_time

logger = logging.getLogger(__name__)

LinkKind = Literal["flag", "nestedObject"]


@dataclass
class LinkTrigger:
    """One linked log to attempt"""
    kind: LinkKind
    field: str
    link: Dict[str, Any]
    depends_on: Optional[str] = None
    nested: Dict[str, Any] = field(default_factory=dict)

    @property
    def tracker_name(self) -> str:
        return self.link.get("trackerName", "")

    @property
    def data_mapping(self) -> Dict[str, str]:
        return self.link.get("dataMapping") or {}

    @property
    def use_current_time(self) -> bool:
        value = self.link.get("useCurrentTime")
        return True if value is None else bool(value)


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def derive_tracker_name(field_name: str) -> str:
    """
    Guess a tracker name from a nested object field name.

    Example:
        derive_tracker_name("peeLog") -> "pee"
    """
    name = field_name.lower()
    if name.endswith("log"):
        name = name[:-len("log")]
    return normalize_tracker_name(name)


def discover_link_triggers(
    schema: Dict[str, Any],
    data: Dict[str, Any],
    allow_name_fallback: bool = False
) -> List[LinkTrigger]:
    """
    Find the linked logs a submission asks for.

    A field D that some nested object depends on, and that carries its own
    createLinkedLog, is handled only through the nested object, never as a
    flag as well.
    """
    properties = schema.get("properties") or {}

    covered = set()
    for prop in properties.values():
        depends_on = prop.get("dependsOn")
        if prop.get("type") == "object" and depends_on:
            if (properties.get(depends_on) or {}).get("createLinkedLog"):
                covered.add(depends_on)

    triggers: List[LinkTrigger] = []

    for name, prop in properties.items():
        link = prop.get("createLinkedLog")
        if link and name not in covered and data.get(name):
            triggers.append(LinkTrigger(kind="flag", field=name, link=link))

        depends_on = prop.get("dependsOn")
        if prop.get("type") != "object" or not depends_on:
            continue
        if data.get(depends_on) is not True or not isinstance(data.get(name), dict):
            continue

        parent_link = (properties.get(depends_on) or {}).get("createLinkedLog")
        if parent_link:
            triggers.append(LinkTrigger(
                kind="nestedObject",
                field=name,
                link=parent_link,
                depends_on=depends_on,
                nested=data[name]
            ))
        elif allow_name_fallback:
            derived = derive_tracker_name(name)
            logger.debug(f"Using name-derived linked tracker '{derived}' for field {name}")
            triggers.append(LinkTrigger(
                kind="nestedObject",
                field=name,
                link={"trackerName": derived},
                depends_on=depends_on,
                nested=data[name]
            ))

    return triggers


def _stamp(fmt: str, moment: datetime) -> str:
    if fmt == "date":
        return format_date(moment)
    if fmt == "time":
        return format_time(moment)
    return format_iso_z(moment)


def build_linked_payload(
    trigger: LinkTrigger,
    data: Dict[str, Any],
    target_schema: Dict[str, Any],
    primary_created_at: datetime,
    now: datetime
) -> Dict[str, Any]:
    """
    Build the entry data for the linked tracker.

    dataMapping maps targetField -> sourceField, sources read from the
    primary submission. Unset top-level date-time/date/time fields of the
    target are then filled from now (useCurrentTime, the default) or from
    the primary entry's createdAt.
    """
    if trigger.kind == "nestedObject":
        payload = dict(trigger.nested)
        for target, source in trigger.data_mapping.items():
            if _is_empty(payload.get(target)) and not _is_empty(data.get(source)):
                payload[target] = data[source]
    else:
        payload = {
            target: data[source]
            for target, source in trigger.data_mapping.items()
            if not _is_empty(data.get(source))
        }

    moment = now if trigger.use_current_time else primary_created_at
    for key, prop in (target_schema.get("properties") or {}).items():
        fmt = prop.get("format")
        if fmt in DATE_TIME_FORMATS and _is_empty(payload.get(key)):
            payload[key] = _stamp(fmt, moment)

    return payload
