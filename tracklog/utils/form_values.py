"""
Conversion between stored entry values and editable form values.

Entries and drafts store date-times as ISO 8601 UTC strings and times as
HH:MM:SS. Form inputs work with "YYYY-MM-DDTHH:MM" local date-times and
HH:MM times. The two directions are inverse for ISO-normalized values:

    to_iso_data(to_form_data(data, props), props) == data
"""
import logging
from copy import deepcopy
from datetime import datetime, timezone, tzinfo
from typing import Any, Dict, Optional

from tracklog.models.schema import iter_fields
from tracklog.utils.datetime_helpers import (
    FULL_TIME_RE,
    ISO_DATETIME_RE,
    LOCAL_DATETIME_RE,
    SHORT_TIME_RE,
    format_iso_z,
    parse_iso_datetime,
)

logger = logging.getLogger(__name__)


def iso_to_local_datetime(value: Any, tz: Optional[tzinfo] = None) -> Any:
    """
    Convert an ISO date-time to the form's local representation.

    Seconds and milliseconds are kept only when non-zero so that the value
    converts back without loss. Non-ISO values are returned unchanged.
    """
    if not isinstance(value, str) or not ISO_DATETIME_RE.match(value):
        return value

    parsed = parse_iso_datetime(value)
    if parsed is None:
        return value

    local = parsed.astimezone(tz or timezone.utc)
    text = local.strftime("%Y-%m-%dT%H:%M")
    if local.second or local.microsecond:
        text += local.strftime(":%S")
    if local.microsecond:
        text += f".{local.microsecond // 1000:03d}"
    return text


def local_datetime_to_iso(value: Any, tz: Optional[tzinfo] = None) -> Any:
    """
    Convert a form date-time (no offset, interpreted in tz) to ISO UTC.

    Values that already carry an offset are rewritten in the stored
    "YYYY-MM-DDTHH:MM:SS.mmmZ" form; anything else is returned unchanged.
    """
    if not isinstance(value, str):
        return value

    if ISO_DATETIME_RE.match(value):
        parsed = parse_iso_datetime(value)
        return format_iso_z(parsed) if parsed is not None else value

    if not LOCAL_DATETIME_RE.match(value):
        return value

    try:
        naive = datetime.fromisoformat(value)
    except ValueError:
        logger.debug(f"Unparseable form date-time: {value!r}")
        return value
    return format_iso_z(naive.replace(tzinfo=tz or timezone.utc))


def time_to_form(value: Any) -> Any:
    """HH:MM:00 -> HH:MM"""
    if isinstance(value, str) and FULL_TIME_RE.match(value) and value.endswith(":00"):
        return value[:5]
    return value


def time_to_iso(value: Any) -> Any:
    """HH:MM -> HH:MM:00"""
    if isinstance(value, str) and SHORT_TIME_RE.match(value):
        return f"{value}:00"
    return value


def _convert(
    data: Dict[str, Any],
    properties: Dict[str, Any],
    convert_datetime,
    convert_time
) -> Dict[str, Any]:
    converted = deepcopy(data)

    for path, prop in iter_fields({"properties": properties}):
        if prop.get("format") not in ("date-time", "time"):
            continue

        *parents, key = path.split(".")
        container: Any = converted
        for part in parents:
            container = container.get(part) if isinstance(container, dict) else None
        if not isinstance(container, dict):
            continue

        value = container.get(key)
        if value in (None, ""):
            continue

        if prop["format"] == "date-time":
            container[key] = convert_datetime(value)
        else:
            container[key] = convert_time(value)

    return converted


def to_form_data(
    data: Dict[str, Any],
    properties: Dict[str, Any],
    tz: Optional[tzinfo] = None
) -> Dict[str, Any]:
    """Convert stored (ISO) values into form values, including nested objects"""
    return _convert(
        data,
        properties,
        lambda value: iso_to_local_datetime(value, tz),
        time_to_form
    )


def to_iso_data(
    data: Dict[str, Any],
    properties: Dict[str, Any],
    tz: Optional[tzinfo] = None
) -> Dict[str, Any]:
    """Convert form values back into stored (ISO) values"""
    return _convert(
        data,
        properties,
        lambda value: local_datetime_to_iso(value, tz),
        time_to_iso
    )


def is_truthy(value: Any) -> bool:
    """Form truthiness: None, False, "", 0 and empty containers are off"""
    return bool(value)


def strip_disabled_nested_objects(
    data: Dict[str, Any],
    properties: Dict[str, Any]
) -> Dict[str, Any]:
    """Drop nested objects whose dependsOn field is switched off"""
    result = dict(data)
    for key, prop in properties.items():
        if prop.get("type") == "object" and prop.get("properties") and prop.get("dependsOn"):
            if not is_truthy(result.get(prop["dependsOn"])):
                result.pop(key, None)
    return result
