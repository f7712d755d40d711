"""
Tracker entry validation.

Validates entry payloads against a tracker's extended JSON Schema at
runtime. The stored schema carries UI-only keywords that are not JSON
Schema; they are stripped before the schema is compiled with jsonschema.
Callers may also extend enum fields with new values at submission time.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from jsonschema import Draft7Validator, FormatChecker

from tracklog.models.schema import merge_enum_values

logger = logging.getLogger(__name__)

REQUIRED_MESSAGE = "This field is required"

# Standard keywords copied verbatim onto the validation schema
_KEPT_KEYWORDS = ("title", "description", "default", "required", "minimum", "maximum")

_format_checker = FormatChecker()


@dataclass
class ValidationResult:
    """Outcome of validating one payload"""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    field_errors: Dict[str, List[str]] = field(default_factory=dict)


def _clean_property(
    prop: Dict[str, Any],
    field_key: Optional[str],
    custom_enum_values: Dict[str, List[str]]
) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {"type": prop.get("type")}

    for keyword in _KEPT_KEYWORDS:
        if keyword in prop:
            cleaned[keyword] = prop[keyword]

    if "enum" in prop:
        custom = custom_enum_values.get(field_key, []) if field_key else []
        cleaned["enum"] = merge_enum_values(prop.get("enum") or [], custom)

    # Times arrive as HH:MM or HH:MM:SS without an offset, which the
    # RFC 3339 "time" format rejects
    if "format" in prop and prop["format"] != "time":
        cleaned["format"] = prop["format"]

    if prop.get("items"):
        cleaned["items"] = _clean_property(prop["items"], None, custom_enum_values)

    if prop.get("properties") is not None:
        cleaned["properties"] = {
            key: _clean_property(
                value,
                f"{field_key}.{key}" if field_key else key,
                custom_enum_values
            )
            for key, value in prop["properties"].items()
        }

    return cleaned


def clean_schema_for_validation(
    schema: Dict[str, Any],
    custom_enum_values: Optional[Dict[str, List[str]]] = None
) -> Dict[str, Any]:
    """
    Build the JSON Schema actually used for validation.

    - Drops UI-only keywords (dynamicCount, inputType, fallbackInputType,
      dependsOn, createLinkedLog) and anything else non-standard
    - Drops format "time"
    - Unions every enum with custom_enum_values[<dotted path>]
    """
    custom_enum_values = custom_enum_values or {}
    cleaned: Dict[str, Any] = {"type": "object", "properties": {}}

    if schema.get("required"):
        cleaned["required"] = schema["required"]

    for key, prop in (schema.get("properties") or {}).items():
        cleaned["properties"][key] = _clean_property(prop, key, custom_enum_values)

    return cleaned


def _error_field_keys(error) -> List[str]:
    """Dotted field paths a jsonschema error belongs to"""
    parent = ".".join(str(part) for part in error.absolute_path)

    if error.validator == "required":
        instance = error.instance if isinstance(error.instance, dict) else {}
        missing = [name for name in error.validator_value if name not in instance]
        return [f"{parent}.{name}" if parent else name for name in missing]

    return [parent] if parent else []


def validate_against_schema(
    schema: Dict[str, Any],
    data: Dict[str, Any],
    custom_enum_values: Optional[Dict[str, List[str]]] = None
) -> ValidationResult:
    """
    Validate entry data against a tracker schema.

    Args:
        schema: Stored tracker schema (may contain UI-only keywords)
        data: Entry payload
        custom_enum_values: Extra enum values keyed by dotted field path

    Returns:
        ValidationResult. Never raises: an unusable schema is reported as a
        single generic error.
    """
    try:
        clean_schema = clean_schema_for_validation(schema, custom_enum_values)
        Draft7Validator.check_schema(clean_schema)
        validator = Draft7Validator(clean_schema, format_checker=_format_checker)

        errors: List[str] = []
        field_errors: Dict[str, List[str]] = {}

        for error in validator.iter_errors(data):
            message = REQUIRED_MESSAGE if error.validator == "required" else error.message
            keys = _error_field_keys(error)

            if not keys:
                errors.append(f"root: {message}")
                continue

            for key in keys:
                messages = field_errors.setdefault(key, [])
                if message not in messages:
                    messages.append(message)
                    errors.append(f"{key}: {message}")

        if errors:
            return ValidationResult(is_valid=False, errors=errors, field_errors=field_errors)

        return ValidationResult(is_valid=True)

    except Exception as e:
        logger.warning(f"Schema could not be used for validation: {e}")
        return ValidationResult(
            is_valid=False,
            errors=[f"Validation error: {e}"],
            field_errors={}
        )
