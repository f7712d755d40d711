"""
Tracker schema model

A tracker's shape is a JSON-Schema-like document extended with UI keywords
(dynamicCount, dependsOn, createLinkedLog, inputType, fallbackInputType).
The keyword names are part of the stored document format, so the models
below accept and emit the camelCase vocabulary unchanged.

Stored schemas are handled as plain dicts everywhere past the API boundary;
the pydantic models are used to check structure when a schema is created or
replaced. The helpers in this module are pure: no validation of entry data
and no I/O.
"""
import re
from copy import deepcopy
from typing import Any, Callable, Dict, Iterable, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

FieldTypeName = Literal["string", "number", "boolean", "array", "object"]
FieldFormat = Literal["date-time", "date", "time"]

DATE_TIME_FORMATS = ("date-time", "date", "time")

# Keywords that only drive form rendering and linked-log creation
UI_ONLY_KEYWORDS = (
    "dynamicCount",
    "inputType",
    "fallbackInputType",
    "dependsOn",
    "createLinkedLog",
)


class LinkSpec(BaseModel):
    """Declares that a field spawns an entry in another tracker"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    tracker_name: str = Field(..., alias="trackerName", min_length=1)
    # targetField -> sourceField
    data_mapping: Optional[Dict[str, str]] = Field(default=None, alias="dataMapping")
    use_current_time: Optional[bool] = Field(default=None, alias="useCurrentTime")


class SchemaNode(BaseModel):
    """Field descriptor (recursive)"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: FieldTypeName
    title: Optional[str] = None
    description: Optional[str] = None
    enum: Optional[List[str]] = None
    default: Optional[Any] = None
    format: Optional[FieldFormat] = None
    items: Optional["SchemaNode"] = None
    properties: Optional[Dict[str, "SchemaNode"]] = None
    required: Optional[List[str]] = None
    minimum: Optional[Union[int, float]] = None
    maximum: Optional[Union[int, float]] = None
    dynamic_count: Optional[str] = Field(default=None, alias="dynamicCount")
    depends_on: Optional[str] = Field(default=None, alias="dependsOn")
    create_linked_log: Optional[LinkSpec] = Field(default=None, alias="createLinkedLog")
    input_type: Optional[str] = Field(default=None, alias="inputType")
    fallback_input_type: Optional[str] = Field(default=None, alias="fallbackInputType")


class TrackerSchema(BaseModel):
    """Root schema of a tracker: always an object"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: Literal["object"] = "object"
    properties: Dict[str, SchemaNode] = Field(default_factory=dict)
    required: Optional[List[str]] = None

    @field_validator("required")
    @classmethod
    def validate_required_fields(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        """Required entries must be unique"""
        if v is not None and len(set(v)) != len(v):
            raise ValueError("required must not contain duplicates")
        return v

    def to_document(self) -> Dict[str, Any]:
        """Dump back to the stored camelCase form"""
        return self.model_dump(by_alias=True, exclude_none=True)


def parse_tracker_schema(schema: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check a submitted schema document and return its normalized dict form.

    Raises:
        pydantic.ValidationError: If the document is structurally invalid
    """
    return TrackerSchema.model_validate(schema).to_document()


def normalize_tracker_name(name: str) -> str:
    """
    Normalize a tracker name: lowercase, whitespace runs to underscores,
    anything outside [a-z0-9_] dropped.

    Example:
        normalize_tracker_name("Blood Pressure!") -> "blood_pressure"
    """
    normalized = name.strip().lower()
    normalized = re.sub(r"\s+", "_", normalized)
    return re.sub(r"[^a-z0-9_]", "", normalized)


def for_each_field(
    schema: Dict[str, Any],
    visit: Callable[[str, Dict[str, Any]], None],
    prefix: str = ""
) -> None:
    """
    Call visit(path, node) for every property in the schema, depth-first.

    Nested object properties are addressed by dot-joined paths
    ("peeLog.time"). Array item schemas are not properties and are not
    visited on their own.
    """
    for key, node in (schema.get("properties") or {}).items():
        if not isinstance(node, dict):
            continue
        path = f"{prefix}.{key}" if prefix else key
        visit(path, node)
        if node.get("properties"):
            for_each_field(node, visit, path)


def iter_fields(schema: Dict[str, Any]) -> List[Tuple[str, Dict[str, Any]]]:
    """Collect (path, node) pairs in for_each_field order"""
    fields: List[Tuple[str, Dict[str, Any]]] = []
    for_each_field(schema, lambda path, node: fields.append((path, node)))
    return fields


def get_field(schema: Dict[str, Any], path: str) -> Optional[Dict[str, Any]]:
    """Resolve a dotted field path to its node (the node itself, not a copy)"""
    return dict(iter_fields(schema)).get(path)


def _dedupe(values: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def merge_enum_values(existing: Iterable[str], additions: Iterable[str]) -> List[str]:
    """Order-preserving, de-duplicated union of two enum lists"""
    return _dedupe([*existing, *additions])


def union_enum_values(
    schema: Dict[str, Any],
    additions: Optional[Dict[str, List[str]]]
) -> Tuple[Dict[str, Any], Dict[str, List[str]]]:
    """
    Append caller-supplied enum values to the schema.

    Only fields that already declare an enum are extended; paths that do
    not resolve to such a field are ignored. The operation only ever adds
    values, so applying it twice, or applying two submissions in either
    order, converges on the same set of values.

    Returns:
        Tuple of (new_schema, added) where added maps each field path to
        the values that were not present before. The input schema is not
        modified.
    """
    updated = deepcopy(schema)
    added: Dict[str, List[str]] = {}

    for path, values in (additions or {}).items():
        node = get_field(updated, path)
        if node is None or node.get("enum") is None:
            continue
        current = list(node["enum"])
        new_values = [v for v in _dedupe(values) if v not in current]
        if new_values:
            node["enum"] = current + new_values
            added[path] = new_values

    return updated, added


def remove_enum_value(
    schema: Dict[str, Any],
    path: str,
    value: str
) -> Tuple[Dict[str, Any], bool]:
    """
    Remove a single value from the enum at path.

    Returns:
        Tuple of (new_schema, removed)
    """
    updated = deepcopy(schema)
    node = get_field(updated, path)
    if node is None or not node.get("enum") or value not in node["enum"]:
        return updated, False

    node["enum"] = [v for v in node["enum"] if v != value]
    return updated, True
