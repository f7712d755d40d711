"""Unit tests for the tracker schema model (tracklog/models/schema.py)"""
import pytest
from pydantic import ValidationError

from tracklog.models.schema import (
    for_each_field,
    get_field,
    iter_fields,
    merge_enum_values,
    normalize_tracker_name,
    parse_tracker_schema,
    remove_enum_value,
    union_enum_values,
)


# ============================================================================
# Name normalization
# ============================================================================

@pytest.mark.parametrize("raw,expected", [
    ("Mood", "mood"),
    ("Blood Pressure", "blood_pressure"),
    ("  Blood   Pressure!  ", "blood_pressure"),
    ("Sleep\tquality", "sleep_quality"),
    ("café-log", "caflog"),
    ("!!!", ""),
])
def test_normalize_tracker_name(raw, expected):
    assert normalize_tracker_name(raw) == expected


# ============================================================================
# Structural parsing
# ============================================================================

def test_parse_tracker_schema_keeps_camel_case_keywords(drinking_schema):
    document = parse_tracker_schema(drinking_schema)

    peed = document["properties"]["peed"]
    assert peed["createLinkedLog"]["trackerName"] == "pee"
    assert peed["createLinkedLog"]["dataMapping"] == {"time": "drankAt"}
    assert document["properties"]["peeLog"]["dependsOn"] == "peed"
    assert document["type"] == "object"


def test_parse_tracker_schema_keeps_integer_bounds(cravings_schema):
    document = parse_tracker_schema(cravings_schema)

    intensity = document["properties"]["intensity"]
    assert intensity["minimum"] == 1
    assert isinstance(intensity["minimum"], int)


def test_parse_tracker_schema_rejects_non_object_root():
    with pytest.raises(ValidationError):
        parse_tracker_schema({"type": "array", "properties": {}})


def test_parse_tracker_schema_rejects_unknown_field_type():
    with pytest.raises(ValidationError):
        parse_tracker_schema({"type": "object", "properties": {"x": {"type": "date"}}})


def test_parse_tracker_schema_rejects_unknown_format():
    with pytest.raises(ValidationError):
        parse_tracker_schema({
            "type": "object",
            "properties": {"x": {"type": "string", "format": "email"}},
        })


def test_parse_tracker_schema_rejects_duplicate_required():
    with pytest.raises(ValidationError):
        parse_tracker_schema({
            "type": "object",
            "properties": {"a": {"type": "string"}},
            "required": ["a", "a"],
        })


# ============================================================================
# Field traversal
# ============================================================================

def test_for_each_field_visits_nested_paths(drinking_schema):
    visited = []
    for_each_field(drinking_schema, lambda path, node: visited.append(path))

    assert visited == ["amountMl", "drankAt", "peed", "peeLog", "peeLog.time", "peeLog.color"]


def test_iter_fields_returns_nodes(drinking_schema):
    fields = dict(iter_fields(drinking_schema))
    assert fields["peeLog.color"]["enum"] == ["clear", "yellow"]


def test_get_field(drinking_schema):
    assert get_field(drinking_schema, "peeLog.time")["format"] == "date-time"
    assert get_field(drinking_schema, "amountMl")["type"] == "number"
    assert get_field(drinking_schema, "peeLog.missing") is None
    assert get_field(drinking_schema, "amountMl.deeper") is None


# ============================================================================
# Enum union / removal
# ============================================================================

def test_merge_enum_values_preserves_order_and_dedupes():
    assert merge_enum_values(["a", "b"], ["b", "c", "c"]) == ["a", "b", "c"]


def test_union_enum_values_appends_new_values(mood_schema):
    updated, added = union_enum_values(mood_schema, {"mood": ["angry", "happy"]})

    assert updated["properties"]["mood"]["enum"] == ["happy", "sad", "angry"]
    assert added == {"mood": ["angry"]}
    # Input untouched
    assert mood_schema["properties"]["mood"]["enum"] == ["happy", "sad"]


def test_union_enum_values_nested_path(drinking_schema):
    updated, added = union_enum_values(drinking_schema, {"peeLog.color": ["dark"]})

    assert updated["properties"]["peeLog"]["properties"]["color"]["enum"] == ["clear", "yellow", "dark"]
    assert added == {"peeLog.color": ["dark"]}


def test_union_enum_values_ignores_fields_without_enum(drinking_schema):
    updated, added = union_enum_values(drinking_schema, {"amountMl": ["x"], "nope": ["y"]})

    assert added == {}
    assert "enum" not in updated["properties"]["amountMl"]


def test_union_enum_values_is_idempotent(mood_schema):
    once, _ = union_enum_values(mood_schema, {"mood": ["angry"]})
    twice, added = union_enum_values(once, {"mood": ["angry"]})

    assert twice == once
    assert added == {}


def test_remove_enum_value(mood_schema):
    updated, removed = remove_enum_value(mood_schema, "mood", "sad")

    assert removed is True
    assert updated["properties"]["mood"]["enum"] == ["happy"]
    assert mood_schema["properties"]["mood"]["enum"] == ["happy", "sad"]


def test_remove_enum_value_missing_value(mood_schema):
    updated, removed = remove_enum_value(mood_schema, "mood", "angry")

    assert removed is False
    assert updated == mood_schema


def test_get_field_matches_traversal(drinking_schema):
    for path, node in iter_fields(drinking_schema):
        assert get_field(drinking_schema, path) is node


def test_union_enum_values_skips_array_items():
    schema = {
        "type": "object",
        "properties": {
            "tags": {"type": "array", "items": {"type": "string", "enum": ["a"]}},
        },
    }

    updated, added = union_enum_values(schema, {"tags.items": ["b"], "tags": ["b"]})

    assert added == {}
    assert updated == schema
