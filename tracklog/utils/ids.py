"""Identifier parsing"""
from typing import Union
from uuid import UUID

from tracklog.exceptions import InvalidIdError


def parse_id(value: Union[str, UUID], record_type: str = "Record") -> UUID:
    """
    Parse a record identifier.

    Raises:
        InvalidIdError: If value is not a UUID
    """
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (ValueError, AttributeError, TypeError):
        raise InvalidIdError(
            message=f"Malformed {record_type.lower()} id: {value!r}",
            record_type=record_type,
            record_id=str(value)
        )
