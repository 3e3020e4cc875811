"""Message codec for the employee project lookup protocol.

Protocol format:
- Send: decimal UTF-8 text of the employee id, no terminator, no prefix
- Receive: UTF-8 JSON array of objects, keys matched case-insensitively

An empty (or blank) response and a JSON ``null`` both mean "no projects".
Decoding is all-or-nothing: one bad element fails the whole response.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .errors import DecodeError

# Lower-cased wire key -> AssociationRecord attribute
_REQUIRED_INT_FIELDS = {"id": "project_id"}
_OPTIONAL_INT_FIELDS = {"employeeid": "employee_id"}
_OPTIONAL_TEXT_FIELDS = {
    "title": "title",
    "description": "description",
    "position": "position",
}


@dataclass(frozen=True)
class AssociationRecord:
    """One employee-to-project assignment returned by a lookup."""

    project_id: int
    employee_id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    position: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Return the record in the wire shape the server writes."""
        return {
            "EmployeeId": self.employee_id,
            "Id": self.project_id,
            "Title": self.title,
            "Description": self.description,
            "Position": self.position,
        }


LookupResult = Tuple[AssociationRecord, ...]


def encode_identifier(identifier: int) -> bytes:
    """Encode an employee id as the request payload.

    Args:
        identifier: Employee id. No range check is applied.

    Returns:
        Decimal text of the id as UTF-8 bytes

    Raises:
        TypeError: If identifier is not an integer (bool is rejected too)
    """
    if isinstance(identifier, bool) or not isinstance(identifier, int):
        raise TypeError(f"Employee id must be an integer, got {type(identifier).__name__}")
    return str(identifier).encode('utf-8')


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _decode_record(index: int, item: Any) -> AssociationRecord:
    if not isinstance(item, dict):
        raise DecodeError(f"Element {index} is {type(item).__name__}, expected an object")

    fields: Dict[str, Any] = {}
    for key, value in item.items():
        name = key.lower()
        if name in _REQUIRED_INT_FIELDS or name in _OPTIONAL_INT_FIELDS:
            attr = _REQUIRED_INT_FIELDS.get(name) or _OPTIONAL_INT_FIELDS[name]
            if value is None and name in _OPTIONAL_INT_FIELDS:
                fields[attr] = None
            elif not _is_int(value):
                raise DecodeError(f"Element {index}: field {key!r} must be an integer")
            else:
                fields[attr] = value
        elif name in _OPTIONAL_TEXT_FIELDS:
            if value is not None and not isinstance(value, str):
                raise DecodeError(f"Element {index}: field {key!r} must be text or null")
            fields[_OPTIONAL_TEXT_FIELDS[name]] = value
        # Unknown keys are ignored

    for attr in _REQUIRED_INT_FIELDS.values():
        if attr not in fields:
            raise DecodeError(f"Element {index} is missing required field 'Id'")

    return AssociationRecord(**fields)


def decode_projects(data: bytes) -> LookupResult:
    """Decode a response buffer into a tuple of association records.

    Args:
        data: Raw response bytes as drained from the session

    Returns:
        Records in the order the server sent them, repeats preserved

    Raises:
        DecodeError: If the bytes are not UTF-8 JSON of the expected shape
    """
    try:
        text = data.decode('utf-8')
    except UnicodeDecodeError as e:
        raise DecodeError(f"Response is not valid UTF-8: {e}") from e

    if not text.strip():
        return ()

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Response is not valid JSON: {e}") from e
    except RecursionError as e:
        raise DecodeError("Response is nested too deeply to decode") from e

    if payload is None:
        return ()
    if not isinstance(payload, list):
        raise DecodeError(f"Response is a JSON {type(payload).__name__}, expected an array")

    return tuple(_decode_record(i, item) for i, item in enumerate(payload))


def encode_projects(records) -> bytes:
    """Encode records as the JSON array a server writes back."""
    return json.dumps([r.to_dict() for r in records]).encode('utf-8')
