"""Locator (reading position) decoding and validation.

A locator is produced by the external renderer and describes an exact
position inside a document. The engine treats it as opaque except for
the fields it needs to validate an incoming event:

    {
        "bookId": "...",
        "href": "chapter-3.xhtml",
        "created": 1718000000000,
        "locations": {"cfi": "epubcfi(/6/8!/4/2)", "progression": 0.42}
    }

The empty object ``{}`` is the sentinel for "start of document".
"""

import json
from typing import Any, Dict, Union

from epub_library.core.errors import DecodeError

EMPTY_LOCATOR: Dict[str, Any] = {}

REQUIRED_FIELDS = ("bookId", "href", "created")

LocatorPayload = Union[str, bytes, Dict[str, Any]]


def decode_locator(payload: LocatorPayload) -> Dict[str, Any]:
    """Decode a serialized locator into a dict.

    Args:
        payload: JSON text or an already decoded mapping.

    Returns:
        The decoded locator (``{}`` for an empty payload).

    Raises:
        DecodeError: If the payload is not JSON or not a JSON object.
    """
    if isinstance(payload, dict):
        return dict(payload)
    if payload is None:
        return dict(EMPTY_LOCATOR)
    if not isinstance(payload, (str, bytes)):
        raise DecodeError(f"Unsupported locator payload type: {type(payload).__name__}")
    if not payload.strip():
        return dict(EMPTY_LOCATOR)
    try:
        decoded = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(f"Locator is not valid JSON: {e}") from e
    if not isinstance(decoded, dict):
        raise DecodeError("Locator must be a JSON object")
    return decoded


def encode_locator(locator: Dict[str, Any]) -> str:
    """Serialize a locator for storage."""
    return json.dumps(locator or EMPTY_LOCATOR, ensure_ascii=False, sort_keys=True)


def is_empty_locator(locator: Dict[str, Any]) -> bool:
    return not locator


def missing_fields(locator: Dict[str, Any]) -> list[str]:
    """Return the names of required locator fields that are absent."""
    missing = [name for name in REQUIRED_FIELDS if locator.get(name) in (None, "")]
    locations = locator.get("locations")
    cfi = locations.get("cfi") if isinstance(locations, dict) else None
    if not isinstance(cfi, str) or not cfi:
        missing.append("locations.cfi")
    return missing


def is_valid_locator(locator: Dict[str, Any]) -> bool:
    return not missing_fields(locator)
