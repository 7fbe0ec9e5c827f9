"""Encode/decode contract for JSON sub-records (options, medical checks, ...).

Sub-records are stored in JSON columns. Clients may send them either as a
JSON value or as the string encoding of one, which older front-ends do.
Decoding always yields the declared container type; an empty object or
list is stored as ``None``.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Union

from .errors import ValidationError

RawPayload = Union[str, Dict[str, Any], List[Any], None]


def _decode(raw: RawPayload, field: str) -> Any:
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValidationError(
                f"{field} is not valid JSON", code="invalid_payload", field=field
            ) from exc
    return raw


def decode_object(raw: RawPayload, field: str) -> Optional[Dict[str, Any]]:
    """Return ``raw`` as a JSON object, or ``None`` when empty."""
    value = _decode(raw, field)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValidationError(
            f"{field} must be a JSON object", code="invalid_payload", field=field
        )
    return value or None


def decode_list(raw: RawPayload, field: str) -> Optional[List[Any]]:
    """Return ``raw`` as a JSON array, or ``None`` when empty."""
    value = _decode(raw, field)
    if value is None:
        return None
    if not isinstance(value, list):
        raise ValidationError(
            f"{field} must be a JSON array", code="invalid_payload", field=field
        )
    return value or None
