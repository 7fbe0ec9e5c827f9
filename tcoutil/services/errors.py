"""Domain errors raised by services and translated at the API boundary."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional


class ValidationError(Exception):
    """A request was rejected before touching stored state.

    ``code`` is a stable machine-readable reason; ``message`` is for humans.
    """

    code = "invalid_request"

    def __init__(self, message: str, code: Optional[str] = None, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details

    def to_detail(self) -> Dict[str, Any]:
        """Payload used as the ``detail`` of the HTTP error response."""
        return {"error": self.code, "message": self.message, **self.details}


class MissingFieldsError(ValidationError):
    """One or more required request fields are absent."""

    code = "missing_required_field"

    def __init__(self, missing: List[str]) -> None:
        super().__init__(
            f"Missing required fields: {', '.join(missing)}",
            missing=list(missing),
        )
        self.missing = list(missing)


class RecordNotFoundError(Exception):
    """Raised when a referenced record does not exist."""

    def __init__(self, resource: str, identifier: Any) -> None:
        super().__init__(f"{resource} {identifier} not found")
        self.resource = resource
        self.identifier = identifier


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def require_fields(payload: Mapping[str, Any], names: Iterable[str]) -> None:
    """Raise ``MissingFieldsError`` naming every field that is absent or blank."""
    missing = [name for name in names if _is_blank(payload.get(name))]
    if missing:
        raise MissingFieldsError(missing)
