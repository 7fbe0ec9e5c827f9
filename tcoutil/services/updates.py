"""Partial-update instructions for resource PUT endpoints.

Each field of an update request resolves to one of three instructions:
leave it alone, set it to a value, or clear it. Only fields the caller sent
are touched, and an explicit ``null`` is distinguishable from "not sent".
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable, Collection, Dict, Mapping, Optional

from pydantic import BaseModel

from .errors import ValidationError


class UpdateKind(enum.Enum):
    UNCHANGED = "unchanged"
    SET = "set"
    CLEAR = "clear"


@dataclass(frozen=True)
class FieldUpdate:
    """What to do with one column of a stored record."""

    kind: UpdateKind
    value: Any = None

    @classmethod
    def unchanged(cls) -> "FieldUpdate":
        return cls(UpdateKind.UNCHANGED)

    @classmethod
    def set_to(cls, value: Any) -> "FieldUpdate":
        return cls(UpdateKind.SET, value)

    @classmethod
    def clear(cls) -> "FieldUpdate":
        return cls(UpdateKind.CLEAR)

    @property
    def touches(self) -> bool:
        return self.kind is not UpdateKind.UNCHANGED


UpdatePlan = Dict[str, FieldUpdate]


def plan_updates(
    payload: BaseModel,
    *,
    blank_clears: Collection[str] = (),
    converters: Optional[Mapping[str, Callable[[Any], Any]]] = None,
) -> UpdatePlan:
    """Translate a parsed request body into per-field instructions.

    Args:
        payload: Request model; only fields present in the JSON body count.
        blank_clears: Fields for which an empty string means "clear".
        converters: Optional per-field normalisers applied to set values.

    Returns:
        Mapping of every declared field name to its ``FieldUpdate``.
    """
    converters = converters or {}
    sent = payload.model_fields_set
    plan: UpdatePlan = {}

    for name in type(payload).model_fields:
        if name not in sent:
            plan[name] = FieldUpdate.unchanged()
            continue
        value = getattr(payload, name)
        if value is None or (name in blank_clears and value == ""):
            plan[name] = FieldUpdate.clear()
            continue
        convert = converters.get(name)
        plan[name] = FieldUpdate.set_to(convert(value) if convert else value)

    return plan


def apply_updates(
    record: Any,
    plan: UpdatePlan,
    *,
    required: Collection[str] = (),
    column_names: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """Apply ``plan`` to an ORM record and return the changed columns.

    Raises:
        ValidationError: If a field listed in ``required`` would be cleared.
    """
    column_names = column_names or {}
    changed: Dict[str, Any] = {}

    for name, update in plan.items():
        if not update.touches:
            continue
        if update.kind is UpdateKind.CLEAR and name in required:
            raise ValidationError(
                f"{name} cannot be cleared", code="cannot_clear_field", field=name
            )
        attribute = column_names.get(name, name)
        value = update.value if update.kind is UpdateKind.SET else None
        setattr(record, attribute, value)
        changed[attribute] = value

    return changed
