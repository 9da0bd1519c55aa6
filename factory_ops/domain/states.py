from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Tuple, Type

from factory_ops.errors import ConflictError
from factory_ops.ui_strings import status_label


class PurchaseRequestState(str, Enum):
    OPEN = "open"
    BEING_QUOTED = "being_quoted"
    HAS_BUDGETS = "has_budgets"
    CLOSED = "closed"
    RECEIVED = "received"


class QuotationState(str, Enum):
    ISSUED = "issued"
    HAS_BUDGETS = "has_budgets"
    FINALIZED = "finalized"


class BudgetState(str, Enum):
    RESPONDED = "responded"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class DeliveryNoteState(str, Enum):
    PENDING = "pending"
    RECEIVED = "received"
    DISPUTED = "disputed"
    REDELIVERED = "redelivered"


ENTITY_STATES: Dict[str, Type[Enum]] = {
    "purchase_request": PurchaseRequestState,
    "quotation": QuotationState,
    "budget": BudgetState,
    "delivery_note": DeliveryNoteState,
}


TRANSITIONS: Dict[str, FrozenSet[Tuple[str, str]]] = {
    "purchase_request": frozenset(
        {
            ("open", "being_quoted"),
            ("being_quoted", "has_budgets"),
            ("being_quoted", "closed"),
            ("has_budgets", "closed"),
            ("closed", "received"),
        }
    ),
    "quotation": frozenset(
        {
            ("issued", "has_budgets"),
            # Additional budget lines keep the quotation in place.
            ("has_budgets", "has_budgets"),
            ("issued", "finalized"),
            ("has_budgets", "finalized"),
        }
    ),
    "budget": frozenset(
        {
            ("responded", "accepted"),
            ("responded", "rejected"),
        }
    ),
    "delivery_note": frozenset(
        {
            ("pending", "received"),
            ("pending", "disputed"),
            ("disputed", "redelivered"),
        }
    ),
}


def _value(state) -> str:
    if isinstance(state, Enum):
        return str(state.value)
    return str(state or "").strip()


def parse_state(entity: str, value: str | None):
    """Return the enum member for ``value`` or None when it is not a known state."""
    enum_cls = ENTITY_STATES[entity]
    try:
        return enum_cls(str(value or "").strip().lower())
    except ValueError:
        return None


def can_transition(entity: str, current, target) -> bool:
    return (_value(current), _value(target)) in TRANSITIONS.get(entity, frozenset())


def required_states(entity: str, target) -> list[str]:
    target_value = _value(target)
    return sorted(source for source, dest in TRANSITIONS.get(entity, frozenset()) if dest == target_value)


def transition(entity: str, current, target, *, code: str | None = None):
    """Validate a state move and return the target enum member.

    Raises ConflictError naming the current state and the states from which
    ``target`` is reachable.
    """
    if entity not in TRANSITIONS:
        raise KeyError(entity)
    if not can_transition(entity, current, target):
        current_value = _value(current)
        target_value = _value(target)
        raise ConflictError(
            code=code,
            details=f"{entity} {current_value} -> {target_value} not allowed",
            payload={
                "entity": entity,
                "current_state": current_value,
                "current_state_label": status_label(entity, current_value),
                "target_state": target_value,
                "required_states": required_states(entity, target_value),
            },
        )
    return ENTITY_STATES[entity](_value(target))
