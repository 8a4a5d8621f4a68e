"""Assignment status rules."""
from __future__ import annotations

from typing import Mapping, Any

from dispatch.core.errors import InvalidTransition

STATUS_ASSIGNED = "assigned"
STATUS_CANCELLED = "cancelled"
STATUS_COMPLETED = "completed"

TERMINAL_STATUSES = {STATUS_CANCELLED, STATUS_COMPLETED}
TRANSITIONS = {
    STATUS_ASSIGNED: {STATUS_CANCELLED, STATUS_COMPLETED},
    STATUS_CANCELLED: set(),
    STATUS_COMPLETED: set(),
}


def is_terminal(status: str | None) -> bool:
    return (status or "") in TERMINAL_STATUSES


def is_open(assignment: Mapping[str, Any] | None) -> bool:
    """True for assignments that still hold both parties (not terminal)."""
    if not assignment:
        return False
    return not is_terminal(assignment.get("status"))


def ensure_transition(current: str | None, target: str | None) -> str:
    """Validate ``current -> target`` and return the target status."""
    current_value = (current or "").strip().lower()
    target_value = (target or "").strip().lower()
    if target_value not in TRANSITIONS:
        raise InvalidTransition(f"Unknown assignment status: {target!r}")
    allowed = TRANSITIONS.get(current_value)
    if allowed is None:
        raise InvalidTransition(f"Unknown assignment status: {current!r}")
    if target_value not in allowed:
        raise InvalidTransition(f"Cannot move assignment from {current_value} to {target_value}")
    return target_value


def counterpart_of(assignment: Mapping[str, Any], person_id: str) -> str | None:
    """Return the id of the other party of ``assignment`` relative to ``person_id``."""
    if assignment.get("courierId") == person_id:
        return assignment.get("passengerId")
    if assignment.get("passengerId") == person_id:
        return assignment.get("courierId")
    return None


def check_status_change(current: str | None, target: str | None) -> str:
    """
    Normalise a requested status. Re-stating the current non-terminal status
    is allowed; anything else must be a valid transition.
    """
    target_value = (target or "").strip().lower()
    if target_value == (current or "").strip().lower() and not is_terminal(target_value):
        return target_value
    return ensure_transition(current, target)
