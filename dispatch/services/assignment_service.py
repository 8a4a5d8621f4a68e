"""Assignment use cases on top of the status state machine."""

from __future__ import annotations

from typing import Any, Mapping

from loguru import logger

from dispatch.core.errors import InvalidTransition, NotFound
from dispatch.domain.assignments import (
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    check_status_change,
    ensure_transition,
    is_open,
)

from .notifications import NotificationDispatcher
from .storage_facade import StorageFacade

PARTIES = {"courier": "courierConfirmed", "passenger": "passengerConfirmed"}


class AssignmentService:
    def __init__(self, facade: StorageFacade, notifier: NotificationDispatcher) -> None:
        self.facade = facade
        self.notifier = notifier

    def _require(self, facade: StorageFacade, assignment_id: str) -> dict:
        assignment = facade.get_assignment_by_id(assignment_id)
        if assignment is None:
            raise NotFound(f"Assignment {assignment_id} not found")
        return assignment

    def _announce(self, facade: StorageFacade, assignment: Mapping[str, Any], message: str) -> None:
        for person_id in (assignment.get("courierId"), assignment.get("passengerId")):
            if person_id:
                self.notifier.notify_person(person_id, message, facade=facade)

    def create_assignment(self, data: Mapping[str, Any]) -> dict:
        """Pair a courier with a passenger. New assignments always start as ``assigned``."""
        facade = self.facade.pinned()
        parties = []
        for key in ("courierId", "passengerId"):
            person = facade.get_person_by_id(data.get(key))
            if person is None:
                raise NotFound(f"{key} {data.get(key)!r} does not match a person")
            parties.append(person)
        assignment = facade.add_assignment(data)
        when = f"{assignment.get('date')} {assignment.get('assignedTime') or ''}".strip()
        message = f"New trip on {when}: {assignment.get('pickupAddress')} -> {assignment.get('dropoffAddress')}"
        for person in parties:
            self.notifier.notify_person(person, message)
        logger.info(
            "[assignments] {} created ({} -> {})",
            assignment["id"],
            assignment.get("courierId"),
            assignment.get("passengerId"),
        )
        return assignment

    def _transition(self, facade: StorageFacade, assignment_id: str, target: str) -> dict:
        assignment = self._require(facade, assignment_id)
        status = ensure_transition(assignment.get("status"), target)
        return facade.update_assignment(assignment_id, {"status": status})

    def cancel_assignment(self, assignment_id: str) -> dict:
        facade = self.facade.pinned()
        updated = self._transition(facade, assignment_id, STATUS_CANCELLED)
        self._announce(facade, updated, f"Trip on {updated.get('date')} was cancelled.")
        return updated

    def complete_assignment(self, assignment_id: str) -> dict:
        return self._transition(self.facade.pinned(), assignment_id, STATUS_COMPLETED)

    def update_assignment(self, assignment_id: str, changes: Mapping[str, Any]) -> dict:
        facade = self.facade.pinned()
        assignment = self._require(facade, assignment_id)
        changes = {k: v for k, v in changes.items() if k not in ("id", "createdAt", "updatedAt")}
        if "status" in changes:
            changes["status"] = check_status_change(assignment.get("status"), changes["status"])
        return facade.update_assignment(assignment_id, changes)

    def confirm_assignment(self, assignment_id: str, party: str) -> dict:
        field_name = PARTIES.get((party or "").lower())
        if field_name is None:
            raise ValueError(f"Unknown party {party!r}; expected courier or passenger")
        facade = self.facade.pinned()
        assignment = self._require(facade, assignment_id)
        if not is_open(assignment):
            raise InvalidTransition(f"Assignment {assignment_id} is already {assignment.get('status')}")
        return facade.update_assignment(assignment_id, {field_name: True})

    def remove_assignment(self, assignment_id: str) -> dict:
        facade = self.facade.pinned()
        assignment = self._require(facade, assignment_id)
        if is_open(assignment):
            self._announce(facade, assignment, f"Trip on {assignment.get('date')} was removed by the dispatcher.")
        return facade.delete_assignment(assignment_id)
