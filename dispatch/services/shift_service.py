"""
Shift lifecycle use cases: opening, editing and closing shifts, the daily
wipe and person removal.

Every operation pins the facade when it starts so a concurrent policy switch
cannot split a cascade across backends.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from loguru import logger

from dispatch.core.errors import ConstraintViolation, DuplicateShift, NotFound, StorageError
from dispatch.domain.assignments import counterpart_of, is_open

from .notifications import NotificationDispatcher
from .storage_facade import StorageFacade


@dataclass
class CloseShiftResult:
    shift: dict
    person: Optional[dict]
    removed_assignments: list[dict] = field(default_factory=list)
    notified: list[str] = field(default_factory=list)


@dataclass
class DeletePersonResult:
    person: dict
    removed_shifts: int
    removed_assignments: int


def _cancellation_message(assignment: Mapping[str, Any], person: Optional[Mapping[str, Any]]) -> str:
    who = (person or {}).get("displayName") or "The other party"
    when = assignment.get("date") or ""
    if assignment.get("assignedTime"):
        when = f"{when} {assignment['assignedTime']}".strip()
    return f"Your trip on {when} was cancelled: {who} ended their shift."


class ShiftService:
    def __init__(self, facade: StorageFacade, notifier: NotificationDispatcher) -> None:
        self.facade = facade
        self.notifier = notifier

    def open_shift(
        self,
        person_id: str,
        branch_id: str | None,
        start_time: str | None,
        end_time: str | None,
        destination_address: str | None = None,
        date: str | None = None,
    ) -> dict:
        """
        Create today's (or ``date``'s) shift for a person.

        Raises NotFound for an unknown person and DuplicateShift when the
        person already has a shift on that date. The person's ``workUntil``
        and, when given, ``homeAddress`` are updated to match the shift.
        """
        facade = self.facade.pinned()
        person = facade.get_person_by_id(person_id)
        if person is None:
            raise NotFound(f"Person {person_id} not found")
        day = date or facade.today()
        if facade.find_shift(person_id, day) is not None:
            raise DuplicateShift(f"Person {person_id} already has a shift on {day}")
        try:
            shift = facade.add_shift(
                {
                    "personId": person_id,
                    "branchId": branch_id or person.get("branchId"),
                    "date": day,
                    "startTime": start_time,
                    "endTime": end_time,
                    "isWorking": True,
                    "destinationAddress": destination_address,
                }
            )
        except ConstraintViolation as exc:
            # lost a race against another open_shift for the same day
            if facade.find_shift(person_id, day) is not None:
                raise DuplicateShift(f"Person {person_id} already has a shift on {day}") from exc
            raise
        changes: dict[str, Any] = {"workUntil": end_time}
        if destination_address:
            changes["homeAddress"] = destination_address
        facade.update_person(person_id, changes)
        logger.info("[shifts] opened shift {} for {} on {}", shift["id"], person_id, day)
        return shift

    def update_shift(self, shift_id: str, changes: Mapping[str, Any]) -> dict:
        facade = self.facade.pinned()
        shift = facade.get_shift_by_id(shift_id)
        if shift is None:
            raise NotFound(f"Shift {shift_id} not found")
        changes = {k: v for k, v in changes.items() if k not in ("id", "createdAt", "updatedAt")}
        merged = {**shift, **changes}
        if (merged.get("personId"), merged.get("date")) != (shift.get("personId"), shift.get("date")):
            existing = facade.find_shift(merged["personId"], merged["date"])
            if existing is not None and existing["id"] != shift_id:
                raise DuplicateShift(f"Person {merged['personId']} already has a shift on {merged['date']}")
        updated = facade.update_shift(shift_id, changes)
        person_changes: dict[str, Any] = {}
        if "endTime" in changes:
            person_changes["workUntil"] = changes["endTime"]
        if changes.get("destinationAddress"):
            person_changes["homeAddress"] = changes["destinationAddress"]
        if person_changes and updated.get("personId"):
            facade.update_person(updated["personId"], person_changes)
        return updated

    def close_shift(self, shift_id: str) -> CloseShiftResult:
        """
        End a shift. Each open assignment of the shift owner on that date is
        announced to its counterpart and then deleted; the shift goes last.
        """
        facade = self.facade.pinned()
        shift = facade.get_shift_by_id(shift_id)
        if shift is None:
            raise NotFound(f"Shift {shift_id} not found")
        person_id = shift["personId"]
        person = facade.get_person_by_id(person_id)
        result = CloseShiftResult(shift=shift, person=person)

        for assignment in facade.get_assignments_for_person(person_id, shift["date"]):
            if not is_open(assignment):
                continue
            counterpart = counterpart_of(assignment, person_id)
            if counterpart:
                self.notifier.notify_person(counterpart, _cancellation_message(assignment, person), facade=facade)
                result.notified.append(counterpart)
            facade.delete_assignment(assignment["id"])
            result.removed_assignments.append(assignment)

        facade.delete_shift(shift_id)
        logger.info(
            "[shifts] closed shift {} of {}; {} assignments removed",
            shift_id,
            person_id,
            len(result.removed_assignments),
        )
        return result

    def reset_all_shifts(self, facade: Optional[StorageFacade] = None) -> int:
        """Delete every shift held by the backend that owns shifts under the current policy."""
        facade = facade or self.facade.pinned()
        removed = facade.clear_shifts()
        logger.info("[shifts] daily reset removed {} shifts ({} policy)", removed, facade.policy.value)
        return removed

    def sync_people_with_shifts(self, date: str | None = None) -> int:
        """
        Copy each shift's ``endTime`` and ``destinationAddress`` back onto its
        person when they drifted apart. Returns how many people were updated.
        """
        facade = self.facade.pinned()
        day = date or facade.today()
        synced = 0
        for shift in facade.get_shifts(day):
            person = facade.get_person_by_id(shift.get("personId"))
            if person is None:
                continue
            changes: dict[str, Any] = {}
            if shift.get("endTime") and person.get("workUntil") != shift["endTime"]:
                changes["workUntil"] = shift["endTime"]
            address = shift.get("destinationAddress")
            if address and person.get("homeAddress") != address:
                changes["homeAddress"] = address
            if not changes:
                continue
            try:
                facade.update_person(person["id"], changes)
            except StorageError as exc:
                logger.warning("[people] could not sync {} with shift {}: {}", person["id"], shift["id"], exc)
                continue
            logger.info("[people] synced {} with shift {}: {}", person["id"], shift["id"], changes)
            synced += 1
        logger.info("[people] sync with shifts for {} updated {} people", day, synced)
        return synced

    def delete_person(self, person_id: str) -> DeletePersonResult:
        """Remove a person with all their shifts and assignments; NotFound if the person is gone."""
        facade = self.facade.pinned()
        shifts = facade.get_shifts_for_person(person_id)
        for shift in shifts:
            facade.delete_shift(shift["id"])
        assignments = facade.get_assignments_for_person(person_id)
        for assignment in assignments:
            facade.delete_assignment(assignment["id"])
        person = facade.delete_person(person_id)
        logger.info(
            "[people] deleted {} with {} shifts and {} assignments",
            person_id,
            len(shifts),
            len(assignments),
        )
        return DeletePersonResult(person=person, removed_shifts=len(shifts), removed_assignments=len(assignments))
