"""Who can be paired today: people on a working shift, minus busy passengers."""

from __future__ import annotations

from dispatch.domain.assignments import is_open
from dispatch.domain.entities import ROLE_COURIER, ROLE_PASSENGER

from .storage_facade import StorageFacade


class AvailabilityService:
    def __init__(self, facade: StorageFacade) -> None:
        self.facade = facade

    def get_available_couriers(self, date: str | None = None, branch_id: str | None = None) -> list[dict]:
        return self._available(ROLE_COURIER, date, branch_id, exclude_assigned=False)

    def get_available_passengers(self, date: str | None = None, branch_id: str | None = None) -> list[dict]:
        return self._available(ROLE_PASSENGER, date, branch_id, exclude_assigned=True)

    def _available(self, role: str, date: str | None, branch_id: str | None, exclude_assigned: bool) -> list[dict]:
        facade = self.facade.pinned()
        day = date or facade.today()
        shifts = {
            shift["personId"]: shift
            for shift in facade.get_shifts(day)
            if shift.get("isWorking") is not False
        }
        busy: set[str] = set()
        if exclude_assigned:
            busy = {a.get("passengerId") for a in facade.get_assignments(day) if is_open(a)}

        rows = []
        for person in facade.get_people_by_role(role, branch_id):
            if person.get("isActive") is False or person["id"] in busy:
                continue
            shift = shifts.get(person["id"])
            if shift is None:
                continue
            rows.append(
                {
                    **person,
                    "shiftId": shift["id"],
                    "startTime": shift.get("startTime"),
                    "endTime": shift.get("endTime"),
                }
            )
        return rows
