"""
Single entry point to the data layer.

The facade holds the backend-selection policy and forwards each call to the
driver that owns the entity type under that policy. Drivers speak the stored
snake_case naming; everything returned from here is camelCase.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from loguru import logger

from dispatch.core.errors import BackendUnavailable, NotFound
from dispatch.domain import entities
from dispatch.domain.assignments import STATUS_ASSIGNED, STATUS_CANCELLED, STATUS_COMPLETED, check_status_change
from dispatch.domain.entities import ASSIGNMENTS, BRANCHES, CONFIG, PEOPLE, SHIFTS
from dispatch.domain.naming import camel_to_snake, to_external, to_internal
from dispatch.repositories.base import BaseStore

LOCAL = "local"
RELATIONAL = "relational"
BLOB = "blob"


class StoragePolicy(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"
    HYBRID = "hybrid"


ROUTES: dict[StoragePolicy, dict[str, str]] = {
    StoragePolicy.LOCAL: {PEOPLE: LOCAL, BRANCHES: LOCAL, SHIFTS: LOCAL, ASSIGNMENTS: LOCAL, CONFIG: LOCAL},
    StoragePolicy.REMOTE: {
        PEOPLE: RELATIONAL,
        BRANCHES: RELATIONAL,
        SHIFTS: RELATIONAL,
        ASSIGNMENTS: RELATIONAL,
        CONFIG: LOCAL,
    },
    StoragePolicy.HYBRID: {PEOPLE: RELATIONAL, BRANCHES: RELATIONAL, SHIFTS: BLOB, ASSIGNMENTS: BLOB, CONFIG: BLOB},
}


def parse_policy(value: str | StoragePolicy) -> StoragePolicy:
    try:
        return StoragePolicy(str(getattr(value, "value", value)).strip().lower())
    except ValueError:
        choices = ", ".join(p.value for p in StoragePolicy)
        raise ValueError(f"Unknown storage policy {value!r}; expected one of: {choices}") from None


class StorageFacade:
    def __init__(
        self,
        drivers: Mapping[str, Optional[BaseStore]],
        policy: str | StoragePolicy = StoragePolicy.LOCAL,
        today_fn: Callable[[], str] = entities.today_iso,
    ) -> None:
        self._drivers = dict(drivers)
        self._policy = parse_policy(policy)
        self._today_fn = today_fn
        self._switch_lock = threading.Lock()
        self._frozen = False

    # -------------------------- routing --------------------------
    @property
    def policy(self) -> StoragePolicy:
        return self._policy

    @property
    def drivers(self) -> dict[str, Optional[BaseStore]]:
        return dict(self._drivers)

    def today(self) -> str:
        return self._today_fn()

    def driver(self, name: str) -> BaseStore:
        """Driver registered under ``name`` (``local``, ``relational``, ``blob``)."""
        driver = self._drivers.get(name)
        if driver is None:
            raise BackendUnavailable(f"{name} backend is not configured")
        return driver

    def driver_for(self, entity: str) -> BaseStore:
        return self.driver(ROUTES[self._policy][entity])

    def pinned(self) -> "StorageFacade":
        """A view bound to the current policy; later switches do not affect it."""
        view = StorageFacade(self._drivers, self._policy, today_fn=self._today_fn)
        view._frozen = True
        return view

    def switch_primary(self, new_policy: str | StoragePolicy) -> StoragePolicy:
        """
        Change the active policy for new calls.

        Every backend the target policy routes to must be configured and
        report itself ready. Data is never migrated here.
        """
        if self._frozen:
            raise RuntimeError("A pinned facade cannot switch policy")
        target = parse_policy(new_policy)
        with self._switch_lock:
            for name in sorted(set(ROUTES[target].values())):
                driver = self._drivers.get(name)
                if driver is None or not driver.is_ready():
                    raise BackendUnavailable(f"Cannot switch to {target.value}: {name} backend is not ready")
            previous, self._policy = self._policy, target
        logger.info("[storage] policy switched {} -> {}", previous.value, target.value)
        return target

    # -------------------------- generic helpers --------------------------
    def _all(self, entity: str) -> list[dict]:
        return to_internal(self.driver_for(entity).get_all(entity))

    def _get(self, entity: str, record_id: str) -> Optional[dict]:
        if not record_id:
            return None
        return to_internal(self.driver_for(entity).get_by_id(entity, record_id))

    def _where(self, entity: str, attribute: str, value: Any) -> list[dict]:
        return to_internal(self.driver_for(entity).get_by_attribute(entity, camel_to_snake(attribute), value))

    def _insert(self, entity: str, record: dict) -> dict:
        return to_internal(self.driver_for(entity).insert(entity, to_external(record)))

    def _update(self, entity: str, record_id: str, changes: dict) -> dict:
        return to_internal(self.driver_for(entity).update(entity, record_id, to_external(changes)))

    def _delete(self, entity: str, record_id: str) -> dict:
        return to_internal(self.driver_for(entity).delete(entity, record_id))

    # -------------------------- people --------------------------
    def get_people(self) -> list[dict]:
        return self._all(PEOPLE)

    def get_person_by_id(self, person_id: str) -> Optional[dict]:
        return self._get(PEOPLE, person_id)

    def get_person_by_external_id(self, external_id: str | int) -> Optional[dict]:
        if external_id in (None, ""):
            return None
        matches = self._where(PEOPLE, "externalContactId", str(external_id))
        return matches[0] if matches else None

    def get_people_by_role(self, role: str, branch_id: str | None = None) -> list[dict]:
        people = self._where(PEOPLE, "role", role)
        if branch_id:
            people = [p for p in people if p.get("branchId") == branch_id]
        return people

    def add_person(self, data: Mapping[str, Any]) -> dict:
        return self._insert(PEOPLE, entities.new_person(data))

    def update_person(self, person_id: str, changes: Mapping[str, Any]) -> dict:
        return self._update(PEOPLE, person_id, dict(changes))

    def delete_person(self, person_id: str) -> dict:
        """Remove only the person row; cascades live in ShiftService.delete_person."""
        return self._delete(PEOPLE, person_id)

    # -------------------------- branches --------------------------
    def get_branches(self, active_only: bool = False) -> list[dict]:
        branches = self._all(BRANCHES)
        if active_only:
            branches = [b for b in branches if b.get("isActive") is not False]
        return branches

    def get_branch_by_id(self, branch_id: str) -> Optional[dict]:
        return self._get(BRANCHES, branch_id)

    def add_branch(self, data: Mapping[str, Any]) -> dict:
        return self._insert(BRANCHES, entities.new_branch(data))

    def update_branch(self, branch_id: str, changes: Mapping[str, Any]) -> dict:
        return self._update(BRANCHES, branch_id, dict(changes))

    # -------------------------- shifts --------------------------
    def get_all_shifts(self) -> list[dict]:
        return self._all(SHIFTS)

    def get_shifts(self, date: str | None = None, branch_id: str | None = None) -> list[dict]:
        day = date or self.today()
        return to_internal(self.driver_for(SHIFTS).shifts_for_date(day, branch_id))

    def get_today_shifts(self, branch_id: str | None = None) -> list[dict]:
        return self.get_shifts(None, branch_id)

    def get_shift_by_id(self, shift_id: str) -> Optional[dict]:
        return self._get(SHIFTS, shift_id)

    def find_shift(self, person_id: str, date: str | None = None) -> Optional[dict]:
        return to_internal(self.driver_for(SHIFTS).find_shift(person_id, date or self.today()))

    def get_shifts_for_person(self, person_id: str) -> list[dict]:
        return self._where(SHIFTS, "personId", person_id)

    def has_shift_today(self, person_id: str) -> bool:
        return self.find_shift(person_id) is not None

    def add_shift(self, data: Mapping[str, Any]) -> dict:
        """Raw insert; the one-shift-per-day rule is enforced by ShiftService.open_shift."""
        return self._insert(SHIFTS, entities.new_shift({**data, "date": data.get("date") or self.today()}))

    def update_shift(self, shift_id: str, changes: Mapping[str, Any]) -> dict:
        return self._update(SHIFTS, shift_id, dict(changes))

    def delete_shift(self, shift_id: str) -> dict:
        return self._delete(SHIFTS, shift_id)

    def clear_shifts(self) -> int:
        return self.driver_for(SHIFTS).clear(SHIFTS)

    # -------------------------- assignments --------------------------
    def get_all_assignments(self) -> list[dict]:
        return self._all(ASSIGNMENTS)

    def get_assignments(self, date: str | None = None, branch_id: str | None = None) -> list[dict]:
        day = date or self.today()
        return to_internal(self.driver_for(ASSIGNMENTS).assignments_for_date(day, branch_id))

    def get_today_assignments(self, branch_id: str | None = None) -> list[dict]:
        return self.get_assignments(None, branch_id)

    def get_assignment_by_id(self, assignment_id: str) -> Optional[dict]:
        return self._get(ASSIGNMENTS, assignment_id)

    def get_assignments_for_person(self, person_id: str, date: str | None = None) -> list[dict]:
        return to_internal(self.driver_for(ASSIGNMENTS).assignments_for_person(person_id, date))

    def add_assignment(self, data: Mapping[str, Any]) -> dict:
        return self._insert(ASSIGNMENTS, entities.new_assignment({**data, "date": data.get("date") or self.today()}))

    def update_assignment(self, assignment_id: str, changes: Mapping[str, Any]) -> dict:
        """Partial update. A ``status`` change must follow the assignment state machine."""
        changes = dict(changes)
        if "status" in changes:
            current = self._get(ASSIGNMENTS, assignment_id)
            if current is None:
                raise NotFound(f"Assignment {assignment_id} not found")
            changes["status"] = check_status_change(current.get("status"), changes["status"])
        return self._update(ASSIGNMENTS, assignment_id, changes)

    def delete_assignment(self, assignment_id: str) -> dict:
        return self._delete(ASSIGNMENTS, assignment_id)

    # -------------------------- config / reporting --------------------------
    def get_config(self) -> dict:
        return to_internal(self.driver_for(CONFIG).get_config())

    def update_config(self, changes: Mapping[str, Any]) -> dict:
        driver = self.driver_for(CONFIG)
        merged = {**driver.get_config(), **to_external(dict(changes))}
        return to_internal(driver.save_config(merged))

    def get_stats(self, date: str | None = None) -> dict:
        view = self.pinned()
        day = date or view.today()
        people = view.get_people()
        assignments = view.get_assignments(day)
        by_status = {STATUS_ASSIGNED: 0, STATUS_CANCELLED: 0, STATUS_COMPLETED: 0}
        for assignment in assignments:
            status = assignment.get("status")
            by_status[status] = by_status.get(status, 0) + 1
        return {
            "date": day,
            "people": len(people),
            "couriers": sum(1 for p in people if p.get("role") == entities.ROLE_COURIER),
            "passengers": sum(1 for p in people if p.get("role") == entities.ROLE_PASSENGER),
            "branches": len(view.get_branches()),
            "shifts": len(view.get_shifts(day)),
            "assignments": len(assignments),
            "assignmentsByStatus": by_status,
        }

    def storage_info(self) -> dict:
        backends = {}
        for name in (LOCAL, RELATIONAL, BLOB):
            driver = self._drivers.get(name)
            backends[name] = driver.describe() if driver else {"backend": name, "configured": False}
        return {
            "policy": self._policy.value,
            "routes": dict(ROUTES[self._policy]),
            "backends": backends,
        }
