"""
Capability surface shared by every storage backend.

Drivers exchange records using the stored (snake_case) field names; the
facade translates to the caller naming.
"""
from __future__ import annotations

import copy
import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, TypeVar

from dispatch.core.errors import BackendUnavailable, ConstraintViolation, NotFound
from dispatch.domain.entities import (
    ASSIGNMENTS,
    CONFIG,
    FIELDS,
    PEOPLE,
    SHIFTS,
    ensure_entity,
    utc_now_iso,
)

T = TypeVar("T")

# Same uniqueness rules the relational schema declares.
UNIQUE_TOGETHER: dict[str, tuple[tuple[str, ...], ...]] = {
    PEOPLE: (("external_contact_id",),),
    SHIFTS: (("person_id", "date"),),
}


def project(entity: str, record: dict) -> dict:
    """Keep only the stored columns of ``entity``."""
    allowed = FIELDS[ensure_entity(entity)]
    return {key: value for key, value in record.items() if key in allowed}


class BaseStore(ABC):
    """CRUD on people, branches, shifts and assignments plus entity-specific queries."""

    name = "base"

    @abstractmethod
    def get_all(self, entity: str) -> list[dict]:
        ...

    @abstractmethod
    def get_by_id(self, entity: str, record_id: str) -> Optional[dict]:
        ...

    @abstractmethod
    def get_by_attribute(self, entity: str, attribute: str, value: Any) -> list[dict]:
        ...

    @abstractmethod
    def insert(self, entity: str, record: dict) -> dict:
        ...

    @abstractmethod
    def update(self, entity: str, record_id: str, changes: dict) -> dict:
        ...

    @abstractmethod
    def delete(self, entity: str, record_id: str) -> dict:
        ...

    @abstractmethod
    def clear(self, entity: str) -> int:
        ...

    @abstractmethod
    def is_ready(self) -> bool:
        ...

    # -------------------------- entity-specific queries --------------------------
    def shifts_for_date(self, day: str, branch_id: str | None = None) -> list[dict]:
        rows = self.get_by_attribute(SHIFTS, "date", day)
        if branch_id:
            rows = [row for row in rows if row.get("branch_id") == branch_id]
        return rows

    def find_shift(self, person_id: str, day: str) -> Optional[dict]:
        for row in self.get_by_attribute(SHIFTS, "person_id", person_id):
            if row.get("date") == day:
                return row
        return None

    def assignments_for_date(self, day: str, branch_id: str | None = None) -> list[dict]:
        rows = self.get_by_attribute(ASSIGNMENTS, "date", day)
        if branch_id:
            rows = [row for row in rows if row.get("branch_id") == branch_id]
        return rows

    def assignments_for_person(self, person_id: str, day: str | None = None) -> list[dict]:
        rows = [
            row
            for row in self.get_all(ASSIGNMENTS)
            if person_id in (row.get("courier_id"), row.get("passenger_id"))
        ]
        if day:
            rows = [row for row in rows if row.get("date") == day]
        return rows

    # -------------------------- config singleton --------------------------
    def get_config(self) -> dict:
        raise BackendUnavailable(f"{self.name} backend does not hold the config document")

    def save_config(self, config: dict) -> dict:
        raise BackendUnavailable(f"{self.name} backend does not hold the config document")

    def describe(self) -> dict:
        return {"backend": self.name, "ready": self.is_ready()}


class CollectionStore(BaseStore):
    """
    Backends that keep each entity type as one JSON document (an array, or an
    object for the config singleton).

    Subclasses provide ``_read`` and ``_modify``; every write re-serialises the
    whole collection.
    """

    @abstractmethod
    def _read(self, entity: str) -> Any:
        ...

    @abstractmethod
    def _modify(self, entity: str, mutate: Callable[[Any], T]) -> T:
        """Load ``entity``, apply ``mutate`` in place, persist, return its result."""

    @staticmethod
    def _empty(entity: str) -> Any:
        return {} if entity == CONFIG else []

    @staticmethod
    def _check_unique(entity: str, rows: list, candidate: dict) -> None:
        for keys in UNIQUE_TOGETHER.get(entity, ()):
            values = tuple(candidate.get(key) for key in keys)
            if any(value is None for value in values):
                continue
            for row in rows:
                if row.get("id") != candidate.get("id") and tuple(row.get(key) for key in keys) == values:
                    raise ConstraintViolation(f"{entity} already has a record with {dict(zip(keys, values))}")

    def _records(self, entity: str) -> list[dict]:
        data = self._read(ensure_entity(entity))
        return data if isinstance(data, list) else []

    def get_all(self, entity: str) -> list[dict]:
        return copy.deepcopy(self._records(entity))

    def get_by_id(self, entity: str, record_id: str) -> Optional[dict]:
        for row in self._records(entity):
            if row.get("id") == record_id:
                return copy.deepcopy(row)
        return None

    def get_by_attribute(self, entity: str, attribute: str, value: Any) -> list[dict]:
        return [copy.deepcopy(row) for row in self._records(entity) if row.get(attribute) == value]

    def insert(self, entity: str, record: dict) -> dict:
        stored = project(entity, record)
        stored["id"] = stored.get("id") or str(uuid.uuid4())
        stored["created_at"] = stored.get("created_at") or utc_now_iso()

        def _mutate(rows: list) -> dict:
            if any(row.get("id") == stored["id"] for row in rows):
                raise ConstraintViolation(f"{entity} record {stored['id']} already exists")
            self._check_unique(entity, rows, stored)
            rows.append(dict(stored))
            return dict(stored)

        return self._modify(entity, _mutate)

    def update(self, entity: str, record_id: str, changes: dict) -> dict:
        values = project(entity, changes)
        values.pop("id", None)
        values.pop("created_at", None)
        if "updated_at" in FIELDS[entity]:
            values["updated_at"] = utc_now_iso()

        def _mutate(rows: list) -> dict:
            for index, row in enumerate(rows):
                if row.get("id") == record_id:
                    merged = {**row, **values}
                    self._check_unique(entity, rows, merged)
                    rows[index] = merged
                    return dict(merged)
            raise NotFound(f"{entity} record {record_id} not found")

        return self._modify(entity, _mutate)

    def delete(self, entity: str, record_id: str) -> dict:
        def _mutate(rows: list) -> dict:
            for index, row in enumerate(rows):
                if row.get("id") == record_id:
                    return rows.pop(index)
            raise NotFound(f"{entity} record {record_id} not found")

        return self._modify(ensure_entity(entity), _mutate)

    def clear(self, entity: str) -> int:
        def _mutate(rows: list) -> int:
            removed = len(rows)
            rows.clear()
            return removed

        return self._modify(ensure_entity(entity), _mutate)

    def get_config(self) -> dict:
        data = self._read(CONFIG)
        return copy.deepcopy(data) if isinstance(data, dict) else {}

    def save_config(self, config: dict) -> dict:
        def _mutate(current: dict) -> dict:
            current.clear()
            current.update(config)
            return dict(current)

        return self._modify(CONFIG, _mutate)
