"""Entity types, stored field lists and builders for new records."""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Mapping

PEOPLE = "people"
BRANCHES = "branches"
SHIFTS = "shifts"
ASSIGNMENTS = "assignments"
CONFIG = "config"

ENTITY_TYPES = (PEOPLE, BRANCHES, SHIFTS, ASSIGNMENTS)

ROLE_COURIER = "courier"
ROLE_PASSENGER = "passenger"
ROLE_ADMIN = "admin"
ROLES = {ROLE_COURIER, ROLE_PASSENGER, ROLE_ADMIN}

# Stored (external) column names per collection.
FIELDS: dict[str, tuple[str, ...]] = {
    PEOPLE: (
        "id",
        "external_contact_id",
        "role",
        "display_name",
        "phone",
        "home_address",
        "branch_id",
        "is_active",
        "position",
        "vehicle_model",
        "vehicle_plate",
        "work_until",
        "created_at",
        "updated_at",
    ),
    BRANCHES: ("id", "name", "address", "phone", "is_active", "created_at"),
    SHIFTS: (
        "id",
        "person_id",
        "branch_id",
        "date",
        "start_time",
        "end_time",
        "is_working",
        "destination_address",
        "created_at",
        "updated_at",
    ),
    ASSIGNMENTS: (
        "id",
        "courier_id",
        "passenger_id",
        "branch_id",
        "pickup_address",
        "dropoff_address",
        "assigned_time",
        "date",
        "status",
        "notes",
        "courier_confirmed",
        "passenger_confirmed",
        "created_at",
        "updated_at",
    ),
}


def ensure_entity(entity: str) -> str:
    if entity not in FIELDS:
        raise ValueError(f"Unknown entity type: {entity!r}")
    return entity


def today_iso() -> str:
    return date.today().isoformat()


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    return value


def new_person(data: Mapping[str, Any]) -> dict:
    """Normalise a caller-supplied Person (camelCase) before insertion."""
    record = {
        "externalContactId": str(_clean(data.get("externalContactId")) or "") or None,
        "role": _clean(data.get("role")),
        "displayName": _clean(data.get("displayName")),
        "phone": _clean(data.get("phone")) or "",
        "homeAddress": _clean(data.get("homeAddress")) or "",
        "branchId": data.get("branchId"),
        "isActive": data.get("isActive") is not False,
        "position": data.get("position"),
        "vehicleModel": data.get("vehicleModel"),
        "vehiclePlate": data.get("vehiclePlate"),
        "workUntil": data.get("workUntil"),
    }
    if data.get("id"):
        record["id"] = data["id"]
    return record


def new_branch(data: Mapping[str, Any]) -> dict:
    record = {
        "name": _clean(data.get("name")),
        "address": _clean(data.get("address")) or "",
        "phone": _clean(data.get("phone")) or "",
        "isActive": data.get("isActive") is not False,
    }
    if data.get("id"):
        record["id"] = data["id"]
    return record


def new_shift(data: Mapping[str, Any]) -> dict:
    record = {
        "personId": data.get("personId"),
        "branchId": data.get("branchId"),
        "date": data.get("date") or today_iso(),
        "startTime": data.get("startTime"),
        "endTime": data.get("endTime"),
        "isWorking": data.get("isWorking") is not False,
        "destinationAddress": _clean(data.get("destinationAddress")) or "",
    }
    if data.get("id"):
        record["id"] = data["id"]
    return record


def new_assignment(data: Mapping[str, Any]) -> dict:
    """A newly created assignment always starts as ``assigned``."""
    record = {
        "courierId": data.get("courierId"),
        "passengerId": data.get("passengerId"),
        "branchId": data.get("branchId"),
        "pickupAddress": _clean(data.get("pickupAddress")) or "",
        "dropoffAddress": _clean(data.get("dropoffAddress")) or "",
        "assignedTime": data.get("assignedTime"),
        "date": data.get("date") or today_iso(),
        "status": "assigned",
        "notes": data.get("notes") or "",
        "courierConfirmed": False,
        "passengerConfirmed": False,
    }
    if data.get("id"):
        record["id"] = data["id"]
    return record
