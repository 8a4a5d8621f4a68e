from __future__ import annotations

import pytest

from dispatch.core.errors import ConstraintViolation, DuplicateShift, NotFound
from dispatch.repositories import BlobStore, RelationalStore
from dispatch.services.notifications import NotificationDispatcher
from dispatch.services.shift_service import ShiftService
from dispatch.services.storage_facade import StorageFacade


def _people(facade):
    courier = facade.add_person(
        {"id": "courier1", "displayName": "Carlos", "role": "courier", "externalContactId": "1001", "branchId": "B1"}
    )
    passenger = facade.add_person(
        {"id": "passenger1", "displayName": "Paula", "role": "passenger", "externalContactId": "2001", "branchId": "B1"}
    )
    return courier, passenger


def test_duplicate_shift_same_day(facade, shift_service):
    facade.add_person({"id": "P1", "displayName": "Ana", "role": "courier"})
    shift = shift_service.open_shift("P1", "B1", "09:00", "18:00")
    assert shift["date"] == "2024-01-01"
    with pytest.raises(DuplicateShift):
        shift_service.open_shift("P1", "B1", "10:00", "19:00")
    assert len([s for s in facade.get_all_shifts() if s["personId"] == "P1"]) == 1
    # another day is fine
    shift_service.open_shift("P1", "B1", "10:00", "19:00", date="2024-01-02")


def test_open_shift_updates_person_copies(facade, shift_service):
    facade.add_person({"id": "P1", "displayName": "Ana", "role": "passenger", "homeAddress": "Casa"})
    shift_service.open_shift("P1", "B1", "09:00", "17:30", destination_address="Obra 7")
    person = facade.get_person_by_id("P1")
    assert person["workUntil"] == "17:30"
    assert person["homeAddress"] == "Obra 7"


def test_open_shift_unknown_person(shift_service):
    with pytest.raises(NotFound):
        shift_service.open_shift("ghost", "B1", "09:00", "18:00")


def test_update_shift_keeps_person_in_step(facade, shift_service):
    facade.add_person({"id": "P1", "displayName": "Ana", "role": "courier"})
    shift = shift_service.open_shift("P1", "B1", "09:00", "18:00")
    shift_service.open_shift("P1", "B1", "09:00", "18:00", date="2024-01-02")
    updated = shift_service.update_shift(shift["id"], {"endTime": "20:00"})
    assert updated["endTime"] == "20:00"
    assert facade.get_person_by_id("P1")["workUntil"] == "20:00"
    with pytest.raises(DuplicateShift):
        shift_service.update_shift(shift["id"], {"date": "2024-01-02"})


def test_close_shift_cascades_and_notifies_counterpart(facade, shift_service, gateway):
    courier, passenger = _people(facade)
    shift = shift_service.open_shift("courier1", "B1", "08:00", "17:00")
    a1 = facade.add_assignment({"courierId": "courier1", "passengerId": "passenger1", "branchId": "B1"})
    done = facade.add_assignment({"courierId": "courier1", "passengerId": "passenger1"})
    facade.update_assignment(done["id"], {"status": "completed"})
    other_day = facade.add_assignment({"courierId": "courier1", "passengerId": "passenger1", "date": "2024-01-02"})

    result = shift_service.close_shift(shift["id"])

    assert facade.get_assignment_by_id(a1["id"]) is None
    assert facade.get_shift_by_id(shift["id"]) is None
    assert [a["id"] for a in result.removed_assignments] == [a1["id"]]
    assert result.notified == ["passenger1"]
    assert gateway.recipients() == ["2001"]
    # terminal and other-day assignments are left alone
    assert facade.get_assignment_by_id(done["id"]) is not None
    assert facade.get_assignment_by_id(other_day["id"]) is not None
    open_for_courier = [
        a for a in facade.get_today_assignments() if "courier1" in (a["courierId"], a["passengerId"]) and a["status"] == "assigned"
    ]
    assert open_for_courier == []


def test_notification_happens_before_assignment_disappears(facade, shift_service, gateway):
    _people(facade)
    shift = shift_service.open_shift("passenger1", "B1", "08:00", "17:00")
    assignment = facade.add_assignment({"courierId": "courier1", "passengerId": "passenger1"})
    seen = []
    gateway.on_send = lambda external_id, message: seen.append(
        [a["id"] for a in facade.get_today_assignments()]
    )

    shift_service.close_shift(shift["id"])

    assert gateway.recipients() == ["1001"]
    assert seen == [[assignment["id"]]]
    assert facade.get_today_assignments() == []


def test_gateway_failure_does_not_block_cascade(facade, shift_service, gateway):
    _people(facade)
    gateway.failing.add("2001")
    shift = shift_service.open_shift("courier1", "B1", "08:00", "17:00")
    facade.add_assignment({"courierId": "courier1", "passengerId": "passenger1"})

    result = shift_service.close_shift(shift["id"])

    assert len(result.removed_assignments) == 1
    assert facade.get_today_assignments() == []
    assert facade.get_shift_by_id(shift["id"]) is None


def test_close_missing_shift(shift_service):
    with pytest.raises(NotFound):
        shift_service.close_shift("nope")


def test_reset_all_shifts(facade, shift_service):
    for n in range(3):
        facade.add_person({"id": f"P{n}", "displayName": f"P{n}", "role": "courier"})
        shift_service.open_shift(f"P{n}", "B1", "09:00", "18:00")
    shift_service.open_shift("P0", "B1", "09:00", "18:00", date="2024-01-05")
    assert shift_service.reset_all_shifts() == 4
    assert facade.get_all_shifts() == []


def test_delete_person_cascades_and_is_idempotent(facade, shift_service):
    _people(facade)
    shift_service.open_shift("courier1", "B1", "08:00", "17:00")
    shift_service.open_shift("courier1", "B1", "08:00", "17:00", date="2024-01-02")
    facade.add_assignment({"courierId": "courier1", "passengerId": "passenger1"})
    facade.add_assignment({"courierId": "other", "passengerId": "courier1", "date": "2024-01-03"})
    keep = facade.add_assignment({"courierId": "other", "passengerId": "passenger1"})

    result = shift_service.delete_person("courier1")

    assert result.removed_shifts == 2
    assert result.removed_assignments == 2
    assert facade.get_shifts_for_person("courier1") == []
    assert facade.get_assignments_for_person("courier1") == []
    assert [a["id"] for a in facade.get_all_assignments()] == [keep["id"]]
    with pytest.raises(NotFound):
        shift_service.delete_person("courier1")


def test_cascade_in_remote_mode(remote_facade, gateway):
    service = ShiftService(remote_facade, NotificationDispatcher(gateway, remote_facade))
    _people(remote_facade)
    shift = service.open_shift("courier1", "B1", "08:00", "17:00")
    with pytest.raises(DuplicateShift):
        service.open_shift("courier1", "B1", "09:00", "18:00")
    remote_facade.add_assignment({"courierId": "courier1", "passengerId": "passenger1"})

    service.close_shift(shift["id"])

    assert remote_facade.get_today_assignments() == []
    assert gateway.recipients() == ["2001"]


def test_close_shift_sees_assignment_written_by_another_process(hybrid_facade, local_store, fake_fs, gateway):
    other = StorageFacade(
        {"local": local_store, "relational": RelationalStore(), "blob": BlobStore(file_system_client=fake_fs)},
        "hybrid",
        today_fn=lambda: "2024-01-01",
    )
    _people(hybrid_facade)
    shift = ShiftService(other, NotificationDispatcher(gateway, other)).open_shift("courier1", "B1", "08:00", "17:00")
    service = ShiftService(hybrid_facade, NotificationDispatcher(gateway, hybrid_facade))
    assert hybrid_facade.get_today_assignments() == []

    other.add_assignment({"courierId": "courier1", "passengerId": "passenger1"})
    result = service.close_shift(shift["id"])

    assert len(result.removed_assignments) == 1
    assert gateway.recipients() == ["2001"]
    assert other.get_today_assignments() == []
    assert other.get_shift_by_id(shift["id"]) is None


def test_close_shift_notifies_through_pinned_backend(remote_facade, gateway, monkeypatch):
    service = ShiftService(remote_facade, NotificationDispatcher(gateway, remote_facade))
    _people(remote_facade)
    shift = service.open_shift("courier1", "B1", "08:00", "17:00")
    remote_facade.add_assignment({"courierId": "courier1", "passengerId": "passenger1"})
    pin = remote_facade.pinned

    def pin_then_switch():
        view = pin()
        remote_facade.switch_primary("local")
        return view

    monkeypatch.setattr(remote_facade, "pinned", pin_then_switch)
    result = service.close_shift(shift["id"])

    assert result.notified == ["passenger1"]
    assert gateway.recipients() == ["2001"]
    assert remote_facade.driver("relational").get_all("assignments") == []


def test_sync_people_with_shifts(facade, shift_service, monkeypatch):
    _people(facade)
    facade.add_person({"id": "P3", "displayName": "Rui", "role": "courier"})
    shift_service.open_shift("courier1", "B1", "08:00", "17:00", destination_address="Obra 1")
    shift_service.open_shift("passenger1", "B1", "08:00", "16:00")
    shift_service.open_shift("P3", "B1", "08:00", "15:00")
    facade.add_shift({"personId": "gone", "endTime": "12:00"})
    facade.update_person("courier1", {"workUntil": "12:00", "homeAddress": "Casa"})
    facade.update_person("P3", {"workUntil": "10:00"})
    update_person = StorageFacade.update_person

    def refuse_p3(self, person_id, changes):
        if person_id == "P3":
            raise ConstraintViolation("locked")
        return update_person(self, person_id, changes)

    monkeypatch.setattr(StorageFacade, "update_person", refuse_p3)
    assert shift_service.sync_people_with_shifts() == 1

    courier = facade.get_person_by_id("courier1")
    assert (courier["workUntil"], courier["homeAddress"]) == ("17:00", "Obra 1")
    assert facade.get_person_by_id("P3")["workUntil"] == "10:00"
    assert shift_service.sync_people_with_shifts(date="2024-01-02") == 0
