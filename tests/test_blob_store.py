from __future__ import annotations

import json

import pytest

from dispatch.core.errors import BackendUnavailable, ConstraintViolation, NotFound
from dispatch.repositories import BlobStore


def _read_file(fake_fs, name):
    payload, _ = fake_fs.files[name]
    return json.loads(payload.decode("utf-8"))


def test_first_use_is_transparent(blob_store, fake_fs):
    assert blob_store.get_all("shifts") == []
    assert blob_store.get_config() == {}
    row = blob_store.insert("shifts", {"person_id": "p1", "date": "2024-01-01"})
    assert _read_file(fake_fs, "shifts.json") == [row]


def test_reads_are_served_from_cache(blob_store, fake_fs):
    blob_store.insert("assignments", {"id": "a1", "courier_id": "c", "passenger_id": "p", "date": "2024-01-01"})
    downloads = fake_fs.downloads
    for _ in range(3):
        assert blob_store.get_by_id("assignments", "a1")["courier_id"] == "c"
    assert fake_fs.downloads == downloads


def test_cached_copies_are_not_shared_with_callers(blob_store):
    blob_store.insert("shifts", {"id": "s1", "person_id": "p1", "date": "2024-01-01"})
    row = blob_store.get_by_id("shifts", "s1")
    row["person_id"] = "tampered"
    assert blob_store.get_by_id("shifts", "s1")["person_id"] == "p1"


def test_concurrent_writer_is_not_lost(blob_store, fake_fs):
    blob_store.insert("shifts", {"id": "s1", "person_id": "p1", "date": "2024-01-01"})
    # another process appends s2 between our read and our upload
    other = [*_read_file(fake_fs, "shifts.json"), {"id": "s2", "person_id": "p2", "date": "2024-01-01"}]
    fake_fs.before_upload = lambda name: fake_fs.put(name, json.dumps(other).encode("utf-8"))

    blob_store.insert("shifts", {"id": "s3", "person_id": "p3", "date": "2024-01-01"})

    assert sorted(r["id"] for r in _read_file(fake_fs, "shifts.json")) == ["s1", "s2", "s3"]
    assert sorted(r["id"] for r in blob_store.get_all("shifts")) == ["s1", "s2", "s3"]


def test_file_created_by_someone_else_counts_as_conflict(blob_store, fake_fs):
    assert blob_store.get_all("people") == []
    fake_fs.put("people.json", json.dumps([{"id": "x", "display_name": "X"}]).encode("utf-8"))
    blob_store.insert("people", {"id": "y", "display_name": "Y"})
    assert sorted(r["id"] for r in _read_file(fake_fs, "people.json")) == ["x", "y"]


def test_gives_up_after_max_attempts(fake_fs):
    store = BlobStore(file_system_client=fake_fs, max_write_attempts=2)
    store.insert("shifts", {"id": "s1", "person_id": "p1", "date": "2024-01-01"})

    def keep_racing(name):
        fake_fs.put(name, fake_fs.files[name][0])
        fake_fs.before_upload = keep_racing

    fake_fs.before_upload = keep_racing
    with pytest.raises(ConstraintViolation):
        store.update("shifts", "s1", {"end_time": "18:00"})


def test_update_delete_and_missing_records(blob_store):
    blob_store.insert("branches", {"id": "b1", "name": "Centro"})
    assert blob_store.update("branches", "b1", {"name": "Sul"})["name"] == "Sul"
    assert blob_store.delete("branches", "b1")["id"] == "b1"
    with pytest.raises(NotFound):
        blob_store.delete("branches", "b1")


def test_config_document_round_trip(blob_store, fake_fs):
    blob_store.save_config({"last_reset_date": "2024-01-01"})
    assert blob_store.get_config() == {"last_reset_date": "2024-01-01"}
    assert _read_file(fake_fs, "config.json") == {"last_reset_date": "2024-01-01"}


def test_unconfigured_store_is_unavailable():
    store = BlobStore()
    assert not store.is_ready()
    with pytest.raises(BackendUnavailable):
        store.get_all("shifts")


def test_write_from_another_instance_is_seen_on_next_read(fake_fs):
    reader = BlobStore(file_system_client=fake_fs)
    writer = BlobStore(file_system_client=fake_fs)
    assert reader.get_all("assignments") == []

    writer.insert("assignments", {"id": "a1", "courier_id": "c", "passenger_id": "p", "date": "2024-01-01"})

    assert [r["id"] for r in reader.get_all("assignments")] == ["a1"]
    writer.delete("assignments", "a1")
    assert reader.get_by_id("assignments", "a1") is None


def test_unchanged_file_is_not_downloaded_again(fake_fs):
    reader = BlobStore(file_system_client=fake_fs)
    writer = BlobStore(file_system_client=fake_fs)
    writer.insert("shifts", {"id": "s1", "person_id": "p1", "date": "2024-01-01"})
    reader.get_all("shifts")
    downloads = fake_fs.downloads
    reader.get_all("shifts")
    assert fake_fs.downloads == downloads

    fake_fs.put("shifts.json", json.dumps([]).encode("utf-8"))
    assert reader.get_all("shifts") == []
    assert fake_fs.downloads == downloads + 1
