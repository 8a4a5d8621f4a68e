"""
Shared fixtures: temporary settings, a throwaway SQLite database, an in-memory
stand-in for the ADLS file-system client and a recording notification gateway.
"""
from __future__ import annotations

import itertools
import sys
from pathlib import Path

import pytest
from azure.core import MatchConditions
from azure.core.exceptions import ResourceExistsError, ResourceModifiedError, ResourceNotFoundError

# Garante que o pacote dispatch seja importável durante os testes locais
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from dispatch.core import config as core_config
from dispatch.db import models
from dispatch.db import session as db_session
from dispatch.repositories import BlobStore, LocalDocumentStore, RelationalStore
from dispatch.services.notifications import NotificationDispatcher
from dispatch.services.shift_service import ShiftService
from dispatch.services.assignment_service import AssignmentService
from dispatch.services.storage_facade import StorageFacade

TODAY = "2024-01-01"


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Each test reads settings from a clean environment pointing at tmp_path."""
    for name in ("DATABASE_URL", "BLOB_ACCOUNT_NAME", "BLOB_ACCOUNT_KEY", "TELEGRAM_BOT_TOKEN", "PRIMARY_STORAGE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    core_config.get_settings.cache_clear()
    yield
    core_config.get_settings.cache_clear()


@pytest.fixture()
def temp_db(tmp_path, monkeypatch):
    """Configura um SQLite temporário e garante teardown completo para não deixar o arquivo bloqueado no Windows."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    # limpa caches para forçar re-leitura de envs
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]

    engine = db_session.get_engine()
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)

    yield db_file

    try:
        models.Base.metadata.drop_all(bind=engine)
    except Exception:
        pass
    try:
        engine.dispose()
    except Exception:
        pass
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]
    if db_file.exists():
        try:
            db_file.unlink()
        except Exception:
            pass


# -------------------------- ADLS stand-in --------------------------
class _Properties:
    def __init__(self, etag):
        self.etag = etag


class _Downloader:
    def __init__(self, payload: bytes, etag: str):
        self._payload = payload
        self.properties = _Properties(etag)

    def readall(self) -> bytes:
        return self._payload


class FakeFileClient:
    def __init__(self, fs: "FakeFileSystem", name: str):
        self.fs = fs
        self.name = name

    def download_file(self):
        self.fs.downloads += 1
        if self.name not in self.fs.files:
            raise ResourceNotFoundError(f"{self.name} not found")
        payload, etag = self.fs.files[self.name]
        return _Downloader(payload, etag)

    def get_file_properties(self):
        if self.name not in self.fs.files:
            raise ResourceNotFoundError(f"{self.name} not found")
        return _Properties(self.fs.files[self.name][1])

    def upload_data(self, data, overwrite=False, etag=None, match_condition=None, content_settings=None, **kwargs):
        self.fs.uploads += 1
        if self.fs.before_upload is not None:
            hook, self.fs.before_upload = self.fs.before_upload, None
            hook(self.name)
        current = self.fs.files.get(self.name)
        if not overwrite and current is not None:
            raise ResourceExistsError(f"{self.name} already exists")
        if match_condition == MatchConditions.IfNotModified and (current is None or current[1] != etag):
            raise ResourceModifiedError(f"{self.name} was modified")
        new_etag = f'"{next(self.fs.counter)}"'
        self.fs.files[self.name] = (bytes(data), new_etag)
        return {"etag": new_etag}


class FakeFileSystem:
    """Keeps files in memory and honours etag / overwrite preconditions."""

    def __init__(self):
        self.files: dict[str, tuple[bytes, str]] = {}
        self.counter = itertools.count(1)
        self.downloads = 0
        self.uploads = 0
        self.before_upload = None

    def get_file_client(self, name: str) -> FakeFileClient:
        return FakeFileClient(self, name)

    def exists(self) -> bool:
        return True

    def put(self, name: str, payload: bytes) -> None:
        """Simulate another writer replacing a file."""
        self.files[name] = (payload, f'"{next(self.counter)}"')


@pytest.fixture()
def fake_fs():
    return FakeFileSystem()


@pytest.fixture()
def blob_store(fake_fs):
    return BlobStore(file_system_client=fake_fs, max_write_attempts=3)


# -------------------------- notifications --------------------------
class RecordingGateway:
    """Notification gateway that remembers every message and can be told to fail."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self.failing: set[str] = set()
        self.on_send = None

    def notify(self, external_id: str, message: str) -> bool:
        if self.on_send is not None:
            self.on_send(external_id, message)
        if external_id in self.failing:
            raise ConnectionError(f"gateway down for {external_id}")
        self.sent.append((external_id, message))
        return True

    def recipients(self) -> list[str]:
        return [external_id for external_id, _ in self.sent]


@pytest.fixture()
def gateway():
    return RecordingGateway()


# -------------------------- wired stacks --------------------------
@pytest.fixture()
def local_store(tmp_path):
    return LocalDocumentStore(tmp_path / "data", lock_timeout=0.2)


@pytest.fixture()
def facade(local_store):
    return StorageFacade({"local": local_store}, "local", today_fn=lambda: TODAY)


@pytest.fixture()
def remote_facade(local_store, temp_db):
    return StorageFacade(
        {"local": local_store, "relational": RelationalStore()},
        "remote",
        today_fn=lambda: TODAY,
    )


@pytest.fixture()
def hybrid_facade(local_store, temp_db, blob_store):
    return StorageFacade(
        {"local": local_store, "relational": RelationalStore(), "blob": blob_store},
        "hybrid",
        today_fn=lambda: TODAY,
    )


@pytest.fixture()
def notifier(facade, gateway):
    return NotificationDispatcher(gateway, facade)


@pytest.fixture()
def shift_service(facade, notifier):
    return ShiftService(facade, notifier)


@pytest.fixture()
def assignment_service(facade, notifier):
    return AssignmentService(facade, notifier)
