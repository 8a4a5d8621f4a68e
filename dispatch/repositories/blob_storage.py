"""
Blob backend on Azure Data Lake Storage Gen2.

Each collection is one ``<entity>.json`` file in the configured container.
Reads are cached together with the file etag; writes upload the whole
collection with an etag precondition and replay the change on a fresh copy
when another writer got there first.
"""

from __future__ import annotations

import copy
import json
from typing import Any, Callable, Optional, TypeVar

from azure.core import MatchConditions
from azure.core.exceptions import (
    AzureError,
    HttpResponseError,
    ResourceExistsError,
    ResourceModifiedError,
    ResourceNotFoundError,
    ServiceRequestError,
)
from azure.storage.filedatalake import ContentSettings, DataLakeServiceClient
from loguru import logger

from dispatch.core.config import get_settings
from dispatch.core.errors import (
    BackendUnavailable,
    ConnectionUnavailable,
    ConstraintViolation,
    StorageError,
)

from .base import CollectionStore

T = TypeVar("T")


class _WriteConflict(Exception):
    """The stored file changed since it was read."""


class BlobStore(CollectionStore):
    name = "blob"

    def __init__(self, file_system_client=None, max_write_attempts: int | None = None) -> None:
        settings = get_settings()
        self._client = file_system_client
        self.container = settings.blob_container
        self.max_write_attempts = max(1, max_write_attempts or settings.blob_max_write_attempts)
        # entity -> (data, etag)
        self._cache: dict[str, tuple[Any, Optional[str]]] = {}

    @property
    def client(self):
        if self._client is None:
            settings = get_settings()
            if not settings.blob_configured:
                raise BackendUnavailable("BLOB_ACCOUNT_NAME/BLOB_ACCOUNT_KEY must be configured.")
            account_url = f"https://{settings.blob_account_name}.dfs.core.windows.net"
            try:
                service = DataLakeServiceClient(account_url=account_url, credential=settings.blob_account_key)
            except (AzureError, ValueError) as exc:
                logger.error("[blob] failed to connect to {}: {}", account_url, exc)
                raise ConnectionUnavailable(str(exc)) from exc
            self._client = service.get_file_system_client(self.container)
            logger.info("[blob] connected to {} (container {})", settings.blob_account_name, self.container)
        return self._client

    @staticmethod
    def file_name(entity: str) -> str:
        return f"{entity}.json"

    def clear_cache(self, entity: str | None = None) -> None:
        if entity is None:
            self._cache.clear()
        else:
            self._cache.pop(entity, None)

    # -------------------------- transport --------------------------
    def _download(self, entity: str) -> tuple[Any, Optional[str]]:
        file_client = self.client.get_file_client(self.file_name(entity))
        try:
            downloader = file_client.download_file()
            payload = downloader.readall()
            etag = downloader.properties.etag
        except ResourceNotFoundError:
            return self._empty(entity), None
        except ServiceRequestError as exc:
            raise ConnectionUnavailable(str(exc)) from exc
        except AzureError as exc:
            raise BackendUnavailable(str(exc)) from exc
        try:
            data = json.loads(payload.decode("utf-8")) if payload else self._empty(entity)
        except ValueError as exc:
            raise BackendUnavailable(f"{self.file_name(entity)} is not valid JSON: {exc}") from exc
        return data, etag

    def _upload(self, entity: str, data: Any, etag: Optional[str]) -> Optional[str]:
        payload = json.dumps(data, ensure_ascii=False, indent=2).encode("utf-8")
        file_client = self.client.get_file_client(self.file_name(entity))
        content_settings = ContentSettings(content_type="application/json")
        try:
            if etag is None:
                response = file_client.upload_data(payload, overwrite=False, content_settings=content_settings)
            else:
                response = file_client.upload_data(
                    payload,
                    overwrite=True,
                    etag=etag,
                    match_condition=MatchConditions.IfNotModified,
                    content_settings=content_settings,
                )
        except (ResourceModifiedError, ResourceExistsError) as exc:
            raise _WriteConflict(str(exc)) from exc
        except ServiceRequestError as exc:
            raise ConnectionUnavailable(str(exc)) from exc
        except HttpResponseError as exc:
            if exc.status_code == 412:
                raise _WriteConflict(str(exc)) from exc
            raise BackendUnavailable(str(exc)) from exc
        except AzureError as exc:
            raise BackendUnavailable(str(exc)) from exc
        return (response or {}).get("etag")

    def _current_etag(self, entity: str) -> Optional[str]:
        file_client = self.client.get_file_client(self.file_name(entity))
        try:
            return file_client.get_file_properties().etag
        except ResourceNotFoundError:
            return None
        except ServiceRequestError as exc:
            raise ConnectionUnavailable(str(exc)) from exc
        except AzureError as exc:
            raise BackendUnavailable(str(exc)) from exc

    # -------------------------- collection access --------------------------
    def _load(self, entity: str, refresh: bool = False) -> tuple[Any, Optional[str]]:
        cached = self._cache.get(entity)
        # cached copy is served only while the file still carries its etag
        if refresh or cached is None or self._current_etag(entity) != cached[1]:
            self._cache[entity] = self._download(entity)
        return self._cache[entity]

    def _read(self, entity: str) -> Any:
        data, _ = self._load(entity)
        return copy.deepcopy(data)

    def _modify(self, entity: str, mutate: Callable[[Any], T]) -> T:
        refresh = False
        for attempt in range(1, self.max_write_attempts + 1):
            data, etag = self._load(entity, refresh=refresh)
            working = copy.deepcopy(data)
            result = mutate(working)
            try:
                new_etag = self._upload(entity, working, etag)
            except _WriteConflict as exc:
                logger.warning(
                    "[blob] {} changed concurrently (attempt {}/{}): {}",
                    entity,
                    attempt,
                    self.max_write_attempts,
                    exc,
                )
                self._cache.pop(entity, None)
                refresh = True
                continue
            self._cache[entity] = (working, new_etag)
            return result
        raise ConstraintViolation(
            f"{entity} was modified concurrently; gave up after {self.max_write_attempts} attempts"
        )

    def is_ready(self) -> bool:
        try:
            return bool(self.client.exists())
        except (AzureError, StorageError) as exc:
            logger.warning("[blob] readiness check failed: {}", exc)
            return False

    def describe(self) -> dict:
        return {
            "backend": self.name,
            "ready": self.is_ready(),
            "container": self.container,
            "cached": sorted(self._cache),
        }
