"""
Local JSON persistence: one ``<entity>.json`` file per collection.

Writers take an advisory lock on ``<entity>.json.lock``. Se o lock nao puder
ser obtido a escrita segue sem ele e um aviso DegradedDurability e emitido.
"""

from __future__ import annotations

import json
import os
import shutil
import warnings
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, TypeVar

from filelock import FileLock, Timeout
from loguru import logger

from dispatch.core.config import get_settings
from dispatch.core.errors import BackendUnavailable, DegradedDurability
from dispatch.domain.entities import CONFIG, ENTITY_TYPES

from .base import CollectionStore

T = TypeVar("T")


class LocalDocumentStore(CollectionStore):
    name = "local"

    def __init__(self, data_dir: str | Path | None = None, lock_timeout: float | None = None) -> None:
        settings = get_settings()
        self.data_dir = Path(data_dir) if data_dir else settings.data_dir
        self.lock_timeout = settings.lock_timeout_seconds if lock_timeout is None else lock_timeout
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, entity: str) -> Path:
        return self.data_dir / f"{entity}.json"

    def _load(self, entity: str) -> Any:
        path = self.path_for(entity)
        if not path.exists():
            return self._empty(entity)
        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as exc:
            raise BackendUnavailable(f"{path.name} is not valid JSON: {exc}") from exc

    def _save(self, entity: str, data: Any) -> None:
        self.path_for(entity).write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

    def _apply(self, entity: str, mutate: Callable[[Any], T]) -> T:
        data = self._load(entity)
        result = mutate(data)
        self._save(entity, data)
        return result

    def _read(self, entity: str) -> Any:
        return self._load(entity)

    def _modify(self, entity: str, mutate: Callable[[Any], T]) -> T:
        lock_path = str(self.path_for(entity)) + ".lock"
        lock = FileLock(lock_path, timeout=self.lock_timeout)
        try:
            lock.acquire()
        except (Timeout, OSError) as exc:
            logger.warning("[local] lock {} unavailable ({}); writing {} without it", lock_path, exc, entity)
            warnings.warn(
                DegradedDurability(f"{entity} written without holding {lock_path}"),
                stacklevel=3,
            )
            return self._apply(entity, mutate)
        try:
            return self._apply(entity, mutate)
        finally:
            lock.release()

    def is_ready(self) -> bool:
        return self.data_dir.is_dir() and os.access(self.data_dir, os.W_OK)

    def backup(self) -> Path:
        """Copy every collection file into ``backups/<timestamp>/`` and return that folder."""
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        target = self.data_dir / "backups" / stamp
        target.mkdir(parents=True, exist_ok=True)
        copied = 0
        for entity in (*ENTITY_TYPES, CONFIG):
            source = self.path_for(entity)
            if source.exists():
                shutil.copy2(source, target / source.name)
                copied += 1
        logger.info("[local] backup of {} collections written to {}", copied, target)
        return target

    def describe(self) -> dict:
        return {"backend": self.name, "ready": self.is_ready(), "path": str(self.data_dir)}
