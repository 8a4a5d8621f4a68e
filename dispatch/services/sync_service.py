"""
On-demand copy of people (and branches) between the local and relational
backends.

Each record is upserted by id in the destination. A record the destination
rejects is logged and counted; the run always continues. Records changed on
both sides are simply overwritten by the source copy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from loguru import logger

from dispatch.core.errors import BackendUnavailable, StorageError
from dispatch.domain.entities import BRANCHES, PEOPLE
from dispatch.repositories.base import BaseStore

from .storage_facade import LOCAL, RELATIONAL, StorageFacade


class SyncDirection(str, Enum):
    LOCAL_TO_REMOTE = "local_to_remote"
    REMOTE_TO_LOCAL = "remote_to_local"


@dataclass
class SyncSummary:
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: list[dict] = field(default_factory=list)

    def merge(self, other: "SyncSummary") -> "SyncSummary":
        return SyncSummary(
            attempted=self.attempted + other.attempted,
            succeeded=self.succeeded + other.succeeded,
            failed=self.failed + other.failed,
            errors=[*self.errors, *other.errors],
        )

    def as_dict(self) -> dict:
        return {"attempted": self.attempted, "succeeded": self.succeeded, "failed": self.failed}


class SyncEngine:
    def __init__(self, local: BaseStore, remote: Optional[BaseStore]) -> None:
        self.local = local
        self.remote = remote

    @classmethod
    def from_facade(cls, facade: StorageFacade) -> "SyncEngine":
        return cls(facade.driver(LOCAL), facade.drivers.get(RELATIONAL))

    def _endpoints(self, direction: SyncDirection | str) -> tuple[BaseStore, BaseStore]:
        direction = SyncDirection(direction)
        if self.remote is None:
            raise BackendUnavailable("relational backend is not configured; nothing to sync with")
        if direction is SyncDirection.LOCAL_TO_REMOTE:
            return self.local, self.remote
        return self.remote, self.local

    def sync_collection(self, entity: str, direction: SyncDirection | str) -> SyncSummary:
        source, destination = self._endpoints(direction)
        summary = SyncSummary()
        for record in source.get_all(entity):
            summary.attempted += 1
            record_id = record.get("id")
            try:
                if record_id and destination.get_by_id(entity, record_id) is not None:
                    destination.update(entity, record_id, record)
                else:
                    destination.insert(entity, record)
            except StorageError as exc:
                summary.failed += 1
                summary.errors.append({"id": record_id, "error": str(exc), "kind": type(exc).__name__})
                logger.warning("[sync] {} {} -> {} failed: {}", entity, record_id, destination.name, exc)
                continue
            summary.succeeded += 1
        logger.info(
            "[sync] {} {} -> {}: {} attempted, {} ok, {} failed",
            entity,
            source.name,
            destination.name,
            summary.attempted,
            summary.succeeded,
            summary.failed,
        )
        return summary

    def sync_all_people(self, direction: SyncDirection | str = SyncDirection.LOCAL_TO_REMOTE) -> SyncSummary:
        return self.sync_collection(PEOPLE, direction)

    def sync_all_branches(self, direction: SyncDirection | str = SyncDirection.LOCAL_TO_REMOTE) -> SyncSummary:
        return self.sync_collection(BRANCHES, direction)

    def sync_all(self, direction: SyncDirection | str = SyncDirection.LOCAL_TO_REMOTE) -> SyncSummary:
        """Branches first so people's branch references resolve in the destination."""
        return self.sync_all_branches(direction).merge(self.sync_all_people(direction))
