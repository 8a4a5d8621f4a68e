"""Wiring of drivers, facade and services from Settings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from dispatch.core.config import Settings, get_settings
from dispatch.core.notifier import NotificationGateway, TelegramGateway
from dispatch.repositories import BaseStore, BlobStore, LocalDocumentStore, RelationalStore
from dispatch.services.assignment_service import AssignmentService
from dispatch.services.availability_service import AvailabilityService
from dispatch.services.daily_reset import DailyReset
from dispatch.services.notifications import NotificationDispatcher
from dispatch.services.shift_service import ShiftService
from dispatch.services.storage_facade import BLOB, LOCAL, RELATIONAL, StorageFacade
from dispatch.services.sync_service import SyncEngine


@dataclass
class Services:
    facade: StorageFacade
    notifier: NotificationDispatcher
    shifts: ShiftService
    assignments: AssignmentService
    availability: AvailabilityService
    sync: SyncEngine
    daily_reset: DailyReset


def build_drivers(settings: Settings | None = None) -> dict[str, Optional[BaseStore]]:
    """The local store always exists; remote stores only when configured."""
    settings = settings or get_settings()
    return {
        LOCAL: LocalDocumentStore(settings.data_dir, settings.lock_timeout_seconds),
        RELATIONAL: RelationalStore() if settings.relational_configured else None,
        BLOB: BlobStore() if settings.blob_configured else None,
    }


def build_facade(
    settings: Settings | None = None,
    drivers: Mapping[str, Optional[BaseStore]] | None = None,
) -> StorageFacade:
    settings = settings or get_settings()
    return StorageFacade(drivers if drivers is not None else build_drivers(settings), settings.storage_policy)


def build_services(
    settings: Settings | None = None,
    gateway: NotificationGateway | None = None,
    facade: StorageFacade | None = None,
) -> Services:
    settings = settings or get_settings()
    facade = facade or build_facade(settings)
    notifier = NotificationDispatcher(gateway if gateway is not None else TelegramGateway(), facade)
    shifts = ShiftService(facade, notifier)
    return Services(
        facade=facade,
        notifier=notifier,
        shifts=shifts,
        assignments=AssignmentService(facade, notifier),
        availability=AvailabilityService(facade),
        sync=SyncEngine.from_facade(facade),
        daily_reset=DailyReset(facade, shifts),
    )
