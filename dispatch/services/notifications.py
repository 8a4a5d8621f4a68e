"""Best-effort delivery of messages to people through the notification gateway."""

from __future__ import annotations

from typing import Mapping, Optional

from loguru import logger

from dispatch.core.errors import StorageError
from dispatch.core.notifier import NotificationGateway


class NotificationDispatcher:
    """
    Resolves a person's ``externalContactId`` and hands the message to the
    gateway. Failures are logged and reported as ``False``; they never reach
    the caller.
    """

    def __init__(self, gateway: Optional[NotificationGateway], facade) -> None:
        self.gateway = gateway
        self.facade = facade

    def notify_person(self, person: str | Mapping, message: str, facade=None) -> bool:
        """
        ``person`` is an id or an already loaded record. Ids are resolved
        through ``facade`` when given, so a pinned caller keeps reading the
        backend it started on.
        """
        if isinstance(person, Mapping):
            record = person
        else:
            try:
                record = (facade or self.facade).get_person_by_id(person)
            except StorageError as exc:
                logger.warning("[notify] could not load person {}: {}", person, exc)
                return False
        if not record:
            logger.warning("[notify] person {} not found; message dropped", person)
            return False
        external_id = record.get("externalContactId")
        if not external_id or self.gateway is None:
            logger.info("[notify] no channel for person {}; message dropped", record.get("id"))
            return False
        try:
            delivered = self.gateway.notify(str(external_id), message)
        except Exception as exc:  # gateway is an external system
            logger.warning("[notify] delivery to {} failed: {}", external_id, exc)
            return False
        if not delivered:
            logger.warning("[notify] gateway refused message for {}", external_id)
        return bool(delivered)
