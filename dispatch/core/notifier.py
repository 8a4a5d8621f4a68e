"""
Notification adapter for the dispatch backend.

The default implementation talks to the Telegram Bot API, reading the bot
token from Settings. People are addressed by their ``externalContactId``
(the Telegram chat id).
"""

from __future__ import annotations

from typing import Protocol

import requests
from loguru import logger

from .config import get_settings


class NotificationGateway(Protocol):
    def notify(self, external_id: str, message: str) -> bool:
        ...


class TelegramGateway:
    """Sends plain-text messages through the Bot API ``sendMessage`` method."""

    def __init__(self, token: str | None = None, api_base: str | None = None, timeout: int | None = None) -> None:
        settings = get_settings()
        self.token = token if token is not None else settings.telegram_bot_token
        self.api_base = (api_base or settings.telegram_api_base).rstrip("/")
        self.timeout = timeout or settings.notify_timeout_seconds

    def notify(self, external_id: str, message: str) -> bool:
        """
        Envia a mensagem para o chat informado.
        Quando o token nao estiver configurado, retorna False sem enviar.
        """
        if not self.token:
            logger.info("[notify] Bot token ausente; ignorando envio para {}", external_id)
            return False
        if not external_id:
            return False
        url = f"{self.api_base}/bot{self.token}/sendMessage"
        resp = requests.post(url, json={"chat_id": external_id, "text": message}, timeout=self.timeout)
        if resp.status_code != 200:
            logger.warning("[notify] Telegram respondeu {} para {}", resp.status_code, external_id)
            return False
        return bool(resp.json().get("ok", False))
