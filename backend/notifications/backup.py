"""
Backup dispatcher.

Sends the panel's backup files (database, proxy core config) to every
configured admin chat.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from django.utils import timezone

from config.domain_exceptions import GatewayError

from .handlers.base import NotificationHandler, NotificationResult
from .handlers.telegram import TelegramHandler

GATEWAY_NAME = "Telegram"

logger = logging.getLogger(__name__)


class BackupGatewayError(GatewayError):
    gateway_name = GATEWAY_NAME


class BackupNotConfigured(BackupGatewayError):
    pass


class BackupDeliveryError(BackupGatewayError):
    def __init__(self, report: "BackupReport"):
        self.report = report
        self.operation = "send backup"
        failures = report.failures
        self.error = "; ".join(f"{d.chat_id}/{d.file_name}: {d.result.message}" for d in failures[:5]) or None
        super().__init__(
            f"Backup delivery failed for {len(failures)} of {len(report.deliveries)} file(s). Error: {self.error}"
        )


@dataclass(frozen=True)
class BackupDelivery:
    chat_id: str
    file_name: str
    result: NotificationResult


@dataclass
class BackupReport:
    deliveries: list[BackupDelivery] = field(default_factory=list)

    @property
    def failures(self) -> list[BackupDelivery]:
        return [d for d in self.deliveries if not d.result.success]

    @property
    def success(self) -> bool:
        return bool(self.deliveries) and not self.failures

    def as_dict(self) -> dict:
        return {
            "success": self.success,
            "deliveries": [
                {"chat_id": d.chat_id, "file_name": d.file_name, **d.result.as_dict()}
                for d in self.deliveries
            ],
        }


class BackupDispatcher:
    """
    Sends every existing backup file to every admin chat.

    Settings (overridable per instance): TELEGRAM_BOT_TOKEN,
    TELEGRAM_ADMIN_CHAT_IDS, TELEGRAM_API_URL, BACKUP_FILES.
    """

    def __init__(
        self,
        *,
        handler: NotificationHandler | None = None,
        bot_token: str | None = None,
        admin_chat_ids: list[str] | None = None,
        api_url: str | None = None,
        backup_files: list[str] | None = None,
    ) -> None:
        self.handler = handler or TelegramHandler()
        self._bot_token = bot_token
        self._admin_chat_ids = admin_chat_ids
        self._api_url = api_url
        self._backup_files = backup_files

    def _resolve(self) -> tuple[str, list[str], str | None, list[str]]:
        from django.conf import settings

        bot_token = self._bot_token if self._bot_token is not None else getattr(settings, "TELEGRAM_BOT_TOKEN", "")
        chat_ids = (
            self._admin_chat_ids
            if self._admin_chat_ids is not None
            else list(getattr(settings, "TELEGRAM_ADMIN_CHAT_IDS", []) or [])
        )
        api_url = self._api_url if self._api_url is not None else getattr(settings, "TELEGRAM_API_URL", None)
        files = (
            self._backup_files
            if self._backup_files is not None
            else list(getattr(settings, "BACKUP_FILES", []) or [])
        )
        return str(bot_token or ""), [str(c) for c in chat_ids if str(c).strip()], api_url, [str(f) for f in files]

    def send_backup_to_admins(self) -> BackupReport:
        """
        Deliver the backup files to every admin chat.

        Raises BackupNotConfigured when the Telegram settings are missing or
        invalid or there is nothing to send, and BackupDeliveryError if any
        delivery failed.
        """
        bot_token, chat_ids, api_url, files = self._resolve()
        if not bot_token:
            raise BackupNotConfigured("Telegram bot token is not configured.")
        if not chat_ids:
            raise BackupNotConfigured("No Telegram admin chats are configured.")

        configs = [{"bot_token": bot_token, "chat_id": chat_id, "api_url": api_url} for chat_id in chat_ids]
        problems = sorted({problem for config in configs for problem in self.handler.validate_config(config)})
        if problems:
            raise BackupNotConfigured(f"Telegram settings are invalid: {'; '.join(problems)}.")

        existing = [Path(f) for f in files if Path(f).is_file()]
        missing = [f for f in files if not Path(f).is_file()]
        for path in missing:
            logger.warning("Backup file %s does not exist; skipping", path)
        if not existing:
            raise BackupNotConfigured("None of the configured backup files exist.")

        caption = f"Panel backup {timezone.now().strftime('%Y-%m-%d %H:%M:%S %Z')}"
        report = BackupReport()
        for config in configs:
            chat_id = config["chat_id"]
            for path in existing:
                result = self.handler.send_document(config, path, caption=caption)
                report.deliveries.append(BackupDelivery(chat_id=chat_id, file_name=path.name, result=result))
                if not result.success:
                    logger.error("Backup %s to chat %s failed: %s", path.name, chat_id, result.message)

        if report.failures:
            raise BackupDeliveryError(report)
        logger.info("Backup sent to %d admin chat(s) (%d file(s))", len(chat_ids), len(existing))
        return report


backup_dispatcher = BackupDispatcher()
