"""
Telegram bot notification handler.

Uploads documents (backups) to chats through the Bot API.
"""

import logging
from pathlib import Path

import httpx

from .base import NotificationHandler, NotificationResult

logger = logging.getLogger(__name__)


class TelegramHandler(NotificationHandler):
    """Handler for Telegram Bot API deliveries."""

    provider_type = "telegram"
    display_name = "Telegram"

    TIMEOUT = 30.0
    DEFAULT_API_URL = "https://api.telegram.org"

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        self._transport = transport

    def validate_config(self, config: dict) -> list[str]:
        """Validate Telegram configuration."""
        errors = []

        bot_token = config.get("bot_token", "")
        if not bot_token:
            errors.append("Bot token is required")
        elif ":" not in bot_token:
            errors.append("Bot token must look like '<id>:<secret>'")

        if not config.get("chat_id"):
            errors.append("Chat ID is required")

        return errors

    def _method_url(self, config: dict, method: str) -> str:
        api_url = (config.get("api_url") or self.DEFAULT_API_URL).rstrip("/")
        return f"{api_url}/bot{config['bot_token']}/{method}"

    def send_document(
        self,
        config: dict,
        path: str | Path,
        caption: str | None = None,
    ) -> NotificationResult:
        """Upload a file via sendDocument."""
        path = Path(path)
        try:
            content = path.read_bytes()
        except OSError as e:
            return NotificationResult.error(
                f"Cannot read {path}: {e.strerror or e}",
                code="FILE_ERROR",
            )

        form = {"chat_id": str(config["chat_id"])}
        if caption:
            form["caption"] = caption
        return self._post(
            config,
            "sendDocument",
            data=form,
            files={"document": (path.name, content, "application/octet-stream")},
        )

    def _post(
        self,
        config: dict,
        method: str,
        data: dict,
        files: dict | None = None,
    ) -> NotificationResult:
        try:
            with httpx.Client(timeout=self.TIMEOUT, transport=self._transport) as client:
                response = client.post(self._method_url(config, method), data=data, files=files)

            body = {}
            if response.content:
                try:
                    body = response.json()
                except ValueError:
                    body = {"raw": response.text[:500]}

            if response.status_code == 200 and body.get("ok", True):
                return NotificationResult.ok(f"Telegram {method} succeeded", response=body)
            description = body.get("description") or f"HTTP {response.status_code}"
            if response.status_code == 401:
                return NotificationResult.error("Invalid bot token", code="UNAUTHORIZED", response=body)
            if response.status_code in (400, 403):
                return NotificationResult.error(
                    f"Telegram rejected the request: {description}",
                    code="BAD_REQUEST" if response.status_code == 400 else "FORBIDDEN",
                    response=body,
                )
            if response.status_code == 429:
                return NotificationResult.error(
                    "Rate limited. Try again later.",
                    code="RATE_LIMITED",
                    response=body,
                )
            return NotificationResult.error(
                f"Telegram {method} failed: {description}",
                code="API_ERROR",
                response=body,
            )

        except httpx.TimeoutException:
            logger.warning("Telegram %s request timed out", method)
            return NotificationResult.error("Request timed out", code="TIMEOUT")
        except httpx.RequestError as e:
            logger.warning("Telegram %s network error: %s", method, e)
            return NotificationResult.error(f"Network error: {e}", code="NETWORK_ERROR")
