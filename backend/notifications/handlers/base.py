"""
Notification handler contract and delivery result type.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class NotificationResult:
    """Outcome of one file delivery to one recipient."""

    success: bool
    message: str
    error_code: str | None = None
    provider_response: dict | None = None

    @classmethod
    def ok(cls, message: str = "Sent successfully", response: dict | None = None) -> "NotificationResult":
        return cls(success=True, message=message, provider_response=response)

    @classmethod
    def error(cls, message: str, code: str = "ERROR", response: dict | None = None) -> "NotificationResult":
        return cls(success=False, message=message, error_code=code, provider_response=response)

    def as_dict(self) -> dict:
        """Public view of the result; the raw provider response is left out."""
        return {
            "success": self.success,
            "message": self.message,
            "error_code": self.error_code,
        }


class NotificationHandler(ABC):
    """
    Base class for admin notification providers.

    Handlers report delivery problems through the returned NotificationResult
    instead of raising; callers decide whether a failed delivery is an error.
    """

    provider_type: str = ""
    display_name: str = ""

    @abstractmethod
    def validate_config(self, config: dict) -> list[str]:
        """Return configuration problems (empty when the config is usable)."""

    @abstractmethod
    def send_document(
        self,
        config: dict,
        path: str | Path,
        caption: str | None = None,
    ) -> NotificationResult:
        """Send a file to the recipient named in `config`."""
