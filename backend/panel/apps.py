from __future__ import annotations

from django.apps import AppConfig


class PanelConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "panel"
    verbose_name = "Panel maintenance"

    def ready(self) -> None:
        """Declare the panel's scheduled jobs before the scheduler app starts."""
        from . import tasks  # noqa: F401
