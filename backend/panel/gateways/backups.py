from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from notifications.backup import BackupDispatcher, BackupReport, backup_dispatcher


class BackupGateway(Protocol):
    def send_backup_to_admins(self) -> BackupReport:
        """Send the panel backup to every admin; raise gateway errors on failure."""

        ...


@dataclass(frozen=True)
class DefaultBackupGateway:
    dispatcher: BackupDispatcher = backup_dispatcher

    def send_backup_to_admins(self) -> BackupReport:
        """Send the panel backup to every admin; raise gateway errors on failure."""
        return self.dispatcher.send_backup_to_admins()


default_backup_gateway: BackupGateway = DefaultBackupGateway()
