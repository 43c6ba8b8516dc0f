from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from proxy_core.manager import CoreProcessManager, CoreProcessStatus, proxy_core_manager


class ProcessSupervisor(Protocol):
    def restart(self, *, force: bool) -> bool:
        """Restart the proxy core; raise gateway errors on failure."""

        ...

    def get_status(self) -> CoreProcessStatus:
        """Return a non-raising snapshot of the proxy core process."""

        ...


@dataclass(frozen=True)
class DefaultProcessSupervisor:
    manager: CoreProcessManager = proxy_core_manager

    def restart(self, *, force: bool) -> bool:
        """Restart the proxy core; raise gateway errors on failure."""
        return self.manager.restart(force=force)

    def get_status(self) -> CoreProcessStatus:
        """Return a non-raising snapshot of the proxy core process."""
        return self.manager.get_status()


default_process_supervisor: ProcessSupervisor = DefaultProcessSupervisor()
