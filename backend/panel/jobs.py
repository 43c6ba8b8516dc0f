"""Supervisory jobs run by the scheduler."""

from __future__ import annotations

import logging

from config.domain_exceptions import GatewayError
from scheduler.jobs import Job

from .gateways.process_supervisor import ProcessSupervisor
from .gateways.update_registry import UpdateRegistryGateway

logger = logging.getLogger(__name__)


class UpdateCheckJob(Job):
    """Checks the release registry for a panel version newer than the running one."""

    def __init__(
        self,
        *,
        registry: UpdateRegistryGateway,
        owner: str,
        project: str,
        current_version: str,
    ) -> None:
        self.registry = registry
        self.owner = owner
        self.project = project
        self.current_version = current_version

    def run(self) -> None:
        # The next scheduled firing is the retry.
        try:
            result = self.registry.check_for_update(
                owner=self.owner,
                project=self.project,
                current_version=self.current_version,
            )
        except GatewayError as exc:
            logger.error("Error checking for update of %s/%s: %s", self.owner, self.project, exc)
            return

        if result.update_available:
            logger.info(
                "Update available for %s/%s: %s -> %s (%s)",
                self.owner,
                self.project,
                self.current_version,
                result.latest_version,
                result.download_url or "no download location",
            )
        else:
            logger.info(
                "%s/%s is up to date (%s, latest %s)",
                self.owner,
                self.project,
                self.current_version,
                result.latest_version,
            )

    def __repr__(self) -> str:
        return f"UpdateCheckJob({self.owner}/{self.project}@{self.current_version})"


class CoreRestartJob(Job):
    """Asks the process supervisor to restart the proxy core."""

    def __init__(self, *, supervisor: ProcessSupervisor, force: bool = True) -> None:
        self.supervisor = supervisor
        self.force = force

    def run(self) -> None:
        try:
            restarted = self.supervisor.restart(force=self.force)
        except GatewayError as exc:
            logger.error("Restart proxy core failed (force=%s): %s", self.force, exc)
            return

        if restarted is False:
            logger.info("Restart proxy core skipped: process healthy and config unchanged")
        else:
            logger.info("Restart proxy core success")

    def __repr__(self) -> str:
        return f"CoreRestartJob(force={self.force})"
