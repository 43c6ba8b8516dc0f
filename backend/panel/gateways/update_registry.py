from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from integrations_github.releases import GitHubReleasesClient, UpdateCheckResult, github_releases_client


class UpdateRegistryGateway(Protocol):
    def check_for_update(self, *, owner: str, project: str, current_version: str) -> UpdateCheckResult:
        """Report whether a release newer than `current_version` exists."""

        ...


@dataclass(frozen=True)
class DefaultUpdateRegistryGateway:
    client: GitHubReleasesClient = github_releases_client

    def check_for_update(self, *, owner: str, project: str, current_version: str) -> UpdateCheckResult:
        """Report whether a release newer than `current_version` exists."""
        return self.client.check_for_update(owner=owner, project=project, current_version=current_version)


default_update_registry: UpdateRegistryGateway = DefaultUpdateRegistryGateway()
