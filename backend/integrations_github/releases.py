"""
GitHub releases client used to check for newer panel versions.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

import httpx

from config.domain_exceptions import GatewayError

GATEWAY_NAME = "GitHub"

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"^v?(\d+(?:\.\d+)*)")


class GitHubGatewayError(GatewayError):
    gateway_name = GATEWAY_NAME


class GitHubNotReachable(GitHubGatewayError):
    def __init__(self, error: str | None = None):
        """Wrap an optional low-level network error string."""
        self.error = error
        super().__init__(error or "GitHub is not reachable.")


class GitHubApiError(GitHubGatewayError):
    def __init__(self, operation: str, status_code: int, error: str | None = None):
        self.operation = operation
        self.status_code = status_code
        self.error = error
        message = f"{GATEWAY_NAME} {operation} failed with HTTP {status_code}."
        if error:
            message = f"{message} Error: {error}"
        super().__init__(message)


class GitHubResponseError(GitHubGatewayError):
    """The release payload could not be interpreted."""


@dataclass(frozen=True)
class UpdateCheckResult:
    update_available: bool
    current_version: str
    latest_version: str
    download_url: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "update_available": self.update_available,
            "current_version": self.current_version,
            "latest_version": self.latest_version,
            "download_url": self.download_url,
        }


def parse_version(value: str) -> tuple[int, ...]:
    """
    Parse "v1.2.3", "1.2" or "1.2.3-beta" into a comparable tuple of ints.

    Trailing zeros are dropped so "1.2" == "1.2.0".
    """
    match = _VERSION_RE.match((value or "").strip())
    if not match:
        raise GitHubResponseError(f"Unrecognized version: {value!r}")
    parts = [int(p) for p in match.group(1).split(".")]
    while len(parts) > 1 and parts[-1] == 0:
        parts.pop()
    return tuple(parts)


def is_newer(candidate: str, current: str) -> bool:
    return parse_version(candidate) > parse_version(current)


class GitHubReleasesClient:
    """Minimal client for `GET /repos/{owner}/{project}/releases/latest`."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    def _resolve_base_url(self) -> str:
        if self._base_url:
            return self._base_url.rstrip("/")
        from django.conf import settings

        return str(getattr(settings, "GITHUB_API_URL", "https://api.github.com")).rstrip("/")

    def _resolve_timeout(self) -> float:
        if self._timeout_seconds is not None:
            return float(self._timeout_seconds)
        from django.conf import settings

        return float(getattr(settings, "GITHUB_TIMEOUT_SECONDS", 10.0))

    def get_latest_release(self, *, owner: str, project: str) -> dict[str, Any]:
        """Fetch the latest release payload for a repository."""
        operation = f"latest release lookup for {owner}/{project}"
        url = f"{self._resolve_base_url()}/repos/{owner}/{project}/releases/latest"
        headers = {"Accept": "application/vnd.github+json"}
        try:
            with httpx.Client(timeout=self._resolve_timeout(), transport=self._transport) as client:
                response = client.get(url, headers=headers)
        except httpx.TimeoutException as exc:
            raise GitHubNotReachable(f"Timed out during {operation}.") from exc
        except httpx.RequestError as exc:
            raise GitHubNotReachable(f"Network error during {operation}: {exc}") from exc

        if response.status_code != 200:
            error = None
            try:
                error = response.json().get("message")
            except (ValueError, AttributeError):
                error = response.text[:200] or None
            raise GitHubApiError(operation, response.status_code, error)

        try:
            payload = response.json()
        except ValueError as exc:
            raise GitHubResponseError(f"Invalid JSON in {operation}.") from exc
        if not isinstance(payload, dict):
            raise GitHubResponseError(f"Unexpected payload in {operation}.")
        return payload

    def check_for_update(self, *, owner: str, project: str, current_version: str) -> UpdateCheckResult:
        """Compare the latest published release with `current_version`."""
        release = self.get_latest_release(owner=owner, project=project)
        tag = release.get("tag_name")
        if not isinstance(tag, str) or not tag.strip():
            raise GitHubResponseError(f"Latest release of {owner}/{project} has no tag_name.")

        latest_version = tag.strip()
        if not is_newer(latest_version, current_version):
            return UpdateCheckResult(
                update_available=False,
                current_version=current_version,
                latest_version=latest_version,
            )

        return UpdateCheckResult(
            update_available=True,
            current_version=current_version,
            latest_version=latest_version,
            download_url=_pick_download_url(release),
        )


def _pick_download_url(release: dict[str, Any]) -> str | None:
    """Prefer the first linux asset, then any asset, then the release page."""
    assets = release.get("assets") or []
    urls = [
        a.get("browser_download_url")
        for a in assets
        if isinstance(a, dict) and isinstance(a.get("browser_download_url"), str)
    ]
    for url in urls:
        if "linux" in url.lower():
            return url
    if urls:
        return urls[0]
    html_url = release.get("html_url")
    return html_url if isinstance(html_url, str) else None


github_releases_client = GitHubReleasesClient()
