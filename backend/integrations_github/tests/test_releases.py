from __future__ import annotations

import httpx
from django.test import SimpleTestCase, override_settings

from integrations_github.releases import (
    GitHubApiError,
    GitHubNotReachable,
    GitHubReleasesClient,
    GitHubResponseError,
    is_newer,
    parse_version,
)


def _client(handler) -> GitHubReleasesClient:
    return GitHubReleasesClient(
        base_url="https://github.test",
        timeout_seconds=1,
        transport=httpx.MockTransport(handler),
    )


class VersionTests(SimpleTestCase):
    def test_parse_version(self):
        self.assertEqual(parse_version("v1.2.3"), (1, 2, 3))
        self.assertEqual(parse_version("1.2.0"), (1, 2))
        self.assertEqual(parse_version("2.0.1-beta"), (2, 0, 1))

    def test_is_newer_compares_numerically(self):
        self.assertTrue(is_newer("v1.10.0", "1.9.9"))
        self.assertFalse(is_newer("v1.2", "1.2.0"))
        self.assertFalse(is_newer("1.1.9", "1.2.0"))

    def test_unparseable_version(self):
        with self.assertRaises(GitHubResponseError):
            parse_version("latest")


class CheckForUpdateTests(SimpleTestCase):
    def test_update_available_prefers_linux_asset(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "tag_name": "v1.3.0",
                    "html_url": "https://github.test/AghayeCoder/tx-ui/releases/v1.3.0",
                    "assets": [
                        {"browser_download_url": "https://dl.test/tx-ui-windows-amd64.zip"},
                        {"browser_download_url": "https://dl.test/tx-ui-linux-amd64.tar.gz"},
                    ],
                },
            )

        result = _client(handler).check_for_update(owner="AghayeCoder", project="tx-ui", current_version="1.2.0")

        self.assertEqual(str(seen[0].url), "https://github.test/repos/AghayeCoder/tx-ui/releases/latest")
        self.assertTrue(result.update_available)
        self.assertEqual(result.latest_version, "v1.3.0")
        self.assertEqual(result.download_url, "https://dl.test/tx-ui-linux-amd64.tar.gz")

    def test_update_without_assets_points_at_release_page(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"tag_name": "v2.0.0", "html_url": "https://github.test/r/v2.0.0"})

        result = _client(handler).check_for_update(owner="o", project="p", current_version="1.2.0")

        self.assertEqual(result.download_url, "https://github.test/r/v2.0.0")

    def test_up_to_date(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"tag_name": "v1.2.0", "assets": []})

        result = _client(handler).check_for_update(owner="o", project="p", current_version="1.2.0")

        self.assertFalse(result.update_available)
        self.assertIsNone(result.download_url)
        self.assertEqual(result.as_dict()["latest_version"], "v1.2.0")

    def test_network_error_is_not_reachable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with self.assertRaises(GitHubNotReachable) as ctx:
            _client(handler).check_for_update(owner="o", project="p", current_version="1.0")
        self.assertIn("connection refused", ctx.exception.error)

    def test_timeout_is_not_reachable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with self.assertRaises(GitHubNotReachable):
            _client(handler).check_for_update(owner="o", project="p", current_version="1.0")

    def test_http_error_carries_status_and_message(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"message": "Not Found"})

        with self.assertRaises(GitHubApiError) as ctx:
            _client(handler).check_for_update(owner="o", project="p", current_version="1.0")
        self.assertEqual(ctx.exception.status_code, 404)
        self.assertEqual(ctx.exception.error, "Not Found")
        self.assertEqual(ctx.exception.gateway_name, "GitHub")

    def test_missing_tag_is_a_response_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"name": "no tag"})

        with self.assertRaises(GitHubResponseError):
            _client(handler).check_for_update(owner="o", project="p", current_version="1.0")

    def test_invalid_json_is_a_response_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>")

        with self.assertRaises(GitHubResponseError):
            _client(handler).check_for_update(owner="o", project="p", current_version="1.0")

    @override_settings(GITHUB_API_URL="https://mirror.test/api/")
    def test_base_url_comes_from_settings(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json={"tag_name": "1.0"})

        GitHubReleasesClient(transport=httpx.MockTransport(handler)).get_latest_release(owner="o", project="p")

        self.assertEqual(seen, ["https://mirror.test/api/repos/o/p/releases/latest"])
