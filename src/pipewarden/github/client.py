"""Minimal GitHub REST API client.

Covers the handful of endpoints the pipelines need: listing pull requests,
commenting on them, and managing releases and their assets.
"""

from __future__ import annotations

import json
import mimetypes
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from pipewarden.core.errors import GitHubError
from pipewarden.core.logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 30


class GitHubClient:
    """Thin wrapper over the GitHub REST API."""

    def __init__(
        self,
        token: str = "",
        api_url: str = DEFAULT_API_URL,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> None:
        self._token = token
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout

    @property
    def authenticated(self) -> bool:
        return bool(self._token)

    def _headers(self, content_type: str = "application/json") -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "pipewarden",
            "Content-Type": content_type,
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def request(
        self,
        method: str,
        url: str,
        payload: Optional[Dict[str, Any]] = None,
        data: Optional[bytes] = None,
        content_type: str = "application/json",
    ) -> Any:
        """Send a request and decode the JSON response.

        Args:
            method: HTTP method.
            url: Absolute URL, or a path relative to the API root.
            payload: JSON body.
            data: Raw body (used for asset uploads).
            content_type: Content type of the body.

        Returns:
            Decoded JSON, or None for empty responses.

        Raises:
            GitHubError: On HTTP or connection failures.
        """
        if not url.startswith("http"):
            url = f"{self._api_url}/{url.lstrip('/')}"
        body = data
        if payload is not None:
            body = json.dumps(payload).encode("utf-8")

        request = Request(url, data=body, method=method, headers=self._headers(content_type))
        LOGGER.debug(f"GitHub {method} {url}")

        try:
            with urlopen(request, timeout=self._timeout) as response:
                raw = response.read()
        except HTTPError as e:
            detail = ""
            try:
                detail = json.loads(e.read().decode("utf-8")).get("message", "")
            except (ValueError, AttributeError, OSError):
                pass
            raise GitHubError(f"{method} {url} failed: {detail or e.reason}", status=e.code) from e
        except URLError as e:
            raise GitHubError(f"{method} {url} failed: {e.reason}") from e

        if not raw:
            return None
        try:
            return json.loads(raw.decode("utf-8"))
        except ValueError as e:
            # Covers JSONDecodeError and UnicodeDecodeError from proxies or HTML error pages
            raise GitHubError(f"{method} {url} returned an invalid JSON body: {e}") from e

    def list_open_pulls(self, repository: str) -> List[Dict[str, Any]]:
        """List open pull requests for ``owner/name``."""
        result = self.request("GET", f"repos/{repository}/pulls?state=open&per_page=100")
        return list(result or [])

    def create_issue_comment(self, repository: str, number: int, body: str) -> Dict[str, Any]:
        """Comment on an issue or pull request."""
        return self.request(
            "POST",
            f"repos/{repository}/issues/{number}/comments",
            payload={"body": body},
        )

    def create_release(
        self,
        repository: str,
        tag: str,
        name: str,
        body: str,
        prerelease: bool = False,
        draft: bool = False,
    ) -> Dict[str, Any]:
        """Create a release bound to ``tag``."""
        return self.request(
            "POST",
            f"repos/{repository}/releases",
            payload={
                "tag_name": tag,
                "name": name,
                "body": body,
                "draft": draft,
                "prerelease": prerelease,
            },
        )

    def upload_release_asset(self, upload_url: str, path: Path) -> Dict[str, Any]:
        """Upload a file as a release asset.

        Args:
            upload_url: The release's ``upload_url`` (URI template accepted).
            path: File to upload.
        """
        base = upload_url.split("{", 1)[0]
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        url = f"{base}?name={quote(path.name)}"
        return self.request("POST", url, data=path.read_bytes(), content_type=content_type)

    def delete_release(self, repository: str, release_id: int) -> None:
        self.request("DELETE", f"repos/{repository}/releases/{release_id}")
