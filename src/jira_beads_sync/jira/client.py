"""Jira REST v2 client.

Wraps a `requests.Session` so that HTTP details stay out of the fetcher and the
CLI, and maps HTTP failures onto the domain error taxonomy.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlparse

import requests

from jira_beads_sync.errors import (
    MalformedSourceResponse,
    SourceNotFound,
    SourceUnauthorized,
    SourceUnavailable,
)
from jira_beads_sync.jira.models import JiraUser, RawIssue, parse_issue
from jira_beads_sync.jira.source import SearchResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30
DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_RESULTS = 1000


class JiraClient:
    """Issue Source backed by the Jira REST API (basic auth with an API token)."""

    def __init__(
        self,
        *,
        base_url: str,
        username: str,
        api_token: str,
        max_results: int = DEFAULT_MAX_RESULTS,
        page_size: int = DEFAULT_PAGE_SIZE,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        if not base_url.strip():
            raise ValueError("Jira base URL is required")
        if not username.strip():
            raise ValueError("Jira username is required")
        if not api_token:
            raise ValueError("Jira API token is required")
        if max_results <= 0 or page_size <= 0:
            raise ValueError("max_results and page_size must be positive")

        self._base_url = base_url.strip().rstrip("/")
        self._max_results = max_results
        self._page_size = page_size
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.auth = (username, api_token)
        self._session.headers.update(
            {
                "Accept": "application/json",
                "User-Agent": "jira-beads-sync",
            }
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def close(self) -> None:
        self._session.close()

    def _api_url(self, path: str) -> str:
        return f"{self._base_url}/rest/api/2/{path.lstrip('/')}"

    def _get_json(
        self, url: str, *, params: dict[str, Any] | None = None, key: str | None = None
    ) -> Any:
        try:
            resp = self._session.get(url, params=params, timeout=self._timeout)
        except requests.RequestException as e:
            raise SourceUnavailable(f"Failed to reach Jira at {url}: {e}", key=key) from e

        if resp.status_code in (401, 403):
            raise SourceUnauthorized(
                "Authentication failed: invalid username or API token", key=key
            )
        if resp.status_code == 404:
            raise SourceNotFound(f"Not found: {key or url}", key=key)
        if resp.status_code != 200:
            raise SourceUnavailable(
                f"Jira API returned status {resp.status_code}: {resp.text}", key=key
            )

        try:
            return resp.json()
        except ValueError as e:
            raise MalformedSourceResponse(
                f"Response for {key or url} is not valid JSON: {e}", key=key
            ) from e

    def fetch_issue(self, key: str) -> RawIssue:
        """Fetch a single issue by key (e.g. "PROJ-123")."""

        if not key.strip():
            raise ValueError("issue key is required")
        logger.debug("Fetching issue", extra={"key": key})
        payload = self._get_json(self._api_url(f"issue/{key}"), key=key)
        return parse_issue(payload, key=key)

    def search(self, query: str) -> SearchResult:
        """Run a JQL search and return matching keys.

        Pages are requested until every match is collected or the configured
        `max_results` cap is reached; `SearchResult.total` keeps the total the
        server reported so callers can detect truncation.
        """

        keys: list[str] = []
        total = 0
        start_at = 0
        while len(keys) < self._max_results:
            page_size = min(self._page_size, self._max_results - len(keys))
            data = self._get_json(
                self._api_url("search"),
                params={
                    "jql": query,
                    "fields": "key",
                    "startAt": start_at,
                    "maxResults": page_size,
                },
                key=query,
            )
            if not isinstance(data, dict):
                raise MalformedSourceResponse("Search response is not a JSON object", key=query)

            raw_total = data.get("total", 0)
            issues = data.get("issues", [])
            if not isinstance(raw_total, int) or not isinstance(issues, list):
                raise MalformedSourceResponse("Search response has unexpected shape", key=query)
            total = raw_total

            for item in issues:
                issue_key = item.get("key") if isinstance(item, dict) else None
                if not isinstance(issue_key, str) or not issue_key.strip():
                    raise MalformedSourceResponse("Search result entry has no key", key=query)
                keys.append(issue_key)

            start_at += len(issues)
            if not issues or start_at >= total:
                break

        result = SearchResult(keys=keys, total=total)
        logger.info(
            "Search completed",
            extra={"jql": query, "retrieved": len(result.keys), "total": result.total},
        )
        return result

    def get_current_user(self) -> JiraUser:
        """Fetch the authenticated user; a cheap way to validate credentials."""

        payload = self._get_json(self._api_url("myself"))
        if not isinstance(payload, dict):
            raise MalformedSourceResponse("User response is not a JSON object")
        return JiraUser.model_validate(payload)


def parse_issue_key_from_url(jira_url: str) -> str:
    """Extract the issue key from a Jira URL.

    Handles `/browse/PROJ-123`, `/projects/PROJ/issues/PROJ-123`, and otherwise
    the first path segment shaped like `PROJ-123`.
    """

    parsed = urlparse(jira_url)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"Invalid URL: {jira_url}")

    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) >= 2 and parts[0] == "browse":
        return parts[1]
    if len(parts) >= 4 and parts[0] == "projects" and parts[2] == "issues":
        return parts[3]

    for part in parts:
        if len(part) > 3 and "-" in part:
            dash = part.index("-")
            if 0 < dash < len(part) - 1:
                return part

    raise ValueError(f"Could not extract issue key from URL: {jira_url}")


def base_url_from_issue_url(jira_url: str) -> str:
    parsed = urlparse(jira_url)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"Invalid URL: {jira_url}")
    return f"{parsed.scheme}://{parsed.netloc}"


def is_url(value: str) -> bool:
    return value.startswith(("http://", "https://"))
