"""Minimal GitHub REST client for notifications, issues and comments."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from .models import CommentDetail, IssueDetail, RawNotification

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"


class UpstreamError(RuntimeError):
    """Raised when a call to the notification source fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GitHubClient:
    """Authenticated wrapper around a ``requests.Session``."""

    def __init__(
        self,
        token: Optional[str],
        api_url: str = DEFAULT_API_URL,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            }
        )
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        if not url.startswith("http"):
            url = f"{self.api_url}{url}"
        logger.debug("%s %s params=%s", method, url, params)
        try:
            response = self.session.request(
                method, url, params=params, json=json, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise UpstreamError(f"{method} {url} failed: {exc}") from exc

        if response.status_code >= 400:
            raise UpstreamError(
                f"{method} {url} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: requests.Response, method: str, url: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(f"{method} {url} returned invalid JSON") from exc

    @staticmethod
    def _build(model, payload: Any, source: str):
        """Build ``model`` from an API payload; malformed fields become UpstreamError."""
        try:
            return model.from_api(payload)
        except (ValueError, TypeError, AttributeError) as exc:
            raise UpstreamError(
                f"{source} returned a malformed {model.__name__}: {exc}"
            ) from exc

    def _get_paginated(
        self, path: str, params: Optional[Dict[str, Any]] = None
    ) -> List[dict]:
        """Follow ``Link: rel="next"`` headers and concatenate every page."""
        items: List[dict] = []
        url: Optional[str] = path
        pages = 0
        while url:
            response = self._request("GET", url, params=params)
            pages += 1
            items.extend(self._json(response, "GET", url))
            # The next link already carries the query string.
            params = None
            url = (response.links or {}).get("next", {}).get("url")
        logger.debug("Fetched %d items from %s across %d pages", len(items), path, pages)
        return items

    def list_notifications(self, per_page: int = 50) -> List[RawNotification]:
        """Return every notification visible to the token, all pages."""
        payload = self._get_paginated("/notifications", params={"per_page": per_page})
        notifications = [
            self._build(RawNotification, item, "GET /notifications") for item in payload
        ]
        logger.info("Listed %d notifications", len(notifications))
        return notifications

    def get_issue(self, owner: str, repo: str, number: int) -> IssueDetail:
        path = f"/repos/{owner}/{repo}/issues/{number}"
        response = self._request("GET", path)
        return self._build(IssueDetail, self._json(response, "GET", path), path)

    def list_comments(
        self,
        owner: str,
        repo: str,
        number: int,
        sort: str = "created",
        direction: str = "desc",
    ) -> List[CommentDetail]:
        """List issue comments in the order the source returns them."""
        path = f"/repos/{owner}/{repo}/issues/{number}/comments"
        payload = self._get_paginated(path, params={"sort": sort, "direction": direction})
        return [self._build(CommentDetail, item, path) for item in payload]

    def mark_repository_read(
        self, owner: str, repo: str, last_read_at: datetime
    ) -> int:
        """Mark notifications in a repository read up to ``last_read_at``.

        Returns the HTTP status code reported by the source.
        """
        response = self._request(
            "PUT",
            f"/repos/{owner}/{repo}/notifications",
            json={"last_read_at": last_read_at.isoformat()},
        )
        logger.info(
            "Marked %s/%s read up to %s (HTTP %d)",
            owner,
            repo,
            last_read_at.isoformat(),
            response.status_code,
        )
        return response.status_code
