from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Dict, List, Optional, Tuple

import pytest
import requests

from notif_dashboard.github import UpstreamError
from notif_dashboard.models import (
    CommentDetail,
    IssueDetail,
    Label,
    NotificationSubject,
    RawNotification,
)

NOW = datetime(2024, 3, 1, 12, 30, 0, tzinfo=timezone.utc)


class FakeResponse:
    def __init__(self, payload=None, status_code=200, next_url=None):
        self._payload = payload if payload is not None else []
        self.status_code = status_code
        self.links = {"next": {"url": next_url, "rel": "next"}} if next_url else {}

    def json(self):
        return self._payload


class UndecodableResponse(FakeResponse):
    """A 200 response whose body is not JSON, e.g. an HTML error page."""

    def json(self):
        raise requests.JSONDecodeError("Expecting value", "<html>oops</html>", 0)


class FakeSession:
    """Records requests and replays queued responses per (method, url)."""

    def __init__(self, routes: Optional[Dict[Tuple[str, str], List]] = None):
        self.headers: Dict[str, str] = {}
        self.routes = routes or {}
        self.calls: List[SimpleNamespace] = []
        self.closed = False

    def request(self, method, url, params=None, json=None, timeout=None):
        self.calls.append(
            SimpleNamespace(method=method, url=url, params=params, json=json, timeout=timeout)
        )
        queue = self.routes.get((method, url))
        if not queue:
            raise AssertionError(f"Unexpected request {method} {url}")
        result = queue.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def close(self):
        self.closed = True


def make_notification(
    notification_id: str,
    full_name: str,
    number: int,
    updated_at: Optional[datetime] = None,
) -> RawNotification:
    return RawNotification(
        id=notification_id,
        subject=NotificationSubject(
            title=f"Issue {number}",
            url=f"https://api.github.com/repos/{full_name}/issues/{number}",
            type="Issue",
        ),
        repository_full_name=full_name,
        updated_at=updated_at,
    )


def make_issue(number: int, body: str = "Body", state: str = "open", comments: int = 0):
    return IssueDetail(
        number=number,
        title=f"Issue {number}",
        body=body,
        html_url=f"https://github.com/grafana/support-escalations/issues/{number}",
        state=state,
        labels=[Label(name="bug", color="d73a4a")],
        comments=comments,
    )


def make_comment(author: str, body: str, created_at: datetime) -> CommentDetail:
    return CommentDetail(
        author=author,
        body=body,
        html_url=f"https://github.com/comment/{author}",
        created_at=created_at,
    )


class FakeGitHubClient:
    """In-memory notification source that honours mark-read cursors."""

    def __init__(self, notifications=None, issues=None, comments=None, mark_status=205):
        self.notifications: List[RawNotification] = list(notifications or [])
        self.issues: Dict[Tuple[str, str, int], object] = dict(issues or {})
        self.comments: Dict[Tuple[str, str, int], object] = dict(comments or {})
        self.mark_status = mark_status
        self.read_cursors: Dict[str, datetime] = {}
        self.calls: List[tuple] = []
        self.closed = False

    def list_notifications(self, per_page=50):
        self.calls.append(("list_notifications", per_page))
        unread = []
        for notification in self.notifications:
            cursor = self.read_cursors.get(notification.repository_full_name)
            if cursor and notification.updated_at and notification.updated_at <= cursor:
                continue
            unread.append(notification)
        return unread

    def get_issue(self, owner, repo, number):
        self.calls.append(("get_issue", owner, repo, number))
        issue = self.issues.get((owner, repo, number))
        if issue is None:
            raise UpstreamError(f"GET issue {owner}/{repo}#{number} returned HTTP 404", 404)
        if isinstance(issue, Exception):
            raise issue
        return issue

    def list_comments(self, owner, repo, number, sort="created", direction="desc"):
        self.calls.append(("list_comments", owner, repo, number, sort, direction))
        comments = self.comments.get((owner, repo, number), [])
        if isinstance(comments, Exception):
            raise comments
        return list(comments)

    def mark_repository_read(self, owner, repo, last_read_at):
        self.calls.append(("mark_repository_read", owner, repo, last_read_at))
        if isinstance(self.mark_status, Exception):
            raise self.mark_status
        self.read_cursors[f"{owner}/{repo}"] = last_read_at
        return self.mark_status

    def close(self):
        self.closed = True


@pytest.fixture
def now():
    return NOW
