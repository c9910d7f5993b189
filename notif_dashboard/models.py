"""Shared data models for notif_dashboard."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a GitHub ISO-8601 timestamp into an aware datetime."""
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass
class Label:
    name: str
    color: str = ""
    description: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict) -> "Label":
        return cls(
            name=data.get("name", ""),
            color=data.get("color") or "",
            description=data.get("description"),
        )


@dataclass
class NotificationSubject:
    """Object a notification refers to (issue, pull request, ...)."""

    title: str
    url: str
    type: str = ""

    @classmethod
    def from_api(cls, data: dict) -> "NotificationSubject":
        return cls(
            title=data.get("title") or "",
            url=data.get("url") or "",
            type=data.get("type") or "",
        )


@dataclass
class RawNotification:
    """Notification as listed by the source, before hydration."""

    id: str
    subject: NotificationSubject
    repository_full_name: str
    updated_at: Optional[datetime] = None
    unread: bool = True

    @classmethod
    def from_api(cls, data: dict) -> "RawNotification":
        repo = data.get("repository") or {}
        return cls(
            id=str(data.get("id", "")),
            subject=NotificationSubject.from_api(data.get("subject") or {}),
            repository_full_name=repo.get("full_name") or "",
            updated_at=parse_timestamp(data.get("updated_at")),
            unread=bool(data.get("unread", True)),
        )


@dataclass
class IssueDetail:
    number: int
    title: str
    body: str
    html_url: str
    state: str
    labels: List[Label] = field(default_factory=list)
    comments: int = 0

    @property
    def closed(self) -> bool:
        return self.state == "closed"

    @classmethod
    def from_api(cls, data: dict) -> "IssueDetail":
        return cls(
            number=int(data.get("number", 0)),
            title=data.get("title") or "",
            body=data.get("body") or "",
            html_url=data.get("html_url") or "",
            state=data.get("state") or "",
            labels=[Label.from_api(item) for item in data.get("labels") or []],
            comments=int(data.get("comments") or 0),
        )


@dataclass
class CommentDetail:
    author: str
    body: str
    html_url: str
    created_at: datetime

    @classmethod
    def from_api(cls, data: dict) -> "CommentDetail":
        user = data.get("user") or {}
        return cls(
            author=user.get("login") or "",
            body=data.get("body") or "",
            html_url=data.get("html_url") or "",
            created_at=parse_timestamp(data.get("created_at")),
        )


@dataclass
class RenderedComment:
    """Comment ready for the template; ``title`` is the author login."""

    title: str
    body: str
    url: str
    age: str


@dataclass
class NotifCard:
    """Per-issue renderable unit of the dashboard."""

    body: str
    title: str
    url: str
    notification_id: str
    labels: List[Label] = field(default_factory=list)
    comments: List[RenderedComment] = field(default_factory=list)
    closed: bool = False


@dataclass
class ViewModel:
    """Everything the dashboard template consumes."""

    cards: List[NotifCard]
    refreshed_time: str
    time: str
    count: int
    failures: List[str] = field(default_factory=list)
