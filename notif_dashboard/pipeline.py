"""Aggregation pipeline: notifications in, dashboard view model out."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

from .config import RepositoryTarget
from .github import GitHubClient, UpstreamError
from .models import IssueDetail, NotifCard, RawNotification, RenderedComment, ViewModel
from .templating import render_markdown

logger = logging.getLogger(__name__)

_HOUR_US = 3600 * 1_000_000


class MalformedIdentifierError(ValueError):
    """Raised when a notification's repository name or subject URL can't be parsed."""


def capture_now() -> datetime:
    """Current local time, second precision, with UTC offset."""
    return datetime.now().astimezone().replace(microsecond=0)


def format_age(delta: timedelta) -> str:
    """Round ``delta`` to the nearest hour and format it like ``3h0m0s``.

    Halves round away from zero; a zero duration is ``0s``.
    """
    micros = delta // timedelta(microseconds=1)
    hours, remainder = divmod(abs(micros), _HOUR_US)
    if remainder * 2 >= _HOUR_US:
        hours += 1
    if hours == 0:
        return "0s"
    sign = "-" if micros < 0 else ""
    return f"{sign}{hours}h0m0s"


def split_repository(full_name: str) -> Tuple[str, str]:
    parts = full_name.split("/")
    if len(parts) != 2 or not all(parts):
        raise MalformedIdentifierError(f"Malformed repository name: {full_name!r}")
    return parts[0], parts[1]


def parse_issue_number(subject_url: str) -> int:
    """Return the trailing path segment of ``subject_url`` as an issue number.

    Only plain ASCII digits are accepted.
    """
    tail = subject_url.rstrip("/").rsplit("/", 1)[-1] if subject_url else ""
    if not (tail.isascii() and tail.isdigit()):
        raise MalformedIdentifierError(f"Subject URL has no issue number: {subject_url!r}")
    return int(tail)


def filter_notifications(
    notifications: List[RawNotification], target: RepositoryTarget
) -> List[RawNotification]:
    retained = [n for n in notifications if target.matches(n.repository_full_name)]
    logger.info(
        "Retained %d of %d notifications for %s (%s match)",
        len(retained),
        len(notifications),
        target.full_name,
        target.match,
    )
    return retained


def _render_comments(
    client: GitHubClient,
    owner: str,
    repo: str,
    number: int,
    now: datetime,
    render: Callable[[str], str],
) -> List[RenderedComment]:
    rendered: List[RenderedComment] = []
    for comment in client.list_comments(
        owner, repo, number, sort="created", direction="desc"
    ):
        if not comment.body:
            continue
        age = format_age(now - comment.created_at) if comment.created_at else ""
        rendered.append(
            RenderedComment(
                title=comment.author,
                body=render(comment.body),
                url=comment.html_url,
                age=age,
            )
        )
    return rendered


def build_card(
    client: GitHubClient,
    notification: RawNotification,
    now: datetime,
    render: Callable[[str], str] = render_markdown,
    failures: Optional[List[str]] = None,
) -> Optional[NotifCard]:
    """Hydrate one notification into a card, or None if the issue body is empty.

    Raises MalformedIdentifierError (or another ValueError) or UpstreamError if the
    issue itself can't be resolved. A failed comment listing leaves the card
    without comments and is appended to ``failures``.
    """
    owner, repo = split_repository(notification.repository_full_name)
    number = parse_issue_number(notification.subject.url)
    issue: IssueDetail = client.get_issue(owner, repo, number)

    if not issue.body:
        logger.debug("Skipping %s/%s#%d: empty body", owner, repo, number)
        return None

    card = NotifCard(
        body=render(issue.body),
        title=issue.title,
        url=issue.html_url,
        notification_id=notification.id,
        labels=list(issue.labels),
        closed=issue.closed,
    )

    if issue.comments > 0:
        try:
            card.comments = _render_comments(client, owner, repo, number, now, render)
        except (UpstreamError, ValueError) as exc:
            logger.warning("Could not load comments for %s/%s#%d: %s", owner, repo, number, exc)
            if failures is not None:
                failures.append(f"{owner}/{repo}#{number} comments: {exc}")
    return card


def build_view_model(
    client: GitHubClient,
    target: RepositoryTarget,
    now: Optional[datetime] = None,
    per_page: int = 50,
    render: Callable[[str], str] = render_markdown,
) -> ViewModel:
    """Fetch, filter and hydrate notifications into a ViewModel.

    Only a failure to list notifications propagates; problems with individual
    notifications are logged, recorded in ``ViewModel.failures`` and skipped.
    """
    if now is None:
        now = capture_now()

    notifications = client.list_notifications(per_page=per_page)
    retained = filter_notifications(notifications, target)

    cards: List[NotifCard] = []
    failures: List[str] = []
    for notification in retained:
        try:
            card = build_card(client, notification, now, render, failures)
        except (ValueError, UpstreamError) as exc:
            logger.warning("Skipping notification %s: %s", notification.id, exc)
            failures.append(f"Notification {notification.id}: {exc}")
            continue
        if card is not None:
            cards.append(card)

    logger.info(
        "Built %d cards from %d matching notifications (%d failures)",
        len(cards),
        len(retained),
        len(failures),
    )
    return ViewModel(
        cards=cards,
        refreshed_time=now.strftime("%H:%M"),
        time=now.isoformat(),
        count=len(retained),
        failures=failures,
    )
