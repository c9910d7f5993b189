"""FastAPI application serving the dashboard and the mark-read action."""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Callable, Iterator, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import HTMLResponse, RedirectResponse

from .config import AppConfig
from .github import GitHubClient, UpstreamError
from .pipeline import build_view_model
from .renderers import build_dashboard_html, load_template

logger = logging.getLogger(__name__)

MARK_READ_OK = (202, 205)

_RFC3339 = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})$"
)


def parse_rfc3339(value: Optional[str]) -> datetime:
    """Parse an RFC3339 timestamp; raises ValueError for anything else."""
    if not value:
        raise ValueError("missing timestamp")
    # An unencoded '+' in a query string arrives as a space.
    candidate = value.strip().replace(" ", "+").upper()
    if not _RFC3339.match(candidate):
        raise ValueError(f"not an RFC3339 timestamp: {value!r}")
    return datetime.fromisoformat(candidate.replace("Z", "+00:00"))


def create_app(
    config: AppConfig, client_factory: Callable[[], GitHubClient]
) -> FastAPI:
    """Build the application; a template that fails to parse raises here."""
    template = load_template(config.template_path)
    target = config.repository

    app = FastAPI(title="Notification dashboard", docs_url=None, redoc_url=None)

    def get_client() -> Iterator[GitHubClient]:
        client = client_factory()
        try:
            yield client
        finally:
            client.close()

    @app.get("/", response_class=HTMLResponse)
    def dashboard(client: GitHubClient = Depends(get_client)):
        try:
            view_model = build_view_model(client, target, per_page=config.per_page)
        except UpstreamError as exc:
            logger.error("Failed to list notifications: %s", exc)
            raise HTTPException(status_code=502, detail="Failed to fetch notifications")
        except Exception:
            logger.exception("Unexpected error while building dashboard")
            raise HTTPException(status_code=500, detail="Internal server error")
        html = build_dashboard_html(view_model, template=template)
        return HTMLResponse(content=html)

    @app.get("/read/")
    def mark_read(
        time: Optional[str] = Query(default=None),
        client: GitHubClient = Depends(get_client),
    ):
        try:
            last_read_at = parse_rfc3339(time)
        except ValueError as exc:
            logger.info("Rejected mark-read request: %s", exc)
            raise HTTPException(status_code=400, detail=str(exc))

        try:
            status = client.mark_repository_read(target.owner, target.name, last_read_at)
        except UpstreamError as exc:
            logger.error("Failed to mark %s read: %s", target.full_name, exc)
            raise HTTPException(status_code=502, detail="Failed to mark notifications read")

        if status not in MARK_READ_OK:
            logger.error(
                "Unexpected status %d marking %s read", status, target.full_name
            )
            raise HTTPException(status_code=502, detail=f"Unexpected upstream status {status}")
        return RedirectResponse(url="/", status_code=303)

    return app
