"""Rendering helpers for the dashboard page."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from jinja2 import Template

from .models import ViewModel
from .templating import get_environment

DEFAULT_TEMPLATE = "dashboard.html.j2"


def load_template(template_path: Optional[str] = None) -> Template:
    """Load and parse the dashboard template, packaged or from ``template_path``."""
    if template_path:
        path = Path(template_path)
        return get_environment(str(path.parent)).get_template(path.name)
    return get_environment().get_template(DEFAULT_TEMPLATE)


def build_dashboard_html(
    view_model: ViewModel,
    template_path: Optional[str] = None,
    template: Optional[Template] = None,
) -> str:
    """Render the dashboard HTML for a view model.

    A preloaded ``template`` is used as is; otherwise one is loaded from
    ``template_path`` or the package templates.
    """
    if template is None:
        template = load_template(template_path)
    return template.render(
        cards=view_model.cards,
        refreshed_time=view_model.refreshed_time,
        time=view_model.time,
        count=view_model.count,
        failures=view_model.failures,
    )
