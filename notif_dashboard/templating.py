"""Markdown rendering and the Jinja2 environment for dashboard templates."""

from __future__ import annotations

from importlib import resources
from pathlib import Path
from typing import Dict, Optional

import bleach
from jinja2 import Environment, FileSystemLoader, select_autoescape
from markdown_it import MarkdownIt
from markupsafe import Markup

_ENVS: Dict[str, Environment] = {}
_MD: MarkdownIt | None = None

ALLOWED_TAGS = [
    "a",
    "b",
    "blockquote",
    "br",
    "code",
    "del",
    "em",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "hr",
    "i",
    "img",
    "li",
    "ol",
    "p",
    "pre",
    "s",
    "strong",
    "table",
    "tbody",
    "td",
    "th",
    "thead",
    "tr",
    "ul",
]
ALLOWED_ATTRS = {
    "a": ["href", "title"],
    "img": ["src", "alt", "title"],
    "td": ["align"],
    "th": ["align"],
}


def _markdown() -> MarkdownIt:
    global _MD
    if _MD is None:
        _MD = MarkdownIt("commonmark", {"breaks": True, "html": False}).enable(
            ["table", "strikethrough"]
        )
    return _MD


def render_markdown(value: str | None) -> str:
    """Render markdown to sanitized HTML."""
    if not value:
        return ""
    html = _markdown().render(value)
    return bleach.clean(html, tags=ALLOWED_TAGS, attributes=ALLOWED_ATTRS, strip=True)


def _markdown_filter(value: str | None) -> Markup:
    return Markup(render_markdown(value))


def default_template_dir() -> Path:
    return Path(str(resources.files(__package__) / "templates"))


def get_environment(template_dir: Optional[str] = None) -> Environment:
    """Return a cached Jinja environment for ``template_dir`` (package templates by default)."""
    directory = str(template_dir or default_template_dir())
    env = _ENVS.get(directory)
    if env is None:
        env = Environment(
            loader=FileSystemLoader(directory),
            autoescape=select_autoescape(["html", "xml", "j2"]),
            trim_blocks=True,
            auto_reload=False,
            lstrip_blocks=True,
        )
        env.filters["markdown"] = _markdown_filter
        _ENVS[directory] = env
    return env
