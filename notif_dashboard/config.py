"""Configuration loading for the notification dashboard."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional
from xml.etree import ElementTree as ET

from .github import DEFAULT_API_URL

logger = logging.getLogger(__name__)

MATCH_MODES = ("substring", "exact")
TOKEN_ENV_VAR = "GITHUB_TOKEN"


@dataclass
class RepositoryTarget:
    """The single repository whose notifications are shown and marked read."""

    owner: str = "grafana"
    name: str = "support-escalations"
    match: str = "substring"

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def matches(self, full_name: str) -> bool:
        """Return True if a notification's repository belongs on the dashboard.

        ``substring`` keeps the legacy behaviour of matching any repository whose
        full name contains the target name.
        """
        if self.match == "exact":
            return full_name.lower() == self.full_name.lower()
        return self.name in full_name


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 4000


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class AppConfig:
    repository: RepositoryTarget = field(default_factory=RepositoryTarget)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    template_path: Optional[str] = None
    env_file: Optional[str] = None
    api_url: str = DEFAULT_API_URL
    per_page: int = 50
    timeout: float = 10.0


def _resolve_path(base_path: Path, target_path: str) -> str:
    """Resolve a path relative to the base config file if it's not absolute."""
    target = Path(target_path)
    if target.is_absolute():
        return str(target)
    return str((base_path.parent / target).resolve())


def parse_env_config(path: str) -> Dict[str, str]:
    """Parse environment variables from XML."""
    env_vars = {}
    if not path:
        return env_vars

    logger.info("Loading environment configuration from %s", path)
    try:
        tree = ET.parse(path)
        root = tree.getroot()
        for var in root.findall("variable"):
            name = var.attrib.get("name")
            value = var.text
            if name and value:
                env_vars[name] = value.strip()
    except Exception as exc:
        logger.warning("Failed to load environment config: %s", exc)
        raise

    return env_vars


def parse_app_config(path: str) -> AppConfig:
    """Parse the main application configuration XML."""
    config_path = Path(path).resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    logger.info("Loading application configuration from %s", config_path)
    tree = ET.parse(config_path)
    root = tree.getroot()

    # Repository
    repository = RepositoryTarget()
    repo_node = root.find("repository")
    if repo_node is not None:
        repository.owner = repo_node.attrib.get("owner", "").strip()
        repository.name = repo_node.attrib.get("name", "").strip()
        repository.match = repo_node.attrib.get("match", "substring").strip().lower()
        if not repository.owner or not repository.name:
            raise ValueError("<repository> requires 'owner' and 'name' attributes.")
        if repository.match not in MATCH_MODES:
            raise ValueError(
                f"Unsupported repository match mode: {repository.match} "
                f"(expected one of {', '.join(MATCH_MODES)})"
            )

    # Server
    server = ServerConfig()
    server_node = root.find("server")
    if server_node is not None:
        server.host = server_node.attrib.get("host", server.host)
        server.port = int(server_node.attrib.get("port", server.port))

    # Template
    template_node = root.find("template")
    template_path = (
        _resolve_path(config_path, template_node.text.strip())
        if template_node is not None and template_node.text
        else None
    )

    # Env
    env_node = root.find("env")
    env_file = (
        _resolve_path(config_path, env_node.text.strip())
        if env_node is not None and env_node.text
        else None
    )

    # Logging
    log_node = root.find("logging")
    logging_config = LoggingConfig()
    if log_node is not None:
        logging_config.level = log_node.findtext("level", "INFO")
        log_file = log_node.findtext("file")
        if log_file:
            logging_config.file = _resolve_path(config_path, log_file)

    api_url = root.findtext("api-url", DEFAULT_API_URL).strip()
    per_page = int(root.findtext("per-page", "50"))
    timeout = float(root.findtext("timeout", "10"))

    return AppConfig(
        repository=repository,
        server=server,
        logging=logging_config,
        template_path=template_path,
        env_file=env_file,
        api_url=api_url,
        per_page=per_page,
        timeout=timeout,
    )


def load_token() -> Optional[str]:
    """Return the GitHub access token from the environment."""
    token = os.environ.get(TOKEN_ENV_VAR)
    if not token:
        logger.warning(
            "%s is not set; requests to GitHub will be unauthenticated.", TOKEN_ENV_VAR
        )
    return token
