"""Command-line interface for the notification dashboard."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import os
import pprint
from pathlib import Path
from typing import List, Optional

import uvicorn

from .config import AppConfig, parse_app_config, parse_env_config, load_token
from .github import GitHubClient
from .server import create_app

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Serve a dashboard of GitHub notifications for one repository."
    )
    parser.add_argument(
        "--config",
        default="configs/config.xml",
        help="Path to the main configuration XML file.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (e.g. DEBUG, INFO, WARNING). Overrides config.",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Optional path to a log file. Overrides config.",
    )
    parser.add_argument("--host", default=None, help="Bind address. Overrides config.")
    parser.add_argument(
        "--port", type=int, default=None, help="Bind port. Overrides config."
    )
    return parser


def configure_logging(level_name: str, log_file: Optional[str] = None) -> None:
    """Initialise logging according to options."""
    log_level = getattr(logging, level_name.upper(), None)
    if not isinstance(log_level, int):
        raise ValueError(f"Unsupported log level: {level_name}")

    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.setLevel(log_level)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    if log_file:
        log_path = Path(log_file)
        if log_path.parent and not log_path.parent.exists():
            log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        logger.debug(
            "Logger initialised with level %s and file output to %s",
            level_name.upper(),
            log_path,
        )
    else:
        logger.debug(
            "Logger initialised with console output at level %s", level_name.upper()
        )


def make_client_factory(config: AppConfig, token: Optional[str]):
    """Return a callable producing a fresh client per request."""

    def factory() -> GitHubClient:
        return GitHubClient(token, api_url=config.api_url, timeout=config.timeout)

    return factory


def serve(app, host: str, port: int) -> None:
    logger.info("Serving dashboard on http://%s:%d/", host, port)
    uvicorn.run(app, host=host, port=port, log_config=None)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        app_config = parse_app_config(args.config)

        if app_config.env_file:
            env_vars = parse_env_config(app_config.env_file)
            os.environ.update(env_vars)

        log_level = args.log_level or app_config.logging.level
        log_file = args.log_file or app_config.logging.file
        configure_logging(log_level, log_file)

        if args.host:
            app_config.server.host = args.host
        if args.port is not None:
            app_config.server.port = args.port

        logger.info(
            "Active Configuration:\n%s", pprint.pformat(dataclasses.asdict(app_config))
        )

        token = load_token()
        app = create_app(app_config, make_client_factory(app_config, token))
        serve(app, app_config.server.host, app_config.server.port)
    except ValueError as exc:
        parser.error(str(exc))
    except (RuntimeError, FileNotFoundError, OSError) as exc:
        logger.error("%s", exc)
        return 1
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected error during execution.")
        return 1

    return 0
