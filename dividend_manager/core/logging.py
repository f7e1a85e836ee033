"""Logging setup for the service and its maintenance scripts."""
from __future__ import annotations

import logging.config
from pathlib import Path

import yaml

from dividend_manager.core.config import Settings, get_settings

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "configs" / "logging.yaml"
SERVICE_LOGGER = "dividend_manager"
COLLABORATOR_LOGGERS = ("sqlalchemy.engine", "httpx")


def configure_logging(settings: Settings | None = None) -> None:
    """Configure logging from YAML, then apply the service log level.

    ``settings.logging_config`` replaces the bundled ``configs/logging.yaml``.
    Without a file the root logger is set up at INFO and the database and HTTP
    client loggers are held at WARNING, as the bundled file does.
    ``settings.log_level`` overrides the level of the ``dividend_manager`` logger.
    """
    settings = settings or get_settings()
    config_path = Path(settings.logging_config) if settings.logging_config else DEFAULT_CONFIG_PATH
    if config_path.exists():
        with config_path.open("r", encoding="utf-8") as config_file:
            logging.config.dictConfig(yaml.safe_load(config_file))
    else:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
        for name in COLLABORATOR_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    if settings.log_level:
        logging.getLogger(SERVICE_LOGGER).setLevel(settings.log_level.upper())


__all__ = ["COLLABORATOR_LOGGERS", "SERVICE_LOGGER", "configure_logging"]
