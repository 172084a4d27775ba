"""CLI command modules."""

from __future__ import annotations

from pathlib import Path

from tenderwatch.core.config.models import AppConfig


def bootstrap(config_path: Path | None = None, configure_logging: bool = True) -> AppConfig:
    """Load configuration, set up logging and bind the database engine."""
    from tenderwatch.core.config.loader import load_app_config
    from tenderwatch.core.logging import setup_logging
    from tenderwatch.persistence.db import init_db

    config = load_app_config(config_path)
    config.ensure_directories()

    if configure_logging:
        setup_logging(
            level=config.logging.level,
            log_file=config.logging.file,
            json_format=config.logging.json_format,
            rich_console=config.logging.rich_console,
        )

    init_db(config.database.url, echo=config.database.echo)
    return config


__all__ = ["bootstrap"]
