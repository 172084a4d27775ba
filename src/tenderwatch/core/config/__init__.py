"""Configuration loading and validation."""

from .models import (
    # Enums
    SourceKind,
    # Config models
    AppConfig,
    BrowserConfig,
    DatabaseConfig,
    EnrichmentConfig,
    HttpConfig,
    JsonFeedMapping,
    LoggingConfig,
    SourceConfig,
    SyncConfig,
    default_sources,
)
from .loader import ConfigError, load_app_config, validate_app_config_file

__all__ = [
    # Enums
    "SourceKind",
    # Config models
    "AppConfig",
    "BrowserConfig",
    "DatabaseConfig",
    "EnrichmentConfig",
    "HttpConfig",
    "JsonFeedMapping",
    "LoggingConfig",
    "SourceConfig",
    "SyncConfig",
    "default_sources",
    # Loaders
    "ConfigError",
    "load_app_config",
    "validate_app_config_file",
]
