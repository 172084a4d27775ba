"""
Pydantic configuration models for TenderWatch.

These models provide type-safe configuration with validation for:
- Application settings
- Tender source definitions
- Sync and enrichment settings
- HTTP and browser backend preferences
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# Enums
# =============================================================================


class SourceKind(str, Enum):
    """Supported tender source adapters."""

    OCDS = "ocds"
    JSON_FEED = "json_feed"
    BROWSER_JSON = "browser_json"


# =============================================================================
# Backend Configuration
# =============================================================================


class HttpConfig(BaseModel):
    """Plain HTTP backend settings."""

    timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Request timeout in seconds",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum attempts for transient failures",
    )
    retry_backoff_factor: float = Field(
        default=2.0,
        ge=1.0,
        le=10.0,
        description="Exponential backoff multiplier for retries",
    )
    user_agent: str | None = Field(
        default=None,
        description="Custom user agent string",
    )


class BrowserConfig(BaseModel):
    """Headless browser settings for sources behind anti-bot protection.

    A browser is only used when one is registered: either a remote
    ``ws_endpoint`` (CDP / Playwright server) or ``launch_local``.
    """

    ws_endpoint: str | None = Field(
        default=None,
        description="Remote browser websocket endpoint",
    )
    launch_local: bool = Field(
        default=False,
        description="Launch a local Playwright browser",
    )
    browser: str = Field(
        default="chromium",
        description="Browser to use: chromium, firefox, webkit",
    )
    headless: bool = Field(default=True)
    user_agent: str | None = Field(default=None)
    viewport_width: int = Field(default=1920, ge=320, le=3840)
    viewport_height: int = Field(default=1080, ge=240, le=2160)
    navigation_timeout_ms: int = Field(
        default=60000,
        ge=5000,
        le=180000,
        description="Timeout for page navigation and in-page requests",
    )
    challenge_wait_ms: int = Field(
        default=5000,
        ge=0,
        le=60000,
        description="Wait after warm-up navigation for client-side challenges",
    )

    @field_validator("browser")
    @classmethod
    def known_browser(cls, v: str) -> str:
        if v not in ("chromium", "firefox", "webkit"):
            raise ValueError(f"Unknown browser: {v}")
        return v

    @property
    def registered(self) -> bool:
        return bool(self.ws_endpoint) or self.launch_local


# =============================================================================
# Source Configuration
# =============================================================================


class JsonFeedMapping(BaseModel):
    """Field mapping for a plain JSON listing.

    Each canonical field lists candidate keys; the first non-empty one wins.
    """

    external_id: list[str] = Field(default_factory=lambda: ["id", "uuid", "reference"])
    title: list[str] = Field(default_factory=lambda: ["title", "name"])
    agency: list[str] = Field(default_factory=lambda: ["agency", "buyer", "organisation"])
    description: list[str] = Field(default_factory=lambda: ["description", "summary"])
    status: list[str] = Field(default_factory=lambda: ["status"])
    value: list[str] = Field(default_factory=lambda: ["value", "amount"])
    location: list[str] = Field(default_factory=lambda: ["location", "region"])
    publish_date: list[str] = Field(
        default_factory=lambda: ["publishDate", "published", "publish_date"]
    )
    close_date: list[str] = Field(
        default_factory=lambda: ["closeDate", "closingDate", "close_date"]
    )
    categories: list[str] = Field(
        default_factory=lambda: ["category", "categories"],
        description="Keys holding category strings or lists",
    )
    category_label_key: str | None = Field(
        default=None,
        description="Key to read when a category list holds objects",
    )
    default_agency: str = Field(default="Government")
    default_location: str = Field(default="National")


class SourceConfig(BaseModel):
    """A single tender source."""

    name: str = Field(..., description="Source name, stored on every tender")
    kind: SourceKind
    enabled: bool = Field(default=True)

    api_url: str = Field(..., description="Listing / API endpoint")
    base_url: str | None = Field(
        default=None,
        description="Public site home page (browser warm-up, guidance)",
    )
    probe_url: str | None = Field(default=None)

    days_back: int = Field(
        default=30,
        ge=1,
        le=365,
        description="Publication window for date-driven sources",
    )
    max_pages: int = Field(default=10, ge=1, le=500)

    headers: dict[str, str] = Field(default_factory=dict)
    query_params: dict[str, str] = Field(default_factory=dict)
    date_from_param: str | None = Field(
        default=None,
        description="Query parameter carrying the window start date",
    )
    records_path: str | None = Field(
        default=None,
        description="Dotted path to the record list in the JSON payload",
    )
    mapping: JsonFeedMapping = Field(default_factory=JsonFeedMapping)

    http: HttpConfig = Field(default_factory=HttpConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Source name must not be empty")
        return v


def default_sources() -> list[SourceConfig]:
    return [
        SourceConfig(
            name="AusTender",
            kind=SourceKind.OCDS,
            api_url="https://api.tenders.gov.au/ocds",
            base_url="https://www.tenders.gov.au",
        ),
        SourceConfig(
            name="NSW eTendering",
            kind=SourceKind.BROWSER_JSON,
            api_url="https://tenders.nsw.gov.au/?event=public.api.tender.search",
            base_url="https://tenders.nsw.gov.au",
        ),
    ]


# =============================================================================
# Sync / Enrichment Configuration
# =============================================================================


class SyncConfig(BaseModel):
    """Sync orchestration settings."""

    enrich_after_sync: bool = Field(
        default=True,
        description="Schedule background enrichment after each sync",
    )
    enrichment_batch_size: int = Field(default=10, ge=1, le=500)
    sync_on_startup: bool = Field(
        default=True,
        description="Run a sync immediately when watch mode starts",
    )
    interval_hours: float = Field(default=6.0, gt=0, le=168)


class EnrichmentConfig(BaseModel):
    """Language model enrichment settings."""

    model: str = Field(default="claude-sonnet-4-5")
    max_tokens: int = Field(default=1024, ge=64, le=8192)
    api_key: str | None = Field(
        default=None,
        description="API key (falls back to ANTHROPIC_API_KEY)",
    )
    base_url: str | None = Field(default=None)
    delay_ms: int = Field(
        default=500,
        ge=0,
        description="Pause between consecutive model calls",
    )
    timeout_seconds: float = Field(default=60.0, ge=1.0, le=600.0)


# =============================================================================
# Database Configuration
# =============================================================================


class DatabaseConfig(BaseModel):
    """Database connection settings."""

    url: str = Field(
        default="sqlite:///data/tenderwatch.db",
        description="SQLAlchemy database URL",
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements (debugging)",
    )
    pool_size: int = Field(default=5, ge=1, le=50)


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    file: Path | None = Field(
        default=Path("logs/tenderwatch.log"),
        description="Log file path",
    )
    json_format: bool = Field(default=True)
    rich_console: bool = Field(default=True)

    @field_validator("level")
    @classmethod
    def known_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return v


# =============================================================================
# Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """Root application configuration.

    This is the main configuration object loaded from app.yaml.
    """

    config_dir: Path = Field(default=Path("configs"))
    data_dir: Path = Field(default=Path("data"))

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    enrichment: EnrichmentConfig = Field(default_factory=EnrichmentConfig)
    sources: list[SourceConfig] = Field(default_factory=default_sources)

    @field_validator("sources")
    @classmethod
    def unique_source_names(cls, v: list[SourceConfig]) -> list[SourceConfig]:
        seen: set[str] = set()
        for source in v:
            if source.name in seen:
                raise ValueError(f"Duplicate source name: {source.name}")
            seen.add(source.name)
        return v

    def enabled_sources(self) -> list[SourceConfig]:
        return [s for s in self.sources if s.enabled]

    def get_source(self, name: str) -> SourceConfig | None:
        for source in self.sources:
            if source.name.lower() == name.lower():
                return source
        return None

    def ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        for dir_path in [self.config_dir, self.data_dir]:
            dir_path.mkdir(parents=True, exist_ok=True)

        if self.logging.file:
            self.logging.file.parent.mkdir(parents=True, exist_ok=True)
