"""Configuration system using pydantic-settings with environment variable loading."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class ExchangeSettings(BaseSettings):
    """Binance public REST connection settings."""

    model_config = SettingsConfigDict(env_prefix="BINANCE_")

    timeout_ms: int = 10_000


class CollectionSettings(BaseSettings):
    """Collection engine parameters.

    Defaults mirror Binance spot limits: 1000 klines per page and a
    1200 request/minute weight budget.
    All fields configurable via COLLECTION_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="COLLECTION_")

    page_limit: int = 1000
    max_requests_per_minute: int = 1200
    default_delay_ms: int = 100
    snapshot_every_pages: int = 5  # publish series + progress log every N pages
    log_capacity: int = 100
    max_transport_retries: int = 3
    retry_base_delay_ms: int = 1000
    max_retry_delay_ms: int = 60_000  # cap for the unbounded 429 backoff
    window_seconds: float = 60.0


class DashboardSettings(BaseSettings):
    """Dashboard server configuration."""

    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    host: str = "0.0.0.0"
    port: int = 8080
    series_tail: int = 200  # candles pushed with each series event


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console"
    library_log_level: str = "WARNING"  # ccxt and uvicorn access loggers
    exchange: ExchangeSettings = ExchangeSettings()
    collection: CollectionSettings = CollectionSettings()
    dashboard: DashboardSettings = DashboardSettings()
