"""
Configuration management for Datadog MCP.

Configuration is read from environment variables with sensible defaults.
The API and application keys have no defaults and must be provided before
any tool can reach the Datadog API.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application configuration settings.

    All settings can be configured via environment variables with the
    DD_ prefix (e.g., DD_API_KEY, DD_SITE).

    Attributes:
        api_key: Datadog API key.
        app_key: Datadog application key.
        site: Datadog site (datadoghq.com, datadoghq.eu, us3.datadoghq.com, ...).
        request_timeout_seconds: Timeout for API requests.
        max_series: Default cap on series returned by a metrics query.
        max_data_points: Default cap on data points per returned series.
        default_page_size: Default page size for offset-paged listings.
        stats_max_data_points: Cap on points per series read by the APM
            stats engine.
        stats_max_workers: Threads used to run APM stats sub-queries.
        log_level: Logging level name.
        log_format: "console" or "json".
    """

    model_config = SettingsConfigDict(
        env_prefix="DD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Datadog credentials
    api_key: str = ""
    app_key: str = ""
    site: str = "datadoghq.com"

    # Request configuration
    request_timeout_seconds: int = 30

    # Output limits to prevent AI overload
    max_series: int = 100
    max_data_points: int = 300
    default_page_size: int = 100

    # APM stats engine
    stats_max_data_points: int = 5000
    stats_max_workers: int = 4

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"

    @property
    def api_base_url(self) -> str:
        """Base URL of the Datadog API for the configured site."""
        return f"https://api.{self.site.strip().rstrip('/')}"

    def has_credentials(self) -> bool:
        """Check if both API and application keys are configured."""
        return bool(self.api_key and self.app_key)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration instance.
    """
    return Settings()
