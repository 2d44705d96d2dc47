"""Configuration management module."""

from marketcharts.core.config.settings import (
    AlphaVantageConfig,
    ApiConfig,
    AppConfig,
    CacheConfig,
    ChartConfig,
    ConfigManager,
    DatabaseConfig,
    LoggingConfig,
    StockDataOrgConfig,
    get_default_config,
    load_config_from_env,
)

__all__ = [
    "AppConfig",
    "ApiConfig",
    "AlphaVantageConfig",
    "StockDataOrgConfig",
    "ChartConfig",
    "CacheConfig",
    "LoggingConfig",
    "DatabaseConfig",
    "ConfigManager",
    "get_default_config",
    "load_config_from_env",
]
