"""Configuration loading (YAML) and typed config models."""

from .config_manager import ConfigManager, load_config
from .models import (
    AppConfig,
    BacktestConfig,
    BinanceConfig,
    DatabaseConfig,
    LoggingConfig,
    MarketDataConfig,
)

__all__ = [
    "AppConfig",
    "BacktestConfig",
    "BinanceConfig",
    "ConfigManager",
    "DatabaseConfig",
    "LoggingConfig",
    "MarketDataConfig",
    "load_config",
]
