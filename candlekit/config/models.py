"""Configuration data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class DatabaseConfig:
    """DuckDB storage configuration."""
    path: str = "data/candlekit.duckdb"
    schema_retry_attempts: int = 5
    schema_retry_delay_sec: float = 3.0


@dataclass
class BinanceConfig:
    """Binance US kline fetcher configuration."""
    enabled: bool = True
    base_url: str = "https://api.binance.us"
    page_limit: int = 1000
    page_delay_ms: int = 100  # Polite delay between pages
    timeout_sec: float = 30.0


@dataclass
class MarketDataConfig:
    """Candle cache configuration."""
    settle_delay_ms: int = 500  # Wait after writes before the final read
    binance: BinanceConfig = field(default_factory=BinanceConfig)


@dataclass
class BacktestConfig:
    """Backtest defaults."""
    default_initial_capital: float = 10_000.0


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    json: bool = False
    file: Optional[str] = None
    timezone: str = "UTC"  # Timezone for log timestamps (e.g., "America/New_York", "UTC", or "local")


@dataclass
class AppConfig:
    """Complete application configuration."""
    database: DatabaseConfig
    market_data: MarketDataConfig
    backtest: BacktestConfig
    logging: LoggingConfig
    raw: Dict[str, Any] = field(default_factory=dict)  # Raw merged config dict
