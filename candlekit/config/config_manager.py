"""
Configuration manager with environment-based loading.

Supports:
- Base configuration (base.yaml)
- Environment-specific overrides (dev.yaml, prod.yaml)
- Secrets loading (secrets.yaml - gitignored)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

import yaml

from ..domain.exceptions import ConfigurationError
from .models import (
    AppConfig,
    BacktestConfig,
    BinanceConfig,
    DatabaseConfig,
    LoggingConfig,
    MarketDataConfig,
)

logger = logging.getLogger(__name__)


class ConfigManager:
    """
    Configuration manager with environment support.

    Loads configuration in this order:
    1. base.yaml (default config)
    2. {env}.yaml (environment-specific, e.g., dev.yaml)
    3. secrets.yaml (if exists, gitignored)

    Later configs override earlier ones.
    """

    def __init__(self, config_dir: str | Path = "config", env: str = "dev"):
        """
        Initialize config manager.

        Args:
            config_dir: Directory containing config files.
            env: Environment name (dev, prod, etc).
        """
        self.config_dir = Path(config_dir)
        self.env = env
        self.config: Dict[str, Any] = {}

    def load(self) -> AppConfig:
        """
        Load configuration from YAML files.

        Returns:
            AppConfig object.

        Raises:
            ConfigurationError: If base config is missing or invalid.
        """
        base_path = self.config_dir / "base.yaml"
        if not base_path.exists():
            raise ConfigurationError(f"Base config not found: {base_path}")

        self.config = self._load_yaml(base_path)
        logger.info(f"Loaded base config from {base_path}")

        env_path = self.config_dir / f"{self.env}.yaml"
        if env_path.exists():
            env_config = self._load_yaml(env_path)
            self.config = self._merge_dicts(self.config, env_config)
            logger.info(f"Loaded {self.env} config from {env_path}")

        secrets_path = self.config_dir / "secrets.yaml"
        if secrets_path.exists():
            secrets = self._load_yaml(secrets_path)
            self.config = self._merge_dicts(self.config, secrets)
            logger.info("Loaded secrets")

        return self._parse_config()

    def _load_yaml(self, path: Path) -> Dict[str, Any]:
        """Load YAML file."""
        try:
            with open(path, "r") as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    def _merge_dicts(self, base: Dict, override: Dict) -> Dict:
        """Deep merge two dicts (override wins)."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_dicts(result[key], value)
            else:
                result[key] = value
        return result

    def _parse_config(self) -> AppConfig:
        """Parse raw dict into AppConfig."""
        try:
            db_raw = self.config.get("database", {})
            database = DatabaseConfig(
                path=db_raw.get("path", "data/candlekit.duckdb"),
                schema_retry_attempts=int(db_raw.get("schema_retry_attempts", 5)),
                schema_retry_delay_sec=float(db_raw.get("schema_retry_delay_sec", 3.0)),
            )

            md_raw = self.config.get("market_data", {})
            binance_raw = md_raw.get("fetchers", {}).get("binance", {})
            market_data = MarketDataConfig(
                settle_delay_ms=int(md_raw.get("settle_delay_ms", 500)),
                binance=BinanceConfig(
                    enabled=binance_raw.get("enabled", True),
                    base_url=binance_raw.get("base_url", "https://api.binance.us"),
                    page_limit=int(binance_raw.get("page_limit", 1000)),
                    page_delay_ms=int(binance_raw.get("page_delay_ms", 100)),
                    timeout_sec=float(binance_raw.get("timeout_sec", 30.0)),
                ),
            )

            bt_raw = self.config.get("backtest", {})
            backtest = BacktestConfig(
                default_initial_capital=float(bt_raw.get("default_initial_capital", 10_000.0)),
            )

            log_raw = self.config.get("logging", {})
            logging_config = LoggingConfig(
                level=log_raw.get("level", "INFO"),
                json=log_raw.get("json", False),
                file=log_raw.get("file"),
                timezone=log_raw.get("timezone", "UTC"),
            )

            return AppConfig(
                database=database,
                market_data=market_data,
                backtest=backtest,
                logging=logging_config,
                raw=self.config,
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Failed to parse config: {e}") from e


def load_config(config_dir: str | Path = "config", env: str = "dev") -> AppConfig:
    """Convenience wrapper around ConfigManager.load()."""
    return ConfigManager(config_dir=config_dir, env=env).load()
