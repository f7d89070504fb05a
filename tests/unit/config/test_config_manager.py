"""Tests for ConfigManager YAML loading and environment overlays."""

from pathlib import Path

import pytest

from candlekit.config.config_manager import ConfigManager, load_config
from candlekit.domain.exceptions import ConfigurationError

BASE_YAML = """
database:
  path: data/test.duckdb
  schema_retry_attempts: 3
market_data:
  settle_delay_ms: 250
  fetchers:
    binance:
      enabled: true
      page_limit: 500
backtest:
  default_initial_capital: 5000
logging:
  level: INFO
"""


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    (tmp_path / "base.yaml").write_text(BASE_YAML)
    return tmp_path


class TestConfigManager:
    def test_loads_base(self, config_dir) -> None:
        config = ConfigManager(config_dir=config_dir, env="test").load()

        assert config.database.path == "data/test.duckdb"
        assert config.database.schema_retry_attempts == 3
        assert config.database.schema_retry_delay_sec == 3.0
        assert config.market_data.settle_delay_ms == 250
        assert config.market_data.binance.page_limit == 500
        assert config.market_data.binance.page_delay_ms == 100
        assert config.market_data.binance.base_url == "https://api.binance.us"
        assert config.backtest.default_initial_capital == 5000.0
        assert config.logging.level == "INFO"
        assert config.logging.file is None

    def test_env_overlay_deep_merges(self, config_dir) -> None:
        (config_dir / "prod.yaml").write_text(
            "market_data:\n  fetchers:\n    binance:\n      enabled: false\nlogging:\n  json: true\n"
        )

        config = ConfigManager(config_dir=config_dir, env="prod").load()

        assert config.market_data.binance.enabled is False
        assert config.market_data.binance.page_limit == 500
        assert config.market_data.settle_delay_ms == 250
        assert config.logging.json is True
        assert config.logging.level == "INFO"

    def test_secrets_override_env(self, config_dir) -> None:
        (config_dir / "dev.yaml").write_text("database:\n  path: data/dev.duckdb\n")
        (config_dir / "secrets.yaml").write_text("database:\n  path: /secure/prod.duckdb\n")

        config = load_config(config_dir, env="dev")

        assert config.database.path == "/secure/prod.duckdb"
        assert config.raw["database"]["schema_retry_attempts"] == 3

    def test_missing_base(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="Base config not found"):
            ConfigManager(config_dir=tmp_path).load()

    def test_invalid_yaml(self, config_dir) -> None:
        (config_dir / "dev.yaml").write_text("database: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            ConfigManager(config_dir=config_dir, env="dev").load()

    def test_invalid_value(self, config_dir) -> None:
        (config_dir / "dev.yaml").write_text("market_data:\n  settle_delay_ms: soon\n")

        with pytest.raises(ConfigurationError, match="Failed to parse config"):
            ConfigManager(config_dir=config_dir, env="dev").load()

    def test_empty_base(self, tmp_path) -> None:
        (tmp_path / "base.yaml").write_text("")

        config = ConfigManager(config_dir=tmp_path).load()

        assert config.database.path == "data/candlekit.duckdb"
        assert config.market_data.binance.enabled is True

    def test_repository_base_config_parses(self) -> None:
        config_dir = Path(__file__).resolve().parents[3] / "config"

        config = ConfigManager(config_dir=config_dir, env="none").load()

        assert config.market_data.binance.page_limit == 1000
        assert config.database.schema_retry_attempts == 5
