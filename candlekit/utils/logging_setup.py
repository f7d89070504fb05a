"""
Logging setup with categories, JSON formatting and configurable timezone.

Provides:
- 4 log categories: system, adapter, data, backtest
- Automatic module → category routing
- Console output with optional colors
- Optional file output
- JSON or standard text formatting
- Configurable timezone for log timestamps

Categories:
- system: Startup, config, CLI, schema bootstrap
- adapter: External data sources (Binance), HTTP paging
- data: Coverage store, candle cache, imports
- backtest: Simulator, indicator precomputation, backtest orchestration
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

from ..config.models import LoggingConfig

# =============================================================================
# GLOBAL STATE
# =============================================================================

# Global timezone setting for log timestamps (None = local time)
_log_timezone: Optional[ZoneInfo] = None

# Configured category loggers
_category_loggers: Dict[str, logging.Logger] = {}

# =============================================================================
# LOG CATEGORIES AND ROUTING
# =============================================================================

CATEGORIES = ["system", "adapter", "data", "backtest"]

# Module path → category routing
# More specific paths should come first
MODULE_ROUTING: List[tuple[str, str]] = [
    # Adapters
    ("candlekit.infrastructure.adapters", "adapter"),

    # Stores and persistence
    ("candlekit.infrastructure.stores", "data"),
    ("candlekit.infrastructure.importers", "data"),
    ("candlekit.infrastructure.persistence", "data"),
    ("candlekit.services.market_data_service", "data"),
    ("candlekit.services.fetcher_registry", "data"),

    # Backtesting
    ("candlekit.backtest", "backtest"),
    ("candlekit.services.backtest_execution_service", "backtest"),

    # Default fallback
    ("candlekit", "system"),
]


def get_category_for_module(module_name: str) -> str:
    """
    Determine the log category for a given module name.

    Args:
        module_name: Full module path (e.g., "candlekit.infrastructure.stores.duckdb_ohlc_store").

    Returns:
        Category name (system, adapter, data, or backtest).
    """
    for prefix, category in MODULE_ROUTING:
        if module_name.startswith(prefix):
            return category
    return "system"


# =============================================================================
# TIMEZONE SUPPORT
# =============================================================================

def set_log_timezone(tz: Optional[str] = None) -> None:
    """
    Set the timezone for log timestamps.

    Args:
        tz: Timezone name (e.g., "UTC", "America/New_York").
            If None or "local", uses local system time.
    """
    global _log_timezone
    if tz is None or tz == "local":
        _log_timezone = None
    else:
        _log_timezone = ZoneInfo(tz)


def get_current_timestamp() -> str:
    """ISO timestamp in the configured log timezone."""
    if _log_timezone is not None:
        return datetime.now(_log_timezone).isoformat()
    return datetime.now().isoformat()


# =============================================================================
# FORMATTERS
# =============================================================================

class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Formats log records as single-line JSON with timestamp, level,
    category (derived from logger name), message and any extra data.
    """

    # Attributes present on every LogRecord; anything else came from extra=
    _RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "ts": get_current_timestamp(),
            "level": record.levelname,
            "cat": self._get_category(record.name),
            "msg": record.getMessage(),
        }

        extra = {
            key: value for key, value in vars(record).items()
            if key not in self._RESERVED
        }
        if extra:
            log_entry["data"] = extra

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)

    def _get_category(self, logger_name: str) -> str:
        if logger_name.startswith("candlekit."):
            parts = logger_name.split(".")
            if len(parts) >= 2 and parts[1] in CATEGORIES:
                return parts[1]
        return "system"


class ConsoleFormatter(logging.Formatter):
    """
    Console formatter with color support.

    Format: [LEVEL] [category] message
    """

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        category = record.name.split(".")[-1]
        line = f"[{level:7}] [{category}] {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"

        if self.use_colors:
            return f"{self.COLORS.get(level, '')}{line}{self.RESET}"
        return line


# =============================================================================
# LOGGER FACTORY
# =============================================================================

def get_logger(module_name: str) -> logging.Logger:
    """
    Get a logger for the given module, routed to its category logger.

    Args:
        module_name: Module name (typically __name__).

    Returns:
        Logger instance for the module's category.

    Example:
        from candlekit.utils.logging_setup import get_logger
        logger = get_logger(__name__)
        logger.info("Processing...")
    """
    category = get_category_for_module(module_name)
    return logging.getLogger(f"candlekit.{category}")


def setup_logging(config: LoggingConfig, console: bool = True) -> Dict[str, logging.Logger]:
    """
    Configure all category loggers from a LoggingConfig.

    Safe to call more than once; existing handlers are closed and replaced.

    Args:
        config: Logging configuration.
        console: Attach a stderr handler.

    Returns:
        Dict mapping category name to logger.
    """
    set_log_timezone(config.timezone)
    level = getattr(logging, config.level.upper(), logging.INFO)

    formatter: logging.Formatter
    if config.json:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    file_handler: Optional[logging.Handler] = None
    if config.file:
        log_path = Path(config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(filename=config.file, encoding="utf-8")
        file_handler.setFormatter(formatter)

    for category in CATEGORIES:
        logger = logging.getLogger(f"candlekit.{category}")
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)

        logger.setLevel(level)
        logger.propagate = False

        if console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(
                JSONFormatter() if config.json else ConsoleFormatter(use_colors=sys.stderr.isatty())
            )
            logger.addHandler(console_handler)

        if file_handler is not None:
            logger.addHandler(file_handler)

        _category_loggers[category] = logger

    return _category_loggers


def shutdown_logging() -> None:
    """Flush and close all category handlers."""
    for logger in _category_loggers.values():
        for handler in logger.handlers[:]:
            handler.flush()
            handler.close()
            logger.removeHandler(handler)
    _category_loggers.clear()
