"""
candlekit CLI Argument Parser.

One sub-command per operation of the candle cache and backtest services.
"""

from __future__ import annotations

import argparse
from datetime import datetime
from typing import Any, Optional, Sequence

from ..domain.market_data.intervals import ALL_INTERVALS
from ..utils.timezone import to_utc


class DateAction(argparse.Action):
    """Parse YYYY-MM-DD or ISO-8601 datetimes into timezone-aware UTC at parse time."""

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: str | Sequence[Any] | None,
        option_string: Optional[str] = None,
    ) -> None:
        if values is None:
            setattr(namespace, self.dest, None)
            return

        value_str = str(values)
        try:
            parsed = datetime.fromisoformat(value_str)
        except ValueError:
            parser.error(
                f"{option_string}: invalid date format '{value_str}' "
                f"(expected YYYY-MM-DD or YYYY-MM-DDTHH:MM, e.g., 2024-01-15)"
            )
            return
        setattr(namespace, self.dest, to_utc(parsed))


class PositiveFloatAction(argparse.Action):
    """Custom action to validate positive float values at parse time."""

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: str | Sequence[Any] | None,
        option_string: Optional[str] = None,
    ) -> None:
        if values is None:
            setattr(namespace, self.dest, None)
            return

        try:
            value = float(str(values))
        except (TypeError, ValueError):
            parser.error(f"{option_string}: invalid number '{values}'")
            return
        if value <= 0:
            parser.error(f"{option_string}: value must be positive (got {value})")
        setattr(namespace, self.dest, value)


def _add_range_args(parser: argparse.ArgumentParser, required: bool = True) -> None:
    parser.add_argument("--start", action=DateAction, required=required, help="Range start (UTC)")
    parser.add_argument("--end", action=DateAction, required=required, help="Range end (UTC)")


def _add_key_args(parser: argparse.ArgumentParser, required: bool = True) -> None:
    parser.add_argument("--symbol", required=required, help="Canonical symbol, e.g. BTC-USD")
    parser.add_argument("--source", required=required, help="Data source, e.g. binance")
    parser.add_argument(
        "--interval",
        choices=ALL_INTERVALS,
        required=required,
        help="Candle interval",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="candlekit",
        description="Cache-first candle store and rule-based backtester",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Fill the cache from Binance and show what was served
    candlekit candles --symbol BTC-USD --source binance --interval 1h \\
        --start 2024-01-01 --end 2024-03-31

    # Register a rule-based strategy and backtest it
    candlekit strategy-add --name "SMA cross" --rules rules/sma_cross.json
    candlekit backtest --strategy-id 1 --start 2024-01-01 --end 2024-03-31

    # Check what a backtest would need before running it
    candlekit verify --symbol BTC-USD --source binance --interval 1d \\
        --start 2024-01-01 --end 2024-12-31
        """,
    )

    parser.add_argument("--config-dir", default="config", help="Directory with base.yaml (default: config)")
    parser.add_argument("--env", default="dev", help="Config environment overlay (default: dev)")
    parser.add_argument("--db", default=None, help="DuckDB path (overrides database.path)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")
    sub.required = True

    candles = sub.add_parser("candles", help="Get candles (fetching missing ranges)")
    _add_key_args(candles)
    _add_range_args(candles)

    coverage = sub.add_parser("coverage", help="Show stored data by symbol/source/interval")
    coverage.add_argument("--symbol", default=None, help="Limit to one symbol")

    sub.add_parser("symbols", help="List symbols with stored data")
    sub.add_parser("fetchers", help="List registered market data fetchers")

    import_csv = sub.add_parser("import-csv", help="Import candles from a CSV file")
    import_csv.add_argument("path", help="CSV file with a header row")
    _add_key_args(import_csv)

    strategy_add = sub.add_parser("strategy-add", help="Create a rule-based strategy")
    strategy_add.add_argument("--name", required=True, help="Strategy name")
    strategy_add.add_argument("--rules", required=True, help="JSON file with the rules configuration")
    strategy_add.add_argument("--description", default="", help="Free-text description")

    sub.add_parser("strategies", help="List strategies")

    verify = sub.add_parser("verify", help="Dry-run data availability check")
    _add_key_args(verify)
    _add_range_args(verify)

    backtest = sub.add_parser("backtest", help="Run a backtest for a stored strategy")
    backtest.add_argument("--strategy-id", type=int, required=True, help="Strategy id")
    _add_range_args(backtest)
    backtest.add_argument(
        "--capital",
        action=PositiveFloatAction,
        default=None,
        help="Initial capital (default: backtest.default_initial_capital)",
    )
    _add_key_args(backtest, required=False)
    backtest.add_argument("--json", action="store_true", help="Print the full result as JSON")

    history = sub.add_parser("history", help="List saved backtests or show one")
    history.add_argument("--strategy-id", type=int, default=None, help="Filter by strategy")
    history.add_argument("--id", type=int, default=None, dest="backtest_id", help="Show one backtest")

    return parser
