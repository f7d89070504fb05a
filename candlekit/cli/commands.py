"""
candlekit CLI Commands.

Main entry points:
- main_async: Async command handler
- main: Sync wrapper for CLI entry
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..application.bootstrap import AppContainer
from ..config.config_manager import ConfigManager
from ..config.models import LoggingConfig
from ..domain.backtest.models import BacktestRequest, BacktestResult
from ..domain.exceptions import CandlekitError
from ..domain.market_data.models import MarketDataRequest
from ..domain.strategy.models import StrategyConfiguration
from ..infrastructure.importers.csv_importer import read_candles_csv
from ..utils.logging_setup import get_logger, setup_logging, shutdown_logging
from .parser import create_parser

logger = get_logger(__name__)


def _print_result(result: BacktestResult) -> None:
    print(f"\n{result.symbol} {result.interval} from {result.data_source}")
    print(f"  Candles:        {result.candles_processed:,}")
    print(f"  Initial:        {result.initial_capital:,.2f}")
    print(f"  Final:          {result.final_capital:,.2f}")
    print(f"  Return:         {result.total_return_pct:.2f}%")
    print(f"  Max drawdown:   {result.max_drawdown_pct:.2f}%")
    print(f"  Trades:         {result.total_trades} ({result.winning_trades} won, {result.losing_trades} lost)")
    print(f"  Win rate:       {result.win_rate:.2f}%")
    print(f"  Profit factor:  {result.profit_factor:.2f}")
    print(f"  Sharpe:         {result.sharpe_ratio:.2f}")
    for warning in result.warnings:
        print(f"  ! {warning}")


async def _run_command(args: argparse.Namespace, container: AppContainer) -> int:
    market_data = container.market_data
    backtests = container.backtest_service

    if args.command == "candles":
        result = await market_data.get_candles(
            MarketDataRequest(
                symbol=args.symbol,
                source=args.source,
                interval=args.interval,
                start=args.start,
                end=args.end,
            )
        )
        print(
            f"{len(result.candles):,} candles for {result.symbol}/{result.source}/{result.interval} "
            f"({result.cached_count:,} cached, {result.fetched_count:,} fetched)"
        )
        if result.candles:
            print(f"  {result.candles[0].timestamp:%Y-%m-%d %H:%M} to {result.candles[-1].timestamp:%Y-%m-%d %H:%M} UTC")
        return 0

    if args.command == "coverage":
        rows = backtests.get_data_coverage(args.symbol)
        if not rows:
            print("No stored data.")
        for row in rows:
            print(
                f"  {row.symbol:12s} {row.source:10s} {row.interval:4s} "
                f"{row.from_date:%Y-%m-%d %H:%M} to {row.to_date:%Y-%m-%d %H:%M}  {row.candle_count:,} candles"
            )
        return 0

    if args.command == "symbols":
        for symbol in backtests.get_available_symbols():
            print(symbol)
        return 0

    if args.command == "fetchers":
        for info in market_data.get_registered_fetchers():
            mode = "on-demand" if info.can_fetch_on_demand else "manual"
            print(f"  {info.source_name:12s} {info.display_name:20s} {mode:10s} {', '.join(info.supported_intervals)}")
        return 0

    if args.command == "import-csv":
        candles = read_candles_csv(args.path, args.symbol, args.source, args.interval)
        written = market_data.import_candles(candles)
        print(f"Imported {written:,} candles from {args.path}")
        return 0

    if args.command == "strategy-add":
        try:
            config = StrategyConfiguration.model_validate_json(Path(args.rules).read_text())
        except (OSError, PydanticValidationError) as e:
            logger.error(f"Invalid rules file {args.rules}: {e}")
            return 2
        strategy = container.strategies.create(args.name, args.description, config)
        print(f"Created strategy {strategy.id}: {strategy.name}")
        return 0

    if args.command == "strategies":
        for strategy in container.strategies.list():
            kind = "rules" if strategy.is_rule_based else "code"
            print(f"  {strategy.id:4d}  {strategy.name:30s} {kind}")
        return 0

    if args.command == "verify":
        verification = backtests.verify_data(args.symbol, args.source, args.interval, args.start, args.end)
        print(f"{verification.status.value}: {verification.message}")
        return 0

    if args.command == "backtest":
        capital = args.capital or container.config.backtest.default_initial_capital
        result = await backtests.run_backtest(
            BacktestRequest(
                strategy_id=args.strategy_id,
                start_date=args.start,
                end_date=args.end,
                initial_capital=capital,
                symbol=args.symbol,
                data_source=args.source,
                interval=args.interval,
            )
        )
        if args.json:
            print(result.model_dump_json(indent=2))
        else:
            _print_result(result)
        return 0

    if args.command == "history":
        if args.backtest_id is not None:
            record, result = backtests.get_backtest(args.backtest_id)
            print(f"{record.id}: {record.name} [{record.status.value}]")
            if result is not None:
                _print_result(result)
            return 0
        for record in backtests.list_backtests(args.strategy_id):
            print(
                f"  {record.id:4d}  {record.name}  return {record.total_return_pct}%  "
                f"trades {record.total_trades}"
            )
        return 0

    return 2


async def main_async(argv: Optional[List[str]] = None) -> int:
    """Async main entry point. Returns the process exit code."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = ConfigManager(config_dir=args.config_dir, env=args.env).load()
    except CandlekitError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    logging_config = config.logging
    if args.verbose:
        logging_config = LoggingConfig(
            level="DEBUG",
            json=logging_config.json,
            file=logging_config.file,
            timezone=logging_config.timezone,
        )
    setup_logging(logging_config)

    container = AppContainer(config, db_path=args.db)
    try:
        container.initialize()
        return await _run_command(args, container)
    except CandlekitError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    finally:
        container.cleanup()
        shutdown_logging()


def main() -> None:
    """Main entry point."""
    sys.exit(asyncio.run(main_async()))


if __name__ == "__main__":
    main()
