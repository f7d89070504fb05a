"""Binance US kline adapter.

Fetches historical candles from the public klines endpoint:
- GET /api/v3/klines?symbol=BTCUSD&interval=1h&startTime=..&endTime=..&limit=1000

Each kline row is a JSON array:
    [open_time_ms, open, high, low, close, volume, close_time_ms,
     quote_volume, trade_count, taker_base, taker_quote, ignore]
OHLCV values arrive as decimal strings.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, List, Optional, Sequence

import requests

from ....config.models import BinanceConfig
from ....domain.exceptions import FetchError, ValidationError
from ....domain.market_data.intervals import ALL_INTERVALS
from ....domain.market_data.models import Candle
from ....utils.logging_setup import get_logger
from ....utils.timezone import from_epoch_ms, to_epoch_ms

logger = get_logger(__name__)

_KLINES_PATH = "/api/v3/klines"
SOURCE_NAME = "binance"


def normalize_symbol(symbol: str) -> str:
    """Convert a canonical symbol (BTC-USD, BTC/USD) to Binance form (BTCUSD)."""
    return symbol.replace("-", "").replace("/", "").upper()


class BinanceKlineFetcher:
    """Binance US candle fetcher.

    Pages forward through the klines endpoint until the requested range is
    exhausted. HTTP calls are blocking (requests) and run in a worker thread
    so the event loop stays free.
    """

    def __init__(
        self,
        config: Optional[BinanceConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._config = config or BinanceConfig()
        self._session = session or requests.Session()

    @property
    def source_name(self) -> str:
        return SOURCE_NAME

    @property
    def display_name(self) -> str:
        return "Binance US"

    @property
    def can_fetch_on_demand(self) -> bool:
        return True

    @property
    def supported_intervals(self) -> Sequence[str]:
        return ALL_INTERVALS

    def supports_interval(self, interval: str) -> bool:
        return interval in ALL_INTERVALS

    async def fetch_candles(
        self,
        symbol: str,
        interval: str,
        start: datetime,
        end: datetime,
    ) -> List[Candle]:
        """Fetch candles in [start, end], paging by the configured limit.

        Args:
            symbol: Canonical symbol, kept on the returned candles.
            interval: Canonical interval.
            start: Range start (inclusive).
            end: Range end (inclusive).

        Returns:
            Candles ascending by open time.

        Raises:
            ValidationError: Unsupported interval.
            FetchError: HTTP, network or payload failure.
        """
        if not self.supports_interval(interval):
            raise ValidationError(f"Interval '{interval}' is not supported by {self.display_name}")

        exchange_symbol = normalize_symbol(symbol)
        limit = self._config.page_limit
        start_ms = to_epoch_ms(start)
        end_ms = to_epoch_ms(end)

        candles: List[Candle] = []
        pages = 0

        while start_ms < end_ms:
            params = {
                "symbol": exchange_symbol,
                "interval": interval,
                "startTime": start_ms,
                "endTime": end_ms,
                "limit": limit,
            }
            rows = await asyncio.to_thread(self._get_klines, params)
            pages += 1

            if not rows:
                break

            for row in rows:
                candles.append(self._parse_kline(row, symbol, interval))

            if len(rows) < limit:
                break

            start_ms = int(rows[-1][0]) + 1
            await asyncio.sleep(self._config.page_delay_ms / 1000.0)

        logger.info(
            f"Fetched {len(candles)} {interval} candles for {symbol} from {self.display_name}",
            extra={"symbol": symbol, "interval": interval, "pages": pages},
        )
        return candles

    def _get_klines(self, params: dict[str, Any]) -> list[Any]:
        """GET one page of klines. Runs in a worker thread."""
        url = f"{self._config.base_url.rstrip('/')}{_KLINES_PATH}"
        try:
            resp = self._session.get(url, params=params, timeout=self._config.timeout_sec)
        except requests.RequestException as e:
            raise FetchError(f"Binance request failed: {e}", source=SOURCE_NAME) from e

        if resp.status_code in (418, 429):
            raise FetchError(
                f"Binance rate limit hit (HTTP {resp.status_code})",
                source=SOURCE_NAME,
                status_code=resp.status_code,
            )
        if resp.status_code >= 400:
            raise FetchError(
                f"Binance returned HTTP {resp.status_code}: {resp.text[:200]}",
                source=SOURCE_NAME,
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise FetchError(f"Binance returned invalid JSON: {e}", source=SOURCE_NAME) from e

        if not isinstance(data, list):
            raise FetchError(f"Unexpected Binance payload: {str(data)[:200]}", source=SOURCE_NAME)
        return data

    @staticmethod
    def _parse_kline(row: Any, symbol: str, interval: str) -> Candle:
        try:
            return Candle(
                symbol=symbol,
                source=SOURCE_NAME,
                interval=interval,
                timestamp=from_epoch_ms(int(row[0])),
                open=float(row[1]),
                high=float(row[2]),
                low=float(row[3]),
                close=float(row[4]),
                volume=float(row[5]),
                trade_count=int(row[8]),
            )
        except (IndexError, TypeError, ValueError) as e:
            raise FetchError(f"Malformed kline row {row!r}: {e}", source=SOURCE_NAME) from e
