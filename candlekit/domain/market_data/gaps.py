"""Gap detection between a requested range and stored coverage."""

from __future__ import annotations

from datetime import timedelta
from typing import List

from .models import CoverageInfo, DataGap, MarketDataRequest

# Smallest timestamp step used to make gaps disjoint from stored data
TICK = timedelta(seconds=1)


def identify_gaps(request: MarketDataRequest, coverage: CoverageInfo) -> List[DataGap]:
    """
    Compare the requested range against stored coverage and return the
    time ranges that need fetching.

    Handles three cases:
      1. No data at all -> one gap covering the full request
      2. Request starts before earliest stored candle -> head gap
      3. Request ends after latest stored candle -> tail gap

    Head and tail gaps can both be returned. Holes inside the stored range
    are not detected; writes upsert by key, so re-fetching an overlapping
    range is safe.

    Args:
        request: Requested symbol/source/interval and inclusive range.
        coverage: Stored coverage for the same key.

    Returns:
        Zero, one or two disjoint gaps in ascending order.
    """
    if coverage.is_empty or coverage.earliest is None or coverage.latest is None:
        return [DataGap(start=request.start, end=request.end)]

    gaps: List[DataGap] = []

    # A request starting less than one tick before earliest has nothing to fetch
    if coverage.earliest - TICK >= request.start:
        gaps.append(DataGap(start=request.start, end=coverage.earliest - TICK))

    if coverage.latest + TICK <= request.end:
        gaps.append(DataGap(start=coverage.latest + TICK, end=request.end))

    return gaps
