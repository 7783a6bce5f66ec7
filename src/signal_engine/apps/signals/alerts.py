"""Indicator preparation for live alert checks.

A live check evaluates a signal against the latest candle only. These
helpers decide how much history to fetch for a config and compute the
current and previous snapshots the evaluator needs.
"""

import logging
from collections.abc import Sequence

from signal_engine.apps.backtester.indicators import compute_indicators
from signal_engine.apps.signals.models import ComputedIndicators, IndicatorConfig
from signal_engine.core.models import Candle

logger = logging.getLogger(__name__)

MIN_HISTORY = 50
HISTORY_BUFFER = 10


def max_required_period(config: IndicatorConfig) -> int:
    """Return how many candles to fetch before checking a live alert.

    At least ``MIN_HISTORY``; otherwise each enabled indicator's period
    plus a buffer of ``HISTORY_BUFFER`` (MACD uses ``slow + signal``).
    """
    periods = [MIN_HISTORY]
    if config.rsi is not None:
        periods.append(config.rsi.period + HISTORY_BUFFER)
    if config.macd is not None:
        periods.append(config.macd.slow + config.macd.signal + HISTORY_BUFFER)
    if config.ema is not None:
        periods.append(config.ema.long + HISTORY_BUFFER)
    if config.bollinger is not None:
        periods.append(config.bollinger.period + HISTORY_BUFFER)
    if config.volume is not None:
        periods.append(config.volume.period + HISTORY_BUFFER)
    return max(periods)


def prepare_indicators(
    candles: Sequence[Candle], config: IndicatorConfig
) -> tuple[ComputedIndicators, ComputedIndicators | None]:
    """Compute the snapshot at the last candle and the one before it.

    Returns:
        ``(current, previous)``; ``previous`` is ``None`` with fewer than
        two candles.

    """
    if not candles:
        logger.warning("No candles available for indicator preparation")
        return ComputedIndicators(), None
    current = compute_indicators(candles, config)
    previous = compute_indicators(candles[:-1], config) if len(candles) > 1 else None
    return current, previous
