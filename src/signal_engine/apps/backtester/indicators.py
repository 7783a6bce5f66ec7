"""Technical indicator functions for signal evaluation and backtesting.

Provide pure functions that compute RSI, MACD, EMA, Bollinger Bands, and
volume averages from sequences of ``Candle`` objects. All functions use
``Decimal`` arithmetic and raise ``ValueError`` when given insufficient
data. ``compute_indicators`` runs every enabled indicator over the
trailing window ending at the last candle and leaves a field as ``None``
when its warm-up has not been reached, so callers can tell "not yet
computable" apart from "computed".
"""

from collections.abc import Sequence
from decimal import Decimal

from signal_engine.apps.signals.models import (
    BollingerBands,
    ComputedIndicators,
    IndicatorConfig,
    MacdValue,
)
from signal_engine.core.models import HUNDRED, ONE, TWO, ZERO, Candle

_FIFTY = Decimal(50)


def sma_values(values: Sequence[Decimal], period: int) -> Decimal:
    """Compute the simple moving average of the last ``period`` values.

    Raises:
        ValueError: If fewer than ``period`` values are provided.

    """
    if period < 1 or len(values) < period:
        msg = f"Need at least {period} values for SMA, got {len(values)}"
        raise ValueError(msg)
    return sum(values[-period:], ZERO) / Decimal(period)


def sma(candles: Sequence[Candle], period: int) -> Decimal:
    """Average the closes of the trailing ``period`` candles.

    Raises:
        ValueError: If the series is shorter than ``period``.

    """
    if len(candles) < period:
        msg = f"Need at least {period} candles for SMA, got {len(candles)}"
        raise ValueError(msg)
    return sma_values([c.close for c in candles[-period:]], period)


def ema_series(values: Sequence[Decimal], period: int) -> list[Decimal]:
    """Compute the EMA at every index from ``period - 1`` to the end.

    Seed with the SMA of the first ``period`` values, then apply
    ``ema = prev + k * (value - prev)`` where ``k = 2 / (period + 1)``.
    The first element of the result lines up with ``values[period - 1]``.

    Raises:
        ValueError: If fewer than ``period`` values are provided.

    """
    if period < 1 or len(values) < period:
        msg = f"Need at least {period} values for EMA, got {len(values)}"
        raise ValueError(msg)
    multiplier = TWO / (Decimal(period) + ONE)
    current = sum(values[:period], ZERO) / Decimal(period)
    result = [current]
    for val in values[period:]:
        current = (val - current) * multiplier + current
        result.append(current)
    return result


def ema_from_values(values: Sequence[Decimal], period: int) -> Decimal:
    """Return the latest value of ``ema_series``."""
    return ema_series(values, period)[-1]


def ema(candles: Sequence[Candle], period: int) -> Decimal:
    """Return the EMA of closes at the last candle.

    Raises:
        ValueError: If the series is shorter than ``period``.

    """
    if len(candles) < period:
        msg = f"Need at least {period} candles for EMA, got {len(candles)}"
        raise ValueError(msg)
    return ema_from_values([c.close for c in candles], period)


def sample_std(values: Sequence[Decimal]) -> Decimal:
    """Return the sample standard deviation (divide by N - 1) of the values.

    Raises:
        ValueError: If fewer than two values are provided.

    """
    if len(values) < 2:  # noqa: PLR2004
        msg = f"Need at least 2 values for a sample standard deviation, got {len(values)}"
        raise ValueError(msg)
    mean = sum(values, ZERO) / Decimal(len(values))
    variance = sum(((v - mean) ** 2 for v in values), ZERO) / Decimal(len(values) - 1)
    return variance.sqrt()


def rsi(candles: Sequence[Candle], period: int = 14) -> Decimal:
    """Return Wilder's RSI, between 0 and 100, at the last candle.

    Require at least ``period + 1`` candles. Average gain and loss are
    seeded with the simple mean of the first ``period`` deltas and then
    smoothed with decay ``1/period``. A series with no losses scores 100;
    a perfectly flat series scores 50.

    Raises:
        ValueError: If the series is shorter than ``period + 1``.

    """
    needed = period + 1
    if len(candles) < needed:
        msg = f"Need at least {needed} candles for RSI({period}), got {len(candles)}"
        raise ValueError(msg)
    closes = [c.close for c in candles]
    deltas = [closes[i] - closes[i - 1] for i in range(1, len(closes))]

    dec_period = Decimal(period)
    avg_gain = sum((max(d, ZERO) for d in deltas[:period]), ZERO) / dec_period
    avg_loss = sum((max(-d, ZERO) for d in deltas[:period]), ZERO) / dec_period

    for delta in deltas[period:]:
        gain = max(delta, ZERO)
        loss = max(-delta, ZERO)
        avg_gain = (avg_gain * (dec_period - ONE) + gain) / dec_period
        avg_loss = (avg_loss * (dec_period - ONE) + loss) / dec_period

    if avg_loss == ZERO:
        return _FIFTY if avg_gain == ZERO else HUNDRED
    rs = avg_gain / avg_loss
    return HUNDRED - HUNDRED / (ONE + rs)


def macd(
    candles: Sequence[Candle],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> MacdValue:
    """Compute the MACD line, signal line, and histogram at the last candle.

    MACD line = EMA(fast) - EMA(slow) of closes. The signal line is the
    EMA(signal) of the MACD line series, and the histogram is their
    difference. Require at least ``slow + signal`` candles.

    Raises:
        ValueError: If fewer than ``slow + signal`` candles are provided.

    """
    needed = slow + signal
    if len(candles) < needed:
        msg = f"Need at least {needed} candles for MACD({fast},{slow},{signal}), got {len(candles)}"
        raise ValueError(msg)
    closes = [c.close for c in candles]
    fast_series = ema_series(closes, fast)
    slow_series = ema_series(closes, slow)
    # Align both series on the index of the first slow EMA value
    offset = slow - fast
    macd_series = [f - s for f, s in zip(fast_series[offset:], slow_series, strict=True)]
    signal_line = ema_from_values(macd_series, signal)
    macd_line = macd_series[-1]
    return MacdValue(macd=macd_line, signal=signal_line, histogram=macd_line - signal_line)


def bollinger_bands(
    candles: Sequence[Candle],
    period: int = 20,
    deviation: Decimal = TWO,
) -> BollingerBands:
    """Compute Bollinger Bands over the last ``period`` closes.

    The middle band is the SMA; upper and lower bands sit ``deviation``
    sample standard deviations above and below it.

    Raises:
        ValueError: If fewer than ``period`` candles are provided.

    """
    if len(candles) < period:
        msg = f"Need at least {period} candles for Bollinger({period}), got {len(candles)}"
        raise ValueError(msg)
    closes = [c.close for c in candles[-period:]]
    middle = sma_values(closes, period)
    width = deviation * sample_std(closes)
    return BollingerBands(upper=middle + width, middle=middle, lower=middle - width)


def volume_sma(candles: Sequence[Candle], period: int = 20) -> Decimal:
    """Compute the simple moving average of volume over the last ``period`` candles.

    Raises:
        ValueError: If fewer than ``period`` candles are provided.

    """
    if len(candles) < period:
        msg = f"Need at least {period} candles for volume SMA, got {len(candles)}"
        raise ValueError(msg)
    return sma_values([c.volume for c in candles[-period:]], period)


def warmup_period(config: IndicatorConfig) -> int:
    """Return the longest warm-up among the enabled indicators (0 if none)."""
    subs = (config.rsi, config.macd, config.ema, config.bollinger, config.volume)
    return max((sub.warmup for sub in subs if sub is not None), default=0)


def compute_indicators(candles: Sequence[Candle], config: IndicatorConfig) -> ComputedIndicators:
    """Compute every enabled indicator at the last candle of the series.

    Use only the candles given (no lookahead) and never mutate them.
    Any indicator whose warm-up exceeds the available history is left as
    ``None``. ``current_volume`` is always set once a candle exists and
    volume is enabled.

    Args:
        candles: Candles ordered ascending by timestamp.
        config: Which indicators to compute and with what periods.

    Returns:
        The indicator snapshot at the last candle.

    """
    if not candles:
        return ComputedIndicators()

    count = len(candles)
    rsi_value: Decimal | None = None
    macd_value: MacdValue | None = None
    ema_short: Decimal | None = None
    ema_long: Decimal | None = None
    bands: BollingerBands | None = None
    avg_volume: Decimal | None = None
    current_volume: Decimal | None = None

    if config.rsi is not None and count >= config.rsi.warmup:
        rsi_value = rsi(candles, config.rsi.period)

    if config.macd is not None and count >= config.macd.warmup:
        macd_value = macd(candles, config.macd.fast, config.macd.slow, config.macd.signal)

    if config.ema is not None:
        if count >= config.ema.short:
            ema_short = ema(candles, config.ema.short)
        if count >= config.ema.long:
            ema_long = ema(candles, config.ema.long)

    if config.bollinger is not None and count >= config.bollinger.warmup:
        bands = bollinger_bands(candles, config.bollinger.period, config.bollinger.deviation)

    if config.volume is not None:
        if count >= config.volume.period:
            avg_volume = volume_sma(candles, config.volume.period)
        current_volume = candles[-1].volume

    return ComputedIndicators(
        rsi=rsi_value,
        macd=macd_value,
        ema_short=ema_short,
        ema_long=ema_long,
        bollinger=bands,
        avg_volume=avg_volume,
        current_volume=current_volume,
    )
