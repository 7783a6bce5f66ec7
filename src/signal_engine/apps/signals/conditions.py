"""Trigger conditions for composite signals.

Each indicator's trigger check is a small object implementing the
``SignalCondition`` protocol. ``build_conditions`` turns a ``SignalSpec``
into an ordered list of them (price, RSI, MACD, EMA, Bollinger, volume);
the evaluator only walks the list, so adding an indicator never touches
its control flow.
"""

import re
from decimal import Decimal, InvalidOperation

from signal_engine.apps.signals.models import (
    BandTrigger,
    BollingerConfig,
    ComputedIndicators,
    ConditionResult,
    CrossoverTrigger,
    EmaConfig,
    MacdConfig,
    RsiConfig,
    RsiTrigger,
    SignalSpec,
    VolumeConfig,
)
from signal_engine.apps.signals.protocols import SignalCondition
from signal_engine.core.models import SignalType

_CONDITION_PATTERN = re.compile(r"([><]=?|==?)\s*(\d+\.?\d*)")
_EQUALITY_TOLERANCE = Decimal("0.01")


def parse_condition(expr: str) -> tuple[str, Decimal] | None:
    """Extract the comparison operator and threshold from a price expression.

    Accept ``>``, ``>=``, ``<``, ``<=``, ``=`` and ``==`` followed by a
    non-negative number, e.g. ``"> 100"`` or ``"<=42.5"``.

    Returns:
        ``(operator, threshold)``, or ``None`` if nothing parseable is found.

    """
    match = _CONDITION_PATTERN.search(expr or "")
    if match is None:
        return None
    try:
        return match.group(1), Decimal(match.group(2))
    except InvalidOperation:
        return None


def _crosses(
    prev_fast: Decimal, prev_slow: Decimal, curr_fast: Decimal, curr_slow: Decimal
) -> tuple[bool, bool]:
    """Return ``(bullish, bearish)`` crossover flags between two ticks.

    Bullish iff the fast line was at or below the slow line and is now
    strictly above it; bearish is the mirror. Both can never be true.
    """
    bullish = prev_fast <= prev_slow and curr_fast > curr_slow
    bearish = prev_fast >= prev_slow and curr_fast < curr_slow
    return bullish, bearish


def _pick_crossover(
    trigger: CrossoverTrigger,
    bullish: bool,  # noqa: FBT001
    bearish: bool,  # noqa: FBT001
    bullish_msg: str,
    bearish_msg: str,
) -> ConditionResult:
    if trigger == CrossoverTrigger.BULLISH:
        met = bullish
        return ConditionResult(met, SignalType.BUY if met else None, bullish_msg if met else None)
    if trigger == CrossoverTrigger.BEARISH:
        met = bearish
        return ConditionResult(met, SignalType.SELL if met else None, bearish_msg if met else None)
    if bullish:
        return ConditionResult(True, SignalType.BUY, bullish_msg)
    if bearish:
        return ConditionResult(True, SignalType.SELL, bearish_msg)
    return ConditionResult(False)


class PriceCondition:
    """Compare the current price against the threshold in ``condition_expr``.

    ``>``/``>=`` assign BUY when met and the signal spec's direction is BUY;
    ``<``/``<=`` assign SELL when met and the signal spec's direction is SELL.
    Equality holds within 0.01 and never assigns a direction.
    """

    def __init__(self, expr: str, signal_type: SignalType) -> None:
        """Initialize with the raw expression and the signal spec's direction."""
        self._expr = expr
        self._parsed = parse_condition(expr)
        self._signal_type = signal_type

    def evaluate(
        self,
        price: Decimal,
        current: ComputedIndicators,  # noqa: ARG002
        previous: ComputedIndicators | None,  # noqa: ARG002
    ) -> ConditionResult | None:
        """Return the comparison outcome, or ``None`` if the expression is unparseable."""
        if self._parsed is None:
            return None
        operator, target = self._parsed
        signal: SignalType | None = None
        if operator in (">", ">="):
            met = price > target if operator == ">" else price >= target
            if met and self._signal_type == SignalType.BUY:
                signal = SignalType.BUY
        elif operator in ("<", "<="):
            met = price < target if operator == "<" else price <= target
            if met and self._signal_type == SignalType.SELL:
                signal = SignalType.SELL
        else:
            met = abs(price - target) < _EQUALITY_TOLERANCE
        return ConditionResult(met, signal, f"Price {self._expr.strip()}" if met else None)


class RsiCondition:
    """Fire on RSI at or below oversold (BUY) and/or at or above overbought (SELL)."""

    def __init__(self, config: RsiConfig) -> None:
        """Initialize with the RSI thresholds and trigger side."""
        self._config = config

    def evaluate(
        self,
        price: Decimal,  # noqa: ARG002
        current: ComputedIndicators,
        previous: ComputedIndicators | None,  # noqa: ARG002
    ) -> ConditionResult | None:
        """Return the threshold outcome, or ``None`` while RSI is warming up."""
        value = current.rsi
        if value is None:
            return None
        cfg = self._config
        oversold = value <= cfg.oversold
        overbought = value >= cfg.overbought

        if cfg.trigger_type == RsiTrigger.OVERSOLD:
            if oversold:
                return ConditionResult(
                    True, SignalType.BUY, f"RSI oversold ({value:.2f} <= {cfg.oversold})"
                )
            return ConditionResult(False)
        if cfg.trigger_type == RsiTrigger.OVERBOUGHT:
            if overbought:
                return ConditionResult(
                    True, SignalType.SELL, f"RSI overbought ({value:.2f} >= {cfg.overbought})"
                )
            return ConditionResult(False)
        if oversold:
            return ConditionResult(True, SignalType.BUY, f"RSI oversold ({value:.2f})")
        if overbought:
            return ConditionResult(True, SignalType.SELL, f"RSI overbought ({value:.2f})")
        return ConditionResult(False)


class MacdCrossover:
    """Fire when the MACD line crosses its signal line between two ticks."""

    def __init__(self, config: MacdConfig) -> None:
        """Initialize with the MACD trigger direction."""
        self._config = config

    def evaluate(
        self,
        price: Decimal,  # noqa: ARG002
        current: ComputedIndicators,
        previous: ComputedIndicators | None,
    ) -> ConditionResult | None:
        """Return the crossover outcome, or ``None`` without both snapshots."""
        if previous is None or current.macd is None or previous.macd is None:
            return None
        bullish, bearish = _crosses(
            previous.macd.macd, previous.macd.signal, current.macd.macd, current.macd.signal
        )
        return _pick_crossover(
            self._config.trigger_type,
            bullish,
            bearish,
            "MACD bullish crossover",
            "MACD bearish crossover",
        )


class EmaCrossover:
    """Fire on a golden cross (short EMA over long) or death cross (short under long)."""

    def __init__(self, config: EmaConfig) -> None:
        """Initialize with the EMA periods and crossover direction."""
        self._config = config

    def evaluate(
        self,
        price: Decimal,  # noqa: ARG002
        current: ComputedIndicators,
        previous: ComputedIndicators | None,
    ) -> ConditionResult | None:
        """Return the crossover outcome, or ``None`` without both EMAs on both ticks."""
        if previous is None:
            return None
        values = (previous.ema_short, previous.ema_long, current.ema_short, current.ema_long)
        if any(v is None for v in values):
            return None
        prev_short, prev_long, curr_short, curr_long = values
        bullish, bearish = _crosses(prev_short, prev_long, curr_short, curr_long)  # type: ignore[arg-type]
        cfg = self._config
        return _pick_crossover(
            cfg.crossover_type,
            bullish,
            bearish,
            f"EMA Golden Cross ({cfg.short}/{cfg.long})",
            f"EMA Death Cross ({cfg.short}/{cfg.long})",
        )


class BollingerBreakout:
    """Fire when price closes above the upper band (BUY) or below the lower band (SELL)."""

    def __init__(self, config: BollingerConfig) -> None:
        """Initialize with the band trigger side."""
        self._config = config

    def evaluate(
        self,
        price: Decimal,
        current: ComputedIndicators,
        previous: ComputedIndicators | None,  # noqa: ARG002
    ) -> ConditionResult | None:
        """Return the breakout outcome, or ``None`` while the bands are warming up."""
        bands = current.bollinger
        if bands is None:
            return None
        above = price > bands.upper
        below = price < bands.lower
        trigger = self._config.trigger_type

        if trigger == BandTrigger.UPPER:
            if above:
                return ConditionResult(
                    True,
                    SignalType.BUY,
                    f"Price above Bollinger upper band ({price:.2f} > {bands.upper:.2f})",
                )
            return ConditionResult(False)
        if trigger == BandTrigger.LOWER:
            if below:
                return ConditionResult(
                    True,
                    SignalType.SELL,
                    f"Price below Bollinger lower band ({price:.2f} < {bands.lower:.2f})",
                )
            return ConditionResult(False)
        if above:
            return ConditionResult(True, SignalType.BUY, "Price above Bollinger upper band")
        if below:
            return ConditionResult(True, SignalType.SELL, "Price below Bollinger lower band")
        return ConditionResult(False)


class VolumeConfirmation:
    """Require current volume above the average times a multiplier.

    Counts towards ALL/ANY but never assigns a direction.
    """

    def __init__(self, config: VolumeConfig) -> None:
        """Initialize with the spike multiplier."""
        self._config = config

    def evaluate(
        self,
        price: Decimal,  # noqa: ARG002
        current: ComputedIndicators,
        previous: ComputedIndicators | None,  # noqa: ARG002
    ) -> ConditionResult | None:
        """Return the spike outcome, or ``None`` while the average is warming up."""
        if current.avg_volume is None or current.current_volume is None:
            return None
        threshold = current.avg_volume * self._config.multiplier
        met = current.current_volume > threshold
        message = f"Volume spike ({current.current_volume:.0f} > {threshold:.0f})" if met else None
        return ConditionResult(met, None, message)


def build_conditions(spec: SignalSpec) -> list[SignalCondition]:
    """Build the ordered condition list for a spec.

    The order (price, RSI, MACD, EMA, Bollinger, volume) decides which
    direction wins when several met conditions disagree: the last one.
    """
    config = spec.indicator_config
    conditions: list[SignalCondition] = [PriceCondition(spec.condition_expr, spec.signal_type)]
    if config.rsi is not None:
        conditions.append(RsiCondition(config.rsi))
    if config.macd is not None:
        conditions.append(MacdCrossover(config.macd))
    if config.ema is not None:
        conditions.append(EmaCrossover(config.ema))
    if config.bollinger is not None:
        conditions.append(BollingerBreakout(config.bollinger))
    if config.volume is not None:
        conditions.append(VolumeConfirmation(config.volume))
    return conditions
