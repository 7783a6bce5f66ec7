"""Data models for indicator configuration, indicator snapshots, and signals.

An ``IndicatorConfig`` says which indicators to compute and how each one
triggers. A ``ComputedIndicators`` snapshot holds the values at a single
tick; ``None`` fields mean "not enough history yet", which is distinct
from "computed and the condition was false". A ``SignalSpec`` combines a
price condition, a default direction, a logic mode, and an indicator
config; ``SingleSignal`` and ``DualSignal`` are the two shapes a
backtest can be driven by.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from signal_engine.core.models import Direction, LogicMode, SignalType


class RsiTrigger(Enum):
    """Which RSI extreme fires the condition."""

    OVERSOLD = "oversold"
    OVERBOUGHT = "overbought"
    BOTH = "both"


class CrossoverTrigger(Enum):
    """Which crossover direction fires a MACD or EMA condition."""

    BULLISH = "bullish"
    BEARISH = "bearish"
    ANY = "any"


class BandTrigger(Enum):
    """Which Bollinger band breakout fires the condition."""

    UPPER = "upper"
    LOWER = "lower"
    BOTH = "both"


@dataclass(frozen=True)
class RsiConfig:
    """RSI period and the oversold/overbought thresholds (0-100)."""

    period: int = 14
    oversold: Decimal = Decimal(30)
    overbought: Decimal = Decimal(70)
    trigger_type: RsiTrigger = RsiTrigger.BOTH

    def __post_init__(self) -> None:
        """Validate the period and threshold ordering."""
        if self.period < 2:  # noqa: PLR2004
            msg = f"RSI period must be >= 2, got {self.period}"
            raise ValueError(msg)
        if not (0 <= self.oversold < self.overbought <= 100):  # noqa: PLR2004
            msg = f"Need 0 <= oversold ({self.oversold}) < overbought ({self.overbought}) <= 100"
            raise ValueError(msg)

    @property
    def warmup(self) -> int:
        """Return the closes needed before RSI can be computed."""
        return self.period + 1


@dataclass(frozen=True)
class MacdConfig:
    """MACD fast/slow EMA periods and signal-line period."""

    fast: int = 12
    slow: int = 26
    signal: int = 9
    trigger_type: CrossoverTrigger = CrossoverTrigger.ANY

    def __post_init__(self) -> None:
        """Validate that fast < slow and the signal period is positive."""
        if not 1 <= self.fast < self.slow:
            msg = f"MACD fast ({self.fast}) must be >= 1 and < slow ({self.slow})"
            raise ValueError(msg)
        if self.signal < 1:
            msg = f"MACD signal period must be >= 1, got {self.signal}"
            raise ValueError(msg)

    @property
    def warmup(self) -> int:
        """Return the closes needed before MACD and its signal line exist."""
        return self.slow + self.signal


@dataclass(frozen=True)
class EmaConfig:
    """Short and long EMA periods for golden/death cross detection."""

    short: int = 50
    long: int = 200
    crossover_type: CrossoverTrigger = CrossoverTrigger.ANY

    def __post_init__(self) -> None:
        """Validate that short < long."""
        if not 1 <= self.short < self.long:
            msg = f"EMA short ({self.short}) must be >= 1 and < long ({self.long})"
            raise ValueError(msg)

    @property
    def warmup(self) -> int:
        """Return the closes needed before both EMAs exist."""
        return self.long


@dataclass(frozen=True)
class BollingerConfig:
    """Bollinger band period and width in standard deviations."""

    period: int = 20
    deviation: Decimal = Decimal(2)
    trigger_type: BandTrigger = BandTrigger.BOTH

    def __post_init__(self) -> None:
        """Validate the period and deviation."""
        if self.period < 2:  # noqa: PLR2004
            msg = f"Bollinger period must be >= 2, got {self.period}"
            raise ValueError(msg)
        if self.deviation <= 0:
            msg = f"Bollinger deviation must be > 0, got {self.deviation}"
            raise ValueError(msg)

    @property
    def warmup(self) -> int:
        """Return the closes needed before the bands exist."""
        return self.period


@dataclass(frozen=True)
class VolumeConfig:
    """Volume average period and the spike multiplier."""

    period: int = 20
    multiplier: Decimal = Decimal("1.5")

    def __post_init__(self) -> None:
        """Validate the period and multiplier."""
        if self.period < 1:
            msg = f"Volume period must be >= 1, got {self.period}"
            raise ValueError(msg)
        if self.multiplier <= 0:
            msg = f"Volume multiplier must be > 0, got {self.multiplier}"
            raise ValueError(msg)

    @property
    def warmup(self) -> int:
        """Return the candles needed before the volume average exists."""
        return self.period


@dataclass(frozen=True)
class IndicatorConfig:
    """Set of independently enabled indicator sub-configs.

    A ``None`` sub-config is not computed and not evaluated.
    """

    rsi: RsiConfig | None = None
    macd: MacdConfig | None = None
    ema: EmaConfig | None = None
    bollinger: BollingerConfig | None = None
    volume: VolumeConfig | None = None

    @property
    def is_empty(self) -> bool:
        """Return whether no indicator is enabled."""
        return all(
            sub is None for sub in (self.rsi, self.macd, self.ema, self.bollinger, self.volume)
        )


@dataclass(frozen=True)
class MacdValue:
    """MACD line, signal line, and histogram at one tick."""

    macd: Decimal
    signal: Decimal
    histogram: Decimal


@dataclass(frozen=True)
class BollingerBands:
    """Upper, middle, and lower Bollinger bands at one tick."""

    upper: Decimal
    middle: Decimal
    lower: Decimal


@dataclass(frozen=True)
class ComputedIndicators:
    """Indicator values at one tick; ``None`` means not yet computable."""

    rsi: Decimal | None = None
    macd: MacdValue | None = None
    ema_short: Decimal | None = None
    ema_long: Decimal | None = None
    bollinger: BollingerBands | None = None
    avg_volume: Decimal | None = None
    current_volume: Decimal | None = None


@dataclass(frozen=True)
class SignalSpec:
    """A declarative signal: price condition, direction, logic mode, indicators.

    ``condition_expr`` is a price comparison such as ``"> 100"``; an empty
    or unparseable expression means the price is not checked.
    """

    condition_expr: str = ""
    signal_type: SignalType = SignalType.NEUTRAL
    logic_mode: LogicMode = LogicMode.ANY
    indicator_config: IndicatorConfig = field(default_factory=IndicatorConfig)


@dataclass(frozen=True)
class SingleSignal:
    """Drive a backtest from one signal whose fired direction picks long or short."""

    spec: SignalSpec


@dataclass(frozen=True)
class DualSignal:
    """Drive a backtest from independent buy-side and sell-side signals.

    The buy side is always checked first, so at most one side is acted
    on per tick.
    """

    buy: SignalSpec
    sell: SignalSpec

    def __post_init__(self) -> None:
        """Validate that each side carries its own direction."""
        if self.buy.signal_type != SignalType.BUY:
            msg = f"buy side must have signal_type BUY, got {self.buy.signal_type.value}"
            raise ValueError(msg)
        if self.sell.signal_type != SignalType.SELL:
            msg = f"sell side must have signal_type SELL, got {self.sell.signal_type.value}"
            raise ValueError(msg)


SignalConfig = SingleSignal | DualSignal


def signal_specs(signal: SignalConfig) -> tuple[SignalSpec, ...]:
    """Return the signal specs a config evaluates, buy side first for dual signals."""
    if isinstance(signal, DualSignal):
        return (signal.buy, signal.sell)
    return (signal.spec,)


def primary_spec(signal: SignalConfig) -> SignalSpec:
    """Return the signal spec whose settings describe the strategy as a whole.

    For a dual signal this is the buy side unless it enables no
    indicators and the sell side does.
    """
    if isinstance(signal, SingleSignal):
        return signal.spec
    if signal.buy.indicator_config.is_empty and not signal.sell.indicator_config.is_empty:
        return signal.sell
    return signal.buy


@dataclass(frozen=True)
class ConditionResult:
    """Outcome of one evaluated trigger condition.

    ``signal_type`` is set only when the condition is met and implies a
    direction; volume confirmation never sets one.
    """

    met: bool
    signal_type: SignalType | None = None
    message: str | None = None


@dataclass(frozen=True)
class SignalCheckResult:
    """Whether a signal fired at a tick, in which direction, and why."""

    triggered: bool
    signal_type: SignalType | None = None
    message: str = ""
    conditions_evaluated: int = 0

    @property
    def direction(self) -> Direction | None:
        """Return the position direction this result asks for, if any."""
        if not self.triggered or self.signal_type is None:
            return None
        return Direction.from_signal(self.signal_type)


@dataclass(frozen=True)
class DualCheckResult:
    """Buy-side and sell-side results for one tick of a dual signal."""

    buy: SignalCheckResult
    sell: SignalCheckResult

    @property
    def direction(self) -> Direction | None:
        """Return LONG when the buy side fired, else SHORT when the sell side fired."""
        if self.buy.triggered:
            return Direction.LONG
        if self.sell.triggered:
            return Direction.SHORT
        return None
