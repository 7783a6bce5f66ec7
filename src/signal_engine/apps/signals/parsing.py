"""Build signal configurations from persisted alert mappings.

Alerts are stored as camelCase JSON objects (``condition``,
``signalType``, ``logicMode``, ``indicatorConfig`` and the optional
buy/sell variants). These helpers turn such a mapping into the typed
``SingleSignal`` / ``DualSignal`` variant the engine consumes.
"""

from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from signal_engine.apps.signals.models import (
    BandTrigger,
    BollingerConfig,
    CrossoverTrigger,
    DualSignal,
    EmaConfig,
    IndicatorConfig,
    MacdConfig,
    RsiConfig,
    RsiTrigger,
    SignalConfig,
    SignalSpec,
    SingleSignal,
    VolumeConfig,
)
from signal_engine.core.models import LogicMode, SignalType


def _decimal(value: Any, name: str) -> Decimal:
    try:
        number = Decimal(str(value))
    except InvalidOperation as exc:
        msg = f"{name} must be numeric, got {value!r}"
        raise ValueError(msg) from exc
    if not number.is_finite():
        msg = f"{name} must be finite, got {value!r}"
        raise ValueError(msg)
    return number


def _int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        msg = f"{name} must be an integer, got {value!r}"
        raise ValueError(msg)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        msg = f"{name} must be an integer, got {value!r}"
        raise ValueError(msg) from exc


def _enabled(raw: Any) -> Mapping[str, Any] | None:
    """Return the sub-config mapping only when it is marked ``enabled: true``."""
    if not isinstance(raw, Mapping) or raw.get("enabled") is not True:
        return None
    return raw


def _rsi(raw: Mapping[str, Any]) -> RsiConfig:
    defaults = RsiConfig()
    return RsiConfig(
        period=_int(raw.get("period", defaults.period), "rsi.period"),
        oversold=_decimal(raw.get("oversold", defaults.oversold), "rsi.oversold"),
        overbought=_decimal(raw.get("overbought", defaults.overbought), "rsi.overbought"),
        trigger_type=RsiTrigger(raw.get("triggerType", defaults.trigger_type.value)),
    )


def _macd(raw: Mapping[str, Any]) -> MacdConfig:
    defaults = MacdConfig()
    return MacdConfig(
        fast=_int(raw.get("fast", defaults.fast), "macd.fast"),
        slow=_int(raw.get("slow", defaults.slow), "macd.slow"),
        signal=_int(raw.get("signal", defaults.signal), "macd.signal"),
        trigger_type=CrossoverTrigger(raw.get("triggerType", defaults.trigger_type.value)),
    )


def _ema(raw: Mapping[str, Any]) -> EmaConfig:
    defaults = EmaConfig()
    return EmaConfig(
        short=_int(raw.get("short", defaults.short), "ema.short"),
        long=_int(raw.get("long", defaults.long), "ema.long"),
        crossover_type=CrossoverTrigger(raw.get("crossoverType", defaults.crossover_type.value)),
    )


def _bollinger(raw: Mapping[str, Any]) -> BollingerConfig:
    defaults = BollingerConfig()
    return BollingerConfig(
        period=_int(raw.get("period", defaults.period), "bollinger.period"),
        deviation=_decimal(raw.get("deviation", defaults.deviation), "bollinger.deviation"),
        trigger_type=BandTrigger(raw.get("triggerType", defaults.trigger_type.value)),
    )


def _volume(raw: Mapping[str, Any]) -> VolumeConfig:
    defaults = VolumeConfig()
    return VolumeConfig(
        period=_int(raw.get("period", defaults.period), "volume.period"),
        multiplier=_decimal(raw.get("multiplier", defaults.multiplier), "volume.multiplier"),
    )


def indicator_config_from_dict(raw: Mapping[str, Any] | None) -> IndicatorConfig:
    """Build an ``IndicatorConfig`` from its camelCase mapping.

    Only sub-configs marked ``enabled: true`` are evaluated, as in the
    stored alert shape; the rest are left as ``None``. Missing fields take
    the dataclass defaults.

    Raises:
        ValueError: On an unknown trigger value or an invalid parameter.

    """
    if not raw:
        return IndicatorConfig()
    rsi = _enabled(raw.get("rsi"))
    macd = _enabled(raw.get("macd"))
    ema = _enabled(raw.get("ema"))
    bollinger = _enabled(raw.get("bollinger"))
    volume = _enabled(raw.get("volume"))
    return IndicatorConfig(
        rsi=_rsi(rsi) if rsi is not None else None,
        macd=_macd(macd) if macd is not None else None,
        ema=_ema(ema) if ema is not None else None,
        bollinger=_bollinger(bollinger) if bollinger is not None else None,
        volume=_volume(volume) if volume is not None else None,
    )


def _logic_mode(value: Any, fallback: LogicMode = LogicMode.ANY) -> LogicMode:
    if value is None:
        return fallback
    return LogicMode(str(value).upper())


def signal_config_from_dict(raw: Mapping[str, Any]) -> SignalConfig:
    """Build the single or dual signal variant from a persisted alert mapping.

    Both ``enableBuySignal`` and ``enableSellSignal`` set gives a
    ``DualSignal``. Only one of them gives a ``SingleSignal`` for that
    side, using its own indicator config and logic mode and falling back
    to the base ``indicatorConfig`` and ``logicMode``. Neither gives a
    ``SingleSignal`` built from the base fields.

    Raises:
        ValueError: On an unknown enum value or an invalid indicator parameter.

    """
    condition = str(raw.get("condition") or raw.get("conditionExpr") or "")
    base_mode = _logic_mode(raw.get("logicMode"))
    base_indicators = raw.get("indicatorConfig")
    enable_buy = bool(raw.get("enableBuySignal"))
    enable_sell = bool(raw.get("enableSellSignal"))

    def side(signal_type: SignalType, prefix: str) -> SignalSpec:
        return SignalSpec(
            condition_expr=condition,
            signal_type=signal_type,
            logic_mode=_logic_mode(raw.get(f"{prefix}LogicMode"), base_mode),
            indicator_config=indicator_config_from_dict(
                raw.get(f"{prefix}IndicatorConfig") or base_indicators
            ),
        )

    if enable_buy and enable_sell:
        return DualSignal(buy=side(SignalType.BUY, "buy"), sell=side(SignalType.SELL, "sell"))
    if enable_buy:
        return SingleSignal(side(SignalType.BUY, "buy"))
    if enable_sell:
        return SingleSignal(side(SignalType.SELL, "sell"))

    return SingleSignal(
        SignalSpec(
            condition_expr=condition,
            signal_type=SignalType(str(raw.get("signalType", "NEUTRAL")).upper()),
            logic_mode=base_mode,
            indicator_config=indicator_config_from_dict(base_indicators),
        )
    )
