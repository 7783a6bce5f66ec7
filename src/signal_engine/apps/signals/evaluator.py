"""Composite signal evaluation.

Walk a signal spec's condition list at one tick, drop conditions that cannot be
evaluated yet, and combine the rest with the signal spec's logic mode. The
evaluator keeps no state between calls: crossovers see history only
through the ``previous`` snapshot passed in.
"""

from collections.abc import Sequence
from decimal import Decimal

from signal_engine.apps.signals.conditions import build_conditions
from signal_engine.apps.signals.models import (
    ComputedIndicators,
    ConditionResult,
    DualCheckResult,
    DualSignal,
    SignalCheckResult,
    SignalSpec,
)
from signal_engine.apps.signals.protocols import SignalCondition
from signal_engine.core.models import LogicMode, SignalType

Snapshots = tuple[ComputedIndicators, ComputedIndicators | None]


def combine(
    results: Sequence[ConditionResult],
    logic_mode: LogicMode,
    default_type: SignalType,
) -> SignalCheckResult:
    """Combine evaluated condition results into one check result.

    No evaluated conditions never triggers. ALL needs every result met,
    ANY needs at least one. The direction starts at ``default_type`` and
    each met directional result overrides it in order.
    """
    if not results:
        return SignalCheckResult(triggered=False)

    if logic_mode == LogicMode.ALL:
        triggered = all(r.met for r in results)
    else:
        triggered = any(r.met for r in results)
    if not triggered:
        return SignalCheckResult(triggered=False, conditions_evaluated=len(results))

    signal_type = default_type
    messages: list[str] = []
    for result in results:
        if not result.met:
            continue
        if result.signal_type is not None:
            signal_type = result.signal_type
        if result.message:
            messages.append(result.message)

    return SignalCheckResult(
        triggered=True,
        signal_type=signal_type,
        message="; ".join(messages),
        conditions_evaluated=len(results),
    )


def evaluate_conditions(
    conditions: Sequence[SignalCondition],
    spec: SignalSpec,
    price: Decimal,
    current: ComputedIndicators,
    previous: ComputedIndicators | None,
) -> SignalCheckResult:
    """Evaluate a prebuilt condition list for ``spec`` at one tick."""
    results = [
        result
        for condition in conditions
        if (result := condition.evaluate(price, current, previous)) is not None
    ]
    return combine(results, spec.logic_mode, spec.signal_type)


def check_signal(
    spec: SignalSpec,
    price: Decimal,
    current: ComputedIndicators,
    previous: ComputedIndicators | None = None,
) -> SignalCheckResult:
    """Check whether a signal fires at the current price and indicator snapshot.

    Args:
        spec: The signal definition.
        price: Current close price.
        current: Indicator snapshot at this tick.
        previous: Snapshot at the prior tick, required for crossovers.

    Returns:
        The check result; ``signal_type`` is ``None`` unless triggered.

    """
    return evaluate_conditions(build_conditions(spec), spec, price, current, previous)


def check_dual_signal(
    signal: DualSignal,
    price: Decimal,
    buy_snapshots: Snapshots,
    sell_snapshots: Snapshots,
) -> DualCheckResult:
    """Evaluate the buy side and then the sell side, each on its own snapshots."""
    buy = check_signal(signal.buy, price, *buy_snapshots)
    sell = check_signal(signal.sell, price, *sell_snapshots)
    return DualCheckResult(buy=buy, sell=sell)
