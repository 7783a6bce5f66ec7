"""Structural protocol shared by every trigger condition."""

from decimal import Decimal
from typing import Protocol, runtime_checkable

from signal_engine.apps.signals.models import ComputedIndicators, ConditionResult


@runtime_checkable
class SignalCondition(Protocol):
    """One independently evaluated trigger condition.

    Return ``None`` when the condition cannot be evaluated at this tick
    (unparseable expression, indicator still warming up, no previous
    snapshot for a crossover). A ``None`` result is skipped entirely and
    does not count towards ALL or ANY.
    """

    def evaluate(
        self,
        price: Decimal,
        current: ComputedIndicators,
        previous: ComputedIndicators | None,
    ) -> ConditionResult | None:
        """Evaluate the condition at one tick."""
        ...
