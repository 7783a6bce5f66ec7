"""Shared helpers for the backtester CLI commands.

Provide validation, config resolution, provider construction, and
signal-file loading used by both the ``run`` and ``signal`` commands.
"""

import logging
from decimal import Decimal
from pathlib import Path
from typing import Any

import typer
import yaml

from signal_engine.apps.signals.models import SignalConfig
from signal_engine.apps.signals.parsing import signal_config_from_dict
from signal_engine.core.config import get_config
from signal_engine.core.models import Timeframe
from signal_engine.core.protocols import CandleProvider
from signal_engine.data.providers.csv_provider import CsvCandleProvider
from signal_engine.data.sample import SampleCandleProvider

VALID_SOURCES = ("csv", "sample")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(verbose: bool) -> None:  # noqa: FBT001
    """Configure root logging: DEBUG when verbose, else ``logging.level`` from config."""
    if verbose:
        level = logging.DEBUG
    else:
        raw_level = get_config().section("logging").get("level", "INFO")
        level = logging.getLevelName(str(raw_level).upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)


def validate_source(value: str) -> str:
    """Validate that the data source is one of the supported providers.

    Raise ``typer.BadParameter`` if the source is not recognised.
    """
    if value not in VALID_SOURCES:
        raise typer.BadParameter(f"Must be one of: {', '.join(VALID_SOURCES)}")
    return value


def resolve_timeframe(raw: str | None) -> Timeframe:
    """Resolve the candle timeframe from the CLI option or ``backtester.timeframe``."""
    value = raw or get_config().get("backtester.timeframe", "daily")
    try:
        return Timeframe(str(value))
    except ValueError as exc:
        choices = ", ".join(t.value for t in Timeframe)
        raise typer.BadParameter(f"Must be one of: {choices}", param_hint="'--timeframe'") from exc


def resolve_decimal(value: float | None, key: str, default: str) -> Decimal:
    """Resolve a numeric setting from the CLI option or ``backtester.<key>`` in config.

    Convert to ``Decimal`` via ``str`` so ``0.1`` stays exactly ``0.1``.
    Raise ``typer.BadParameter`` for NaN or infinite option values.
    """
    if value is None:
        return get_config().get_decimal(f"backtester.{key}", default)
    number = Decimal(str(value))
    if not number.is_finite():
        raise typer.BadParameter(f"{key} must be a finite number, got {value}")
    return number


def build_provider(source: str, csv_path: Path | None, seed: int | None = 42) -> CandleProvider:
    """Build a candle provider for the selected source."""
    if source == "sample":
        return SampleCandleProvider(seed=seed)
    if csv_path is None:
        raise typer.BadParameter("--csv is required when --source is csv", param_hint="'--csv'")
    tolerance = get_config().get_int("backtester.gap_tolerance_days", 30)
    return CsvCandleProvider(csv_path, gap_tolerance_days=tolerance)


def load_signal_file(path: Path) -> SignalConfig:
    """Load a signal definition from a JSON or YAML file.

    The file holds one alert mapping in the camelCase shape accepted by
    ``signal_config_from_dict``. JSON is read by the YAML parser too.
    """
    try:
        raw: Any = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as exc:
        raise typer.BadParameter(f"Cannot read {path}: {exc}", param_hint="'--signal'") from exc
    if not isinstance(raw, dict):
        raise typer.BadParameter(f"{path} must contain a mapping", param_hint="'--signal'")
    try:
        return signal_config_from_dict(raw)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="'--signal'") from exc
