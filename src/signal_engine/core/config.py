"""Configuration for the signal engine.

Settings come from ``config/settings.yaml`` next to the package, optionally
overridden key by key by ``settings.local.yaml``. Scalar values of the form
``${VAR}`` or ``${VAR:default}`` are read from the environment after loading
any ``.env`` file.
"""

import os
import re
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, cast

import yaml
from dotenv import load_dotenv

DEFAULT_CONFIG_DIR = Path(__file__).parent.parent / "config"

_ENV_REF = re.compile(r"\$\{(?P<name>[^}:]+)(?::(?P<default>[^}]*))?\}")


class ConfigError(Exception):
    """Raise when configuration loading or validation fails."""


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open() as f:
        data: Any = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"{path.name} must contain a mapping, got {type(data).__name__}"
        raise ConfigError(msg)
    return cast("dict[str, Any]", data)


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``override`` merged in, recursing into nested sections."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _merge(
                cast("dict[str, Any]", current), cast("dict[str, Any]", value)
            )
        else:
            merged[key] = value
    return merged


def _resolve_env(value: Any) -> Any:
    """Substitute ``${VAR[:default]}`` references throughout a loaded YAML tree.

    Only whole-string references are substituted. A reference embedded in a
    longer string is rejected rather than left half-resolved.
    """
    if isinstance(value, dict):
        items = cast("dict[str, Any]", value).items()
        return {key: _resolve_env(item) for key, item in items}
    if isinstance(value, list):
        return [_resolve_env(item) for item in cast("list[Any]", value)]
    if not isinstance(value, str):
        return value

    match = _ENV_REF.fullmatch(value)
    if match is None:
        if _ENV_REF.search(value):
            msg = f"Unresolved environment variable reference in: {value}"
            raise ConfigError(msg)
        return value

    name = match.group("name")
    resolved = os.getenv(name, match.group("default"))
    if resolved is None:
        msg = f"Required environment variable ${{{name}}} is not set and has no default"
        raise ConfigError(msg)
    return resolved


class ConfigLoader:
    """Read-only view over the merged settings files."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Load ``.env`` and the settings files from ``config_dir``.

        Args:
            config_dir: Directory holding ``settings.yaml``. Defaults to the
                ``config`` directory shipped with the package.

        """
        load_dotenv()
        self.config_dir = Path(config_dir) if config_dir is not None else DEFAULT_CONFIG_DIR
        settings = _merge(
            _read_yaml(self.config_dir / "settings.yaml"),
            _read_yaml(self.config_dir / "settings.local.yaml"),
        )
        self._config: dict[str, Any] = _resolve_env(settings)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value at a dot-notation key such as ``backtester.fees_pct``.

        Missing keys, ``null`` values and paths through non-mappings all
        return ``default``.
        """
        current: Any = self._config
        for part in key.split("."):
            if not isinstance(current, dict):
                return default
            current = cast("dict[str, Any]", current).get(part)
            if current is None:
                return default
        return current

    def section(self, name: str) -> dict[str, Any]:
        """Return a top-level section as a dict, empty when absent.

        Raises:
            ConfigError: If the section is present but not a mapping.

        """
        result: Any = self.get(name, {})
        if not isinstance(result, dict):
            msg = f"{name} config must be a dict, got {type(result).__name__}"
            raise ConfigError(msg)
        return cast("dict[str, Any]", result)

    def get_int(self, key: str, default: int) -> int:
        """Return a value coerced to ``int``.

        Environment substitution always yields strings, so numeric keys
        fed from ``${VAR:default}`` need coercion.

        Raises:
            ConfigError: If the value cannot be read as an integer.

        """
        raw: Any = self.get(key, default)
        try:
            return int(raw)
        except (TypeError, ValueError) as exc:
            msg = f"{key} must be an integer, got {raw!r}"
            raise ConfigError(msg) from exc

    def get_decimal(self, key: str, default: str) -> Decimal:
        """Return a value as an exact ``Decimal``.

        YAML floats go through ``str`` so ``0.1`` stays exactly ``0.1``.

        Raises:
            ConfigError: If the value is not a finite number.

        """
        raw: Any = self.get(key, default)
        try:
            number = Decimal(str(raw))
        except InvalidOperation as exc:
            msg = f"{key} must be a number, got {raw!r}"
            raise ConfigError(msg) from exc
        if not number.is_finite():
            msg = f"{key} must be a finite number, got {raw!r}"
            raise ConfigError(msg)
        return number


_config: ConfigLoader | None = None


def get_config() -> ConfigLoader:
    """Return the shared ``ConfigLoader``, creating it on first use.

    Loading lazily keeps file I/O and ``load_dotenv`` out of import time.
    """
    global _config  # noqa: PLW0603
    if _config is None:
        _config = ConfigLoader()
    return _config
