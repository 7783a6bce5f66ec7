"""Shared test configuration and fixtures."""

from collections.abc import Iterator

import pytest

import signal_engine.core.config as config_module


@pytest.fixture(autouse=True)
def _reset_config_singleton() -> Iterator[None]:  # pyright: ignore[reportUnusedFunction]
    """Give every test a fresh ``get_config()`` singleton.

    Tests that patch environment variables or point the loader at a
    temporary directory must not leak a cached loader into later tests.
    """
    config_module._config = None  # noqa: SLF001
    yield
    config_module._config = None  # noqa: SLF001
