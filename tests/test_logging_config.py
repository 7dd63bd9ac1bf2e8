"""Tests for CLI logging setup (cli/logging_config.py)."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest
from rich.logging import RichHandler

from cfctl.cli.logging_config import configure_logging


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestConfigureLogging:
    def test_installs_single_rich_handler(self) -> None:
        configure_logging("WARNING")
        configure_logging("WARNING")

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], RichHandler)
        assert root.level == logging.WARNING

    def test_verbose_forces_debug(self) -> None:
        configure_logging("ERROR", verbose=True)
        assert logging.getLogger().level == logging.DEBUG

    def test_transport_loggers_stay_quiet(self) -> None:
        configure_logging("DEBUG", verbose=True)
        assert logging.getLogger("httpx").level == logging.INFO
