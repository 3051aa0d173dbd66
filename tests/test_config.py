"""Tests for habitlog.core.config."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from habitlog.core.config import Settings, configure_logging


def test_defaults() -> None:
    cfg = Settings(_env_file=None)
    assert cfg.data_store_path == Path("data/store")
    assert cfg.offline_mode is False
    assert cfg.retry_max_attempts == 3


def test_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OFFLINE_MODE", "true")
    monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "5")
    cfg = Settings(_env_file=None)
    assert cfg.offline_mode is True
    assert cfg.retry_max_attempts == 5


def test_configure_logging_sets_level_and_single_handler() -> None:
    cfg = Settings(_env_file=None, log_level="debug")
    logger = configure_logging(cfg)
    configure_logging(cfg)

    assert logger is logging.getLogger("habitlog")
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
