"""
BorrowTrace Repository
Introductory remarks: This module is part of the BorrowTrace codebase.

Shared fixtures for the test suite.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from borrowtrace import config
from borrowtrace.utils import env


@pytest.fixture(autouse=True)
def _isolated_tracker_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """
    _isolated_tracker_env: Clear every BORROWTRACE_* variable and stop the
    ``.env`` loader from reading the working directory.
    :param monkeypatch:
    :returns:
    """

    for name in (
        config.ENV_TRACK,
        config.ENV_LOCK_TIMEOUT,
        config.ENV_EXPORT_DIR,
        config.ENV_EXPORT_BUCKET,
        config.ENV_EXPORT_PREFIX,
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(env, "_ENV_LOADED", True)


@pytest.fixture(autouse=True)
def _default_runtime_env(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path_factory: pytest.TempPathFactory,
) -> None:
    """
    _default_runtime_env: Function description.
    :param monkeypatch:
    :param tmp_path_factory:
    :returns:
    """

    log_dir = tmp_path_factory.mktemp("logs")
    monkeypatch.setenv("LOG_FILE", str(Path(log_dir) / "borrowtrace.log"))
    monkeypatch.setenv("LOG_LEVEL", "0")
