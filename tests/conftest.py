from __future__ import annotations

import logging
from pathlib import Path

import pytest


class FakeClock:
    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def thakir_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home = tmp_path / "home"
    monkeypatch.setenv("THAKIR_HOME", str(home))
    monkeypatch.delenv("THAKIR_CONFIG", raising=False)
    monkeypatch.delenv("THAKIR_LOG_LEVEL", raising=False)
    return home


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def restore_root_logger():  # noqa: ANN201
    # setup_logging installs root handlers bound to pytest's per-test stderr;
    # drop them after each test so they don't leak into the next one
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for h in list(root.handlers):
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    root.setLevel(level)
