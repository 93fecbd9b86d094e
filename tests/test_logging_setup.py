from __future__ import annotations

import logging
from pathlib import Path

import pytest

from thakir.logging_setup import resolve_level, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():  # noqa: ANN201
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for h in list(root.handlers):
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    root.setLevel(level)


def _ours(kind: str) -> list[logging.Handler]:
    return [h for h in logging.getLogger().handlers if h.get_name() == f"thakir.{kind}"]


@pytest.mark.parametrize(
    "level, env, expected",
    [
        ("debug", None, logging.DEBUG),
        (None, "warning", logging.WARNING),
        (None, None, logging.INFO),
        ("15", None, 15),
        ("loud", None, logging.INFO),
        (logging.ERROR, "debug", logging.ERROR),
    ],
)
def test_resolve_level(monkeypatch: pytest.MonkeyPatch, level, env, expected: int) -> None:  # noqa: ANN001
    if env is not None:
        monkeypatch.setenv("THAKIR_LOG_LEVEL", env)
    assert resolve_level(level) == expected


def test_file_log_lands_in_state_dir(thakir_home: Path) -> None:
    log = setup_logging(level="INFO")
    logging.getLogger("thakir.test").info("counted سبحان الله")
    for h in _ours("file"):
        h.flush()

    assert log.name == "thakir"
    text = (thakir_home / "state" / "thakir.log").read_text(encoding="utf-8")
    assert "[MainThread] thakir.test: counted سبحان الله" in text


def test_repeated_setup_updates_level_without_duplicates(tmp_path: Path) -> None:
    setup_logging(level="INFO")
    setup_logging(level="DEBUG")
    assert len(_ours("stream")) == 1
    assert len(_ours("file")) == 1
    assert logging.getLogger().level == logging.DEBUG
    assert _ours("stream")[0].level == logging.DEBUG
    assert _ours("file")[0].level == logging.DEBUG

    other = tmp_path / "elsewhere" / "custom.log"
    setup_logging(level="WARNING", log_path=other)
    files = _ours("file")
    assert len(files) == 1
    assert Path(files[0].baseFilename) == other
    assert files[0].level == logging.WARNING
