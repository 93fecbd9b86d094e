from __future__ import annotations

from pathlib import Path

import pytest

from thakir.cli import main
from thakir.storage import MemoryStore


@pytest.fixture
def cfg_path(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text("storage:\n  backend: files\n  json_path: thakir.json\n", encoding="utf-8")
    return path


def test_normalize(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["normalize", "سُبْحَانَ اللَّهِ!"]) == 0
    assert capsys.readouterr().out.strip() == "سبحان الله"


def test_match(cfg_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--config", str(cfg_path), "match", "يا رب سبحان الله", "سبحان الله"]) == 0
    assert "match=true" in capsys.readouterr().out
    assert main(["--config", str(cfg_path), "match", "الحمد لله", "سبحان الله"]) == 1


def test_phrase_commands(cfg_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    base = ["--config", str(cfg_path)]
    assert main(base + ["phrases", "add", "الله أكبر", "--target", "100"]) == 0
    assert main(base + ["phrases", "target", "1", "10"]) == 0
    assert main(base + ["phrases", "rename", "الله أكبر", "اللهُ أكبر"]) == 0
    capsys.readouterr()

    assert main(base + ["phrases", "list"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 4
    assert "/10" in lines[0]
    assert lines[3].startswith("*")
    assert "اللهُ أكبر" in lines[3]

    assert main(base + ["phrases", "select", "2"]) == 0
    assert main(base + ["phrases", "remove", "4"]) == 0
    assert main(base + ["phrases", "select", "nope-phrase"]) == 1
    assert "phrase not found" in capsys.readouterr().out


def test_stats_and_reset(cfg_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    base = ["--config", str(cfg_path)]
    assert main(base + ["stats"]) == 0
    out = capsys.readouterr().out
    assert "total: today=0 week=0 month=0 all=0" in out
    assert main(base + ["reset"]) == 0
    assert main(base + ["reset", "--all"]) == 0
    assert main(base + ["reset", "--statistics"]) == 0


def test_favorite_command(cfg_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    base = ["--config", str(cfg_path)]
    assert main(base + ["phrases", "favorite", "2"]) == 0
    assert "favorite=true" in capsys.readouterr().out

    assert main(base + ["phrases", "list"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert "★" in lines[1]
    assert "★" not in lines[0]

    assert main(base + ["phrases", "favorite", "2"]) == 0
    assert "favorite=false" in capsys.readouterr().out
    assert main(base + ["phrases", "favorite", "nope-phrase"]) == 1


def test_commands_close_the_store(cfg_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    closed: list[str] = []

    class _Store(MemoryStore):
        def close(self) -> None:
            closed.append("closed")

    monkeypatch.setattr("thakir.app.open_store", lambda cfg: _Store())
    base = ["--config", str(cfg_path)]
    assert main(base + ["phrases", "list"]) == 0
    assert main(base + ["stats"]) == 0
    assert main(base + ["phrases", "select", "nope-phrase"]) == 1
    assert closed == ["closed"] * 3


def test_config_commands(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "cfg" / "config.yaml"
    base = ["--config", str(path)]
    assert main(base + ["config", "get", "recognition.cooldown_s"]) == 0
    assert capsys.readouterr().out.strip() == "0.4"

    assert main(base + ["config", "toggle", "session.auto_advance"]) == 0
    assert main(base + ["config", "set", "recognition.buffer_size", "8"]) == 0
    assert main(base + ["preset", "strict"]) == 0
    capsys.readouterr()

    assert main(base + ["config", "get", "session.auto_advance"]) == 0
    assert capsys.readouterr().out.strip() == "False"

    assert main(base + ["config", "set", "recognition.cooldown_s", "-3"]) == 2
    assert "config error" in capsys.readouterr().out
    assert main(base + ["config", "get", "recognition.cooldown_s"]) == 0
    assert capsys.readouterr().out.strip() == "0.8"
    assert main(base + ["config", "get", "recognition.nope"]) == 2


def test_init_writes_config(thakir_home: Path) -> None:
    assert main(["init"]) == 0
    assert (thakir_home / "config.yaml").exists()
    assert (thakir_home / "data").is_dir()
    assert (thakir_home / "state").is_dir()


def test_no_command_prints_help() -> None:
    assert main([]) == 2
