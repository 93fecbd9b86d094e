from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml
from pydantic import ValidationError

from thakir.config_model import ConfigModel
from thakir.matcher import MatchThresholds
from thakir.paths import get_paths
from thakir.phrases import DEFAULT_PHRASES, DEFAULT_TARGET


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class RecognitionConfig:
    cooldown_s: float = 0.4
    min_increment_interval_s: float = 0.3
    buffer_size: int = 5
    match_threshold: float = 0.75
    substring_threshold: float = 0.65
    word_similarity_threshold: float = 0.75
    word_ratio_threshold: float = 0.75
    final_only: bool = False

    def thresholds(self) -> MatchThresholds:
        return MatchThresholds(
            substring=self.substring_threshold,
            word_similarity=self.word_similarity_threshold,
            word_ratio=self.word_ratio_threshold,
            phrase_similarity=self.match_threshold,
        )


@dataclass(frozen=True)
class SessionConfig:
    auto_advance: bool = True
    default_phrases: tuple[str, ...] = DEFAULT_PHRASES
    default_target: int = DEFAULT_TARGET


@dataclass(frozen=True)
class StorageConfig:
    backend: str = "sqlite"  # sqlite|files|memory
    db_path: Path = field(default_factory=lambda: get_paths().db_path)
    json_path: Path = field(default_factory=lambda: get_paths().json_path)


@dataclass(frozen=True)
class UIConfig:
    status_path: Path = field(default_factory=lambda: get_paths().status_path)
    status_min_interval_s: float = 0.0


@dataclass(frozen=True)
class Config:
    recognition: RecognitionConfig = field(default_factory=RecognitionConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    ui: UIConfig = field(default_factory=UIConfig)


def load_config(config_path: str | Path | None) -> Config:
    path = Path(config_path) if config_path else None

    raw: dict = {}
    if path is not None and path.exists():
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"{path}: invalid YAML: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigError(f"{path}: top level must be a mapping")

    try:
        model = ConfigModel.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"{path}: {e}") from e
    return from_model(model, base_dir=path.parent if path is not None else None)


def from_model(model: ConfigModel, *, base_dir: Path | None = None) -> Config:
    rec = model.recognition
    recognition = RecognitionConfig(
        cooldown_s=float(rec.cooldown_s),
        min_increment_interval_s=float(rec.min_increment_interval_s),
        buffer_size=int(rec.buffer_size),
        match_threshold=float(rec.match_threshold),
        substring_threshold=float(rec.substring_threshold),
        word_similarity_threshold=float(rec.word_similarity_threshold),
        word_ratio_threshold=float(rec.word_ratio_threshold),
        final_only=bool(rec.final_only),
    )

    session = SessionConfig(
        auto_advance=bool(model.session.auto_advance),
        default_phrases=tuple(str(x) for x in model.session.default_phrases),
        default_target=int(model.session.default_target),
    )

    paths = get_paths()
    storage = StorageConfig(
        backend=model.storage.backend,
        db_path=_resolve_optional_path(model.storage.db_path, base_dir) or paths.db_path,
        json_path=_resolve_optional_path(model.storage.json_path, base_dir) or paths.json_path,
    )

    status_arg = (model.ui.status_path or "").strip()
    if not status_arg or status_arg.lower() in ("auto", "xdg"):
        status_path = paths.status_path
    else:
        status_path = _resolve_path(status_arg, base_dir)
    ui = UIConfig(status_path=status_path, status_min_interval_s=float(model.ui.status_min_interval_s))

    return Config(recognition=recognition, session=session, storage=storage, ui=ui)


def _resolve_path(value: str | Path, base_dir: Path | None) -> Path:
    path = Path(value).expanduser()
    if not path.is_absolute() and base_dir is not None:
        path = base_dir / path
    return path


def _resolve_optional_path(value: str | Path | None, base_dir: Path | None) -> Path | None:
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    return _resolve_path(s, base_dir)
