from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, PositiveInt

from thakir.phrases import DEFAULT_PHRASES, DEFAULT_TARGET


class RecognitionModel(BaseModel):
    cooldown_s: float = Field(default=0.4, ge=0.0, le=10.0)
    min_increment_interval_s: float = Field(default=0.3, ge=0.0, le=10.0)
    buffer_size: PositiveInt = Field(default=5, le=50)
    match_threshold: float = Field(default=0.75, ge=0.0, le=1.0)
    substring_threshold: float = Field(default=0.65, ge=0.0, le=1.0)
    word_similarity_threshold: float = Field(default=0.75, ge=0.0, le=1.0)
    word_ratio_threshold: float = Field(default=0.75, ge=0.0, le=1.0)
    # ignore partial transcripts and count only on final ones
    final_only: bool = False


class SessionModel(BaseModel):
    auto_advance: bool = True
    default_phrases: list[str] = Field(default_factory=lambda: list(DEFAULT_PHRASES))
    default_target: int = Field(default=DEFAULT_TARGET, ge=0, le=1_000_000)


class StorageModel(BaseModel):
    backend: Literal["sqlite", "files", "memory"] = "sqlite"
    # None -> XDG data dir
    db_path: str | None = None
    json_path: str | None = None


class UIModel(BaseModel):
    # "auto" uses the XDG state dir (e.g. ~/.local/state/thakir/status.json).
    status_path: str = "auto"
    status_min_interval_s: float = Field(default=0.0, ge=0.0, le=10.0)


class ConfigModel(BaseModel):
    recognition: RecognitionModel = Field(default_factory=RecognitionModel)
    session: SessionModel = Field(default_factory=SessionModel)
    storage: StorageModel = Field(default_factory=StorageModel)
    ui: UIModel = Field(default_factory=UIModel)
