from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, replace


DEFAULT_PHRASES: tuple[str, ...] = ("سبحان الله", "الحمد لله", "لا إله إلا الله")
DEFAULT_TARGET = 33


def new_phrase_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Phrase:
    # stable id: statistics are keyed by it, never by the display text
    id: str
    text: str
    target: int = DEFAULT_TARGET
    created_ts: float = field(default_factory=time.time)
    favorite: bool = False

    @classmethod
    def create(cls, text: str, target: int = DEFAULT_TARGET) -> Phrase:
        t = (text or "").strip()
        if not t:
            raise ValueError("phrase text must be non-empty")
        if int(target) < 0:
            raise ValueError("target must be >= 0")
        return cls(id=new_phrase_id(), text=t, target=int(target))

    def with_text(self, text: str) -> Phrase:
        t = (text or "").strip()
        if not t:
            raise ValueError("phrase text must be non-empty")
        return replace(self, text=t)

    def with_target(self, target: int) -> Phrase:
        if int(target) < 0:
            raise ValueError("target must be >= 0")
        return replace(self, target=int(target))

    def with_favorite(self, favorite: bool) -> Phrase:
        return replace(self, favorite=bool(favorite))


def default_phrases(texts: tuple[str, ...] | list[str] = DEFAULT_PHRASES, target: int = DEFAULT_TARGET) -> list[Phrase]:
    return [Phrase.create(t, target) for t in texts if str(t).strip()]
