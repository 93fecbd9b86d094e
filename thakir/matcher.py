from __future__ import annotations

from dataclasses import dataclass

from thakir.similarity import phonetic_similarity
from thakir.text_normalize_ar import normalize_arabic, split_words


@dataclass(frozen=True)
class MatchThresholds:
    substring: float = 0.65
    word_similarity: float = 0.75
    word_ratio: float = 0.75
    phrase_similarity: float = 0.75


@dataclass(frozen=True)
class MatchResult:
    is_match: bool
    confidence: float
    strategy: str | None = None  # substring|sequential|similarity


NO_MATCH = MatchResult(is_match=False, confidence=0.0)


@dataclass(frozen=True)
class TargetPhrase:
    text: str
    normalized: str
    words: tuple[str, ...]

    @classmethod
    def from_text(cls, text: str) -> TargetPhrase:
        normalized = normalize_arabic(text)
        return cls(text=text, normalized=normalized, words=split_words(normalized))

    @property
    def is_valid(self) -> bool:
        return bool(self.words)


def _words_match(spoken_word: str, target_word: str, *, min_similarity: float) -> bool:
    if spoken_word == target_word:
        return True
    if target_word in spoken_word or spoken_word in target_word:
        return True
    return phonetic_similarity(spoken_word, target_word) >= min_similarity


def sequential_word_ratio(
    spoken_words: tuple[str, ...],
    target_words: tuple[str, ...],
    *,
    min_similarity: float = 0.75,
) -> float:
    """Share of target words found in order within the spoken words.

    The target cursor only moves on a hit, so filler words between the
    phrase's words are skipped without consuming anything.
    """
    if not target_words:
        return 0.0
    matched = 0
    idx = 0
    for word in spoken_words:
        if idx >= len(target_words):
            break
        if _words_match(word, target_words[idx], min_similarity=min_similarity):
            matched += 1
            idx += 1
    return matched / len(target_words)


def match_phrase(
    spoken: str,
    target: str,
    *,
    thresholds: MatchThresholds = MatchThresholds(),
) -> MatchResult:
    """Decide whether normalized `spoken` contains the normalized `target`.

    Cheap exact checks run before the fuzzy ones: substring containment,
    then in-order word alignment, then whole-phrase edit similarity. When
    nothing clears its threshold the best confidence seen is returned with
    is_match=False.
    """
    if not spoken or not target:
        return NO_MATCH
    spoken_words = split_words(spoken)
    target_words = split_words(target)
    if not spoken_words or not target_words:
        return NO_MATCH

    best = 0.0

    if target in spoken or spoken in target:
        conf = min(len(spoken), len(target)) / max(len(spoken), len(target))
        if conf >= thresholds.substring:
            return MatchResult(is_match=True, confidence=conf, strategy="substring")
        best = max(best, conf)

    ratio = sequential_word_ratio(spoken_words, target_words, min_similarity=thresholds.word_similarity)
    if ratio >= thresholds.word_ratio:
        return MatchResult(is_match=True, confidence=ratio, strategy="sequential")
    best = max(best, ratio)

    overall = phonetic_similarity(spoken, target)
    if overall >= thresholds.phrase_similarity:
        return MatchResult(is_match=True, confidence=overall, strategy="similarity")
    best = max(best, overall)

    return MatchResult(is_match=False, confidence=best)
