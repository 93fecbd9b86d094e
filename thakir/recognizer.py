from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from thakir.matcher import NO_MATCH, MatchResult, MatchThresholds, TargetPhrase, match_phrase
from thakir.text_normalize_ar import normalize_arabic


log = logging.getLogger(__name__)

_EPS_S = 1e-9


class RecognitionState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    MATCHED = "matched"
    COOLDOWN = "cooldown"


# process() reasons
EMPTY_INPUT = "empty_input"
INVALID_TARGET = "invalid_target"
DUPLICATE = "duplicate"
COOLDOWN = "cooldown"
MATCHED = "matched"
BUFFER_MATCHED = "buffer_matched"
NO_MATCH_REASON = "no_match"
NOT_LISTENING = "not_listening"
PARTIAL_IGNORED = "partial_ignored"


@dataclass(frozen=True)
class RecognitionOutcome:
    state: RecognitionState
    reason: str
    match: MatchResult = NO_MATCH
    heard: str = ""

    @property
    def matched(self) -> bool:
        return self.reason in (MATCHED, BUFFER_MATCHED)


StateCallback = Callable[[RecognitionState, RecognitionState], None]


class PhraseRecognizer:
    """Turns a stream of transcript fragments into phrase-match events.

    Idle -> Listening -> Matched -> Cooldown -> Listening ... Matched is
    passed through synchronously; after a hit the machine rests in Cooldown
    until `cooldown_s` has elapsed on `clock`.
    """

    def __init__(
        self,
        *,
        thresholds: MatchThresholds = MatchThresholds(),
        cooldown_s: float = 0.4,
        buffer_size: int = 5,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: StateCallback | None = None,
    ) -> None:
        self._thresholds = thresholds
        self._cooldown_s = float(max(0.0, cooldown_s))
        self._clock = clock
        self._on_state_change = on_state_change

        self._target: TargetPhrase | None = None
        self._state = RecognitionState.IDLE
        self._buffer: deque[str] = deque(maxlen=max(1, int(buffer_size)))
        self._last_text = ""
        self._last_match_ts: float | None = None

    @property
    def state(self) -> RecognitionState:
        return self._state

    @property
    def target(self) -> TargetPhrase | None:
        return self._target

    @property
    def buffer(self) -> tuple[str, ...]:
        return tuple(self._buffer)

    def set_target(self, text: str) -> TargetPhrase | None:
        """Replace the phrase being counted. Returns None if it has no words."""
        target = TargetPhrase.from_text(text or "")
        self._target = target if target.is_valid else None
        self.reset()
        if self._target is None:
            log.debug("target %r has no comparable words", text)
        return self._target

    def start(self) -> None:
        self.reset()

    def stop(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._buffer.clear()
        self._last_text = ""
        self._last_match_ts = None
        self._transition(RecognitionState.IDLE)

    def process(self, text: str) -> RecognitionOutcome:
        if self._target is None:
            return RecognitionOutcome(state=self._state, reason=INVALID_TARGET)
        spoken = normalize_arabic(text or "")
        if not spoken:
            return RecognitionOutcome(state=self._state, reason=EMPTY_INPUT)

        log.debug("heard=%r target=%r state=%s", spoken, self._target.normalized, self._state.value)

        if self._state == RecognitionState.COOLDOWN:
            now = self._clock()
            if self._last_match_ts is not None and (now - self._last_match_ts) < self._cooldown_s - _EPS_S:
                return RecognitionOutcome(state=self._state, reason=COOLDOWN, heard=spoken)
            self._buffer.clear()
            self._last_text = ""
            self._transition(RecognitionState.LISTENING)

        if self._state == RecognitionState.IDLE:
            self._transition(RecognitionState.LISTENING)

        if spoken == self._last_text:
            return RecognitionOutcome(state=self._state, reason=DUPLICATE, heard=spoken)

        direct = match_phrase(spoken, self._target.normalized, thresholds=self._thresholds)
        if direct.is_match:
            self._on_match(spoken)
            return RecognitionOutcome(state=self._state, reason=MATCHED, match=direct, heard=spoken)

        self._buffer.append(spoken)
        combined = " ".join(self._buffer)
        buffered = match_phrase(combined, self._target.normalized, thresholds=self._thresholds)
        if buffered.is_match:
            self._on_match(combined)
            return RecognitionOutcome(state=self._state, reason=BUFFER_MATCHED, match=buffered, heard=combined)

        self._last_text = spoken
        best = direct if direct.confidence >= buffered.confidence else buffered
        log.debug("no match (best confidence %.2f)", best.confidence)
        return RecognitionOutcome(state=self._state, reason=NO_MATCH_REASON, match=best, heard=spoken)

    def _on_match(self, matched_text: str) -> None:
        self._transition(RecognitionState.MATCHED)
        self._last_text = matched_text
        self._last_match_ts = self._clock()
        self._buffer.clear()
        self._transition(RecognitionState.COOLDOWN)

    def _transition(self, to_state: RecognitionState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        if self._on_state_change is not None:
            self._on_state_change(from_state, to_state)
