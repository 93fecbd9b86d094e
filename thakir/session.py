from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from thakir.config import RecognitionConfig
from thakir.counter import CounterStats, IncrementOutcome, RepetitionCounter
from thakir.phrases import DEFAULT_PHRASES, DEFAULT_TARGET, Phrase, default_phrases
from thakir.recognizer import (
    INVALID_TARGET,
    NOT_LISTENING,
    PARTIAL_IGNORED,
    PhraseRecognizer,
    RecognitionOutcome,
    RecognitionState,
)
from thakir.storage import PhraseStore


log = logging.getLogger(__name__)

CountCallback = Callable[[Phrase, int], None]
TargetCallback = Callable[[Phrase], None]
StateCallback = Callable[[RecognitionState, RecognitionState], None]


class PhraseNotFound(KeyError):
    pass


class SebhaSession:
    """Owns the phrase list, the counters and the recognizer for one user.

    Every mutation happens under one re-entrant lock, so fragments from a
    capture thread, direct taps from a UI thread and management calls are
    applied one at a time in arrival order.
    """

    def __init__(
        self,
        *,
        store: PhraseStore,
        recognition: RecognitionConfig = RecognitionConfig(),
        auto_advance: bool = True,
        default_texts: tuple[str, ...] = DEFAULT_PHRASES,
        default_target: int = DEFAULT_TARGET,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._final_only = bool(recognition.final_only)
        self._auto_advance = bool(auto_advance)
        self._default_target = int(default_target)
        self._lock = threading.RLock()

        self._count_listeners: list[CountCallback] = []
        self._target_listeners: list[TargetCallback] = []
        self._state_listeners: list[StateCallback] = []

        self._counter = RepetitionCounter(
            min_increment_interval_s=recognition.min_increment_interval_s,
            clock=clock,
            wall_clock=wall_clock,
        )
        self._recognizer = PhraseRecognizer(
            thresholds=recognition.thresholds(),
            cooldown_s=recognition.cooldown_s,
            buffer_size=recognition.buffer_size,
            clock=clock,
            on_state_change=self._emit_state,
        )
        self._listening = False

        phrases = store.load_phrases()
        if not phrases:
            phrases = default_phrases(default_texts, default_target)
            store.save_phrases(phrases)
        self._phrases: list[Phrase] = list(phrases)
        self._counter.load(store.load_records())
        for p in self._phrases:
            self._counter.set_target(p.id, p.target)
        self._selected_id: str | None = self._phrases[0].id if self._phrases else None
        saved = store.load_selected()
        if saved is not None and any(p.id == saved for p in self._phrases):
            self._selected_id = saved
        self._sync_recognizer()

    # --- listeners ---
    def on_count_changed(self, cb: CountCallback) -> None:
        self._count_listeners.append(cb)

    def on_target_reached(self, cb: TargetCallback) -> None:
        self._target_listeners.append(cb)

    def on_state_change(self, cb: StateCallback) -> None:
        self._state_listeners.append(cb)

    # --- queries ---
    @property
    def phrases(self) -> tuple[Phrase, ...]:
        with self._lock:
            return tuple(self._phrases)

    @property
    def selected(self) -> Phrase | None:
        with self._lock:
            if self._selected_id is None:
                return None
            return self._find(self._selected_id)

    @property
    def favorites(self) -> tuple[Phrase, ...]:
        with self._lock:
            return tuple(p for p in self._phrases if p.favorite)

    @property
    def is_listening(self) -> bool:
        return self._listening

    @property
    def recognition_state(self) -> RecognitionState:
        return self._recognizer.state

    def count(self, phrase_id: str | None = None) -> int:
        with self._lock:
            return self._counter.record(self._resolve(phrase_id).id).count

    def current_progress(self, phrase_id: str | None = None) -> float:
        with self._lock:
            if phrase_id is None and self._selected_id is None:
                return 0.0
            return self._counter.progress(self._resolve(phrase_id).id)

    def stats(self, phrase_id: str | None = None) -> CounterStats:
        with self._lock:
            return self._counter.stats(self._resolve(phrase_id).id)

    def totals(self) -> CounterStats:
        with self._lock:
            return self._counter.totals()

    # --- listening lifecycle ---
    def start_listening(self) -> None:
        with self._lock:
            self._listening = True
            self._recognizer.start()
            log.info("listening started (phrase=%r)", self.selected.text if self.selected else None)

    def stop_listening(self) -> None:
        with self._lock:
            was = self._listening
            self._listening = False
            self._recognizer.stop()
            if was:
                log.info("listening stopped")

    def process_fragment(self, text: str, *, is_final: bool = False) -> RecognitionOutcome:
        with self._lock:
            if not self._listening:
                return RecognitionOutcome(state=self._recognizer.state, reason=NOT_LISTENING)
            if self._final_only and not is_final:
                return RecognitionOutcome(state=self._recognizer.state, reason=PARTIAL_IGNORED)
            outcome = self._recognizer.process(text)
            if outcome.reason == INVALID_TARGET:
                log.debug("fragment ignored: no countable phrase selected")
            if outcome.matched:
                log.debug("matched via %s (%.2f)", outcome.match.strategy, outcome.match.confidence)
                self._apply_increment()
            return outcome

    def increment(self) -> IncrementOutcome:
        """Direct tap; skips recognition but not the rate limiter."""
        with self._lock:
            if self._selected_id is None:
                return IncrementOutcome(applied=False, new_count=0)
            return self._apply_increment()

    # --- resets ---
    def reset(self, phrase_id: str | None = None) -> None:
        with self._lock:
            phrase = self._resolve(phrase_id)
            rec = self._counter.reset(phrase.id)
            self._store.save_record(rec)
            self._emit_count(phrase, rec.count)

    def reset_all(self) -> None:
        with self._lock:
            self._counter.reset_all()
            self._save_all_records()
            for p in self._phrases:
                self._emit_count(p, 0)

    def reset_statistics(self) -> None:
        with self._lock:
            self._counter.reset_statistics()
            self._save_all_records()
            for p in self._phrases:
                self._emit_count(p, 0)

    # --- phrase management ---
    def add_phrase(self, text: str, target: int | None = None, *, select: bool = True) -> Phrase:
        with self._lock:
            phrase = Phrase.create(text, self._default_target if target is None else target)
            self._phrases.append(phrase)
            self._store.save_phrases(self._phrases)
            self._store.save_record(self._counter.set_target(phrase.id, phrase.target))
            if select:
                self.select(phrase.id)
            return phrase

    def remove_phrase(self, phrase_id: str) -> None:
        with self._lock:
            phrase = self._find(phrase_id)
            idx = self._phrases.index(phrase)
            self._phrases.pop(idx)
            self._counter.forget(phrase_id)
            self._store.delete_record(phrase_id)
            self._store.save_phrases(self._phrases)
            if self._selected_id == phrase_id:
                if self._phrases:
                    self._selected_id = self._phrases[max(0, idx - 1)].id
                else:
                    self._selected_id = None
                self._store.save_selected(self._selected_id)
                self._sync_recognizer()

    def move_phrase(self, phrase_id: str, new_index: int) -> None:
        with self._lock:
            phrase = self._find(phrase_id)
            self._phrases.remove(phrase)
            new_index = max(0, min(int(new_index), len(self._phrases)))
            self._phrases.insert(new_index, phrase)
            self._store.save_phrases(self._phrases)

    def rename_phrase(self, phrase_id: str, text: str) -> Phrase:
        with self._lock:
            phrase = self._find(phrase_id)
            renamed = phrase.with_text(text)
            self._replace(renamed)
            if self._selected_id == phrase_id:
                self._sync_recognizer()
            return renamed

    def set_target(self, phrase_id: str, target: int) -> Phrase:
        with self._lock:
            phrase = self._find(phrase_id).with_target(target)
            self._replace(phrase)
            self._store.save_record(self._counter.set_target(phrase.id, phrase.target))
            return phrase

    def toggle_favorite(self, phrase_id: str) -> Phrase:
        with self._lock:
            phrase = self._find(phrase_id)
            updated = phrase.with_favorite(not phrase.favorite)
            self._replace(updated)
            return updated

    def select(self, phrase_id: str) -> Phrase:
        with self._lock:
            phrase = self._find(phrase_id)
            self._selected_id = phrase.id
            self._store.save_selected(phrase.id)
            self._sync_recognizer()
            log.info("selected %r (%d/%d)", phrase.text, self._counter.record(phrase.id).count, phrase.target)
            return phrase

    def select_next(self) -> Phrase | None:
        with self._lock:
            if not self._phrases:
                return None
            cur = self.selected
            idx = self._phrases.index(cur) if cur is not None else -1
            return self.select(self._phrases[(idx + 1) % len(self._phrases)].id)

    def close(self) -> None:
        with self._lock:
            self.stop_listening()
            self._store.close()

    # --- internal ---
    def _apply_increment(self) -> IncrementOutcome:
        phrase = self.selected
        if phrase is None:
            return IncrementOutcome(applied=False, new_count=0)
        out = self._counter.increment_with_rate_limit(phrase.id)
        if not out.applied:
            return out
        self._store.save_record(self._counter.record(phrase.id))
        self._emit_count(phrase, out.new_count)
        if out.target_reached:
            log.info("target reached: %r (%d)", phrase.text, out.new_count)
            for cb in list(self._target_listeners):
                try:
                    cb(phrase)
                except Exception:
                    log.exception("target listener failed")
            if self._auto_advance and len(self._phrases) > 1:
                self.select_next()
        return out

    def _sync_recognizer(self) -> None:
        phrase = self.selected
        self._recognizer.set_target(phrase.text if phrase is not None else "")

    def _resolve(self, phrase_id: str | None) -> Phrase:
        if phrase_id is None:
            if self._selected_id is None:
                raise PhraseNotFound("no phrase selected")
            phrase_id = self._selected_id
        return self._find(phrase_id)

    def _find(self, phrase_id: str) -> Phrase:
        for p in self._phrases:
            if p.id == phrase_id:
                return p
        raise PhraseNotFound(phrase_id)

    def _replace(self, phrase: Phrase) -> None:
        for i, p in enumerate(self._phrases):
            if p.id == phrase.id:
                self._phrases[i] = phrase
                break
        self._store.save_phrases(self._phrases)

    def _save_all_records(self) -> None:
        for rec in self._counter.records().values():
            self._store.save_record(rec)

    def _emit_count(self, phrase: Phrase, count: int) -> None:
        for cb in list(self._count_listeners):
            try:
                cb(phrase, count)
            except Exception:
                log.exception("count listener failed")

    def _emit_state(self, from_state: RecognitionState, to_state: RecognitionState) -> None:
        for cb in list(self._state_listeners):
            try:
                cb(from_state, to_state)
            except Exception:
                log.exception("state listener failed")
