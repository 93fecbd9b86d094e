from __future__ import annotations

import logging
import sys
from typing import IO

from thakir.config import Config, StorageConfig, load_config
from thakir.fragment_worker import FragmentWorker, TranscriptFragment
from thakir.phrases import Phrase
from thakir.recognizer import RecognitionOutcome, RecognitionState
from thakir.session import SebhaSession
from thakir.status import StatusWriter
from thakir.storage import JsonFileStorage, MemoryStore, PhraseStore, SQLiteStorage


log = logging.getLogger(__name__)

_PREFIXES = {"partial:": False, "final:": True}


def open_store(cfg: StorageConfig) -> PhraseStore:
    if cfg.backend == "files":
        return JsonFileStorage(path=cfg.json_path)
    if cfg.backend == "memory":
        return MemoryStore()
    return SQLiteStorage(db_path=cfg.db_path)


def build_session(cfg: Config, *, store: PhraseStore | None = None) -> SebhaSession:
    return SebhaSession(
        store=store if store is not None else open_store(cfg.storage),
        recognition=cfg.recognition,
        auto_advance=cfg.session.auto_advance,
        default_texts=cfg.session.default_phrases,
        default_target=cfg.session.default_target,
    )


def parse_fragment_line(line: str) -> TranscriptFragment | None:
    """`final: text`, `partial: text` or bare text (treated as final)."""
    s = line.strip()
    if not s:
        return None
    low = s.lower()
    for prefix, is_final in _PREFIXES.items():
        if low.startswith(prefix):
            return TranscriptFragment(text=s[len(prefix):].strip(), is_final=is_final)
    return TranscriptFragment(text=s, is_final=True)


def run(config_path: str | None, *, stream: IO[str] | None = None, out: IO[str] | None = None) -> int:
    """Count the selected phrase in transcripts read line by line from `stream`."""
    cfg = load_config(config_path)
    session = build_session(cfg)
    stream = stream if stream is not None else sys.stdin
    out = out if out is not None else sys.stdout

    status = StatusWriter(path=cfg.ui.status_path, min_interval_s=cfg.ui.status_min_interval_s)

    def publish(state: str | None = None, heard: str | None = None) -> None:
        phrase = session.selected
        totals = session.totals()
        status.update(
            state=state,
            phrase=phrase.text if phrase else "",
            count=session.count() if phrase else 0,
            target=phrase.target if phrase else 0,
            progress=session.current_progress(),
            today_total=totals.today,
            all_time_total=totals.all_time,
            last_heard=heard,
            force=state is not None,
        )

    def on_count(phrase: Phrase, count: int) -> None:
        out.write(f"{phrase.text}: {count}/{phrase.target}\n")
        out.flush()
        publish()

    def on_target(phrase: Phrase) -> None:
        out.write(f"✓ {phrase.text}: target {phrase.target} reached\n")
        out.flush()

    def on_state(_from: RecognitionState, to: RecognitionState) -> None:
        publish(state=to.value)

    def on_outcome(frag: TranscriptFragment, outcome: RecognitionOutcome) -> None:
        if outcome.heard:
            publish(heard=outcome.heard)

    session.on_count_changed(on_count)
    session.on_target_reached(on_target)
    session.on_state_change(on_state)

    worker = FragmentWorker(session=session, on_outcome=on_outcome)
    session.start_listening()
    publish(state=RecognitionState.IDLE.value)
    try:
        for line in stream:
            frag = parse_fragment_line(line)
            if frag is None:
                continue
            worker.submit(frag.text, is_final=frag.is_final)
        worker.drain()
    except KeyboardInterrupt:
        log.info("interrupted")
    finally:
        worker.stop()
        session.stop_listening()
        publish(state="stopped")
        session.close()
    return 0
