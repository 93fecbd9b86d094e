from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Callable

from thakir.recognizer import RecognitionOutcome
from thakir.session import SebhaSession


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TranscriptFragment:
    text: str
    is_final: bool = False


OutcomeCallback = Callable[[TranscriptFragment, RecognitionOutcome], None]


class FragmentWorker:
    """Single consumer between a transcription callback and the session.

    Producers call `submit` from any thread; fragments are applied to the
    session strictly one at a time in arrival order.
    """

    def __init__(self, *, session: SebhaSession, on_outcome: OutcomeCallback | None = None) -> None:
        self._session = session
        self._on_outcome = on_outcome
        self._q: queue.Queue[TranscriptFragment | None] = queue.Queue()
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name="thakir-fragments", daemon=True)
        self._thread.start()

    def submit(self, text: str, *, is_final: bool = False) -> None:
        if self._stopped.is_set():
            return
        self._q.put(TranscriptFragment(text=str(text), is_final=bool(is_final)))

    def drain(self) -> None:
        """Blocks until every submitted fragment has been processed."""
        self._q.join()

    def stop(self, *, timeout: float = 1.0) -> None:
        if self._stopped.is_set():
            return
        self._stopped.set()
        self._q.put(None)
        self._thread.join(timeout=timeout)

    def _run(self) -> None:
        while True:
            frag = self._q.get()
            try:
                if frag is None:
                    return
                outcome = self._session.process_fragment(frag.text, is_final=frag.is_final)
                if self._on_outcome is not None:
                    self._on_outcome(frag, outcome)
            except Exception:
                log.exception("fragment processing failed")
            finally:
                self._q.task_done()
