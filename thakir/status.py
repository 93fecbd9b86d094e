from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass
from pathlib import Path


@dataclass
class StatusSnapshot:
    state: str = "starting"  # starting|idle|listening|matched|cooldown|stopped
    phrase: str = ""
    count: int = 0
    target: int = 0
    progress: float = 0.0
    today_total: int = 0
    all_time_total: int = 0
    last_heard: str = ""
    last_heard_ts: float = 0.0
    last_update_ts: float = 0.0


class StatusWriter:
    """Mirrors the session into a small JSON file for UIs and monitors."""

    def __init__(self, *, path: Path, min_interval_s: float = 0.0) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._min_interval_s = min_interval_s
        self._snapshot = StatusSnapshot()

    @property
    def snapshot(self) -> StatusSnapshot:
        return self._snapshot

    def update(
        self,
        *,
        state: str | None = None,
        phrase: str | None = None,
        count: int | None = None,
        target: int | None = None,
        progress: float | None = None,
        today_total: int | None = None,
        all_time_total: int | None = None,
        last_heard: str | None = None,
        force: bool = False,
    ) -> None:
        now = time.time()
        if state is not None:
            self._snapshot.state = str(state)
        if phrase is not None:
            self._snapshot.phrase = str(phrase)
        if count is not None:
            self._snapshot.count = int(count)
        if target is not None:
            self._snapshot.target = int(target)
        if progress is not None:
            self._snapshot.progress = float(progress)
        if today_total is not None:
            self._snapshot.today_total = int(today_total)
        if all_time_total is not None:
            self._snapshot.all_time_total = int(all_time_total)
        if last_heard is not None:
            self._snapshot.last_heard = str(last_heard)
            self._snapshot.last_heard_ts = now

        if not force and (now - self._snapshot.last_update_ts) < self._min_interval_s:
            return

        self._snapshot.last_update_ts = now
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(asdict(self._snapshot), ensure_ascii=False), encoding="utf-8")
        tmp.replace(self._path)
