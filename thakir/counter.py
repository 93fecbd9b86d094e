from __future__ import annotations

import datetime as dt
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable


log = logging.getLogger(__name__)

# trailing windows in local calendar days, today included
WEEK_DAYS = 7
MONTH_DAYS = 30
# clock readings are floats; an interval of exactly min_interval_s is allowed
_EPS_S = 1e-9


@dataclass(frozen=True)
class HistoryEntry:
    ts: float
    delta: int


@dataclass
class CounterRecord:
    phrase_id: str
    count: int = 0
    target: int = 0
    total_all_time: int = 0
    history: list[HistoryEntry] = field(default_factory=list)
    # latched when count crosses target; cleared by reset
    target_reached: bool = False

    @property
    def progress(self) -> float:
        if self.target <= 0:
            return 0.0
        return max(0.0, min(self.count / self.target, 1.0))

    def to_dict(self) -> dict[str, Any]:
        return {
            "phrase_id": self.phrase_id,
            "count": self.count,
            "target": self.target,
            "total_all_time": self.total_all_time,
            "target_reached": self.target_reached,
            "history": [[h.ts, h.delta] for h in self.history],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CounterRecord:
        history: list[HistoryEntry] = []
        for item in data.get("history") or []:
            try:
                history.append(HistoryEntry(ts=float(item[0]), delta=int(item[1])))
            except (TypeError, ValueError, IndexError):
                continue
        return cls(
            phrase_id=str(data.get("phrase_id", "")),
            count=max(0, int(data.get("count", 0) or 0)),
            target=max(0, int(data.get("target", 0) or 0)),
            total_all_time=max(0, int(data.get("total_all_time", 0) or 0)),
            target_reached=bool(data.get("target_reached", False)),
            history=history,
        )


@dataclass(frozen=True)
class CounterStats:
    today: int = 0
    week: int = 0
    month: int = 0
    all_time: int = 0


@dataclass(frozen=True)
class IncrementOutcome:
    applied: bool
    new_count: int
    target_reached: bool = False
    progress: float = 0.0

    @property
    def rate_limited(self) -> bool:
        return not self.applied


class RateLimiter:
    def __init__(self, *, min_interval_s: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._min_interval_s = float(max(0.0, min_interval_s))
        self._clock = clock
        self._last_ts: float | None = None

    @property
    def last_ts(self) -> float | None:
        return self._last_ts

    def allow(self) -> bool:
        """Accept and record an event unless the previous one is too recent."""
        now = self._clock()
        if self._last_ts is not None and (now - self._last_ts) < self._min_interval_s - _EPS_S:
            return False
        self._last_ts = now
        return True

    def reset(self) -> None:
        self._last_ts = None


def _local_date(ts: float) -> dt.date:
    return dt.datetime.fromtimestamp(ts).date()


def _day_start(day: dt.date) -> float:
    return dt.datetime.combine(day, dt.time()).timestamp()


def compact_history(history: list[HistoryEntry], *, now: float) -> list[HistoryEntry]:
    """Fold history into one entry per local day, dropping days the stats no longer read.

    All-time totals live in `CounterRecord.total_all_time`, so nothing is lost.
    """
    first_day = _local_date(now) - dt.timedelta(days=MONTH_DAYS - 1)
    buckets: dict[dt.date, int] = {}
    for h in history:
        day = _local_date(h.ts)
        if day < first_day:
            continue
        buckets[day] = buckets.get(day, 0) + h.delta
    return [HistoryEntry(ts=_day_start(day), delta=n) for day, n in sorted(buckets.items())]


def history_stats(history: list[HistoryEntry], *, now: float) -> CounterStats:
    today_date = _local_date(now)
    week_start = today_date - dt.timedelta(days=WEEK_DAYS - 1)
    month_start = today_date - dt.timedelta(days=MONTH_DAYS - 1)
    today = week = month = total = 0
    for h in history:
        total += h.delta
        day = _local_date(h.ts)
        if day >= month_start:
            month += h.delta
        if day >= week_start:
            week += h.delta
        if day == today_date:
            today += h.delta
    return CounterStats(today=today, week=week, month=month, all_time=total)


class RepetitionCounter:
    """Per-phrase counters behind a single increment rate limiter.

    The limiter is shared across phrases: it guards against double taps and
    double recognitions regardless of which phrase is selected.
    """

    def __init__(
        self,
        *,
        min_increment_interval_s: float = 0.3,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self._limiter = RateLimiter(min_interval_s=min_increment_interval_s, clock=clock)
        self._wall_clock = wall_clock
        self._records: dict[str, CounterRecord] = {}

    def load(self, records: dict[str, CounterRecord]) -> None:
        now = self._wall_clock()
        for rec in records.values():
            rec.history = compact_history(rec.history, now=now)
        self._records = dict(records)

    def record(self, phrase_id: str) -> CounterRecord:
        rec = self._records.get(phrase_id)
        if rec is None:
            rec = CounterRecord(phrase_id=phrase_id)
            self._records[phrase_id] = rec
        return rec

    def records(self) -> dict[str, CounterRecord]:
        return dict(self._records)

    def forget(self, phrase_id: str) -> None:
        self._records.pop(phrase_id, None)

    def set_target(self, phrase_id: str, target: int) -> CounterRecord:
        if int(target) < 0:
            raise ValueError("target must be >= 0")
        rec = self.record(phrase_id)
        rec.target = int(target)
        if rec.count < rec.target:
            rec.target_reached = False
        return rec

    def increment_with_rate_limit(self, phrase_id: str) -> IncrementOutcome:
        rec = self.record(phrase_id)
        if not self._limiter.allow():
            log.debug("increment rejected by rate limiter (phrase=%s)", phrase_id)
            return IncrementOutcome(applied=False, new_count=rec.count, progress=rec.progress)

        rec.count += 1
        rec.total_all_time += 1
        now = self._wall_clock()
        rec.history = compact_history([*rec.history, HistoryEntry(ts=now, delta=1)], now=now)

        reached = False
        if rec.target > 0 and rec.count >= rec.target and not rec.target_reached:
            rec.target_reached = True
            reached = True
        log.info("count %s -> %d/%d", phrase_id, rec.count, rec.target)
        return IncrementOutcome(applied=True, new_count=rec.count, target_reached=reached, progress=rec.progress)

    def progress(self, phrase_id: str) -> float:
        return self.record(phrase_id).progress

    def reset(self, phrase_id: str) -> CounterRecord:
        rec = self.record(phrase_id)
        rec.count = 0
        rec.target_reached = False
        return rec

    def reset_all(self) -> None:
        for rec in self._records.values():
            rec.count = 0
            rec.target_reached = False

    def reset_statistics(self) -> None:
        for rec in self._records.values():
            rec.count = 0
            rec.target_reached = False
            rec.total_all_time = 0
            rec.history.clear()
        self._limiter.reset()

    def stats(self, phrase_id: str) -> CounterStats:
        rec = self.record(phrase_id)
        s = history_stats(rec.history, now=self._wall_clock())
        return CounterStats(today=s.today, week=s.week, month=s.month, all_time=rec.total_all_time)

    def totals(self) -> CounterStats:
        today = week = month = total = 0
        for pid in self._records:
            s = self.stats(pid)
            today += s.today
            week += s.week
            month += s.month
            total += s.all_time
        return CounterStats(today=today, week=week, month=month, all_time=total)
