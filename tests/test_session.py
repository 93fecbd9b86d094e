from __future__ import annotations

from pathlib import Path

import pytest

from thakir.config import RecognitionConfig
from thakir.phrases import DEFAULT_PHRASES
from thakir.recognizer import COOLDOWN, NOT_LISTENING, PARTIAL_IGNORED, RecognitionState
from thakir.session import PhraseNotFound, SebhaSession
from thakir.storage import JsonFileStorage, MemoryStore, SQLiteStorage


def _session(clock, **kw) -> SebhaSession:  # noqa: ANN001
    kw.setdefault("store", MemoryStore())
    return SebhaSession(clock=clock, **kw)


def test_defaults_are_seeded(clock) -> None:  # noqa: ANN001
    store = MemoryStore()
    s = _session(clock, store=store)
    assert [p.text for p in s.phrases] == list(DEFAULT_PHRASES)
    assert s.selected is not None
    assert s.selected.text == "سبحان الله"
    assert all(p.target == 33 for p in s.phrases)
    # seeded list is persisted so ids stay stable
    assert [p.id for p in store.load_phrases()] == [p.id for p in s.phrases]


def test_phrase_said_three_times_reaches_target_once(clock) -> None:  # noqa: ANN001
    s = _session(clock, auto_advance=False)
    phrase = s.set_target(s.selected.id, 3)
    counts: list[int] = []
    reached: list[str] = []
    s.on_count_changed(lambda p, c: counts.append(c))
    s.on_target_reached(lambda p: reached.append(p.text))

    s.start_listening()
    for _ in range(3):
        assert s.process_fragment("سبحان الله").matched
        clock.advance(0.5)

    assert counts == [1, 2, 3]
    assert reached == ["سبحان الله"]
    assert s.count(phrase.id) == 3
    assert s.current_progress() == 1.0

    s.process_fragment("سبحان الله")
    assert s.count() == 4
    assert reached == ["سبحان الله"]


def test_immediate_repeat_counts_once(clock) -> None:  # noqa: ANN001
    s = _session(clock)
    s.start_listening()
    s.process_fragment("سبحان الله")
    out = s.process_fragment("سبحان الله")
    assert out.reason == COOLDOWN
    assert s.count() == 1


def test_auto_advance_selects_next_phrase(clock) -> None:  # noqa: ANN001
    s = _session(clock, auto_advance=True)
    first, second = s.phrases[0], s.phrases[1]
    s.set_target(first.id, 1)
    s.start_listening()

    s.process_fragment("سبحان الله")

    assert s.count(first.id) == 1
    assert s.selected.id == second.id
    assert s.recognition_state == RecognitionState.IDLE
    clock.advance(0.5)
    assert s.process_fragment("الحمد لله").matched
    assert s.count(second.id) == 1


def test_fragments_ignored_when_not_listening(clock) -> None:  # noqa: ANN001
    s = _session(clock)
    assert s.process_fragment("سبحان الله").reason == NOT_LISTENING
    s.start_listening()
    s.stop_listening()
    s.stop_listening()
    assert not s.is_listening
    assert s.process_fragment("سبحان الله").reason == NOT_LISTENING
    assert s.count() == 0


def test_final_only_ignores_partials(clock) -> None:  # noqa: ANN001
    s = _session(clock, recognition=RecognitionConfig(final_only=True))
    s.start_listening()
    assert s.process_fragment("سبحان الله", is_final=False).reason == PARTIAL_IGNORED
    assert s.process_fragment("سبحان الله", is_final=True).matched
    assert s.count() == 1


def test_direct_increment_shares_rate_limit(clock) -> None:  # noqa: ANN001
    s = _session(clock)
    assert s.increment().applied
    assert not s.increment().applied
    clock.advance(0.3)
    assert s.increment().new_count == 2


def test_listener_errors_do_not_stop_counting(clock) -> None:  # noqa: ANN001
    s = _session(clock)

    def boom(p, c) -> None:  # noqa: ANN001
        raise RuntimeError("ui gone")

    s.on_count_changed(boom)
    s.start_listening()
    s.process_fragment("سبحان الله")
    assert s.count() == 1


def test_resets(clock) -> None:  # noqa: ANN001
    s = _session(clock)
    s.increment()
    clock.advance(0.5)
    s.increment()

    s.reset()
    assert s.count() == 0
    assert s.stats().all_time == 2

    s.select(s.phrases[1].id)
    clock.advance(0.5)
    s.increment()
    s.reset_all()
    assert all(s.count(p.id) == 0 for p in s.phrases)
    assert s.totals().all_time == 3

    s.reset_statistics()
    assert s.totals().all_time == 0


def test_phrase_management(clock) -> None:  # noqa: ANN001
    s = _session(clock)
    added = s.add_phrase("الله أكبر", 100)
    assert s.selected.id == added.id
    assert s.phrases[-1].target == 100

    s.increment()
    renamed = s.rename_phrase(added.id, "اللهُ أكبر")
    assert renamed.id == added.id
    assert s.count(added.id) == 1

    s.move_phrase(added.id, 0)
    assert s.phrases[0].id == added.id

    s.remove_phrase(added.id)
    assert added.id not in [p.id for p in s.phrases]
    assert s.selected is not None

    with pytest.raises(PhraseNotFound):
        s.select(added.id)
    with pytest.raises(ValueError):
        s.add_phrase("   ")
    with pytest.raises(ValueError):
        s.set_target(s.phrases[0].id, -5)


def test_removing_last_phrase_leaves_nothing_selected(clock) -> None:  # noqa: ANN001
    s = _session(clock, default_texts=("سبحان الله",))
    s.remove_phrase(s.phrases[0].id)
    assert s.selected is None
    assert s.current_progress() == 0.0
    assert not s.increment().applied
    s.start_listening()
    assert not s.process_fragment("سبحان الله").matched


def test_sqlite_persistence(tmp_path: Path, clock) -> None:  # noqa: ANN001
    db = tmp_path / "thakir.sqlite3"
    store = SQLiteStorage(db_path=db)
    s = _session(clock, store=store)
    s.start_listening()
    s.process_fragment("سبحان الله")
    ids = [p.id for p in s.phrases]
    store.close()

    store2 = SQLiteStorage(db_path=db)
    s2 = _session(clock, store=store2)
    assert [p.id for p in s2.phrases] == ids
    assert s2.count(ids[0]) == 1
    assert s2.stats(ids[0]).all_time == 1
    store2.close()


def test_json_persistence(tmp_path: Path, clock) -> None:  # noqa: ANN001
    path = tmp_path / "thakir.json"
    s = _session(clock, store=JsonFileStorage(path=path))
    p = s.add_phrase("أستغفر الله", 7)
    s.increment()

    s2 = _session(clock, store=JsonFileStorage(path=path))
    assert s2.phrases[-1].id == p.id
    assert s2.phrases[-1].target == 7
    assert s2.count(p.id) == 1


def test_selection_survives_restart_and_falls_back(clock) -> None:  # noqa: ANN001
    store = MemoryStore()
    s = _session(clock, store=store)
    third = s.phrases[2]
    s.select(third.id)
    assert _session(clock, store=store).selected.id == third.id

    store.save_selected("gone")
    assert _session(clock, store=store).selected.id == s.phrases[0].id


@pytest.mark.parametrize("backend", ["sqlite", "files"])
def test_favorites_survive_restart(tmp_path: Path, clock, backend: str) -> None:  # noqa: ANN001
    def open_store():  # noqa: ANN202
        if backend == "sqlite":
            return SQLiteStorage(db_path=tmp_path / "thakir.sqlite3")
        return JsonFileStorage(path=tmp_path / "thakir.json")

    s = _session(clock, store=open_store())
    second = s.phrases[1]
    assert s.favorites == ()
    assert s.toggle_favorite(second.id).favorite
    assert [p.id for p in s.favorites] == [second.id]
    s.close()

    s2 = _session(clock, store=open_store())
    assert [p.id for p in s2.favorites] == [second.id]
    assert not s2.toggle_favorite(second.id).favorite
    assert s2.favorites == ()
    s2.close()

    with pytest.raises(PhraseNotFound):
        _session(clock).toggle_favorite("missing")


class _ClosingStore(MemoryStore):
    def __init__(self) -> None:
        super().__init__()
        self.closed = False

    def close(self) -> None:
        self.closed = True


def test_close_stops_listening_and_closes_store(clock) -> None:  # noqa: ANN001
    store = _ClosingStore()
    s = _session(clock, store=store)
    s.start_listening()
    s.close()
    assert store.closed
    assert not s.is_listening
