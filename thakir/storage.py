from __future__ import annotations

import json
import sqlite3
import threading
from pathlib import Path
from typing import Protocol

from thakir.counter import CounterRecord
from thakir.phrases import Phrase


class PhraseStore(Protocol):
    def load_phrases(self) -> list[Phrase]: ...

    def save_phrases(self, phrases: list[Phrase]) -> None: ...

    def load_records(self) -> dict[str, CounterRecord]: ...

    def save_record(self, record: CounterRecord) -> None: ...

    def delete_record(self, phrase_id: str) -> None: ...

    def load_selected(self) -> str | None: ...

    def save_selected(self, phrase_id: str | None) -> None: ...

    def close(self) -> None: ...


class MemoryStore:
    """Non-persistent store; used when nothing should touch disk."""

    def __init__(self) -> None:
        self._phrases: list[Phrase] = []
        self._records: dict[str, dict] = {}
        self._selected: str | None = None

    def load_phrases(self) -> list[Phrase]:
        return list(self._phrases)

    def save_phrases(self, phrases: list[Phrase]) -> None:
        self._phrases = list(phrases)

    def load_records(self) -> dict[str, CounterRecord]:
        return {k: CounterRecord.from_dict(v) for k, v in self._records.items()}

    def save_record(self, record: CounterRecord) -> None:
        self._records[record.phrase_id] = record.to_dict()

    def delete_record(self, phrase_id: str) -> None:
        self._records.pop(phrase_id, None)

    def load_selected(self) -> str | None:
        return self._selected

    def save_selected(self, phrase_id: str | None) -> None:
        self._selected = phrase_id

    def close(self) -> None:
        pass


class SQLiteStorage:
    def __init__(self, *, db_path: Path) -> None:
        self._db_path = db_path
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._init_schema()

    def _init_schema(self) -> None:
        with self._lock:
            c = self._conn
            c.execute(
                """
                CREATE TABLE IF NOT EXISTS phrases (
                  id TEXT PRIMARY KEY,
                  position INTEGER NOT NULL,
                  text TEXT NOT NULL,
                  target INTEGER NOT NULL,
                  created_ts REAL NOT NULL,
                  favorite INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            cols = {str(r[1]) for r in c.execute("PRAGMA table_info(phrases)").fetchall()}
            if "favorite" not in cols:
                c.execute("ALTER TABLE phrases ADD COLUMN favorite INTEGER NOT NULL DEFAULT 0")
            c.execute(
                """
                CREATE TABLE IF NOT EXISTS counters (
                  phrase_id TEXT PRIMARY KEY,
                  data TEXT NOT NULL
                )
                """
            )
            c.execute(
                """
                CREATE TABLE IF NOT EXISTS meta (
                  key TEXT PRIMARY KEY,
                  value TEXT
                )
                """
            )
            c.commit()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # --- Phrases ---
    def load_phrases(self) -> list[Phrase]:
        with self._lock:
            cur = self._conn.execute("SELECT id, text, target, created_ts, favorite FROM phrases ORDER BY position ASC")
            rows = cur.fetchall()
        return [
            Phrase(id=str(r[0]), text=str(r[1]), target=int(r[2]), created_ts=float(r[3]), favorite=bool(r[4]))
            for r in rows
        ]

    def save_phrases(self, phrases: list[Phrase]) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM phrases")
            self._conn.executemany(
                "INSERT INTO phrases(id, position, text, target, created_ts, favorite) VALUES(?, ?, ?, ?, ?, ?)",
                [
                    (p.id, i, p.text, int(p.target), float(p.created_ts), int(p.favorite))
                    for i, p in enumerate(phrases)
                ],
            )
            self._conn.commit()

    # --- Counters ---
    def load_records(self) -> dict[str, CounterRecord]:
        with self._lock:
            rows = self._conn.execute("SELECT phrase_id, data FROM counters").fetchall()
        out: dict[str, CounterRecord] = {}
        for pid, data in rows:
            try:
                raw = json.loads(data)
            except json.JSONDecodeError:
                continue
            if isinstance(raw, dict):
                raw["phrase_id"] = str(pid)
                out[str(pid)] = CounterRecord.from_dict(raw)
        return out

    def save_record(self, record: CounterRecord) -> None:
        payload = json.dumps(record.to_dict(), ensure_ascii=False)
        with self._lock:
            self._conn.execute(
                "INSERT INTO counters(phrase_id, data) VALUES(?, ?) "
                "ON CONFLICT(phrase_id) DO UPDATE SET data=excluded.data",
                (record.phrase_id, payload),
            )
            self._conn.commit()

    def delete_record(self, phrase_id: str) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM counters WHERE phrase_id = ?", (phrase_id,))
            self._conn.commit()

    # --- Selection ---
    def load_selected(self) -> str | None:
        with self._lock:
            row = self._conn.execute("SELECT value FROM meta WHERE key = 'selected'").fetchone()
        return str(row[0]) if row and row[0] else None

    def save_selected(self, phrase_id: str | None) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT INTO meta(key, value) VALUES('selected', ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (phrase_id,),
            )
            self._conn.commit()


def _read_json(path: Path) -> dict:
    try:
        if not path.exists():
            return {}
        data = json.loads(path.read_text(encoding="utf-8")) or {}
        return data if isinstance(data, dict) else {}
    except (json.JSONDecodeError, OSError):
        return {}


def _write_json(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
    tmp.replace(path)


class JsonFileStorage:
    """Single JSON document: {"phrases": [...], "counters": {id: record}, "selected": id}."""

    def __init__(self, *, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()

    def load_phrases(self) -> list[Phrase]:
        with self._lock:
            data = _read_json(self._path)
        out: list[Phrase] = []
        for it in data.get("phrases") or []:
            if not isinstance(it, dict):
                continue
            try:
                out.append(
                    Phrase(
                        id=str(it["id"]),
                        text=str(it["text"]),
                        target=int(it.get("target", 0) or 0),
                        created_ts=float(it.get("created_ts", 0.0) or 0.0),
                        favorite=bool(it.get("favorite", False)),
                    )
                )
            except (KeyError, TypeError, ValueError):
                continue
        return out

    def save_phrases(self, phrases: list[Phrase]) -> None:
        with self._lock:
            data = _read_json(self._path)
            data["phrases"] = [
                {
                    "id": p.id,
                    "text": p.text,
                    "target": p.target,
                    "created_ts": p.created_ts,
                    "favorite": p.favorite,
                }
                for p in phrases
            ]
            _write_json(self._path, data)

    def load_records(self) -> dict[str, CounterRecord]:
        with self._lock:
            data = _read_json(self._path)
        counters = data.get("counters") or {}
        if not isinstance(counters, dict):
            return {}
        out: dict[str, CounterRecord] = {}
        for pid, raw in counters.items():
            if isinstance(raw, dict):
                raw = dict(raw, phrase_id=str(pid))
                out[str(pid)] = CounterRecord.from_dict(raw)
        return out

    def save_record(self, record: CounterRecord) -> None:
        with self._lock:
            data = _read_json(self._path)
            counters = data.get("counters")
            if not isinstance(counters, dict):
                counters = {}
                data["counters"] = counters
            counters[record.phrase_id] = record.to_dict()
            _write_json(self._path, data)

    def delete_record(self, phrase_id: str) -> None:
        with self._lock:
            data = _read_json(self._path)
            counters = data.get("counters")
            if isinstance(counters, dict) and phrase_id in counters:
                del counters[phrase_id]
                _write_json(self._path, data)

    def load_selected(self) -> str | None:
        with self._lock:
            sel = _read_json(self._path).get("selected")
        return str(sel) if sel else None

    def save_selected(self, phrase_id: str | None) -> None:
        with self._lock:
            data = _read_json(self._path)
            data["selected"] = phrase_id
            _write_json(self._path, data)

    def close(self) -> None:
        pass
