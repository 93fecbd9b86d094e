from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from thakir.paths import get_paths


# the fragment worker logs from its own thread, so the thread name is kept
LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"

_STREAM_HANDLER = "thakir.stream"
_FILE_HANDLER = "thakir.file"


def resolve_level(level: str | int | None = None) -> int:
    """Level from the argument, else $THAKIR_LOG_LEVEL, else INFO.

    Accepts names ("debug") and numbers ("10"); anything unknown means INFO.
    """
    raw = level if level is not None else os.environ.get("THAKIR_LOG_LEVEL")
    if isinstance(raw, int):
        return raw
    name = (raw or "INFO").upper().strip()
    if name.isdigit():
        return int(name)
    lvl = logging.getLevelName(name)
    return lvl if isinstance(lvl, int) else logging.INFO


def _handler(root: logging.Logger, name: str) -> logging.Handler | None:
    for h in root.handlers:
        if h.get_name() == name:
            return h
    return None


def setup_logging(
    *,
    name: str = "thakir",
    level: str | int | None = None,
    log_path: Path | None = None,
) -> logging.Logger:
    """Configure the root logger: stderr plus a rotating file (state dir by default).

    Safe to call repeatedly. Later calls apply the new level, point the
    stream handler at the current stderr and move the file handler when the
    log path changed.
    """
    lvl = resolve_level(level)
    fmt = logging.Formatter(LOG_FORMAT)

    root = logging.getLogger()
    root.setLevel(lvl)

    sh = _handler(root, _STREAM_HANDLER)
    if sh is None:
        sh = logging.StreamHandler()
        sh.set_name(_STREAM_HANDLER)
        sh.setFormatter(fmt)
        root.addHandler(sh)
    else:
        sh.setStream(sys.stderr)
    sh.setLevel(lvl)

    path = Path(log_path) if log_path is not None else get_paths().log_path
    target = os.path.abspath(str(path.expanduser()))
    fh = _handler(root, _FILE_HANDLER)
    if isinstance(fh, RotatingFileHandler) and fh.baseFilename != target:
        root.removeHandler(fh)
        fh.close()
        fh = None
    if fh is None:
        try:
            Path(target).parent.mkdir(parents=True, exist_ok=True)
            fh = RotatingFileHandler(target, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        except OSError as e:
            logging.getLogger(name).warning("file logging disabled: %s", e)
            return logging.getLogger(name)
        fh.set_name(_FILE_HANDLER)
        fh.setFormatter(fmt)
        root.addHandler(fh)
    fh.setLevel(lvl)

    return logging.getLogger(name)
