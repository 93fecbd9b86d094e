from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_config_path, user_data_path, user_state_path


@dataclass(frozen=True)
class ThakirPaths:
    config_dir: Path
    data_dir: Path
    state_dir: Path

    @property
    def config_path(self) -> Path:
        return self.config_dir / "config.yaml"

    @property
    def db_path(self) -> Path:
        return self.data_dir / "thakir.sqlite3"

    @property
    def json_path(self) -> Path:
        return self.data_dir / "thakir.json"

    @property
    def status_path(self) -> Path:
        return self.state_dir / "status.json"

    @property
    def log_path(self) -> Path:
        return self.state_dir / "thakir.log"

    def ensure_dirs(self) -> ThakirPaths:
        """Create the config, data and state dirs; platformdirs only does so outside THAKIR_HOME."""
        for d in (self.config_dir, self.data_dir, self.state_dir):
            d.mkdir(parents=True, exist_ok=True)
        return self


def get_paths(*, app_name: str = "thakir") -> ThakirPaths:
    env = os.environ.get("THAKIR_HOME")
    if env:
        # portable layout, everything under one directory
        root = Path(env).expanduser().resolve()
        return ThakirPaths(config_dir=root, data_dir=root / "data", state_dir=root / "state")
    cfg = user_config_path(app_name, ensure_exists=True)
    data = user_data_path(app_name, ensure_exists=True)
    state = user_state_path(app_name, ensure_exists=True)
    return ThakirPaths(config_dir=Path(cfg), data_dir=Path(data), state_dir=Path(state))


def find_config_path(explicit: str | None = None) -> Path:
    if explicit:
        return Path(explicit).expanduser().resolve()

    env = os.environ.get("THAKIR_CONFIG")
    if env:
        return Path(env).expanduser().resolve()

    p = get_paths().config_path
    if p.exists():
        return p

    # portable fallback
    return Path.cwd().resolve() / "config.yaml"
