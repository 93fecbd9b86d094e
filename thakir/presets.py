from __future__ import annotations

from pathlib import Path

from thakir.yaml_config import ensure_default_config, set_many


FAST = {
    "recognition.cooldown_s": 0.3,
    "recognition.min_increment_interval_s": 0.25,
    "recognition.match_threshold": 0.7,
    "recognition.word_similarity_threshold": 0.7,
    "recognition.final_only": False,
}

# noisy room: count on final transcripts only, tighter thresholds
STRICT = {
    "recognition.cooldown_s": 0.8,
    "recognition.min_increment_interval_s": 0.5,
    "recognition.match_threshold": 0.85,
    "recognition.substring_threshold": 0.8,
    "recognition.word_similarity_threshold": 0.85,
    "recognition.word_ratio_threshold": 1.0,
    "recognition.final_only": True,
}


def apply_fast_preset(config_path: Path) -> None:
    """Quick recitation: shorter cooldown, looser fuzzy matching."""
    ensure_default_config(config_path)
    set_many(config_path, FAST)


def apply_strict_preset(config_path: Path) -> None:
    ensure_default_config(config_path)
    set_many(config_path, STRICT)
