from __future__ import annotations

import argparse
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from thakir.app import build_session, run
from thakir.config import ConfigError, load_config
from thakir.logging_setup import setup_logging
from thakir.matcher import match_phrase
from thakir.paths import find_config_path, get_paths
from thakir.presets import apply_fast_preset, apply_strict_preset
from thakir.session import PhraseNotFound, SebhaSession
from thakir.text_normalize_ar import normalize_arabic
from thakir.yaml_config import effective_value, ensure_default_config, set_dotted, toggle


@contextmanager
def _session(args: argparse.Namespace) -> Iterator[SebhaSession]:
    s = build_session(load_config(find_config_path(args.config)))
    try:
        yield s
    finally:
        s.close()


def _pick(session: SebhaSession, ref: str) -> str:
    """Phrase by 1-based position, id, id prefix or exact text."""
    phrases = session.phrases
    if ref.isdigit():
        idx = int(ref) - 1
        if 0 <= idx < len(phrases):
            return phrases[idx].id
    for p in phrases:
        if p.id == ref or p.text == ref:
            return p.id
    hits = [p for p in phrases if p.id.startswith(ref)]
    if len(hits) == 1:
        return hits[0].id
    raise PhraseNotFound(ref)


def _cmd_listen(args: argparse.Namespace) -> int:
    return run(str(find_config_path(args.config)))


def _cmd_phrases_list(args: argparse.Namespace) -> int:
    with _session(args) as s:
        sel = s.selected
        for i, p in enumerate(s.phrases, start=1):
            mark = "*" if sel is not None and p.id == sel.id else " "
            fav = "★" if p.favorite else " "
            print(f"{mark}{fav}{i:>3} {s.count(p.id):>5}/{p.target:<5} {p.id[:8]} {p.text}")
    return 0


def _cmd_phrases_add(args: argparse.Namespace) -> int:
    with _session(args) as s:
        p = s.add_phrase(args.text, args.target)
    print(f"OK: {p.text} ({p.id[:8]}), target {p.target}")
    return 0


def _cmd_phrases_remove(args: argparse.Namespace) -> int:
    with _session(args) as s:
        s.remove_phrase(_pick(s, args.phrase))
    print("OK")
    return 0


def _cmd_phrases_select(args: argparse.Namespace) -> int:
    with _session(args) as s:
        p = s.select(_pick(s, args.phrase))
    print(f"OK: {p.text}")
    return 0


def _cmd_phrases_target(args: argparse.Namespace) -> int:
    with _session(args) as s:
        p = s.set_target(_pick(s, args.phrase), args.target)
    print(f"OK: {p.text} target {p.target}")
    return 0


def _cmd_phrases_rename(args: argparse.Namespace) -> int:
    with _session(args) as s:
        p = s.rename_phrase(_pick(s, args.phrase), args.text)
    print(f"OK: {p.text}")
    return 0


def _cmd_phrases_favorite(args: argparse.Namespace) -> int:
    with _session(args) as s:
        p = s.toggle_favorite(_pick(s, args.phrase))
    print(f"OK: {p.text} favorite={str(p.favorite).lower()}")
    return 0


def _cmd_stats(args: argparse.Namespace) -> int:
    with _session(args) as s:
        for p in s.phrases:
            st = s.stats(p.id)
            print(f"{p.text}: today={st.today} week={st.week} month={st.month} all={st.all_time}")
        t = s.totals()
    print(f"total: today={t.today} week={t.week} month={t.month} all={t.all_time}")
    return 0


def _cmd_reset(args: argparse.Namespace) -> int:
    with _session(args) as s:
        if args.statistics:
            s.reset_statistics()
        elif args.all:
            s.reset_all()
        else:
            s.reset(_pick(s, args.phrase) if args.phrase else None)
    print("OK")
    return 0


def _cmd_normalize(args: argparse.Namespace) -> int:
    print(normalize_arabic(args.text))
    return 0


def _cmd_match(args: argparse.Namespace) -> int:
    cfg = load_config(find_config_path(args.config))
    res = match_phrase(
        normalize_arabic(args.spoken),
        normalize_arabic(args.target),
        thresholds=cfg.recognition.thresholds(),
    )
    print(f"match={str(res.is_match).lower()} confidence={res.confidence:.3f} strategy={res.strategy or '-'}")
    return 0 if res.is_match else 1


def _cmd_init(args: argparse.Namespace) -> int:
    paths = get_paths().ensure_dirs()
    dest = paths.config_path if args.dest is None else Path(args.dest).expanduser().resolve()
    ensure_default_config(dest)
    print(f"Config: {dest}")
    print(f"Data dir: {paths.data_dir}")
    print(f"State dir: {paths.state_dir}")
    return 0


def _cfg_path(args: argparse.Namespace) -> Path:
    cfg_path = find_config_path(args.config)
    ensure_default_config(cfg_path)
    return cfg_path


def _cmd_config_get(args: argparse.Namespace) -> int:
    print(effective_value(find_config_path(args.config), args.key))
    return 0


def _cmd_config_set(args: argparse.Namespace) -> int:
    set_dotted(_cfg_path(args), args.key, args.value)
    print(f"OK: {args.key} = {args.value}")
    return 0


def _cmd_config_toggle(args: argparse.Namespace) -> int:
    new = toggle(_cfg_path(args), args.key)
    print(f"OK: {args.key} = {str(new).lower()}")
    return 0


def _cmd_preset_fast(args: argparse.Namespace) -> int:
    cfg_path = find_config_path(args.config)
    apply_fast_preset(cfg_path)
    print("OK: fast preset applied")
    print(f"Config: {cfg_path}")
    return 0


def _cmd_preset_strict(args: argparse.Namespace) -> int:
    cfg_path = find_config_path(args.config)
    apply_strict_preset(cfg_path)
    print("OK: strict preset applied")
    print(f"Config: {cfg_path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="thakir", description="Voice dhikr counter: counts a phrase in a transcript stream")
    p.add_argument("--config", default=None, help="Path to config.yaml (otherwise $THAKIR_CONFIG / XDG / ./config.yaml)")
    p.add_argument("--log-level", default=None, help="DEBUG|INFO|WARNING (default $THAKIR_LOG_LEVEL or INFO)")
    p.add_argument("--log-file", default=None, help="Log file (default: thakir.log in the state dir)")
    sub = p.add_subparsers(dest="cmd", required=False)

    p_listen = sub.add_parser("listen", help="Count the selected phrase in transcripts read from stdin")
    p_listen.set_defaults(func=_cmd_listen)

    p_ph = sub.add_parser("phrases", help="Manage phrases")
    ph_sub = p_ph.add_subparsers(dest="ph_cmd", required=True)

    p_ls = ph_sub.add_parser("list", help="List phrases with counts")
    p_ls.set_defaults(func=_cmd_phrases_list)

    p_add = ph_sub.add_parser("add", help="Add a phrase and select it")
    p_add.add_argument("text")
    p_add.add_argument("--target", type=int, default=None)
    p_add.set_defaults(func=_cmd_phrases_add)

    p_rm = ph_sub.add_parser("remove", help="Remove a phrase and its statistics")
    p_rm.add_argument("phrase", help="Position (1-based), id or text")
    p_rm.set_defaults(func=_cmd_phrases_remove)

    p_sel = ph_sub.add_parser("select", help="Select the phrase to count")
    p_sel.add_argument("phrase", help="Position (1-based), id or text")
    p_sel.set_defaults(func=_cmd_phrases_select)

    p_tgt = ph_sub.add_parser("target", help="Change a phrase's target")
    p_tgt.add_argument("phrase", help="Position (1-based), id or text")
    p_tgt.add_argument("target", type=int)
    p_tgt.set_defaults(func=_cmd_phrases_target)

    p_ren = ph_sub.add_parser("rename", help="Edit a phrase's text, keeping its statistics")
    p_ren.add_argument("phrase", help="Position (1-based), id or text")
    p_ren.add_argument("text")
    p_ren.set_defaults(func=_cmd_phrases_rename)

    p_fav = ph_sub.add_parser("favorite", help="Mark or unmark a phrase as favorite")
    p_fav.add_argument("phrase", help="Position (1-based), id or text")
    p_fav.set_defaults(func=_cmd_phrases_favorite)

    p_stats = sub.add_parser("stats", help="Today/week/month/all-time statistics")
    p_stats.set_defaults(func=_cmd_stats)

    p_reset = sub.add_parser("reset", help="Reset counters")
    p_reset.add_argument("phrase", nargs="?", default=None, help="Phrase to reset (default: selected)")
    p_reset.add_argument("--all", action="store_true", help="Reset every current count")
    p_reset.add_argument("--statistics", action="store_true", help="Also clear totals and history")
    p_reset.set_defaults(func=_cmd_reset)

    p_norm = sub.add_parser("normalize", help="Show the normalized form of a text")
    p_norm.add_argument("text")
    p_norm.set_defaults(func=_cmd_normalize)

    p_match = sub.add_parser("match", help="Check whether a transcript matches a phrase")
    p_match.add_argument("spoken")
    p_match.add_argument("target")
    p_match.set_defaults(func=_cmd_match)

    p_init = sub.add_parser("init", help="Create config.yaml in the XDG config dir")
    p_init.add_argument("--dest", default=None, help="Where to write config.yaml (default: XDG)")
    p_init.set_defaults(func=_cmd_init)

    p_cfg = sub.add_parser("config", help="Read or edit config.yaml")
    cfg_sub = p_cfg.add_subparsers(dest="cfg_cmd", required=True)

    p_get = cfg_sub.add_parser("get", help="Read a key")
    p_get.add_argument("key", help="e.g. recognition.cooldown_s")
    p_get.set_defaults(func=_cmd_config_get)

    p_set = cfg_sub.add_parser("set", help="Set a key")
    p_set.add_argument("key", help="e.g. recognition.cooldown_s")
    p_set.add_argument("value", help="e.g. true / 0.5 / files")
    p_set.set_defaults(func=_cmd_config_set)

    p_tog = cfg_sub.add_parser("toggle", help="Flip a boolean key")
    p_tog.add_argument("key", help="e.g. session.auto_advance")
    p_tog.set_defaults(func=_cmd_config_toggle)

    p_preset = sub.add_parser("preset", help="Ready-made recognition settings")
    preset_sub = p_preset.add_subparsers(dest="preset_cmd", required=True)

    p_fast = preset_sub.add_parser("fast", help="Fast recitation")
    p_fast.set_defaults(func=_cmd_preset_fast)

    p_strict = preset_sub.add_parser("strict", help="Noisy room, fewer false counts")
    p_strict.set_defaults(func=_cmd_preset_strict)

    return p


def main(argv: list[str] | None = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    setup_logging(level=args.log_level, log_path=Path(args.log_file) if args.log_file else None)

    func = getattr(args, "func", None)
    if func is None:
        p.print_help()
        return 2
    try:
        return int(func(args))
    except ConfigError as e:
        print(f"config error: {e}")
        return 2
    except PhraseNotFound as e:
        print(f"phrase not found: {e.args[0] if e.args else ''}")
        return 1
    except ValueError as e:
        print(f"error: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
