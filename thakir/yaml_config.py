from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap
from ruamel.yaml.error import YAMLError

from thakir.config import ConfigError
from thakir.config_model import ConfigModel


_HEADER = "thakir settings; edit by hand or with `thakir config set KEY VALUE`"


def _yaml() -> YAML:
    y = YAML()
    y.preserve_quotes = True
    y.allow_unicode = True
    y.indent(mapping=2, sequence=4, offset=2)
    return y


def read_yaml(path: Path) -> CommentedMap:
    """Round-trip load, so comments and key order survive a rewrite."""
    if not path.exists():
        return CommentedMap()
    try:
        with path.open("r", encoding="utf-8") as f:
            data = _yaml().load(f)
    except YAMLError as e:
        raise ConfigError(f"{path}: invalid YAML: {e}") from e
    return data if isinstance(data, CommentedMap) else CommentedMap()


def write_yaml(path: Path, data: Mapping[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        _yaml().dump(data, f)
    tmp.replace(path)


def ensure_default_config(dest_path: Path) -> bool:
    """Write a config.yaml with every default spelled out. False if it exists."""
    if dest_path.exists():
        return False
    data = CommentedMap()
    for section, values in ConfigModel().model_dump(mode="json").items():
        data[section] = CommentedMap(values)
    data.yaml_set_start_comment(_HEADER)
    write_yaml(dest_path, data)
    return True


def _plain(node: Any) -> Any:
    # ruamel scalars subclass the builtins; pydantic gets the builtins
    if isinstance(node, dict):
        return {str(k): _plain(v) for k, v in node.items()}
    if isinstance(node, list):
        return [_plain(v) for v in node]
    if isinstance(node, bool) or node is None:
        return node
    if isinstance(node, int):
        return int(node)
    if isinstance(node, float):
        return float(node)
    if isinstance(node, str):
        return str(node)
    return node


def _key_parts(dotted_key: str) -> list[str]:
    """Split `section.key` and check it names a leaf setting of ConfigModel."""
    parts = [p for p in (dotted_key or "").split(".") if p]
    if not parts:
        raise ValueError("dotted_key must be non-empty")
    model: type[BaseModel] = ConfigModel
    for i, p in enumerate(parts):
        field = model.model_fields.get(p)
        if field is None:
            raise ConfigError(f"unknown setting: {dotted_key}")
        ann = field.annotation
        is_section = isinstance(ann, type) and issubclass(ann, BaseModel)
        last = i == len(parts) - 1
        if last and is_section:
            raise ConfigError(f"{dotted_key} is a section, not a setting")
        if not last:
            if not is_section:
                raise ConfigError(f"unknown setting: {dotted_key}")
            model = ann
    return parts


def _validate(path: Path, data: Mapping[str, Any]) -> ConfigModel:
    try:
        return ConfigModel.model_validate(_plain(data))
    except ValidationError as e:
        raise ConfigError(f"{path}: {e}") from e


def effective_value(path: Path, dotted_key: str) -> Any:
    """Value in effect for a setting: the file's if present, else the default."""
    parts = _key_parts(dotted_key)
    cur: Any = _validate(path, read_yaml(path)).model_dump(mode="json")
    for p in parts:
        cur = cur[p]
    return cur


def parse_scalar(s: str) -> Any:
    low = s.strip().lower()
    if low in ("null", "none", "~"):
        return None
    if low in ("true", "yes", "on"):
        return True
    if low in ("false", "no", "off"):
        return False
    try:
        if "." in low or "," in low:
            return float(low.replace(",", "."))
        return int(low)
    except ValueError:
        return s


def set_many(path: Path, values: Mapping[str, Any]) -> None:
    """Apply several settings at once; nothing is written unless all validate.

    String values go through `parse_scalar`, so CLI input like "true" or
    "0,5" lands in the file as a bool or a float.
    """
    data = read_yaml(path)
    for dotted_key, value in values.items():
        parts = _key_parts(dotted_key)
        section: Any = data
        for p in parts[:-1]:
            nxt = section.get(p)
            if not isinstance(nxt, dict):
                nxt = CommentedMap()
                section[p] = nxt
            section = nxt
        section[parts[-1]] = parse_scalar(value) if isinstance(value, str) else value
    _validate(path, data)
    write_yaml(path, data)


def set_dotted(path: Path, dotted_key: str, value: Any) -> None:
    set_many(path, {dotted_key: value})


def toggle(path: Path, dotted_key: str) -> bool:
    """Flip a boolean setting and return its new value."""
    cur = effective_value(path, dotted_key)
    if not isinstance(cur, bool):
        raise ConfigError(f"{dotted_key} is not a boolean setting")
    set_dotted(path, dotted_key, not cur)
    return not cur
