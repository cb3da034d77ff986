from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple

try:
    import yaml  # type: ignore
except ImportError:  # pragma: no cover - loader fallback
    yaml = None


ENV_PREFIX = "BINGO_ENGINE_"
PATH_KEYS = ("state_dir", "log_file")
KV_FILENAME = "bingo-storage.json"
DB_FILENAME = "bingo-game.sqlite3"


def _read_config_file(config_path: Path | None) -> Dict[str, Any]:
    if not config_path:
        return {}
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    suffix = config_path.suffix.lower()
    text = config_path.read_text(encoding="utf-8")
    if suffix in (".yaml", ".yml"):
        if yaml is None:
            raise RuntimeError("PyYAML is required to read YAML config files")
        data = yaml.safe_load(text) or {}
        if not isinstance(data, dict):
            raise ValueError("Top-level YAML config must be a mapping")
        return data
    if suffix == ".json":
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("Top-level JSON config must be a mapping")
        return data
    raise ValueError(f"Unsupported config extension: {suffix}")


def _collect_env_vars(env: Mapping[str, str]) -> Dict[str, Any]:
    """Map ENV variables with BINGO_ENGINE_ prefix to config keys.

    We use an explicit map to avoid ambiguity. Keys not present are ignored.
    """
    mapping: Dict[str, str] = {
        # Game defaults
        f"{ENV_PREFIX}MAX_NUMBER": "max_number",
        f"{ENV_PREFIX}CARD_COUNT": "card_count",
        # Storage
        f"{ENV_PREFIX}STATE_DIR": "state_dir",
        f"{ENV_PREFIX}DB_URL": "db_url",
        # Seed
        f"{ENV_PREFIX}SEED_ENGINE": "seed.engine",
        f"{ENV_PREFIX}SEED_VALUE": "seed.value",
        # Output & UX
        f"{ENV_PREFIX}LOG_LEVEL": "log_level",
        f"{ENV_PREFIX}LOG_FILE": "log_file",
        f"{ENV_PREFIX}LOG_FORMAT": "log_format",
        f"{ENV_PREFIX}COLORS": "colors",
    }

    result: Dict[str, Any] = {}
    for env_key, cfg_key in mapping.items():
        if env_key not in env:
            continue
        raw = env[env_key]
        if cfg_key in {"max_number", "card_count", "seed.value"}:
            try:
                result[cfg_key] = int(raw)
            except ValueError:
                result[cfg_key] = raw
        else:
            result[cfg_key] = raw

    return result


def _set_nested(config: Dict[str, Any], dotted_key: str, value: Any) -> None:
    parts = dotted_key.split(".")
    cursor = config
    for part in parts[:-1]:
        if part not in cursor or not isinstance(cursor[part], dict):
            cursor[part] = {}
        cursor = cursor[part]
    cursor[parts[-1]] = value


def _apply_overrides(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = json.loads(json.dumps(base))  # deep copy via JSON
    for key, value in overrides.items():
        if "." in key:
            _set_nested(merged, key, value)
        elif isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def resolve_paths(
    resolved: Dict[str, Any],
    config_file: Path | None,
    cli_overrides: Dict[str, Any],
) -> Dict[str, Any]:
    """Normalize paths per policy.

    - Paths from config file: resolve relative to config directory
    - Paths from CLI: resolve relative to CWD
    """
    cwd = Path.cwd()
    cfg_dir = config_file.parent if config_file else None

    def normalize(path_value: str | None, is_cli: bool) -> str | None:
        if path_value is None or path_value == "":
            return None
        p = Path(path_value).expanduser()
        if p.is_absolute():
            return str(p)
        base = cwd if is_cli else (cfg_dir or cwd)
        return str((base / p).resolve())

    result = dict(resolved)
    cli_keys = {k for k in cli_overrides.keys() if k in PATH_KEYS}

    for key in PATH_KEYS:
        value = resolved.get(key)
        if value is None:
            continue
        result[key] = normalize(str(value), key in cli_keys)

    return result


def storage_locations(resolved: Mapping[str, Any]) -> Tuple[Path, str]:
    """Return (key-value file path, durable store URL) for resolved settings."""
    state_dir = Path(str(resolved.get("state_dir") or ".bingo"))
    kv_path = state_dir / KV_FILENAME
    db_url = resolved.get("db_url") or f"sqlite+aiosqlite:///{state_dir / DB_FILENAME}"
    return kv_path, str(db_url)


def resolve_parameters(
    *,
    config_path_str: str | None,
    cli_overrides: Dict[str, Any],
    env: Mapping[str, str] | None = None,
) -> Tuple[Dict[str, Any], Path | None]:
    """Resolve parameters with precedence CLI > ENV > config > defaults.

    Returns (resolved_params, config_path)
    """
    config_path = Path(config_path_str).resolve() if config_path_str else None
    file_cfg = _read_config_file(config_path) if config_path else {}
    env_map = _collect_env_vars(os.environ if env is None else env)

    defaults: Dict[str, Any] = {
        "max_number": 75,
        "card_count": 0,
        "state_dir": ".bingo",
        "db_url": None,
        "seed": {"engine": "py_random", "value": None},
        "colors": "auto",
        "log_level": "INFO",
        "log_format": "text",
        "log_file": None,
    }

    # Merge: config > defaults, then ENV, then CLI
    merged = _apply_overrides(defaults, file_cfg)
    merged = _apply_overrides(merged, env_map)
    merged = _apply_overrides(merged, cli_overrides)

    # Normalize paths per policy
    merged = resolve_paths(merged, config_path, cli_overrides)
    return merged, config_path
