from __future__ import annotations

import os
from pathlib import Path
import tomllib

from gelato.core.similarity import LENIENT_ACCEPT_THRESHOLD, STRICT_CORRECT_THRESHOLD

_CONFIG_CACHE: dict | None = None

DEFAULT_LANGUAGE = "es"
DEFAULT_TRANSCRIBE_BACKEND = "whisper"
DEFAULT_WHISPER_MODEL = "tiny"


def config_path() -> Path:
    override = os.environ.get("GELATO_CONFIG_PATH")
    if override:
        return Path(override).expanduser()
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base).expanduser() if base else (Path.home() / ".config")
    return root / "gelato" / "config.toml"


def load_config() -> dict:
    path = config_path()
    if not path.exists():
        return {}
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ValueError(f"Invalid config file: {path}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config file structure: {path}")
    return data


def get_config() -> dict:
    global _CONFIG_CACHE
    if _CONFIG_CACHE is None:
        _CONFIG_CACHE = load_config()
    return _CONFIG_CACHE


def reset_config_cache() -> None:
    global _CONFIG_CACHE
    _CONFIG_CACHE = None


def get_config_value(*keys: str, default: object | None = None) -> object | None:
    current: object = get_config()
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current


def _check_threshold(name: str, value: float) -> float:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be between 0 and 1, got {value}")
    return value


def _resolve_threshold(*, config_key: str, env_key: str, default: float) -> float:
    config_value = get_config_value("scoring", config_key)
    if config_value is not None:
        # bool is an int subclass; reject it explicitly
        if isinstance(config_value, bool) or not isinstance(config_value, (int, float)):
            raise ValueError(f"Invalid config value for scoring.{config_key}: {config_value!r}")
        return _check_threshold(config_key, float(config_value))
    env_value = os.environ.get(env_key)
    if env_value:
        try:
            parsed = float(env_value)
        except ValueError as exc:
            raise ValueError(f"Invalid {env_key}: {env_value!r}") from exc
        return _check_threshold(env_key, parsed)
    return default


def strict_correct_threshold() -> float:
    return _resolve_threshold(
        config_key="strict_correct_threshold",
        env_key="GELATO_STRICT_CORRECT_THRESHOLD",
        default=STRICT_CORRECT_THRESHOLD,
    )


def lenient_accept_threshold() -> float:
    return _resolve_threshold(
        config_key="lenient_accept_threshold",
        env_key="GELATO_LENIENT_ACCEPT_THRESHOLD",
        default=LENIENT_ACCEPT_THRESHOLD,
    )


def _string_setting(section: str, key: str, default: str) -> str:
    value = get_config_value(section, key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def transcribe_backend(cli_value: str | None = None) -> str:
    if cli_value:
        return cli_value
    config_value = get_config_value("transcribe", "backend")
    if isinstance(config_value, str) and config_value.strip():
        return config_value.strip()
    return os.environ.get("GELATO_TRANSCRIBE_BACKEND") or DEFAULT_TRANSCRIBE_BACKEND


def default_language() -> str:
    return _string_setting("transcribe", "language", DEFAULT_LANGUAGE)


def whisper_model() -> str:
    return _string_setting("transcribe", "whisper_model", DEFAULT_WHISPER_MODEL)
