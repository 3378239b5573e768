from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

try:
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - Python <3.11
    import tomli as tomllib

from rjournal.models import DEFAULT_MODELS, DEFAULT_SYMBOLS, PRESET_CONDITIONS

DEFAULT_CONFIG_PATH = Path("config/app.toml")


@dataclass(frozen=True)
class AppSettings:
    host: str
    port: int
    reload: bool
    env_path: Path


@dataclass(frozen=True)
class StoreSettings:
    base_url: str
    table: str
    timeout_seconds: float
    retry_attempts: int
    retry_backoff_seconds: float
    debug: bool


@dataclass(frozen=True)
class JournalSettings:
    symbols: list[str]
    models: list[str]
    conditions: list[str]


@dataclass(frozen=True)
class AppConfig:
    app: AppSettings
    store: StoreSettings
    journal: JournalSettings


def load_app_config(path: Path | None = None, env: Mapping[str, str] | None = None) -> AppConfig:
    env = os.environ if env is None else env
    config_path = path or Path(env.get("RJOURNAL_CONFIG") or DEFAULT_CONFIG_PATH)
    raw: Mapping[str, Any] = {}
    if config_path.exists():
        raw = tomllib.loads(config_path.read_text(encoding="utf-8"))

    app_raw = _section(raw, "app")
    store_raw = _section(raw, "store")
    journal_raw = _section(raw, "journal")

    app = AppSettings(
        host=str(app_raw.get("host", "127.0.0.1")),
        port=_int(app_raw.get("port"), 8000),
        reload=bool(app_raw.get("reload", False)),
        env_path=Path(app_raw.get("env_path", ".env")),
    )

    store = StoreSettings(
        base_url=str(store_raw.get("base_url", "")).strip(),
        table=str(store_raw.get("table", "trades")).strip() or "trades",
        timeout_seconds=_float(store_raw.get("timeout_seconds"), 30.0),
        retry_attempts=_int(store_raw.get("retry_attempts"), 3),
        retry_backoff_seconds=_float(store_raw.get("retry_backoff_seconds"), 0.75),
        debug=bool(store_raw.get("debug", False)),
    )

    journal = JournalSettings(
        symbols=_str_list(journal_raw.get("symbols")) or list(DEFAULT_SYMBOLS),
        models=_str_list(journal_raw.get("models")) or list(DEFAULT_MODELS),
        conditions=_str_list(journal_raw.get("conditions")) or list(PRESET_CONDITIONS),
    )

    return AppConfig(app=app, store=store, journal=journal)


def load_dotenv(path: Path) -> dict[str, str]:
    env: dict[str, str] = {}
    if not path.exists():
        return env

    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        env[key.strip()] = value.strip().strip("\"").strip("'")
    return env


def merged_env(app_config: AppConfig, env: Mapping[str, str] | None = None) -> dict[str, str]:
    """Process environment layered over the configured .env file."""
    merged = load_dotenv(app_config.app.env_path)
    merged.update(os.environ if env is None else env)
    return merged


def _section(raw: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = raw.get(key)
    if isinstance(value, Mapping):
        return value
    return {}


def _int(value: Any, default: int) -> int:
    if value in (None, ""):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _float(value: Any, default: float) -> float:
    if value in (None, ""):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    output: list[str] = []
    for item in value:
        text = str(item).strip()
        if text and text not in output:
            output.append(text)
    return output
