"""Configuration loader for TOML files with .env fallback.

Usage
-----

from shared.config_loader import load_config, set_current_config, get_current_config

conf = load_config("path/to/config.toml")
set_current_config(conf)

Precedence rules
----------------
1. Values explicitly present in TOML have highest priority.
2. Missing values fall back to environment variables (e.g. from a .env file).
3. Remaining values use sane internal defaults.

Path handling
-------------
All relative paths in TOML are resolved against the TOML file directory so the
configuration remains portable when invoked from different working directories.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config_schema import AppConfig, LoggingConfig, LogViewerConfig, ServerConfig


try:  # Python 3.11+
    import tomllib  # type: ignore
except ImportError:  # pragma: no cover - fallback for older Pythons
    import tomli as tomllib  # type: ignore


_CURRENT_CONFIG: Optional[AppConfig] = None


def get_current_config() -> Optional[AppConfig]:
    """Return the process-wide configuration if one was set by the entrypoint."""

    return _CURRENT_CONFIG


def set_current_config(conf: Optional[AppConfig]) -> None:
    """Make the configuration available across the process.

    This allows modules like ``api.main`` to access the loaded configuration
    without CLI argument threading.
    """

    global _CURRENT_CONFIG
    _CURRENT_CONFIG = conf


def _env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: Optional[int] = None) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: Optional[float] = None) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None:
        return list(default)
    return [piece.strip() for piece in raw.split(",") if piece.strip()]


def _resolve_path(base_dir: Path, value: Optional[str]) -> Optional[str]:
    if value is None or not value:
        return value
    p = Path(value).expanduser()
    if not p.is_absolute():
        p = (base_dir / p).resolve()
    return str(p)


def _merge_logging(raw: Dict[str, Any], base: LoggingConfig, base_dir: Path) -> LoggingConfig:
    env = {
        "level": os.getenv("LOG_LEVEL", base.level),
        "sys_log_dir": os.getenv("SYS_LOG_DIR", base.sys_log_dir or "") or None,
        "verbose_modules": _env_list("SYS_LOG_VERBOSE_MODULES", base.verbose_modules),
        "audit_modules": _env_list("AUDIT_LOG_MODULES", base.audit_modules),
        "json_logs": _env_bool("APP_LOG_JSON", base.json_logs),
        "access_level": os.getenv("APP_ACCESS_LOG_LEVEL", base.access_level),
        "request_max_bytes": _env_int("APP_REQUEST_LOG_MAX_BYTES", base.request_max_bytes),
    }
    raw = dict(raw)
    # Backward compat: "json" and "log_dir" spellings in TOML
    if "json" in raw and "json_logs" not in raw:
        raw["json_logs"] = raw.pop("json")
    if "log_dir" in raw and "sys_log_dir" not in raw:
        raw["sys_log_dir"] = raw.pop("log_dir")

    merged = {**base.model_dump(), **env, **raw}
    if "sys_log_dir" in raw:
        merged["sys_log_dir"] = _resolve_path(base_dir, merged.get("sys_log_dir"))
    return LoggingConfig(**merged)


def _merge_server(raw: Dict[str, Any], base: ServerConfig) -> ServerConfig:
    env = {
        "host": os.getenv("APP_HOST", base.host),
        "port": _env_int("APP_PORT", base.port),
    }
    return ServerConfig(**{**base.model_dump(), **env, **raw})


def _merge_log_viewer(raw: Dict[str, Any], base: LogViewerConfig) -> LogViewerConfig:
    env = {"snapshot_timeout": _env_float("LOG_SNAPSHOT_TIMEOUT", base.snapshot_timeout)}
    return LogViewerConfig(**{**base.model_dump(), **env, **raw})


def config_from_env() -> AppConfig:
    """Build a configuration from environment variables and defaults only."""

    base = AppConfig()
    cwd = Path.cwd()
    return AppConfig(
        server=_merge_server({}, base.server),
        logging=_merge_logging({}, base.logging, cwd),
        log_viewer=_merge_log_viewer({}, base.log_viewer),
    )


def load_config(path: str) -> AppConfig:
    """Load configuration from a TOML file and apply .env fallback.

    Relative paths are resolved against the TOML file directory.
    """

    config_path = Path(path).expanduser().resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with config_path.open("rb") as f:
        raw = tomllib.load(f)

    base = AppConfig()
    base_dir = config_path.parent

    server_raw = dict(raw.get("server", {}))
    logging_raw = dict(raw.get("logging", {}))
    viewer_raw = dict(raw.get("log_viewer", {}))

    conf = AppConfig(
        server=_merge_server(server_raw, base.server),
        logging=_merge_logging(logging_raw, base.logging, base_dir),
        log_viewer=_merge_log_viewer(viewer_raw, base.log_viewer),
    )
    conf._config_path = str(config_path)
    conf._config_dir = str(base_dir)
    return conf


def apply_env_from_config(conf: AppConfig) -> None:
    """Export selected config fields to environment variables for modules that
    read settings from `os.environ` during import-time initialization.

    This is primarily used so that a uvicorn reload worker, which re-imports
    ``api.main`` in a child process, sees the same logging preferences.
    """

    os.environ["LOG_LEVEL"] = str(conf.logging.level)
    if conf.logging.sys_log_dir:
        os.environ["SYS_LOG_DIR"] = conf.logging.sys_log_dir
    os.environ["SYS_LOG_VERBOSE_MODULES"] = ",".join(conf.logging.verbose_modules)
    os.environ["AUDIT_LOG_MODULES"] = ",".join(conf.logging.audit_modules)
    os.environ["APP_LOG_JSON"] = "1" if conf.logging.json_logs else "0"
    if conf.logging.access_level:
        os.environ["APP_ACCESS_LOG_LEVEL"] = str(conf.logging.access_level)
    os.environ["APP_REQUEST_LOG_MAX_BYTES"] = str(conf.logging.request_max_bytes)
    os.environ["LOG_SNAPSHOT_TIMEOUT"] = str(conf.log_viewer.snapshot_timeout)
    # Uvicorn host/port also exposed for convenience
    os.environ["APP_HOST"] = conf.server.host
    os.environ["APP_PORT"] = str(conf.server.port)
    if conf._config_path:
        os.environ["LOGVIEW_CONFIG_PATH"] = conf._config_path
