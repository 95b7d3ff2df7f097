#!/usr/bin/env python3
"""Executable entrypoint requiring a TOML config file (-c/--config).

Exports logging knobs to the environment so a uvicorn reload worker, which
re-imports the application in a child process, sees the same configuration.
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

import uvicorn


def _ensure_import_paths() -> None:
    """Include the project ``src`` directory when running from a checkout."""

    src_dir = Path(__file__).resolve().parents[1] / "src"
    if src_dir.exists():
        src_str = str(src_dir)
        if src_str not in sys.path:
            sys.path.insert(0, src_str)


_ensure_import_paths()

# Delayed imports until sys.path is adjusted
from shared.config_loader import apply_env_from_config, load_config, set_current_config  # noqa: E402


def _resolve_app_import_path() -> str:
    """Return the ASGI application import path.

    We keep this separate so the path can be overridden via env when needed.
    """

    return os.environ.get("APP_MODULE", "api.main:app")


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Log Viewer Service")
    parser.add_argument(
        "-c",
        "--config",
        required=True,
        help="Path to TOML configuration file (relative paths resolved from file dir)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable Uvicorn autoreload (development mode)",
    )
    return parser.parse_args(argv)


def main(argv=None) -> None:
    """Start the FastAPI service via Uvicorn with explicit config."""

    args = _parse_args(argv)

    conf = load_config(args.config)
    set_current_config(conf)
    apply_env_from_config(conf)

    print(f"Starting log viewer with config: {conf._config_path}")

    uvicorn.run(
        _resolve_app_import_path(),
        host=conf.server.host,
        port=conf.server.port,
        reload=bool(args.reload),
        # uvicorn has no "warn"/"off" spellings
        log_level={"WARN": "warning", "OFF": "critical"}.get(conf.logging.level, conf.logging.level.lower()),
    )


if __name__ == "__main__":
    main()
