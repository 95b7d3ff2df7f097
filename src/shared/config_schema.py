"""Typed configuration schema for TOML-driven runtime settings.

All fields have sensible defaults so that development without a TOML file
still works (using environment variables as fallback).

Priority: TOML (highest) > environment (.env) > internal defaults.
Relative paths in TOML are resolved against the TOML file location.
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field, field_validator

from .log_models import LogLevel, normalize_names


class ServerConfig(BaseModel):
    host: str = Field(default="0.0.0.0", description="Uvicorn host bind address")
    port: int = Field(default=8030, description="Uvicorn port")


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Root log level (OFF/ERROR/WARN/INFO/DEBUG/TRACE)")
    sys_log_dir: str | None = Field(default=None, description="Directory for fe.log / fe.warn.log / fe.audit.log")
    verbose_modules: List[str] = Field(default_factory=list, description="Loggers emitting DEBUG output")
    audit_modules: List[str] = Field(default_factory=list, description="Audit logger names (audit.<name>)")
    json_logs: bool = Field(default=False, description="Emit JSON logs when true")
    access_level: str | None = Field(default=None, description="uvicorn.access level override")
    request_max_bytes: int = Field(default=4096, description="Max bytes of query string to log per request")

    @field_validator("level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        return LogLevel.parse(value).value

    @field_validator("verbose_modules", "audit_modules", mode="before")
    @classmethod
    def _split_names(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return list(normalize_names(value))


class LogViewerConfig(BaseModel):
    snapshot_timeout: float = Field(default=5.0, gt=0, description="Seconds to wait for the config lock")


class AppConfig(BaseModel):
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    log_viewer: LogViewerConfig = Field(default_factory=LogViewerConfig)

    # Internal: absolute path to the TOML file (resolved by loader)
    _config_path: str | None = None
    _config_dir: str | None = None
