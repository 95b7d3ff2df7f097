"""Central logging configuration helpers.

This module centralises logging setup and runtime controls so that every
component (API, services, third-party integrations) flows through a single
well-defined pipeline:

* One stream handler with either JSON or human-readable formatting
* ``fe.log`` / ``fe.warn.log`` files under ``sys_log_dir`` (the warn file is what
  the ``/log`` page tails), plus ``fe.audit.log`` for audit loggers
* Level, verbose and audit loggers adjustable at runtime via ``RuntimeLogging``
* Helper accessors for request logging middleware (levels, truncation, redaction)
* Uvicorn logger alignment to avoid duplicate/conflicting handlers
"""

from __future__ import annotations

import json
import logging
import os
import re
import threading
from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence, Set, Tuple

from .config_schema import LoggingConfig
from .log_models import LogConfiguration, LogLevel, normalize_names


DEFAULT_HUMAN_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
DEFAULT_HUMAN_DATEFMT = "%Y-%m-%d %H:%M:%S"

INFO_LOG_FILENAME = "fe.log"
WARN_LOG_FILENAME = "fe.warn.log"
AUDIT_LOG_FILENAME = "fe.audit.log"
AUDIT_LOGGER_PREFIX = "audit."

_LOGGER_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]+$")
# Marks handlers installed here so a reconfigure never touches foreign ones.
_MANAGED_ATTR = "_logview_managed"

LOG = logging.getLogger(__name__)


def _coerce_level(value: Optional[str], fallback: int) -> int:
    if value is None:
        return fallback
    if isinstance(value, int):
        return value
    try:
        return LogLevel.parse(value).python_level
    except ValueError:
        return fallback


class JsonFormatter(logging.Formatter):
    """Simple JSON line formatter for structured logs."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "lvl": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        # Attach request-level correlation metadata when present on the record.
        for key in ("request_id", "client", "status_code", "duration_ms"):
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


def _validate_names(names: Iterable[str], verbose: bool = False) -> Tuple[str, ...]:
    cleaned = normalize_names(names)
    for name in cleaned:
        if not _LOGGER_NAME_PATTERN.fullmatch(name):
            raise ValueError(f"invalid logger name: {name!r}")
        # getLogger("root") is the root logger; its level belongs to ``level``.
        if verbose and (name == logging.getLogger().name or name.startswith(AUDIT_LOGGER_PREFIX)):
            raise ValueError(f"reserved logger name: {name!r}")
    return cleaned


class RuntimeLogging:
    """Live view of the process logging configuration.

    Holds the current level, verbose loggers and audit loggers and pushes
    changes into the standard ``logging`` tree. ``set_config`` either applies a
    whole configuration or leaves every logger as it was.
    """

    def __init__(
        self,
        level: LogLevel | str = LogLevel.INFO,
        verbose_names: Sequence[str] = (),
        audit_names: Sequence[str] = (),
        log_dir: Optional[str] = None,
        audit_handler: Optional[logging.Handler] = None,
    ):
        self._lock = threading.RLock()
        self._log_dir = log_dir
        self._audit_handler = audit_handler
        self._config = LogConfiguration(level=LogLevel.parse(level))
        self.set_config(level=level, verbose_names=verbose_names, audit_names=audit_names)

    @property
    def warn_log_path(self) -> str:
        return os.path.join(self._log_dir or "log", WARN_LOG_FILENAME)

    def get_current_config(self) -> LogConfiguration:
        with self._lock:
            return self._config

    def set_config(
        self,
        level: LogLevel | str | None = None,
        verbose_names: Optional[Sequence[str]] = None,
        audit_names: Optional[Sequence[str]] = None,
    ) -> LogConfiguration:
        """Apply a new configuration; ``None`` keeps the current value.

        Raises ``ValueError`` for unknown levels or malformed logger names
        before anything is changed.
        """

        with self._lock:
            current = self._config
            target = LogConfiguration(
                level=current.level if level is None else LogLevel.parse(level),
                verbose_loggers=current.verbose_loggers
                if verbose_names is None
                else _validate_names(verbose_names, verbose=True),
                audit_loggers=current.audit_loggers
                if audit_names is None
                else _validate_names(audit_names),
            )

            saved = self._capture(current, target)
            try:
                self._apply(current, target)
            except Exception:
                self._restore(saved)
                raise

            self._config = target

        if target != current:
            LOG.info(
                "logging reconfigured: level=%s verbose=%s audit=%s",
                target.level.value,
                ",".join(target.verbose_loggers),
                ",".join(target.audit_loggers),
            )
        return target

    def _touched_loggers(self, *configs: LogConfiguration) -> Dict[str, logging.Logger]:
        loggers = {"": logging.getLogger()}
        for conf in configs:
            for name in conf.verbose_loggers:
                loggers[name] = logging.getLogger(name)
            for name in conf.audit_loggers:
                full = AUDIT_LOGGER_PREFIX + name
                loggers[full] = logging.getLogger(full)
        return loggers

    def _capture(self, current: LogConfiguration, target: LogConfiguration):
        return [
            (logger, logger.level, logger.propagate, list(logger.handlers))
            for logger in self._touched_loggers(current, target).values()
        ]

    @staticmethod
    def _restore(saved) -> None:
        for logger, level, propagate, handlers in saved:
            logger.setLevel(level)
            logger.propagate = propagate
            logger.handlers = handlers

    def _apply(self, current: LogConfiguration, target: LogConfiguration) -> None:
        logging.getLogger().setLevel(target.level.python_level)

        for name in set(current.verbose_loggers) - set(target.verbose_loggers):
            logging.getLogger(name).setLevel(logging.NOTSET)
        for name in target.verbose_loggers:
            logging.getLogger(name).setLevel(logging.DEBUG)

        for name in set(current.audit_loggers) - set(target.audit_loggers):
            logger = logging.getLogger(AUDIT_LOGGER_PREFIX + name)
            if self._audit_handler is not None:
                logger.removeHandler(self._audit_handler)
            logger.setLevel(logging.NOTSET)
            logger.propagate = True
        for name in target.audit_loggers:
            logger = logging.getLogger(AUDIT_LOGGER_PREFIX + name)
            logger.setLevel(logging.INFO)
            if self._audit_handler is not None:
                logger.propagate = False
                if self._audit_handler not in logger.handlers:
                    logger.addHandler(self._audit_handler)


def _human_formatter() -> logging.Formatter:
    return logging.Formatter(DEFAULT_HUMAN_FORMAT, DEFAULT_HUMAN_DATEFMT)


def _managed(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _MANAGED_ATTR, True)
    return handler


def _drop_managed_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        if getattr(handler, _MANAGED_ATTR, False):
            logger.removeHandler(handler)
            handler.close()


def configure_logging(conf: Optional[LoggingConfig] = None) -> RuntimeLogging:
    """Initialise the root logger and return the runtime controller.

    Safe to call again (e.g. during uvicorn reload or in tests): handlers
    installed by a previous call are closed and replaced.
    """

    if conf is None:
        from .config_loader import config_from_env

        conf = config_from_env().logging

    root = logging.getLogger()
    _drop_managed_handlers(root)

    for name, logger in list(logging.Logger.manager.loggerDict.items()):
        if name.startswith(AUDIT_LOGGER_PREFIX) and isinstance(logger, logging.Logger):
            _drop_managed_handlers(logger)

    stream = logging.StreamHandler()
    if conf.json_logs:
        stream.setFormatter(JsonFormatter())
    else:
        stream.setFormatter(_human_formatter())
    root.addHandler(_managed(stream))

    audit_handler: Optional[logging.Handler] = None
    if conf.sys_log_dir:
        log_dir = Path(conf.sys_log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        info_file = logging.FileHandler(log_dir / INFO_LOG_FILENAME, encoding="utf-8")
        info_file.setFormatter(_human_formatter())
        root.addHandler(_managed(info_file))

        warn_file = logging.FileHandler(log_dir / WARN_LOG_FILENAME, encoding="utf-8")
        warn_file.setLevel(logging.WARNING)
        warn_file.setFormatter(_human_formatter())
        root.addHandler(_managed(warn_file))

        audit_handler = logging.FileHandler(log_dir / AUDIT_LOG_FILENAME, encoding="utf-8")
        audit_handler.setFormatter(_human_formatter())
        _managed(audit_handler)

    runtime = RuntimeLogging(
        level=conf.level,
        verbose_names=conf.verbose_modules,
        audit_names=conf.audit_modules,
        log_dir=conf.sys_log_dir,
        audit_handler=audit_handler,
    )

    # Align uvicorn loggers so everything flows through the root handler exactly once.
    root_level = runtime.get_current_config().level.python_level
    uvicorn_level = _coerce_level(conf.access_level, root_level)
    for name in ("uvicorn", "uvicorn.error"):
        logger = logging.getLogger(name)
        logger.handlers = []
        logger.propagate = True
        logger.setLevel(logging.NOTSET)

    access_logger = logging.getLogger("uvicorn.access")
    access_logger.handlers = []
    access_logger.propagate = True
    access_logger.setLevel(uvicorn_level)

    return runtime


def get_request_log_level() -> int:
    """Return the configured level for request logging."""

    return _coerce_level(os.getenv("APP_REQUEST_LOG_LEVEL"), logging.INFO)


def get_request_truncate_bytes(default: int = 4096) -> int:
    """Return the maximum number of bytes of query string to log."""

    raw = os.getenv("APP_REQUEST_LOG_MAX_BYTES")
    if raw is None:
        return default
    try:
        value = int(raw)
        return default if value <= 0 else value
    except ValueError:
        return default


def get_request_exclude_paths() -> Set[str]:
    """Paths (prefix match) that should never emit request logs."""

    raw = os.getenv("APP_REQUEST_LOG_EXCLUDE_PATHS", "")
    items = {"/docs", "/redoc", "/openapi.json", "/favicon.ico"}
    extra = {piece.strip() for piece in raw.split(",") if piece.strip()}
    return items | extra


def get_redact_keys() -> Set[str]:
    """Query keys that must be redacted when logging requests."""

    raw = os.getenv("APP_LOG_REDACT_KEYS", "")
    return {item.strip().lower() for item in raw.split(",") if item.strip()}


def iter_logger_levels(logger_names: Sequence[str]) -> Iterable[tuple[str, str]]:
    """Collect effective levels, used by the admin endpoint."""

    for name in logger_names:
        logger = logging.getLogger(name) if name else logging.getLogger()
        yield (name or "<root>", LogLevel.from_python(logger.getEffectiveLevel()).value)
