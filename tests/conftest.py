import logging
import threading
from typing import List, Optional, Sequence

import pytest

from shared.log_models import LogConfiguration, LogLevel


CONFIG_ENV_VARS = (
    "LOG_LEVEL",
    "SYS_LOG_DIR",
    "SYS_LOG_VERBOSE_MODULES",
    "AUDIT_LOG_MODULES",
    "APP_LOG_JSON",
    "APP_ACCESS_LOG_LEVEL",
    "APP_REQUEST_LOG_MAX_BYTES",
    "APP_REQUEST_LOG_LEVEL",
    "APP_LOG_REDACT_KEYS",
    "LOG_SNAPSHOT_TIMEOUT",
    "APP_HOST",
    "APP_PORT",
    "LOGVIEW_CONFIG_PATH",
)


class StubSubsystem:
    """In-memory stand-in for the logging subsystem."""

    def __init__(self, level="WARN", verbose: Sequence[str] = (), audit: Sequence[str] = ()):
        self.config = LogConfiguration(level=LogLevel.parse(level), verbose_loggers=verbose, audit_loggers=audit)
        self.set_calls: List[List[str]] = []
        self.read_error: Optional[Exception] = None
        self.write_error: Optional[Exception] = None
        self.write_gate: Optional[threading.Event] = None
        self.write_started = threading.Event()

    def get_current_config(self) -> LogConfiguration:
        if self.read_error is not None:
            raise self.read_error
        return self.config

    def set_config(self, level=None, verbose_names=None, audit_names=None) -> LogConfiguration:
        self.set_calls.append(list(verbose_names))
        self.write_started.set()
        if self.write_gate is not None:
            self.write_gate.wait(timeout=5)
        if self.write_error is not None:
            raise self.write_error
        self.config = LogConfiguration(
            level=self.config.level,
            verbose_loggers=tuple(verbose_names),
            audit_loggers=self.config.audit_loggers,
        )
        return self.config


@pytest.fixture(autouse=True)
def clean_config_env(monkeypatch):
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def stub_subsystem():
    return StubSubsystem(level="WARN", verbose=("topicA",))


@pytest.fixture
def restore_logging():
    """Undo level, propagation and handler changes made to the logging tree."""

    manager = logging.Logger.manager
    root = logging.getLogger()
    saved_root = (root.level, list(root.handlers))
    saved = {
        name: (logger.level, logger.propagate, list(logger.handlers))
        for name, logger in manager.loggerDict.items()
        if isinstance(logger, logging.Logger)
    }

    yield

    for handler in list(root.handlers):
        if handler not in saved_root[1] and getattr(handler, "_logview_managed", False):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(saved_root[0])

    for name, logger in list(manager.loggerDict.items()):
        if not isinstance(logger, logging.Logger):
            continue
        level, propagate, handlers = saved.get(name, (logging.NOTSET, True, []))
        for handler in list(logger.handlers):
            if handler not in handlers:
                logger.removeHandler(handler)
                handler.close()
        logger.setLevel(level)
        logger.propagate = propagate
