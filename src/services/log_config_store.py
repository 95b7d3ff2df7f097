"""Thread-safe store for the live logger configuration.

The store is the single writer of the logging subsystem. Every edit is a
read-modify-write of the verbose logger list performed under one lock, and the
full list is pushed in a single call so a failed push leaves nothing behind.
"""

from __future__ import annotations

import logging
import threading
from typing import List, Optional, Protocol, Sequence

from shared.log_models import LogConfiguration, LogLevel


class LoggingSubsystem(Protocol):
    def get_current_config(self) -> LogConfiguration:
        ...

    def set_config(
        self,
        level: LogLevel | str | None = None,
        verbose_names: Optional[Sequence[str]] = None,
        audit_names: Optional[Sequence[str]] = None,
    ) -> LogConfiguration:
        ...


class ConfigUnavailable(Exception):
    """The logging subsystem could not report its configuration."""


class ConfigUpdateFailed(Exception):
    """The logging subsystem rejected an updated configuration."""


def _clean(name: Optional[str]) -> Optional[str]:
    if name is None:
        return None
    name = name.strip()
    return name or None


class LogConfigStore:
    def __init__(self, subsystem: LoggingSubsystem, snapshot_timeout: float = 5.0):
        self._subsystem = subsystem
        self._snapshot_timeout = snapshot_timeout
        self._lock = threading.Lock()
        self.logger = logging.getLogger(f"{__name__}.LogConfigStore")

    def _read(self) -> LogConfiguration:
        try:
            return self._subsystem.get_current_config()
        except Exception as exc:
            self.logger.error("failed to read logging configuration: %s", exc, exc_info=True)
            raise ConfigUnavailable(str(exc)) from exc

    def snapshot(self) -> LogConfiguration:
        """Return the current configuration.

        Waits at most ``snapshot_timeout`` seconds for an in-flight edit.
        """

        if not self._lock.acquire(timeout=self._snapshot_timeout):
            self.logger.warning("timed out after %.1fs waiting for logging configuration", self._snapshot_timeout)
            raise ConfigUnavailable("timed out waiting for logging configuration")
        try:
            return self._read()
        finally:
            self._lock.release()

    def apply_delta(self, add_name: Optional[str] = None, remove_name: Optional[str] = None) -> LogConfiguration:
        """Add and/or remove one verbose logger and return the resulting configuration.

        Blank names mean "no edit". The add is evaluated before the remove, so
        passing the same name to both leaves it absent. When membership does not
        change nothing is written to the logging subsystem.
        """

        add_name = _clean(add_name)
        remove_name = _clean(remove_name)

        with self._lock:
            current = self._read()
            if add_name is None and remove_name is None:
                return current

            verbose: List[str] = list(current.verbose_loggers)
            if add_name is not None and add_name not in verbose:
                verbose.append(add_name)
            if remove_name is not None and remove_name in verbose:
                verbose.remove(remove_name)

            if tuple(verbose) == current.verbose_loggers:
                self.logger.debug(
                    "verbose loggers unchanged (add=%s, remove=%s)", add_name, remove_name
                )
                return current

            try:
                updated = self._subsystem.set_config(verbose_names=verbose)
            except Exception as exc:
                self.logger.error(
                    "failed to update verbose loggers to %s: %s", verbose, exc, exc_info=True
                )
                raise ConfigUpdateFailed(str(exc)) from exc

        self.logger.info(
            "verbose loggers updated: %s -> %s",
            ",".join(current.verbose_loggers),
            ",".join(updated.verbose_loggers),
        )
        return updated
