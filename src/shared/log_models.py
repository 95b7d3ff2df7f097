"""Value types describing the live logging configuration.

``LogConfiguration`` is an immutable snapshot: readers get a fresh instance
every time, so a snapshot handed to a renderer can never be half-updated by a
concurrent edit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Tuple


TRACE = 5
OFF = logging.CRITICAL + 10

logging.addLevelName(TRACE, "TRACE")


class LogLevel(str, Enum):
    """Server log levels, in decreasing severity."""

    OFF = "OFF"
    ERROR = "ERROR"
    WARN = "WARN"
    INFO = "INFO"
    DEBUG = "DEBUG"
    TRACE = "TRACE"

    @property
    def python_level(self) -> int:
        return _PYTHON_LEVELS[self]

    @classmethod
    def parse(cls, value: "str | LogLevel") -> "LogLevel":
        """Accept server spellings (``WARN``) as well as Python ones (``warning``)."""

        if isinstance(value, LogLevel):
            return value
        key = str(value).strip().upper()
        key = _ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"unknown log level: {value!r}") from None

    @classmethod
    def from_python(cls, level: int) -> "LogLevel":
        for member in (cls.TRACE, cls.DEBUG, cls.INFO, cls.WARN, cls.ERROR):
            if level <= member.python_level:
                return member
        return cls.OFF


_PYTHON_LEVELS = {
    LogLevel.OFF: OFF,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.WARN: logging.WARNING,
    LogLevel.INFO: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.TRACE: TRACE,
}

_ALIASES = {"WARNING": "WARN", "CRITICAL": "ERROR", "FATAL": "ERROR", "NONE": "OFF"}


def normalize_names(names: Iterable[str]) -> Tuple[str, ...]:
    """Strip names, drop blanks and duplicates, keep first-seen order."""

    seen = []
    for raw in names:
        name = str(raw).strip()
        if name and name not in seen:
            seen.append(name)
    return tuple(seen)


@dataclass(frozen=True)
class LogConfiguration:
    level: LogLevel
    verbose_loggers: Tuple[str, ...] = field(default_factory=tuple)
    audit_loggers: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "level", LogLevel.parse(self.level))
        object.__setattr__(self, "verbose_loggers", normalize_names(self.verbose_loggers))
        object.__setattr__(self, "audit_loggers", normalize_names(self.audit_loggers))
