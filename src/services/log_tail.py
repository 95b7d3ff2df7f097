"""Bounded tail reads of a growing log file.

Only the last ``budget_bytes`` of the file are read, so the cost of a call does
not depend on how large the log has grown. The seek point is not moved back to
a line boundary: when it lands mid-line the first returned line is a fragment.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Tuple


WEB_LOG_BYTES = 1024 * 1024  # 1MB

logger = logging.getLogger(__name__)


class LogFileNotFound(Exception):
    """The log file does not exist."""

    def __init__(self, path: str):
        super().__init__(f"log file not found: {path}")
        self.path = path


class LogReadFailed(Exception):
    """The log file exists but could not be read."""

    def __init__(self, path: str, cause: Exception):
        super().__init__(f"failed to read log file {path}: {cause}")
        self.path = path
        self.cause = cause


@dataclass(frozen=True)
class LogTail:
    path: str
    total_size: int
    start_offset: int
    lines: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def shown_bytes(self) -> int:
        return self.total_size - self.start_offset


def read_tail(path: str, budget_bytes: int = WEB_LOG_BYTES) -> LogTail:
    """Return the last ``budget_bytes`` of ``path`` split into lines.

    Lines are returned raw (not escaped), decoded as UTF-8 with replacement
    characters. Raises ``LogFileNotFound`` when the file is missing and
    ``LogReadFailed`` for any other I/O error.
    """

    if budget_bytes <= 0:
        raise ValueError("budget_bytes must be positive")

    try:
        with open(path, "rb") as f:
            total_size = os.fstat(f.fileno()).st_size
            start_offset = max(0, total_size - budget_bytes)
            f.seek(start_offset)
            # Bytes appended after the size was taken belong to the next read.
            data = f.read(total_size - start_offset)
    except FileNotFoundError as exc:
        raise LogFileNotFound(path) from exc
    except OSError as exc:
        logger.warning("failed to read log file %s: %s", path, exc, exc_info=True)
        raise LogReadFailed(path, exc) from exc

    lines = tuple(line.decode("utf-8", errors="replace") for line in data.splitlines())
    return LogTail(path=path, total_size=total_size, start_offset=start_offset, lines=lines)
