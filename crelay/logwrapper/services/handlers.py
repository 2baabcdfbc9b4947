from __future__ import annotations

import logging
import os
from collections import deque
from typing import Any, Deque, Dict, Iterable, List

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
JSON_FORMAT = (
    '{"time":"%(asctime)s","level":"%(levelname)s","name":"%(name)s"'
    ',"msg":"%(message)s","module":"%(module)s","line":%(lineno)d}'
)
# syslog stamps its own time and host
SYSLOG_FORMAT = "crelay[%(process)d]: %(levelname)s %(name)s: %(message)s"


class InMemoryLogHandler(logging.Handler):
    """Ring buffer of formatted records, served by the /logs endpoint.

    logging.Handler already serializes emit() with its own lock.
    """

    def __init__(self, maxlen: int = 1000, level: int = logging.NOTSET) -> None:
        super().__init__(level=level)
        self.buffer: Deque[str] = deque(maxlen=maxlen)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
        except Exception:  # pragma: no cover
            line = record.getMessage()
        self.buffer.append(line)

    def tail(self, n: int = 100) -> List[str]:
        if n <= 0:
            return []
        snapshot = list(self.buffer)
        return snapshot[-n:]

    def __iter__(self) -> Iterable[str]:
        return iter(list(self.buffer))


def formatter_specs(json_format: bool) -> Dict[str, Dict[str, str]]:
    """dictConfig `formatters` section: `default` for buffer/console/file, `syslog`."""
    if json_format:
        default = {"format": JSON_FORMAT, "datefmt": "%Y-%m-%dT%H:%M:%S"}
    else:
        default = {"format": TEXT_FORMAT, "datefmt": "%H:%M:%S"}
    return {"default": default, "syslog": {"format": SYSLOG_FORMAT}}


def syslog_handler_spec(address: str) -> Dict[str, Any]:
    """dictConfig entry for the daemon facility, or UDP localhost when the socket is missing."""
    target: Any = address
    if not os.path.exists(address):
        target = ("localhost", 514)
    return {
        "class": "logging.handlers.SysLogHandler",
        "level": "INFO",
        "address": target,
        "facility": "daemon",
        "formatter": "syslog",
    }
