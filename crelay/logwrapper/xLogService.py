from __future__ import annotations

import logging
import logging.config
import os
import warnings
from typing import Any, Dict, Optional

from .config_loader import load_config
from .services.handlers import InMemoryLogHandler, formatter_specs, syslog_handler_spec

_MEMORY_HANDLER: Optional[InMemoryLogHandler] = None


def _handler_specs(cfg: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Handler entries for dictConfig, in the order records reach them."""
    specs: Dict[str, Dict[str, Any]] = {
        "in_memory": {
            "()": InMemoryLogHandler,
            "maxlen": int(cfg["buffer_size"]),
            "level": "DEBUG",
            "formatter": "default",
        }
    }
    if cfg["enable_console"]:
        specs["console"] = {
            "class": "logging.StreamHandler",
            "level": str(cfg["console_level"]).upper(),
            "stream": cfg["console_stream"],
            "formatter": "default",
        }
    if cfg["enable_file"]:
        path = str(cfg["file_path"])
        folder = os.path.dirname(path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        specs["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "DEBUG",
            "filename": path,
            "maxBytes": int(cfg["rotate_bytes"]),
            "backupCount": int(cfg["backup_count"]),
            "encoding": "utf-8",
            "formatter": "default",
        }
    if cfg["enable_syslog"]:
        specs["syslog"] = syslog_handler_spec(str(cfg["syslog_address"]))
    return specs


def init_logging(overrides: Optional[Dict[str, Any]] = None) -> None:
    """Configure the root logger once for the whole process.

    Every `relay.*` logger propagates to root. The in-memory buffer
    always collects DEBUG and up; console, rotating file and syslog
    outputs are switched on by config. Later calls are no-ops.
    """
    global _MEMORY_HANDLER

    if _MEMORY_HANDLER is not None and _MEMORY_HANDLER in logging.getLogger().handlers:
        return

    cfg = load_config(overrides=overrides)
    handlers = _handler_specs(cfg)
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": formatter_specs(bool(cfg["json_format"])),
            "handlers": handlers,
            "root": {"level": "DEBUG", "handlers": list(handlers)},
            "loggers": {
                name: {"level": str(level).upper()}
                for name, level in (cfg.get("module_levels") or {}).items()
            },
        }
    )

    if cfg["capture_warnings"]:
        logging.captureWarnings(True)
        warnings.simplefilter("default")

    _MEMORY_HANDLER = next(
        (h for h in logging.getLogger().handlers if isinstance(h, InMemoryLogHandler)),
        None,
    )


def get_memory_handler() -> Optional[InMemoryLogHandler]:
    return _MEMORY_HANDLER


def get_router():  # FastAPI is only needed when the /logs API is mounted
    try:
        from .api.router import router
    except ImportError:
        return None
    return router
