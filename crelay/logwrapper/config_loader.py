from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

_DEFAULT_CFG_PATH = Path(__file__).parent / "config" / "config.yml"

DEFAULT_CONFIG: Dict[str, Any] = {
    "enable_console": True,
    "console_level": "INFO",
    "console_stream": "ext://sys.stderr",
    "enable_file": False,
    "file_path": "logs/crelay.log",
    "rotate_bytes": 2 * 1024 * 1024,
    "backup_count": 5,
    "enable_syslog": False,
    "syslog_address": "/dev/log",
    "json_format": False,
    "buffer_size": 1000,
    "capture_warnings": True,
    "module_levels": {},
}

_TRUE = {"1", "true", "yes", "on"}


def load_config(path: str | os.PathLike | None = None, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Logging settings as a flat dict.

    Layers, lowest first: built-in defaults, the YAML file (`path`, then
    CRELAY_LOG_CONFIG, then the bundled config.yml), `overrides`, and
    finally LOG_LEVEL / LOG_FILE / LOG_SYSLOG from the environment.
    """
    cfg: Dict[str, Any] = dict(DEFAULT_CONFIG)

    cfg_path = Path(path or os.getenv("CRELAY_LOG_CONFIG") or _DEFAULT_CFG_PATH)
    if cfg_path.exists():
        with open(cfg_path, "r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ValueError(f"{cfg_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError(f"{cfg_path}: logging config must be a mapping")
        cfg.update(data)

    if overrides:
        cfg.update({k: v for k, v in overrides.items() if v is not None})

    level = os.getenv("LOG_LEVEL")
    if level:
        cfg["console_level"] = level
    log_file = os.getenv("LOG_FILE")
    if log_file:
        cfg["enable_file"] = True
        cfg["file_path"] = log_file
    syslog = os.getenv("LOG_SYSLOG")
    if syslog:
        cfg["enable_syslog"] = syslog.strip().lower() in _TRUE
    return cfg
