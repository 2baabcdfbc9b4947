from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from ..xLogService import get_memory_handler

router = APIRouter(prefix="/logs", tags=["logs"])

_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")


class LevelChange(BaseModel):
    # empty name is the root logger
    logger: str = ""
    level: str


@router.get("/")
def tail_logs(n: int = Query(200, ge=0, le=10000), contains: Optional[str] = None) -> Dict[str, Any]:
    """Newest `n` buffered lines, optionally only those containing `contains`."""
    handler = get_memory_handler()
    if handler is None:
        raise HTTPException(status_code=503, detail="logging not initialised")
    items = handler.tail(n if contains is None else len(handler.buffer))
    if contains is not None:
        items = [line for line in items if contains in line][-n:] if n else []
    return {"count": len(items), "items": items}


@router.post("/level")
def set_level(payload: LevelChange) -> Dict[str, str]:
    level = payload.level.strip().upper()
    if level not in _LEVELS:
        raise HTTPException(status_code=400, detail=f"unknown level {payload.level!r}, use one of {', '.join(_LEVELS)}")
    target = logging.getLogger(payload.logger or None)
    target.setLevel(level)
    logging.getLogger("relay.logs").info("level of %s set to %s", target.name, level)
    return {"logger": target.name, "level": level}
