"""Process-wide logging for the crelay CLI and daemon.

`init_logging()` once at start; afterwards `get_memory_handler()` gives
the ring buffer and `get_router()` the optional `/logs` API over it.
"""
from .xLogService import get_memory_handler, get_router, init_logging

__all__ = ["init_logging", "get_memory_handler", "get_router"]
