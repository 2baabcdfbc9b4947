"""Relay module: uniform control of relay cards from the CLI, a web page or a plain-text HTTP API."""

__version__ = "0.1.0"
