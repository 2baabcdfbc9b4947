from __future__ import annotations
import logging
import time
from typing import Callable, Optional, Sequence

from fastapi import FastAPI

from . import __version__
from .config_loader import RelayConfig, load_config
from .api.router import get_router
from .services.backends import RelayBackend, build_backends
from .services.controller import RelayController
from .services.discovery import CardDiscovery
from .services.dispatcher import RequestDispatcher

logger = logging.getLogger("relay.service")


def build_dispatcher(
    cfg: RelayConfig,
    backends: Optional[Sequence[RelayBackend]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RequestDispatcher:
    if backends is None:
        backends = build_backends(cfg)
    logger.debug("relay backends: %s", ", ".join(repr(b) for b in backends) or "none")
    return RequestDispatcher(
        CardDiscovery(backends),
        RelayController(backends, sleep=sleep),
        pulse_duration=cfg.pulse_duration,
    )


def create_app(
    config_path: str | None = None,
    *,
    cfg: Optional[RelayConfig] = None,
    labels: Sequence[str] = (),
    backends: Optional[Sequence[RelayBackend]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> FastAPI:
    if cfg is None:
        cfg = load_config(config_path)
    if labels:
        cfg = cfg.with_labels(labels)
    dispatcher = build_dispatcher(cfg, backends=backends, sleep=sleep)

    app = FastAPI(title="crelay", version=__version__)
    app.state.relay_config = cfg  # type: ignore[attr-defined]
    app.state.dispatcher = dispatcher  # type: ignore[attr-defined]
    if cfg.server.enable_log_api:
        from crelay.logwrapper import get_router as get_log_router

        log_router = get_log_router()
        if log_router is not None:
            app.include_router(log_router)
    # catch-all page route, include last
    app.include_router(get_router(dispatcher, cfg))
    return app


def serve(cfg: RelayConfig, labels: Sequence[str] = ()) -> None:
    import uvicorn

    app = create_app(cfg=cfg, labels=labels)
    # first probe also exports and configures GPIO pins
    card = app.state.dispatcher.discovery.detect_first()
    if card is None:
        logger.warning("no relay card detected at start, will probe again on every request")
    else:
        logger.info("found %s on %s (%d relays)", card.name, card.port, card.relay_count)
    logger.info("HTTP server listening on %s:%d", cfg.server.host, cfg.server.port)
    uvicorn.run(app, host=cfg.server.host, port=cfg.server.port, server_header=False, log_config=None)


if __name__ == "__main__":
    from crelay.logwrapper import init_logging

    init_logging()
    serve(load_config())
