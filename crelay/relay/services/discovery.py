from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Optional, Sequence

from .backends.base import RelayBackend, matches_serial
from .types import RelayCard, RelayError

logger = logging.getLogger("relay.discovery")


class DetectedCards(Iterable[RelayCard]):
    """Every card reachable through any backend.

    Iterating probes the hardware again, so the sequence reflects
    hot-plugged cards each time it is walked.
    """

    def __init__(self, backends: Sequence[RelayBackend], serial_filter: Optional[str] = None) -> None:
        self._backends = backends
        self._serial_filter = serial_filter

    def __iter__(self) -> Iterator[RelayCard]:
        for backend in self._backends:
            for card in _safe_enumerate(backend):
                if matches_serial(card, self._serial_filter):
                    yield card


class CardDiscovery:
    def __init__(self, backends: Sequence[RelayBackend]) -> None:
        self.backends: List[RelayBackend] = list(backends)

    def detect_first(self, serial_filter: Optional[str] = None) -> Optional[RelayCard]:
        """First card in backend priority order, None when nothing matches."""
        for backend in self.backends:
            try:
                card = backend.detect(serial_filter)
            except RelayError as exc:
                logger.debug("%r probe failed: %s", backend, exc)
                continue
            if card is not None:
                logger.debug("detected %s on %s (serial %s)", card.name, card.port, card.serial)
                return card
        return None

    def detect_all(self, serial_filter: Optional[str] = None) -> DetectedCards:
        return DetectedCards(self.backends, serial_filter)


def _safe_enumerate(backend: RelayBackend) -> Iterator[RelayCard]:
    try:
        yield from backend.enumerate()
    except RelayError as exc:
        logger.debug("%r enumeration failed: %s", backend, exc)
