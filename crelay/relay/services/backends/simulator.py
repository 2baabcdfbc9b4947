from __future__ import annotations

import logging
import threading
from typing import Dict, Iterator

from ..types import CardType, RelayCard, RelayState
from .base import RelayBackend, writable

logger = logging.getLogger("relay.backends.simulator")


class SimulatedBackend(RelayBackend):
    """In-memory card for development machines without relay hardware.

    All channels start OFF; state lives as long as the backend object.
    """

    card_type = CardType.SIMULATED

    def __init__(self, num_relays: int = 4, serial: str = "SIM01") -> None:
        self.num_relays = num_relays
        self.serial = serial
        self._states: Dict[int, RelayState] = {ch: RelayState.OFF for ch in range(1, num_relays + 1)}
        self._lock = threading.Lock()

    def enumerate(self) -> Iterator[RelayCard]:
        yield RelayCard(self.card_type, "simulator", self.serial, self.num_relays)

    def get(self, card: RelayCard, channel: int) -> RelayState:
        with self._lock:
            return self._states[channel]

    def set(self, card: RelayCard, channel: int, state: RelayState) -> None:
        state = writable(state)
        with self._lock:
            self._states[channel] = state
        logger.debug("simulated relay %d -> %s", channel, state.name)
