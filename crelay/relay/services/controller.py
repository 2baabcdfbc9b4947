from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Sequence

from .backends.base import RelayBackend
from .types import CardType, RelayCard, RelayState

logger = logging.getLogger("relay.controller")


class RelayController:
    """Get, set and pulse a channel on an already resolved card.

    Backend errors propagate unchanged; nothing is retried.
    """

    def __init__(self, backends: Sequence[RelayBackend], sleep: Callable[[float], None] = time.sleep) -> None:
        self._backends: Dict[CardType, RelayBackend] = {b.card_type: b for b in backends}
        self._sleep = sleep

    def _backend(self, card: RelayCard) -> RelayBackend:
        try:
            return self._backends[card.card_type]
        except KeyError:
            raise LookupError(f"no backend for {card.card_type.value}") from None

    def query(self, card: RelayCard, channel: int) -> RelayState:
        return self._backend(card).get(card, channel)

    def apply(self, card: RelayCard, channel: int, target: RelayState) -> RelayState:
        """Write `target` and return the state read back afterwards."""
        if target not in (RelayState.ON, RelayState.OFF):
            raise ValueError(f"cannot apply {target.name}")
        backend = self._backend(card)
        backend.set(card, channel, target)
        logger.info("relay %d on %s set %s", channel, card.port, target.name)
        return backend.get(card, channel)

    def pulse(self, card: RelayCard, channel: int, duration: float) -> RelayState:
        """Invert the channel for `duration` seconds, then restore it.

        Blocks for the whole duration. If the first write fails the
        second is skipped; if the second fails the channel stays
        inverted. Either way the error is raised to the caller.
        """
        backend = self._backend(card)
        before = backend.get(card, channel)
        first = RelayState.OFF if before is RelayState.ON else RelayState.ON
        second = first.inverted()
        logger.info("relay %d on %s pulse %s for %ss", channel, card.port, first.name, duration)
        backend.set(card, channel, first)
        self._sleep(duration)
        backend.set(card, channel, second)
        return backend.get(card, channel)
