from __future__ import annotations

import logging
import threading
from typing import Optional

from .controller import RelayController
from .discovery import CardDiscovery
from .types import (
    ChannelOutOfRange,
    Command,
    CommandKind,
    NoDeviceFound,
    RelayCard,
    RelayError,
    Result,
)

logger = logging.getLogger("relay.dispatcher")


class RequestDispatcher:
    """Resolve a card, run one command on it and snapshot every channel.

    Holds no state between requests except the lock: a request keeps it
    from discovery to the last read-back, so hardware access (pulses
    included) is strictly serialized across threads.
    """

    def __init__(self, discovery: CardDiscovery, controller: RelayController, pulse_duration: float = 1) -> None:
        if pulse_duration <= 0:
            raise ValueError("pulse_duration must be > 0")
        self.discovery = discovery
        self.controller = controller
        self.pulse_duration = pulse_duration
        self._lock = threading.Lock()

    def dispatch(self, command: Command) -> Result:
        with self._lock:
            card: Optional[RelayCard] = None
            try:
                if command.kind is CommandKind.LIST_CARDS:
                    return self._list_cards(command)
                card = self.discovery.detect_first(command.serial)
                if card is None:
                    raise NoDeviceFound(command.serial)
                if command.channel is not None and not card.has_channel(command.channel):
                    raise ChannelOutOfRange(command.channel, card.relay_count)
                self._execute(card, command)
                states = {ch: self.controller.query(card, ch) for ch in card.channels()}
                cards = list(self.discovery.detect_all()) if command.kind is CommandKind.INFO else []
                return Result(command=command, card=card, states=states, cards=cards)
            except RelayError as exc:
                logger.warning("%s failed: %s", command.kind.value, exc)
                return Result.failure(command, exc, card)

    def _list_cards(self, command: Command) -> Result:
        cards = list(self.discovery.detect_all(command.serial))
        if not cards:
            raise NoDeviceFound(command.serial)
        return Result(command=command, cards=cards)

    def _execute(self, card: RelayCard, command: Command) -> None:
        if command.kind is CommandKind.SET_STATE:
            assert command.channel is not None and command.state is not None
            self.controller.apply(card, command.channel, command.state)
        elif command.kind is CommandKind.PULSE:
            assert command.channel is not None
            self.controller.pulse(card, command.channel, self.pulse_duration)
