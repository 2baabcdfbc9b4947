from __future__ import annotations

import abc
from typing import Iterator, Optional

from ..types import CardType, RelayCard, RelayState


class RelayBackend(abc.ABC):
    """Capability contract every relay card driver implements.

    Drivers open their device handle for each `get`/`set` and release it
    before returning; nothing is held between calls. I/O failures are
    raised as `BackendIOError`.
    """

    card_type: CardType

    @abc.abstractmethod
    def enumerate(self) -> Iterator[RelayCard]:
        """Yield every unit of this card type currently reachable."""

    @abc.abstractmethod
    def get(self, card: RelayCard, channel: int) -> RelayState:
        """Read a channel without side effects."""

    @abc.abstractmethod
    def set(self, card: RelayCard, channel: int, state: RelayState) -> None:
        """Write a channel. Writing the current state is a successful no-op."""

    def detect(self, serial_filter: Optional[str] = None) -> Optional[RelayCard]:
        for card in self.enumerate():
            if matches_serial(card, serial_filter):
                return card
        return None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.card_type.value}>"


def matches_serial(card: RelayCard, serial_filter: Optional[str]) -> bool:
    if not serial_filter:
        return True
    return card.serial == serial_filter


def writable(state: RelayState) -> RelayState:
    if state not in (RelayState.ON, RelayState.OFF):
        raise ValueError(f"refusing to write {state.name} to hardware")
    return state
