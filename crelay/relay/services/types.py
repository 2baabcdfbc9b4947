"""Core value types shared by discovery, controller, normalizer and dispatcher."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Dict, List, Optional

MAX_NUM_RELAYS = 8
FIRST_RELAY = 1

# Wire value of the `status` key that requests a pulse instead of a state.
PULSE_CODE = 2


class CardType(Enum):
    LCUS_SERIAL = "lcus_serial"
    HID_RELAY = "hid_relay"
    GPIO = "gpio"
    SIMULATED = "simulator"

    @property
    def display_name(self) -> str:
        return _CARD_NAMES[self]


_CARD_NAMES: Dict[CardType, str] = {
    CardType.LCUS_SERIAL: "LCUS CH340 USB serial relay card",
    CardType.HID_RELAY: "HID API compatible relay card",
    CardType.GPIO: "Generic GPIO relays",
    CardType.SIMULATED: "Simulated relay card",
}


class RelayState(IntEnum):
    OFF = 0
    ON = 1
    INVALID = 3  # sentinel, never written to hardware

    def inverted(self) -> "RelayState":
        if self is RelayState.ON:
            return RelayState.OFF
        return RelayState.ON


class RelayError(Exception):
    """Base class for request level failures."""


class NoDeviceFound(RelayError):
    def __init__(self, serial: Optional[str] = None) -> None:
        self.serial = serial
        if serial:
            msg = f"No compatible device detected with serial {serial}"
        else:
            msg = "No compatible device detected"
        super().__init__(msg)


class ChannelOutOfRange(RelayError):
    def __init__(self, channel: int, relay_count: int) -> None:
        self.channel = channel
        self.relay_count = relay_count
        super().__init__(f"Relay {channel} out of range (card has relays {FIRST_RELAY}..{relay_count})")


class BackendIOError(RelayError):
    pass


class MalformedRequest(RelayError):
    pass


@dataclass(frozen=True)
class RelayCard:
    card_type: CardType
    port: str
    serial: Optional[str]
    relay_count: int

    def __post_init__(self) -> None:
        if not FIRST_RELAY <= self.relay_count <= MAX_NUM_RELAYS:
            raise ValueError(f"relay_count must be {FIRST_RELAY}..{MAX_NUM_RELAYS}, got {self.relay_count}")

    @property
    def name(self) -> str:
        return self.card_type.display_name

    def channels(self) -> range:
        return range(FIRST_RELAY, self.relay_count + 1)

    def has_channel(self, channel: int) -> bool:
        return FIRST_RELAY <= channel <= self.relay_count


class CommandKind(Enum):
    LIST_CARDS = "list_cards"
    INFO = "info"
    QUERY = "query"
    SET_STATE = "set_state"
    PULSE = "pulse"


@dataclass(frozen=True)
class Command:
    """One normalized request.

    QUERY without a channel asks for the full state table only; that is
    what an HTTP request without a usable action degrades to.
    """

    kind: CommandKind
    channel: Optional[int] = None
    state: Optional[RelayState] = None
    serial: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind is CommandKind.SET_STATE:
            if self.state not in (RelayState.ON, RelayState.OFF):
                raise ValueError("SET_STATE needs ON or OFF")
        elif self.state is not None:
            raise ValueError(f"{self.kind.name} does not carry a state")
        if self.kind in (CommandKind.SET_STATE, CommandKind.PULSE) and self.channel is None:
            raise ValueError(f"{self.kind.name} needs a channel")
        if self.kind in (CommandKind.LIST_CARDS, CommandKind.INFO) and self.channel is not None:
            raise ValueError(f"{self.kind.name} does not carry a channel")

    @classmethod
    def list_cards(cls, serial: Optional[str] = None) -> "Command":
        return cls(CommandKind.LIST_CARDS, serial=serial)

    @classmethod
    def info(cls, serial: Optional[str] = None) -> "Command":
        return cls(CommandKind.INFO, serial=serial)

    @classmethod
    def query(cls, channel: Optional[int] = None, serial: Optional[str] = None) -> "Command":
        return cls(CommandKind.QUERY, channel=channel, serial=serial)

    @classmethod
    def set_state(cls, channel: int, state: RelayState, serial: Optional[str] = None) -> "Command":
        return cls(CommandKind.SET_STATE, channel=channel, state=state, serial=serial)

    @classmethod
    def pulse(cls, channel: int, serial: Optional[str] = None) -> "Command":
        return cls(CommandKind.PULSE, channel=channel, serial=serial)

    @property
    def is_action(self) -> bool:
        return self.kind in (CommandKind.SET_STATE, CommandKind.PULSE)


@dataclass
class Result:
    command: Command
    card: Optional[RelayCard] = None
    states: Dict[int, RelayState] = field(default_factory=dict)
    cards: List[RelayCard] = field(default_factory=list)
    error: Optional[RelayError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, command: Command, error: RelayError, card: Optional[RelayCard] = None) -> "Result":
        return cls(command=command, card=card, error=error)
