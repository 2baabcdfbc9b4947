from .types import (
    MAX_NUM_RELAYS,
    PULSE_CODE,
    BackendIOError,
    CardType,
    ChannelOutOfRange,
    Command,
    CommandKind,
    MalformedRequest,
    NoDeviceFound,
    RelayCard,
    RelayError,
    RelayState,
    Result,
)
from .controller import RelayController
from .discovery import CardDiscovery
from .dispatcher import RequestDispatcher

__all__ = [
    "MAX_NUM_RELAYS",
    "PULSE_CODE",
    "BackendIOError",
    "CardType",
    "ChannelOutOfRange",
    "Command",
    "CommandKind",
    "MalformedRequest",
    "NoDeviceFound",
    "RelayCard",
    "RelayError",
    "RelayState",
    "Result",
    "RelayController",
    "CardDiscovery",
    "RequestDispatcher",
]
