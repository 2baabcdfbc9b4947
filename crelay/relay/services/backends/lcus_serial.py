from __future__ import annotations

import logging
import re
import time
from typing import Any, Callable, Dict, Iterator, List, Optional

import serial  # type: ignore
import serial.tools.list_ports  # type: ignore

from ..types import BackendIOError, CardType, RelayCard, RelayState
from .base import RelayBackend, writable

logger = logging.getLogger("relay.backends.lcus")

CH340_VID = 0x1A86
CH340_PID = 0x7523

_HEADER = 0xA0
_ALL_CHANNELS = 0x0F
_QUERY = 0x02
_STATUS_RE = re.compile(r"CH(\d+):\s*(ON|OFF)")


def build_frame(channel: int, op: int) -> bytes:
    """Four byte LCUS frame: header, channel, op, 8-bit sum."""
    return bytes([_HEADER, channel & 0xFF, op & 0xFF, (_HEADER + channel + op) & 0xFF])


def decode_status(response: bytes) -> Dict[int, RelayState]:
    """Parse ASCII status replies like b"CH1:OFF\\r\\nCH2:ON\\r\\n"."""
    text = response.decode("ascii", errors="ignore")
    return {int(ch): RelayState.ON if v == "ON" else RelayState.OFF for ch, v in _STATUS_RE.findall(text)}


class SerialTransport:
    """Thin wrapper around pyserial for dependency injection in tests."""

    def __init__(self, port: str, baudrate: int, timeout: float, settle: float = 0.05) -> None:
        self.settle = settle
        try:
            self._ser = serial.Serial(port=port, baudrate=baudrate, timeout=timeout, write_timeout=timeout)
        except (serial.SerialException, OSError) as exc:
            raise BackendIOError(f"cannot open serial port {port}: {exc}") from exc

    def transact(self, payload: bytes, read_response: bool = False) -> bytes:
        try:
            self._ser.reset_input_buffer()
            self._ser.write(payload)
            self._ser.flush()
            if not read_response:
                return b""
            time.sleep(self.settle)
            n = self._ser.in_waiting
            return self._ser.read(n if n else 128)
        except (serial.SerialException, OSError) as exc:
            raise BackendIOError(f"serial I/O failed on {self._ser.port}: {exc}") from exc

    def close(self) -> None:
        try:
            self._ser.close()
        except (serial.SerialException, OSError):
            logger.debug("closing %s failed", self._ser.port, exc_info=True)

    def __enter__(self) -> "SerialTransport":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


class LcusSerialBackend(RelayBackend):
    """CH340 based USB relay boards speaking the LCUS frame protocol.

    Candidate ports come from the config, or from every CH340 the OS
    reports. A port only counts as a card when it answers the status
    query.
    """

    card_type = CardType.LCUS_SERIAL

    def __init__(
        self,
        num_relays: int = 4,
        baudrate: int = 9600,
        timeout: float = 0.5,
        ports: Optional[List[str]] = None,
        transport_factory: Optional[Callable[..., Any]] = None,
        port_lister: Optional[Callable[[], List[Any]]] = None,
    ) -> None:
        self.num_relays = num_relays
        self.baudrate = baudrate
        self.timeout = timeout
        self.ports = list(ports or [])
        self.transport_factory = transport_factory or (lambda port, baudrate, timeout: SerialTransport(port, baudrate, timeout))
        self.port_lister = port_lister or serial.tools.list_ports.comports

    def enumerate(self) -> Iterator[RelayCard]:
        for device, serial_number in self._candidates():
            try:
                states = self._read_status(device)
            except BackendIOError as exc:
                logger.debug("no LCUS card on %s: %s", device, exc)
                continue
            if not states:
                logger.debug("no LCUS status reply on %s", device)
                continue
            yield RelayCard(self.card_type, device, serial_number, self.num_relays)

    def get(self, card: RelayCard, channel: int) -> RelayState:
        states = self._read_status(card.port)
        if channel not in states:
            raise BackendIOError(f"no status for relay {channel} from {card.port}")
        return states[channel]

    def set(self, card: RelayCard, channel: int, state: RelayState) -> None:
        state = writable(state)
        with self._open(card.port) as t:
            t.transact(build_frame(channel, int(state)))
        logger.debug("lcus relay %d on %s -> %s", channel, card.port, state.name)

    def _candidates(self) -> List[tuple[str, Optional[str]]]:
        if self.ports:
            return [(p, None) for p in self.ports]
        try:
            listed = list(self.port_lister())
        except OSError as exc:
            raise BackendIOError(f"cannot list serial ports: {exc}") from exc
        out = []
        for info in listed:
            if info.vid == CH340_VID and info.pid == CH340_PID:
                out.append((info.device, info.serial_number or None))
        return out

    def _open(self, port: str):
        return self.transport_factory(port, self.baudrate, self.timeout)

    def _read_status(self, port: str) -> Dict[int, RelayState]:
        with self._open(port) as t:
            return decode_status(t.transact(build_frame(_ALL_CHANNELS, _QUERY), read_response=True))
