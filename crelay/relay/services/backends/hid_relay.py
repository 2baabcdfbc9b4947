from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, Iterator, List, Optional

from ..types import MAX_NUM_RELAYS, BackendIOError, CardType, RelayCard, RelayState
from .base import RelayBackend, writable

try:
    import hid  # type: ignore
except Exception:  # pragma: no cover
    hid = None  # hidapi optional on hosts without libusb

logger = logging.getLogger("relay.backends.hid")

USB_RELAY_VID = 0x16C0
USB_RELAY_PID = 0x05DF

_REPORT_LEN = 9
_CMD_ON = 0xFF
_CMD_OFF = 0xFD
_PRODUCT_RE = re.compile(r"USBRelay(\d)")


class HidDevice:
    """Opens one HID relay by path; closed again on context exit."""

    def __init__(self, path: bytes) -> None:
        if hid is None:
            raise BackendIOError("hidapi not installed")
        self.path = path
        self._dev = hid.device()
        try:
            self._dev.open_path(path)
        except OSError as exc:
            raise BackendIOError(f"cannot open HID relay {path!r}: {exc}") from exc

    def read_report(self) -> List[int]:
        try:
            data = self._dev.get_feature_report(1, _REPORT_LEN)
        except (OSError, ValueError) as exc:
            raise BackendIOError(f"feature report read failed on {self.path!r}: {exc}") from exc
        if len(data) < 8:
            raise BackendIOError(f"short feature report from {self.path!r}")
        return list(data)

    def write_report(self, report: List[int]) -> None:
        try:
            written = self._dev.send_feature_report(report)
        except (OSError, ValueError) as exc:
            raise BackendIOError(f"feature report write failed on {self.path!r}: {exc}") from exc
        if written is not None and written < 0:
            raise BackendIOError(f"feature report write refused by {self.path!r}")

    def close(self) -> None:
        self._dev.close()

    def __enter__(self) -> "HidDevice":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


def relay_count_from_product(product: Optional[str]) -> int:
    m = _PRODUCT_RE.search(product or "")
    if not m:
        return 2
    return max(1, min(MAX_NUM_RELAYS, int(m.group(1))))


def serial_from_report(report: List[int]) -> str:
    return bytes(report[0:5]).split(b"\x00", 1)[0].decode("ascii", errors="replace")


class HidRelayBackend(RelayBackend):
    """USB-HID relay boards (16c0:05df, product string `USBRelayN`)."""

    card_type = CardType.HID_RELAY

    def __init__(
        self,
        device_factory: Optional[Callable[[bytes], Any]] = None,
        enumerator: Optional[Callable[[int, int], List[Dict[str, Any]]]] = None,
    ) -> None:
        self.device_factory = device_factory or HidDevice
        if enumerator is None and hid is not None:
            enumerator = hid.enumerate
        self.enumerator = enumerator

    def enumerate(self) -> Iterator[RelayCard]:
        if self.enumerator is None:
            logger.debug("hidapi not available, skipping HID relays")
            return
        try:
            found = list(self.enumerator(USB_RELAY_VID, USB_RELAY_PID))
        except OSError as exc:
            raise BackendIOError(f"HID enumeration failed: {exc}") from exc
        for info in found:
            path = info["path"]
            try:
                with self.device_factory(path) as dev:
                    serial = serial_from_report(dev.read_report())
            except BackendIOError as exc:
                logger.debug("skipping HID relay %r: %s", path, exc)
                continue
            count = relay_count_from_product(info.get("product_string"))
            yield RelayCard(self.card_type, _port_name(path), serial, count)

    def get(self, card: RelayCard, channel: int) -> RelayState:
        with self.device_factory(_port_bytes(card.port)) as dev:
            mask = dev.read_report()[7]
        return RelayState.ON if mask & (1 << (channel - 1)) else RelayState.OFF

    def set(self, card: RelayCard, channel: int, state: RelayState) -> None:
        state = writable(state)
        cmd = _CMD_ON if state is RelayState.ON else _CMD_OFF
        report = [0x00, cmd, channel] + [0x00] * (_REPORT_LEN - 3)
        with self.device_factory(_port_bytes(card.port)) as dev:
            dev.write_report(report)
        logger.debug("hid relay %d on %s -> %s", channel, card.port, state.name)


def _port_name(path: Any) -> str:
    if isinstance(path, bytes):
        return path.decode("utf-8", errors="replace")
    return str(path)


def _port_bytes(port: str) -> bytes:
    return port.encode("utf-8")
