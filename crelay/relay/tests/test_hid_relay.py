from __future__ import annotations

from typing import Dict, List

import pytest

from crelay.relay.services.backends import HidRelayBackend
from crelay.relay.services.backends import hid_relay
from crelay.relay.services.backends.hid_relay import (
    USB_RELAY_PID,
    USB_RELAY_VID,
    relay_count_from_product,
    serial_from_report,
)
from crelay.relay.services.discovery import CardDiscovery
from crelay.relay.services.types import BackendIOError, CardType, RelayState


class FakeRelayBoard:
    def __init__(self, serial: bytes = b"QWERT", broken: bool = False) -> None:
        self.serial = serial
        self.broken = broken
        self.mask = 0
        self.writes: List[List[int]] = []
        self.opened = 0
        self.closed = 0


class FakeDevice:
    def __init__(self, board: FakeRelayBoard) -> None:
        self.board = board
        board.opened += 1

    def read_report(self) -> List[int]:
        if self.board.broken:
            raise BackendIOError("read failed")
        return list(self.board.serial.ljust(7, b"\x00")) + [self.board.mask, 0]

    def write_report(self, report: List[int]) -> None:
        self.board.writes.append(report)
        bit = 1 << (report[2] - 1)
        if report[1] == 0xFF:
            self.board.mask |= bit
        else:
            self.board.mask &= ~bit

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.board.closed += 1


def _backend(boards: Dict[bytes, FakeRelayBoard], products: Dict[bytes, str]) -> HidRelayBackend:
    def enumerator(vid: int, pid: int):
        assert (vid, pid) == (USB_RELAY_VID, USB_RELAY_PID)
        return [{"path": p, "product_string": products.get(p)} for p in boards]

    return HidRelayBackend(device_factory=lambda path: FakeDevice(boards[path]), enumerator=enumerator)


def test_product_string_gives_relay_count():
    assert relay_count_from_product("USBRelay4") == 4
    assert relay_count_from_product("USBRelay8") == 8
    assert relay_count_from_product(None) == 2
    assert relay_count_from_product("Something") == 2


def test_serial_from_report():
    assert serial_from_report(list(b"ABCDE\x00\x00") + [3, 0]) == "ABCDE"
    assert serial_from_report(list(b"AB\x00\x00\x00\x00\x00") + [0, 0]) == "AB"


def test_enumerate_reads_serial_and_releases_device():
    board = FakeRelayBoard()
    backend = _backend({b"1-1:1.0": board}, {b"1-1:1.0": "USBRelay4"})
    (card,) = list(backend.enumerate())
    assert card.card_type is CardType.HID_RELAY
    assert card.serial == "QWERT"
    assert card.port == "1-1:1.0"
    assert card.relay_count == 4
    assert board.opened == board.closed == 1


def test_unreadable_board_is_skipped():
    boards = {b"a": FakeRelayBoard(broken=True), b"b": FakeRelayBoard(serial=b"ZZZZZ")}
    backend = _backend(boards, {})
    assert [c.serial for c in backend.enumerate()] == ["ZZZZZ"]


def test_select_by_serial():
    boards = {b"a": FakeRelayBoard(serial=b"AAAAA"), b"b": FakeRelayBoard(serial=b"BBBBB")}
    backend = _backend(boards, {b"a": "USBRelay2", b"b": "USBRelay2"})
    card = backend.detect("BBBBB")
    assert card is not None and card.port == "b"


def test_set_and_get_use_the_bitmask():
    board = FakeRelayBoard()
    backend = _backend({b"p": board}, {b"p": "USBRelay2"})
    card = backend.detect()
    backend.set(card, 2, RelayState.ON)
    assert board.writes[-1] == [0x00, 0xFF, 2, 0, 0, 0, 0, 0, 0]
    assert board.mask == 0b10
    assert backend.get(card, 2) is RelayState.ON
    assert backend.get(card, 1) is RelayState.OFF
    backend.set(card, 2, RelayState.OFF)
    assert board.writes[-1][1] == 0xFD
    assert backend.get(card, 2) is RelayState.OFF
    assert board.opened == board.closed


def test_without_hidapi_nothing_is_found(monkeypatch):
    monkeypatch.setattr(hid_relay, "hid", None)
    backend = HidRelayBackend()
    assert backend.detect() is None
    with pytest.raises(BackendIOError):
        hid_relay.HidDevice(b"any")


def test_enumeration_os_error_is_a_backend_error():
    def enumerator(vid, pid):
        raise OSError("libusb busy")

    backend = HidRelayBackend(device_factory=lambda path: None, enumerator=enumerator)
    with pytest.raises(BackendIOError):
        backend.detect()


def test_discovery_moves_past_a_failing_hid_listing(backend_factory):
    def enumerator(vid, pid):
        raise OSError("libusb busy")

    hid_backend = HidRelayBackend(device_factory=lambda path: None, enumerator=enumerator)
    sim = backend_factory()
    discovery = CardDiscovery([hid_backend, sim])
    assert discovery.detect_first().card_type is CardType.SIMULATED
    assert [c.card_type for c in discovery.detect_all()] == [CardType.SIMULATED]
