from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, List

from ..types import BackendIOError, CardType, RelayCard, RelayState
from .base import RelayBackend, writable

logger = logging.getLogger("relay.backends.gpio")


class GpioSysfsBackend(RelayBackend):
    """Relays wired to GPIO pins, driven through the sysfs GPIO interface.

    Channel N uses the N-th configured pin. `active_value` is the pin
    level that closes the relay, so active-low boards use 0.
    """

    card_type = CardType.GPIO

    def __init__(self, pins: List[int], active_value: int = 1, sysfs_root: str = "/sys/class/gpio") -> None:
        self.pins = list(pins)
        self.active_value = 1 if active_value else 0
        self.root = Path(sysfs_root)

    def enumerate(self) -> Iterator[RelayCard]:
        if not self.pins or not self.root.is_dir():
            return
        for pin in self.pins:
            self._prepare(pin)
        yield RelayCard(self.card_type, str(self.root), None, len(self.pins))

    def get(self, card: RelayCard, channel: int) -> RelayState:
        raw = self._read(self._pin_dir(channel) / "value")
        try:
            level = int(raw)
        except ValueError as exc:
            raise BackendIOError(f"unexpected value {raw!r} for relay {channel}") from exc
        return RelayState.ON if level == self.active_value else RelayState.OFF

    def set(self, card: RelayCard, channel: int, state: RelayState) -> None:
        state = writable(state)
        level = self.active_value if state is RelayState.ON else 1 - self.active_value
        self._write(self._pin_dir(channel) / "value", str(level))
        logger.debug("gpio relay %d (pin %d) -> %d", channel, self.pins[channel - 1], level)

    # -------- sysfs helpers --------
    def _pin_dir(self, channel: int) -> Path:
        return self.root / f"gpio{self.pins[channel - 1]}"

    def _prepare(self, pin: int) -> None:
        pin_dir = self.root / f"gpio{pin}"
        if not pin_dir.exists():
            self._write(self.root / "export", str(pin))
            if not pin_dir.exists():
                raise BackendIOError(f"gpio{pin} did not appear after export")
        direction = self._read(pin_dir / "direction")
        if direction != "out":
            # "low"/"high" switch to output with a defined level, plain "out" would drive 0
            inactive = "low" if self.active_value == 1 else "high"
            self._write(pin_dir / "direction", inactive)

    @staticmethod
    def _read(path: Path) -> str:
        try:
            with open(path, "r", encoding="ascii") as f:
                return f.read().strip()
        except OSError as exc:
            raise BackendIOError(f"cannot read {path}: {exc}") from exc

    @staticmethod
    def _write(path: Path, value: str) -> None:
        try:
            with open(path, "w", encoding="ascii") as f:
                f.write(value)
        except OSError as exc:
            raise BackendIOError(f"cannot write {path}: {exc}") from exc
