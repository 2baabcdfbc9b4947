"""Compiled-in relay card drivers.

`build_backends` returns them in probe priority order; discovery walks
that list and never branches on card type itself.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, List

from .base import RelayBackend, matches_serial
from .gpio_sysfs import GpioSysfsBackend
from .hid_relay import HidRelayBackend
from .lcus_serial import LcusSerialBackend
from .simulator import SimulatedBackend

if TYPE_CHECKING:  # pragma: no cover
    from ...config_loader import RelayConfig

__all__ = [
    "RelayBackend",
    "matches_serial",
    "GpioSysfsBackend",
    "HidRelayBackend",
    "LcusSerialBackend",
    "SimulatedBackend",
    "build_backends",
]


def build_backends(cfg: "RelayConfig") -> List[RelayBackend]:
    backends: List[RelayBackend] = []
    if cfg.hid_relay.enabled:
        backends.append(HidRelayBackend())
    if cfg.lcus_serial.enabled:
        lc = cfg.lcus_serial
        backends.append(LcusSerialBackend(num_relays=lc.num_relays, baudrate=lc.baudrate, timeout=lc.timeout, ports=lc.ports))
    pins = cfg.gpio.pin_list()
    if pins:
        backends.append(GpioSysfsBackend(pins, active_value=cfg.gpio.active_value, sysfs_root=cfg.gpio.sysfs_root))
    if cfg.simulator.enabled:
        backends.append(SimulatedBackend(num_relays=cfg.simulator.num_relays, serial=cfg.simulator.serial))
    return backends
