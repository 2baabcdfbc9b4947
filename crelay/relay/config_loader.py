from __future__ import annotations
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .services.types import MAX_NUM_RELAYS

_DEFAULT_CFG_PATH = Path(__file__).parent / "config" / "config.yml"
_SYSTEM_CFG_PATH = Path("/etc/crelay.yml")

DEFAULT_LABELS = [f"My appliance {i}" for i in range(1, MAX_NUM_RELAYS + 1)]


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class ServerSection(_Section):
    host: str = "0.0.0.0"
    port: int = Field(8000, ge=1, le=65535)
    pulse_duration: int = Field(1, gt=0)
    enable_log_api: bool = False


class LabelsSection(_Section):
    relay1: Optional[str] = None
    relay2: Optional[str] = None
    relay3: Optional[str] = None
    relay4: Optional[str] = None
    relay5: Optional[str] = None
    relay6: Optional[str] = None
    relay7: Optional[str] = None
    relay8: Optional[str] = None


class GpioPins(_Section):
    relay1: Optional[int] = Field(None, ge=0)
    relay2: Optional[int] = Field(None, ge=0)
    relay3: Optional[int] = Field(None, ge=0)
    relay4: Optional[int] = Field(None, ge=0)
    relay5: Optional[int] = Field(None, ge=0)
    relay6: Optional[int] = Field(None, ge=0)
    relay7: Optional[int] = Field(None, ge=0)
    relay8: Optional[int] = Field(None, ge=0)

    def assigned(self) -> Dict[int, int]:
        out: Dict[int, int] = {}
        for ch in range(1, MAX_NUM_RELAYS + 1):
            pin = getattr(self, f"relay{ch}")
            if pin is not None:
                out[ch] = pin
        return out


class GpioSection(_Section):
    num_relays: int = Field(MAX_NUM_RELAYS, ge=1, le=MAX_NUM_RELAYS)
    active_value: int = Field(1, ge=0, le=1)
    sysfs_root: str = "/sys/class/gpio"
    pins: GpioPins = GpioPins()

    @model_validator(mode="after")
    def _pins_cover_channels(self) -> "GpioSection":
        assigned = self.pins.assigned()
        if not assigned:
            return self
        missing = [ch for ch in range(1, self.num_relays + 1) if ch not in assigned]
        if missing:
            names = ", ".join(f"relay{ch}" for ch in missing)
            raise ValueError(f"gpio.num_relays is {self.num_relays} but no pin is assigned to {names}")
        return self

    def pin_list(self) -> List[int]:
        """Pins for channels 1..num_relays, empty when GPIO is not configured."""
        assigned = self.pins.assigned()
        if not assigned:
            return []
        return [assigned[ch] for ch in range(1, self.num_relays + 1)]


class LcusSerialSection(_Section):
    enabled: bool = True
    num_relays: int = Field(4, ge=1, le=MAX_NUM_RELAYS)
    baudrate: int = 9600
    timeout: float = Field(0.5, gt=0)
    ports: List[str] = []


class HidRelaySection(_Section):
    enabled: bool = True


class SimulatorSection(_Section):
    enabled: bool = False
    num_relays: int = Field(4, ge=1, le=MAX_NUM_RELAYS)
    serial: str = "SIM01"


class RelayConfig(_Section):
    """Process wide settings, built once before the server starts."""

    server: ServerSection = ServerSection()
    labels: LabelsSection = LabelsSection()
    gpio: GpioSection = GpioSection()
    lcus_serial: LcusSerialSection = LcusSerialSection()
    hid_relay: HidRelaySection = HidRelaySection()
    simulator: SimulatorSection = SimulatorSection()
    # Labels given on the daemon command line; they win over the file.
    label_overrides: List[str] = []

    @field_validator("label_overrides")
    @classmethod
    def _cap_overrides(cls, v: List[str]) -> List[str]:
        return list(v[:MAX_NUM_RELAYS])

    @property
    def pulse_duration(self) -> int:
        return self.server.pulse_duration

    def label(self, channel: int) -> str:
        idx = channel - 1
        if 0 <= idx < len(self.label_overrides):
            return self.label_overrides[idx]
        from_file = getattr(self.labels, f"relay{channel}", None) if 1 <= channel <= MAX_NUM_RELAYS else None
        if from_file is not None:
            return from_file
        if 0 <= idx < len(DEFAULT_LABELS):
            return DEFAULT_LABELS[idx]
        return f"Relay {channel}"

    def with_labels(self, labels: Sequence[str]) -> "RelayConfig":
        return self.model_copy(update={"label_overrides": list(labels)[:MAX_NUM_RELAYS]})


def _deep_update(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            base[k] = _deep_update(base[k], v)
        else:
            base[k] = v
    return base


def resolve_config_path(path: str | os.PathLike | None = None) -> Path:
    """Pick the config file.

    Priority:
    1. provided path
    2. CRELAY_CONFIG env var
    3. /etc/crelay.yml
    4. default config.yml in module
    """
    if path:
        return Path(path)
    env_path = os.getenv("CRELAY_CONFIG")
    if env_path:
        return Path(env_path)
    if _SYSTEM_CFG_PATH.exists():
        return _SYSTEM_CFG_PATH
    return _DEFAULT_CFG_PATH


def load_raw(path: str | os.PathLike | None = None) -> Dict[str, Any]:
    cfg_path = resolve_config_path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(f"config file not found: {cfg_path}")
    with open(cfg_path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"{cfg_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"{cfg_path}: top level must be a mapping of sections")

    env: Dict[str, Any] = {}
    host = os.getenv("CRELAY_HOST")
    if host:
        env.setdefault("server", {})["host"] = host
    port = os.getenv("CRELAY_PORT")
    if port:
        env.setdefault("server", {})["port"] = int(port)
    pulse = os.getenv("CRELAY_PULSE_DURATION")
    if pulse:
        env.setdefault("server", {})["pulse_duration"] = int(pulse)
    return _deep_update(data, env)


def load_config(path: str | os.PathLike | None = None, overrides: Optional[Dict[str, Any]] = None) -> RelayConfig:
    """Load and validate the relay config.

    Unknown sections or keys raise `pydantic.ValidationError` (a
    `ValueError`), so a typo in the file stops the daemon at start.
    """
    data = load_raw(path)
    if overrides:
        data = _deep_update(data, overrides)
    return RelayConfig.model_validate(data)
