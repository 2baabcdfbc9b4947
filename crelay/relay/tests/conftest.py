from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Tuple

import pytest

from crelay.relay.config_loader import RelayConfig
from crelay.relay.services.backends.simulator import SimulatedBackend
from crelay.relay.services.types import BackendIOError, CardType, RelayCard, RelayState


class RecordingBackend(SimulatedBackend):
    """Simulated card that logs every hardware call and can be told to fail."""

    def __init__(
        self,
        num_relays: int = 4,
        serial: str = "SIM01",
        card_type: CardType = CardType.SIMULATED,
        present: bool = True,
    ) -> None:
        super().__init__(num_relays=num_relays, serial=serial)
        self.card_type = card_type
        self.present = present
        self.calls: List[Tuple[Any, ...]] = []
        self.set_times: List[Tuple[float, int, RelayState]] = []
        self.sets_before_failure: Optional[int] = None
        self.fail_get = False
        self.fail_enumerate = False

    def enumerate(self):
        self.calls.append(("enumerate",))
        if self.fail_enumerate:
            raise BackendIOError("probe failed")
        if self.present:
            yield RelayCard(self.card_type, f"fake-{self.card_type.value}", self.serial, self.num_relays)

    def get(self, card: RelayCard, channel: int) -> RelayState:
        self.calls.append(("get", channel))
        if self.fail_get:
            raise BackendIOError("read failed")
        return super().get(card, channel)

    def set(self, card: RelayCard, channel: int, state: RelayState) -> None:
        self.calls.append(("set", channel, state))
        if self.sets_before_failure is not None:
            if self.sets_before_failure == 0:
                raise BackendIOError("write failed")
            self.sets_before_failure -= 1
        super().set(card, channel, state)
        self.set_times.append((time.monotonic(), channel, state))

    def force(self, channel: int, state: RelayState) -> None:
        self._states[channel] = state

    def state_of(self, channel: int) -> RelayState:
        return self._states[channel]

    def hardware_calls(self) -> List[Tuple[Any, ...]]:
        return [c for c in self.calls if c[0] in ("get", "set")]


class FakeSleep:
    """Stands in for time.sleep and snapshots the relay states while 'sleeping'."""

    def __init__(self, backend: Optional[RecordingBackend] = None) -> None:
        self.backend = backend
        self.durations: List[float] = []
        self.snapshots: List[Dict[int, RelayState]] = []

    def __call__(self, seconds: float) -> None:
        self.durations.append(seconds)
        if self.backend is not None:
            self.snapshots.append(dict(self.backend._states))


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def card(backend: RecordingBackend) -> RelayCard:
    found = backend.detect()
    assert found is not None
    backend.calls.clear()
    return found


@pytest.fixture
def fake_sleep(backend: RecordingBackend) -> FakeSleep:
    return FakeSleep(backend)


def make_config(**sections: Dict[str, Any]) -> RelayConfig:
    """Config with every real driver switched off unless a section says otherwise."""
    data: Dict[str, Any] = {
        "hid_relay": {"enabled": False},
        "lcus_serial": {"enabled": False},
        "simulator": {"enabled": False},
    }
    for name, values in sections.items():
        data.setdefault(name, {}).update(values)
    return RelayConfig.model_validate(data)


@pytest.fixture
def relay_cfg() -> RelayConfig:
    return make_config(server={"pulse_duration": 2})


@pytest.fixture
def config_factory():
    return make_config


@pytest.fixture
def backend_factory():
    return RecordingBackend


@pytest.fixture
def sleep_factory():
    return FakeSleep
