from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from crelay.relay.config_loader import load_config, resolve_config_path
from crelay.relay.services.backends import (
    GpioSysfsBackend,
    HidRelayBackend,
    LcusSerialBackend,
    SimulatedBackend,
    build_backends,
)

DEFAULT_CFG = Path(__file__).resolve().parents[1] / "config" / "config.yml"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("CRELAY_CONFIG", "CRELAY_HOST", "CRELAY_PORT", "CRELAY_PULSE_DURATION"):
        monkeypatch.delenv(name, raising=False)


def _write(tmp_path, data) -> Path:
    path = tmp_path / "crelay.yml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


def test_bundled_defaults():
    cfg = load_config(DEFAULT_CFG)
    assert cfg.server.port == 8000
    assert cfg.pulse_duration == 1
    assert cfg.gpio.pin_list() == []
    assert cfg.simulator.enabled is False
    assert [cfg.label(ch) for ch in (1, 8)] == ["My appliance 1", "My appliance 8"]


def test_empty_file_means_defaults(tmp_path):
    path = tmp_path / "empty.yml"
    path.write_text("", encoding="utf-8")
    cfg = load_config(path)
    assert cfg.server.host == "0.0.0.0"
    assert cfg.label(2) == "My appliance 2"


def test_unknown_section_rejected(tmp_path):
    with pytest.raises(ValueError):
        load_config(_write(tmp_path, {"relays": {"x": 1}}))


def test_unknown_key_rejected(tmp_path):
    with pytest.raises(ValueError):
        load_config(_write(tmp_path, {"server": {"pulse_time": 3}}))


@pytest.mark.parametrize("value", [0, -1])
def test_pulse_duration_must_be_positive(tmp_path, value):
    with pytest.raises(ValueError):
        load_config(_write(tmp_path, {"server": {"pulse_duration": value}}))


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yml")


def test_non_mapping_file(tmp_path):
    path = tmp_path / "list.yml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)


def test_gpio_pins_for_every_relay(tmp_path):
    cfg = load_config(_write(tmp_path, {"gpio": {"num_relays": 3, "pins": {"relay1": 17, "relay2": 18, "relay3": 27}}}))
    assert cfg.gpio.pin_list() == [17, 18, 27]


def test_gpio_missing_pin_names_the_relay(tmp_path):
    data = {"gpio": {"num_relays": 4, "pins": {"relay1": 17, "relay2": 18, "relay3": 27}}}
    with pytest.raises(ValueError, match="relay4"):
        load_config(_write(tmp_path, data))


def test_gpio_gap_is_rejected(tmp_path):
    data = {"gpio": {"num_relays": 3, "pins": {"relay1": 17, "relay3": 27}}}
    with pytest.raises(ValueError, match="relay2"):
        load_config(_write(tmp_path, data))


def test_label_precedence(tmp_path):
    cfg = load_config(_write(tmp_path, {"labels": {"relay1": "Lamp", "relay2": "Fan"}}))
    cfg = cfg.with_labels(["Heater"])
    assert cfg.label(1) == "Heater"
    assert cfg.label(2) == "Fan"
    assert cfg.label(3) == "My appliance 3"


def test_env_overrides(tmp_path, monkeypatch):
    path = _write(tmp_path, {"server": {"port": 9000}})
    monkeypatch.setenv("CRELAY_PORT", "8080")
    monkeypatch.setenv("CRELAY_PULSE_DURATION", "3")
    cfg = load_config(path)
    assert cfg.server.port == 8080
    assert cfg.pulse_duration == 3


def test_config_path_from_env(tmp_path, monkeypatch):
    path = _write(tmp_path, {})
    monkeypatch.setenv("CRELAY_CONFIG", str(path))
    assert resolve_config_path() == path
    assert resolve_config_path(DEFAULT_CFG) == DEFAULT_CFG


def test_programmatic_overrides_win(tmp_path):
    cfg = load_config(_write(tmp_path, {"server": {"port": 9000}}), overrides={"server": {"port": 9100}})
    assert cfg.server.port == 9100


def test_backends_follow_probe_priority(tmp_path):
    data = {
        "gpio": {"num_relays": 2, "pins": {"relay1": 5, "relay2": 6}},
        "simulator": {"enabled": True},
    }
    backends = build_backends(load_config(_write(tmp_path, data)))
    assert [type(b) for b in backends] == [HidRelayBackend, LcusSerialBackend, GpioSysfsBackend, SimulatedBackend]


def test_disabled_backends_are_left_out(config_factory):
    assert build_backends(config_factory()) == []


def test_yaml_syntax_error_is_a_value_error(tmp_path):
    path = tmp_path / "broken.yml"
    path.write_text("server: [1, 2\n", encoding="utf-8")
    with pytest.raises(ValueError, match="broken.yml"):
        load_config(path)
