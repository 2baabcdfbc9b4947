from __future__ import annotations

import time

import pytest

from crelay.relay.services.controller import RelayController
from crelay.relay.services.types import BackendIOError, RelayState


@pytest.mark.parametrize("target", [RelayState.ON, RelayState.OFF])
def test_apply_reads_back_what_was_written(backend, card, target):
    ctl = RelayController([backend])
    for ch in card.channels():
        assert ctl.apply(card, ch, target) is target
        assert ctl.query(card, ch) is target


def test_apply_current_state_is_a_successful_noop(backend, card):
    backend.force(3, RelayState.ON)
    ctl = RelayController([backend])
    assert ctl.apply(card, 3, RelayState.ON) is RelayState.ON
    assert backend.state_of(3) is RelayState.ON


def test_apply_confirms_with_a_read(backend, card):
    RelayController([backend]).apply(card, 1, RelayState.ON)
    assert backend.hardware_calls() == [("set", 1, RelayState.ON), ("get", 1)]


def test_apply_refuses_invalid(backend, card):
    with pytest.raises(ValueError):
        RelayController([backend]).apply(card, 1, RelayState.INVALID)
    assert backend.hardware_calls() == []


def test_query_propagates_backend_errors(backend, card):
    backend.fail_get = True
    with pytest.raises(BackendIOError):
        RelayController([backend]).query(card, 1)


def test_pulse_from_on_goes_off_and_back(backend, card, fake_sleep):
    backend.force(1, RelayState.ON)
    ctl = RelayController([backend], sleep=fake_sleep)
    assert ctl.pulse(card, 1, 2) is RelayState.ON
    assert fake_sleep.durations == [2]
    assert fake_sleep.snapshots[0][1] is RelayState.OFF
    sets = [c for c in backend.calls if c[0] == "set"]
    assert sets == [("set", 1, RelayState.OFF), ("set", 1, RelayState.ON)]


def test_pulse_from_off_goes_on_and_back(backend, card, fake_sleep):
    ctl = RelayController([backend], sleep=fake_sleep)
    assert ctl.pulse(card, 2, 1) is RelayState.OFF
    assert fake_sleep.snapshots[0][2] is RelayState.ON
    assert backend.state_of(2) is RelayState.OFF


def test_pulse_first_write_failure_skips_the_rest(backend, card, fake_sleep):
    backend.sets_before_failure = 0
    ctl = RelayController([backend], sleep=fake_sleep)
    with pytest.raises(BackendIOError):
        ctl.pulse(card, 1, 1)
    assert fake_sleep.durations == []
    assert [c for c in backend.calls if c[0] == "set"] == [("set", 1, RelayState.ON)]


def test_pulse_second_write_failure_leaves_channel_inverted(backend, card, fake_sleep):
    backend.sets_before_failure = 1
    ctl = RelayController([backend], sleep=fake_sleep)
    with pytest.raises(BackendIOError):
        ctl.pulse(card, 4, 1)
    assert backend.state_of(4) is RelayState.ON


def test_pulse_blocks_for_the_whole_duration(backend, card):
    backend.force(1, RelayState.ON)
    ctl = RelayController([backend])
    start = time.monotonic()
    assert ctl.pulse(card, 1, 1) is RelayState.ON
    assert time.monotonic() - start >= 1
    (t_off, _, s_off), (t_on, _, s_on) = backend.set_times
    assert (s_off, s_on) == (RelayState.OFF, RelayState.ON)
    assert t_on - t_off >= 1
