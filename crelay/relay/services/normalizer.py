"""Turn CLI argument vectors and HTTP requests into a `Command`.

CLI grammar::

    -i                                 list every attached card
    [-s SERIAL] info                   describe the selected card
    [-s SERIAL] CHANNEL                query one relay
    [-s SERIAL] CHANNEL on|off         switch one relay

HTTP requests carry `pin`, `status` and `serial` as URL-encoded pairs,
in the query string for GET and in the body for POST. A request the
normalizer cannot turn into an action becomes a plain status query.
"""
from __future__ import annotations

from typing import Mapping, Optional, Sequence, Union
from urllib.parse import parse_qsl

from .types import PULSE_CODE, Command, MalformedRequest, RelayState

RELAY_KEY = "pin"
STATE_KEY = "status"
SERIAL_KEY = "serial"

_CLI_STATES = {"on": RelayState.ON, "off": RelayState.OFF}


def parse_argv(argv: Sequence[str]) -> Command:
    args = list(argv)
    if args == ["-i"]:
        return Command.list_cards()

    serial: Optional[str] = None
    if args and args[0] == "-s":
        if len(args) < 2 or not args[1]:
            raise MalformedRequest("-s needs a serial number")
        serial = args[1]
        args = args[2:]

    if args == ["info"]:
        return Command.info(serial)
    if len(args) not in (1, 2):
        raise MalformedRequest("expected a relay number and an optional state")

    channel = _cli_channel(args[0])
    if len(args) == 1:
        return Command.query(channel, serial)
    state = _CLI_STATES.get(args[1].lower())
    if state is None:
        raise MalformedRequest(f"unknown relay state {args[1]!r}, use on or off")
    return Command.set_state(channel, state, serial)


def _cli_channel(token: str) -> int:
    try:
        return int(token)
    except ValueError:
        raise MalformedRequest(f"relay number expected, got {token!r}") from None


def decode_form(data: Union[str, bytes]) -> Mapping[str, str]:
    """URL-form decode; for repeated keys the first occurrence wins."""
    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")
    out: dict[str, str] = {}
    for key, value in parse_qsl(data, keep_blank_values=True):
        out.setdefault(key, value)
    return out


def parse_http(method: str, query_string: Union[str, bytes] = "", body: Union[str, bytes] = b"") -> Command:
    """Map one HTTP request onto a command.

    Missing keys leave their field unset. Channel 0 or a non-number means
    no channel. Status 0/1 switch the relay, PULSE_CODE pulses it, any
    other value (or none) only reads the state table.
    """
    if method.upper() == "POST":
        fields = decode_form(body)
    else:
        fields = decode_form(query_string)

    serial = fields.get(SERIAL_KEY) or None
    channel = _int_or_none(fields.get(RELAY_KEY))
    if channel == 0:
        channel = None
    status = _int_or_none(fields.get(STATE_KEY))

    if channel is None or status is None:
        return Command.query(serial=serial)
    if status == PULSE_CODE:
        return Command.pulse(channel, serial)
    if status in (RelayState.OFF, RelayState.ON):
        return Command.set_state(channel, RelayState(status), serial)
    return Command.query(serial=serial)


def _int_or_none(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None
