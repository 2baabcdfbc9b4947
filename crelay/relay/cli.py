from __future__ import annotations
import logging
import os
import sys
from typing import List, Optional, Sequence

from . import __version__
from .config_loader import RelayConfig, load_config
from .services.normalizer import parse_argv
from .services.types import (
    MAX_NUM_RELAYS,
    CardType,
    CommandKind,
    MalformedRequest,
    NoDeviceFound,
    RelayCard,
    RelayState,
    Result,
)

logger = logging.getLogger("relay.cli")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def usage() -> str:
    cards = "\n".join(f"  - {t.display_name}" for t in CardType)
    return f"""crelay, version {__version__}

This utility provides a unified way of controlling different types of relay cards.
Supported relay cards:
{cards}

The program can be run in interactive (command line) mode or in daemon mode with
built-in web server.

Interactive mode:
    crelay -i | [-s <serial number>] info | [-s <serial number>] <relay number> [ON|OFF]

       -i print information about every detected relay card
       info list every detected relay card, then the selected card and the
            state of all its relays

       The state of any relay can be read or it can be changed to a new state.
       If only the relay number is provided then the current state is returned,
       otherwise the relay state is set to the new value provided as second parameter.
       The first compatible device found will be used, unless -s and a serial
       number is passed.

Daemon mode:
    crelay -d|-D [<relay1_label> [<relay2_label> [...]]]

       -d use daemon mode, run in foreground
       -D use daemon mode; detaching is left to the service manager

       In daemon mode the built-in web server will be started and the relays
       can be controlled via a web browser or the HTTP API at /gpio.
       The config file is taken from $CRELAY_CONFIG, /etc/crelay.yml or the
       bundled default. Labels given on the command line replace the
       configured ones, in relay order.
"""


def main(argv: Optional[List[str]] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv or argv[0] in ("-h", "--help"):
        print(usage())
        return EXIT_OK
    if argv[0] in ("-d", "-D"):
        return run_daemon(argv[0], argv[1:])
    return run_interactive(argv)


def run_interactive(argv: List[str]) -> int:
    from crelay.logwrapper import init_logging
    from .xRelayService import build_dispatcher

    init_logging({"console_level": "WARNING", "enable_file": False})
    try:
        command = parse_argv(argv)
    except MalformedRequest as exc:
        print(f"crelay: {exc}\n", file=sys.stderr)
        print(usage())
        return EXIT_USAGE
    try:
        cfg = load_config()
    except (OSError, ValueError) as exc:
        print(f"crelay: cannot load config: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    result = build_dispatcher(cfg).dispatch(command)
    return report(result)


def report(result: Result) -> int:
    command = result.command
    if isinstance(result.error, NoDeviceFound):
        if command.kind is CommandKind.LIST_CARDS:
            print("No compatible device detected.")
        else:
            print("** No compatible device detected **")
            _permission_hint()
        return EXIT_FAILURE
    if result.error is not None:
        print(f"ERROR: {result.error}", file=sys.stderr)
        return EXIT_FAILURE

    if command.kind is CommandKind.LIST_CARDS:
        _print_cards(result.cards)
    elif command.kind is CommandKind.INFO:
        card = result.card
        assert card is not None
        _print_cards(result.cards)
        print("\nSelected card:")
        print(card.name)
        print(f"  port:   {card.port}")
        print(f"  serial: {card.serial or '-'}")
        print(f"  relays: {card.relay_count}")
        for ch, state in result.states.items():
            print(f"  Relay {ch}: {_word(state)}")
    elif command.channel is not None:
        print(f"Relay {command.channel} is {_word(result.states[command.channel])}")
    return EXIT_OK


def _print_cards(cards: Sequence[RelayCard]) -> None:
    print("\nDetected relay cards:")
    for i, card in enumerate(cards, start=1):
        print(f"  #{i}\t{card.name} (serial {card.serial or '-'})")


def _word(state: RelayState) -> str:
    return "on" if state is RelayState.ON else "off"


def _permission_hint() -> None:
    if hasattr(os, "geteuid") and os.geteuid() != 0:
        print("You might not have permissions to use the wanted device.")
        print("If the device is connected, check what group the device belongs to.")
        print('You may find the device group with "ls -al /dev/<device node name>"')
        print('You can add a group to a user with "usermod -a -G <group name> <user name>"')


def run_daemon(flag: str, labels: List[str]) -> int:
    from crelay.logwrapper import init_logging
    from .xRelayService import serve

    init_logging()
    logger.info("Starting crelay daemon (version %s)", __version__)
    try:
        cfg = load_config()
    except (OSError, ValueError) as exc:
        logger.error("cannot load config: %s", exc)
        return EXIT_FAILURE
    if labels:
        cfg = cfg.with_labels(labels)
    _log_config(cfg)
    if flag == "-D":
        logger.info("-D given, running in the foreground; let the service manager detach the process")
    serve(cfg)
    logger.info("Exit crelay daemon")
    return EXIT_OK


def _log_config(cfg: RelayConfig) -> None:
    logger.info("server: %s:%d, pulse_duration: %ds", cfg.server.host, cfg.server.port, cfg.pulse_duration)
    pins = cfg.gpio.pin_list()
    for ch, pin in enumerate(pins, start=1):
        logger.info("relay%d_gpio_pin: %d", ch, pin)
    if pins:
        logger.info("gpio active_value: %d", cfg.gpio.active_value)
    for ch in range(1, MAX_NUM_RELAYS + 1):
        logger.debug("relay%d_label: %s", ch, cfg.label(ch))


if __name__ == "__main__":
    raise SystemExit(main())
