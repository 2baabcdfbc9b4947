"""
crelay launcher
- same as `crelay -d [labels...]`, usable without installing the package
"""
from __future__ import annotations
import os
import sys

# Put the project root on sys.path when the script is run directly
ROOT = os.path.dirname(os.path.abspath(__file__))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


def main() -> int:
    from crelay.relay.cli import main as cli_main

    return cli_main(["-d", *sys.argv[1:]])


if __name__ == "__main__":
    raise SystemExit(main())
