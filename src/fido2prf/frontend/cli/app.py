"""Command-line entry point: ``age-plugin-fido2prf``.

Usage:
    age-plugin-fido2prf --generate RP_ID
    -> asks for the security key PIN and prints a new AGE-PLUGIN-FIDO2PRF-1... identity

    age-plugin-fido2prf --age-plugin=recipient-v1|identity-v1
    -> speaks the age plugin protocol on stdin/stdout (run by age, not by hand)
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys
from typing import List, Optional

from fido2prf.core.exceptions import Fido2PrfError, PINError
from fido2prf.plugin.protocol import STATE_MACHINES, Plugin
from fido2prf.security.identity import new_credential

from .context import load_settings
from .logging_config import configure_logging

logger = logging.getLogger(__name__)


def read_pin(prompt: str = "Enter the security key PIN: ") -> str:
    """Read the PIN from the terminal without echo; the prompt goes to stderr."""
    try:
        return getpass.getpass(prompt, stream=sys.stderr)
    except (EOFError, KeyboardInterrupt) as e:
        raise PINError("could not read the PIN") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="age-plugin-fido2prf",
        description="Use a FIDO2 security key with hmac-secret as an age identity.",
    )
    parser.add_argument(
        "--generate",
        metavar="RP_ID",
        default=None,
        help="Generate a new credential for the given relying party ID.",
    )
    parser.add_argument(
        "--age-plugin",
        dest="state_machine",
        metavar="STATE-MACHINE",
        default=None,
        help="Run the given age plugin state machine (used by age).",
    )
    return parser


def generate(rp_id: str) -> int:
    try:
        pin = read_pin()
        identity = new_credential(rp_id, pin)
    except Fido2PrfError as e:
        print(f"Error: {e}")
        return 1
    print(identity)
    return 0


def run_plugin(state_machine: str) -> int:
    if state_machine not in STATE_MACHINES:
        print(f"Error: unknown state machine {state_machine!r}", file=sys.stderr)
        return 1
    plugin = Plugin(sys.stdin.buffer, sys.stdout.buffer)
    try:
        return plugin.run(state_machine)
    except Fido2PrfError as e:
        logger.error("plugin %s failed: %s", state_machine, e)
        print(f"Error: {e}", file=sys.stderr)
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    settings = load_settings()
    configure_logging(settings.log_level, settings.debug)

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.generate:
        return generate(args.generate)
    if args.state_machine:
        return run_plugin(args.state_machine)

    parser.print_usage(sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
