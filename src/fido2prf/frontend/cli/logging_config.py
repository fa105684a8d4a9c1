"""Logging setup for the plugin executable.

age passes the plugin's stderr through to the user, so every line carries
the program name. python-fido2 logs raw CTAP/HID traffic at DEBUG; that is
only let through when age's own plugin debugging (``AGEDEBUG=plugin``) asks
for it.
"""

import logging
import sys

PROGRAM = "age-plugin-fido2prf"
LIBRARY_LOGGER = "fido2"


def configure_logging(level: int = logging.WARNING, debug: bool = False) -> None:
    # stdout belongs to the age plugin protocol.
    logging.basicConfig(
        level=level,
        format=f"{PROGRAM}: [%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    logging.getLogger(LIBRARY_LOGGER).setLevel(logging.DEBUG if debug else max(level, logging.INFO))
