"""Small helper to read the plugin's runtime settings from the environment."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from typing import Mapping, Optional


@dataclass
class Settings:
    """Runtime knobs for the CLI."""

    log_level: int = logging.WARNING
    debug: bool = False


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build :class:`Settings` from environment variables.

    - ``AGEDEBUG``: age's debug switch; when it contains ``plugin`` the
      plugin logs at DEBUG level (to stderr).
    - ``FIDO2PRF_LOG_LEVEL``: explicit level name (``DEBUG``, ``INFO``, ...);
      unknown names are ignored.
    """
    env = os.environ if environ is None else environ

    debug = "plugin" in env.get("AGEDEBUG", "").split(",")
    level = logging.DEBUG if debug else logging.WARNING

    name = env.get("FIDO2PRF_LOG_LEVEL", "").strip().upper()
    if name:
        explicit = logging.getLevelName(name)
        if isinstance(explicit, int):
            level = explicit

    return Settings(log_level=level, debug=debug)
