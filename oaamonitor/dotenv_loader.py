# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Idempotent .env file loading.

The loader reads environment variables from two locations (in order):

1. ``~/.config/oaamonitor/.env`` (XDG config directory)
2. ``.env`` in the current working directory

Variables already present in the environment are never overwritten, so
the XDG file wins over the working-directory file and both lose to the
real process environment.
"""

import logging
from pathlib import Path

from dotenv import load_dotenv
from platformdirs import user_config_path


logger = logging.getLogger(__name__)

#: Application name for XDG path resolution.
_APP_NAME = "oaamonitor"

_dotenv_loaded = False


def get_dotenv_path() -> Path:
    """Return the ``.env`` path inside the XDG config directory."""
    return user_config_path(_APP_NAME) / ".env"


def load_dotenv_once() -> None:
    """Load .env files once, if not already loaded.

    Calling this more than once has no effect after the first load.
    """
    global _dotenv_loaded
    if _dotenv_loaded:
        return

    xdg_env = get_dotenv_path()
    if xdg_env.exists():
        load_dotenv(xdg_env)
        logger.debug("Loaded .env from %s", xdg_env)

    cwd_env = Path.cwd() / ".env"
    if cwd_env.exists():
        load_dotenv(cwd_env)
        logger.debug("Loaded .env from %s", cwd_env)

    _dotenv_loaded = True


def reset_dotenv_state() -> None:
    """Reset the dotenv loaded state. For testing only."""
    global _dotenv_loaded
    _dotenv_loaded = False
