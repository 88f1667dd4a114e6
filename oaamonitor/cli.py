# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""oaamonitor-storage CLI.

Backs up and restores the dashboard database snapshot.

Subcommands:

* ``download``: restore the snapshot from object storage
* ``upload``: back up the local database to object storage

Exit codes: 0 on success, 1 on failure, 2 on usage errors, and 3 when
``download`` finds no snapshot in the bucket.
"""

from __future__ import annotations

import argparse
import logging
import sys

from oaamonitor.logging import configure_logging
from oaamonitor.storage.config import database_path
from oaamonitor.storage.errors import NotFoundError, StorageError
from oaamonitor.storage.facade import download_database, upload_database


EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_NOT_FOUND = 3

_SUBCOMMANDS = frozenset({"download", "upload"})

_USAGE = """\
usage: oaamonitor-storage <command> [args]

commands:
  download   Restore the database snapshot from object storage
  upload     Back up the local database to object storage

Run 'oaamonitor-storage <command> --help' for command-specific help.\
"""


def _parse_args(
    command: str, description: str, argv: list[str]
) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog=f"oaamonitor-storage {command}", description=description
    )
    parser.add_argument(
        "--path",
        default=None,
        help="Local database path (default: $DATABASE_PATH or "
        "./data/oaamonitor.db)",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    args = parser.parse_args(argv)
    configure_logging(level=logging.DEBUG if args.debug else logging.INFO)
    if args.path is None:
        args.path = database_path()
    return args


# ── download subcommand ─────────────────────────────────────────────


def cmd_download(argv: list[str]) -> int:
    """Restore the snapshot to the local database path.

    Args:
        argv: Command arguments (``--path``, ``--debug``).

    Returns:
        Exit code.
    """
    args = _parse_args("download", "Restore the database snapshot.", argv)
    # download_database logs failures itself.
    try:
        download_database(args.path)
    except NotFoundError:
        return EXIT_NOT_FOUND
    except StorageError:
        return EXIT_FAILURE
    return EXIT_OK


# ── upload subcommand ───────────────────────────────────────────────


def cmd_upload(argv: list[str]) -> int:
    """Back up the local database path.

    Args:
        argv: Command arguments (``--path``, ``--debug``).

    Returns:
        Exit code.
    """
    args = _parse_args("upload", "Back up the database snapshot.", argv)
    try:
        upload_database(args.path)
    except StorageError:
        return EXIT_FAILURE
    return EXIT_OK


# ── CLI plumbing ────────────────────────────────────────────────────


_DISPATCH: dict[str, str] = {
    "download": "cmd_download",
    "upload": "cmd_upload",
}


def cli() -> None:
    """Entry point for ``oaamonitor-storage``."""
    argv = sys.argv[1:]

    if not argv or argv[0] in ("-h", "--help"):
        print(_USAGE)
        sys.exit(EXIT_OK)

    if argv[0] not in _SUBCOMMANDS:
        print(
            f"oaamonitor-storage: unknown command '{argv[0]}'",
            file=sys.stderr,
        )
        print(_USAGE, file=sys.stderr)
        sys.exit(EXIT_USAGE)

    # Look up handler by name so tests can mock individual commands.
    import oaamonitor.cli as _self

    handler = getattr(_self, _DISPATCH[argv[0]])
    sys.exit(handler(argv[1:]))
