# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Snapshot storage subsystem.

Backs up and restores the SQLite database through an S3-compatible
object store:
- Canonical request construction (canonical.py)
- SigV4 signing (signing.py)
- HTTP object client (client.py)
- Upload/download facade (facade.py)
"""

from oaamonitor.storage.client import ObjectStream, S3Client
from oaamonitor.storage.config import (
    SNAPSHOT_BUCKET,
    SNAPSHOT_KEY,
    S3Config,
)
from oaamonitor.storage.errors import (
    ConfigurationError,
    LocalIOError,
    NotFoundError,
    StorageError,
    TransportError,
)
from oaamonitor.storage.facade import (
    SnapshotStore,
    download_database,
    upload_database,
)
from oaamonitor.storage.signing import Credentials


__all__ = [
    "SNAPSHOT_BUCKET",
    "SNAPSHOT_KEY",
    "ConfigurationError",
    "Credentials",
    "LocalIOError",
    "NotFoundError",
    "ObjectStream",
    "S3Client",
    "S3Config",
    "SnapshotStore",
    "StorageError",
    "TransportError",
    "download_database",
    "upload_database",
]
