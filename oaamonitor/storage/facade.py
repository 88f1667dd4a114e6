# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Database snapshot backup and restore.

:class:`SnapshotStore` is the only storage entry point the rest of the
application uses.  It moves the SQLite snapshot between a local path and
the fixed object address ``oaamonitor/oaamonitor.db``.

Downloads are written to a temporary file next to the destination and
renamed into place only after the whole body has arrived.  A failed
download therefore never replaces an existing file, and never leaves a
partial file under the destination name.
"""

from __future__ import annotations

import logging
import os
import stat
import tempfile
import threading
from pathlib import Path

from oaamonitor.storage.client import S3Client
from oaamonitor.storage.config import (
    SNAPSHOT_BUCKET,
    SNAPSHOT_KEY,
    S3Config,
)
from oaamonitor.storage.errors import (
    LocalIOError,
    NotFoundError,
    StorageError,
)


logger = logging.getLogger(__name__)


class SnapshotStore:
    """Upload and download the database snapshot.

    Args:
        config: Storage configuration.  Loaded from the environment when
            omitted, so a missing credential is reported here, before
            any network activity.
        client: Pre-built client (tests inject one with a mock
            transport).  Built from ``config`` when omitted.
        bucket: Bucket holding the snapshot.
        key: Object key of the snapshot.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """

    def __init__(
        self,
        config: S3Config | None = None,
        client: S3Client | None = None,
        bucket: str = SNAPSHOT_BUCKET,
        key: str = SNAPSHOT_KEY,
    ) -> None:
        if client is None:
            if config is None:
                config = S3Config.from_env()
            client = S3Client(config)
        self._client = client
        self.bucket = bucket
        self.key = key

    def download(
        self,
        local_path: str | os.PathLike[str],
        cancel: threading.Event | None = None,
    ) -> Path:
        """Restore the snapshot to ``local_path``.

        Args:
            local_path: Destination file; created or replaced.
            cancel: Optional event that aborts the download when set.

        Returns:
            The destination path.

        Raises:
            NotFoundError: No snapshot exists in the bucket.
            TransportError: The request failed.
            LocalIOError: The destination could not be written.
        """
        dest = Path(local_path)
        with self._client.get_object(self.bucket, self.key, cancel) as stream:
            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp = tempfile.mkstemp(
                    dir=dest.parent, prefix=f".{dest.name}.", suffix=".tmp"
                )
            except OSError as e:
                raise LocalIOError(f"Failed to create {dest}: {e}") from e

            written = 0
            try:
                with open(fd, "wb") as f:
                    os.fchmod(f.fileno(), _restored_mode(dest))
                    for chunk in stream.iter_bytes():
                        f.write(chunk)
                        written += len(chunk)
                Path(tmp).replace(dest)
            except OSError as e:
                Path(tmp).unlink(missing_ok=True)
                raise LocalIOError(f"Failed to write {dest}: {e}") from e
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise

        logger.info(
            "Downloaded %s/%s to %s (%d bytes)",
            self.bucket,
            self.key,
            dest,
            written,
        )
        return dest

    def upload(
        self,
        local_path: str | os.PathLike[str],
        cancel: threading.Event | None = None,
    ) -> None:
        """Back up ``local_path`` as the snapshot.

        Args:
            local_path: File to upload.
            cancel: Optional event that aborts the upload when set.

        Raises:
            LocalIOError: The file could not be opened or stat'd.
            TransportError: The request failed.
        """
        src = Path(local_path)
        try:
            f = open(src, "rb")
        except OSError as e:
            raise LocalIOError(f"Failed to open {src}: {e}") from e

        with f:
            try:
                size = os.fstat(f.fileno()).st_size
            except OSError as e:
                raise LocalIOError(f"Failed to stat {src}: {e}") from e
            self._client.put_object(self.bucket, self.key, f, size, cancel)

        logger.info(
            "Uploaded %s to %s/%s (%d bytes)", src, self.bucket, self.key, size
        )


def _restored_mode(dest: Path) -> int:
    """Permissions for a restored file.

    An existing destination keeps its mode; a new file gets
    ``0o666 & ~umask`` like any freshly created file.
    """
    try:
        return stat.S_IMODE(dest.stat().st_mode)
    except FileNotFoundError:
        pass
    # os.umask can only be read by setting it.
    umask = os.umask(0o022)
    os.umask(umask)
    return 0o666 & ~umask

def download_database(db_path: str | os.PathLike[str]) -> Path:
    """Restore the database snapshot using environment configuration.

    Failures are logged and re-raised; a missing snapshot is only a
    warning.
    """
    try:
        return SnapshotStore().download(db_path)
    except NotFoundError as e:
        logger.warning("No database snapshot to restore: %s", e)
        raise
    except StorageError as e:
        logger.error("Failed to download database file: %s", e)
        raise


def upload_database(db_path: str | os.PathLike[str]) -> None:
    """Back up the database snapshot using environment configuration.

    Failures are logged and re-raised.
    """
    try:
        SnapshotStore().upload(db_path)
    except StorageError as e:
        logger.error("Failed to upload database file: %s", e)
        raise
