# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Configuration for the snapshot storage client.

Values come from the environment (after ``.env`` loading):

* ``AWS_ACCESS_KEY_ID`` and ``AWS_SECRET_ACCESS_KEY``: required
* ``AWS_REGION``: defaults to ``auto``
* ``AWS_ENDPOINT_URL_S3``: defaults to the public AWS S3 endpoint

Defaults are plain constants copied into the frozen config value at
construction time.
"""

from __future__ import annotations

import logging
import os
import urllib.parse
from collections.abc import Mapping
from dataclasses import dataclass

from oaamonitor.dotenv_loader import load_dotenv_once
from oaamonitor.logging import SecretFilter
from oaamonitor.storage.errors import ConfigurationError
from oaamonitor.storage.signing import Credentials


logger = logging.getLogger(__name__)

DEFAULT_REGION = "auto"
DEFAULT_ENDPOINT = "https://s3.amazonaws.com"

#: Fixed object address of the database snapshot.
SNAPSHOT_BUCKET = "oaamonitor"
SNAPSHOT_KEY = "oaamonitor.db"

#: Local database path used when ``DATABASE_PATH`` is not set.
DEFAULT_DATABASE_PATH = "./data/oaamonitor.db"


@dataclass(frozen=True)
class S3Config:
    """Credentials and endpoint for one S3-compatible store.

    Attributes:
        credentials: Access key pair.
        region: Region used in the credential scope.
        endpoint_url: Base URL, without a trailing slash.
    """

    credentials: Credentials
    region: str = DEFAULT_REGION
    endpoint_url: str = DEFAULT_ENDPOINT

    def __post_init__(self) -> None:
        if not self.credentials.access_key_id.strip():
            raise ConfigurationError("AWS access key id is empty")
        if not self.credentials.secret_access_key.strip():
            raise ConfigurationError("AWS secret access key is empty")
        if not self.region.strip():
            raise ConfigurationError("AWS region is empty")

        parsed = urllib.parse.urlsplit(self.endpoint_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError(
                f"Invalid S3 endpoint URL: {self.endpoint_url!r}"
            )
        # Requests are signed for /bucket/key at the host root.
        if parsed.path not in ("", "/") or parsed.query or parsed.fragment:
            raise ConfigurationError(
                f"Invalid S3 endpoint URL: {self.endpoint_url!r} "
                "(path, query and fragment are not supported)"
            )
        object.__setattr__(self, "endpoint_url", self.endpoint_url.rstrip("/"))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> S3Config:
        """Load configuration from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.  When
                omitted, ``.env`` files are loaded first.

        Returns:
            Validated configuration.

        Raises:
            ConfigurationError: If credentials are missing or the
                endpoint is malformed.
        """
        if environ is None:
            load_dotenv_once()
            environ = os.environ

        access_key_id = environ.get("AWS_ACCESS_KEY_ID", "")
        secret_access_key = environ.get("AWS_SECRET_ACCESS_KEY", "")
        if not access_key_id.strip() or not secret_access_key.strip():
            raise ConfigurationError("AWS credentials not found in environment")

        SecretFilter.register_secret(secret_access_key)

        region = environ.get("AWS_REGION", "").strip() or DEFAULT_REGION
        endpoint = (
            environ.get("AWS_ENDPOINT_URL_S3", "").strip() or DEFAULT_ENDPOINT
        )
        logger.debug("S3 endpoint %s (region %s)", endpoint, region)

        return cls(
            credentials=Credentials(access_key_id.strip(), secret_access_key),
            region=region,
            endpoint_url=endpoint,
        )


def database_path(environ: Mapping[str, str] | None = None) -> str:
    """Return the local database path from ``DATABASE_PATH``."""
    if environ is None:
        load_dotenv_once()
        environ = os.environ
    return environ.get("DATABASE_PATH", "") or DEFAULT_DATABASE_PATH
