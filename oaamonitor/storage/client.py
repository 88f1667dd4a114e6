# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Minimal S3-compatible object client.

Issues SigV4-signed path-style GET and PUT requests for single objects
over httpx and classifies the outcome:

* GET 200 -> :class:`ObjectStream` (caller consumes and closes it)
* GET 404 -> :class:`NotFoundError`
* PUT 200/204 -> success
* anything else -> :class:`TransportError` with status and body

There is no retry.  Every call opens its own ``httpx.Client`` and closes
it when the call (or, for GET, the returned stream) is done, so one
:class:`S3Client` can be shared across threads.
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from typing import BinaryIO

import httpx

from oaamonitor.storage.canonical import EMPTY_PAYLOAD_SHA256, canonical_uri
from oaamonitor.storage.config import S3Config
from oaamonitor.storage.errors import (
    LocalIOError,
    NotFoundError,
    TransportError,
)
from oaamonitor.storage.signing import sign_request


logger = logging.getLogger(__name__)

#: Hard client-side limit for one whole call, in seconds.
DEFAULT_TIMEOUT = 300.0

_CHUNK_SIZE = 64 * 1024

# Upper bound on error body text kept for diagnostics.
_MAX_ERROR_BODY = 4096


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _check_abort(deadline: float, cancel: threading.Event | None) -> None:
    """Raise TransportError if the call was cancelled or ran out of time."""
    if cancel is not None and cancel.is_set():
        raise TransportError("request cancelled")
    if time.monotonic() > deadline:
        raise TransportError("request exceeded deadline")


def _remaining(deadline: float) -> httpx.Timeout:
    """Timeout for one request: whatever is left of the call deadline."""
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise TransportError("request exceeded deadline")
    return httpx.Timeout(remaining)


class ObjectStream:
    """Body of a successful GET.

    Owns the underlying response and HTTP client; both are released by
    :meth:`close` (or by leaving the ``with`` block).
    """

    def __init__(
        self,
        response: httpx.Response,
        http_client: httpx.Client,
        deadline: float,
        cancel: threading.Event | None = None,
    ) -> None:
        self._response = response
        self._http_client = http_client
        self._deadline = deadline
        self._cancel = cancel

    @property
    def content_length(self) -> int | None:
        """Declared ``Content-Length``, if the server sent one."""
        value = self._response.headers.get("content-length")
        return int(value) if value is not None and value.isdigit() else None

    def iter_bytes(self, chunk_size: int = _CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the body in chunks.

        Raises:
            TransportError: On network failure, cancellation, or when the
                call deadline passes mid-stream.
        """
        try:
            for chunk in self._response.iter_bytes(chunk_size):
                _check_abort(self._deadline, self._cancel)
                yield chunk
        except httpx.HTTPError as e:
            raise TransportError(f"download failed: {e}") from e

    def read(self) -> bytes:
        """Read the remaining body into memory."""
        return b"".join(self.iter_bytes())

    def close(self) -> None:
        self._response.close()
        self._http_client.close()

    def __enter__(self) -> ObjectStream:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class S3Client:
    """Signs and sends single-object requests to one S3-compatible store.

    Holds only read-only configuration after construction.

    Args:
        config: Credentials and endpoint.
        timeout: Hard limit for one whole call, in seconds.
        clock: Returns the current UTC time; read once per request.
        transport: httpx transport override (tests use
            ``httpx.MockTransport``).
    """

    def __init__(
        self,
        config: S3Config,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        clock: Callable[[], datetime] = _utcnow,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._config = config
        self._timeout = timeout
        self._clock = clock
        self._transport = transport

    @property
    def config(self) -> S3Config:
        return self._config

    def object_url(self, bucket: str, key: str) -> str:
        """Return the path-style URL of an object."""
        return self._config.endpoint_url + canonical_uri(bucket, key)

    def _new_http_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self._timeout), transport=self._transport
        )

    def _signed_headers(
        self,
        method: str,
        bucket: str,
        key: str,
        url: str,
        payload_hash: str,
        extra_headers: dict[str, str] | None = None,
    ) -> dict[str, str]:
        host = httpx.URL(url).netloc.decode("ascii")
        signed = sign_request(
            self._config.credentials,
            self._config.region,
            method,
            bucket,
            key,
            host,
            payload_hash,
            self._clock(),
            extra_headers,
        )
        return signed.headers

    def get_object(
        self,
        bucket: str,
        key: str,
        cancel: threading.Event | None = None,
    ) -> ObjectStream:
        """Fetch an object.

        Args:
            bucket: Bucket name.
            key: Object key.
            cancel: Optional event that aborts the call when set.

        Returns:
            Stream over the object body; the caller must close it.

        Raises:
            NotFoundError: The object does not exist (HTTP 404).
            TransportError: Any other non-200 status or network failure.
        """
        deadline = time.monotonic() + self._timeout
        url = self.object_url(bucket, key)
        headers = self._signed_headers(
            "GET", bucket, key, url, EMPTY_PAYLOAD_SHA256
        )

        http_client = self._new_http_client()
        try:
            _check_abort(deadline, cancel)
            logger.debug("GET %s", url)
            request = http_client.build_request(
                "GET", url, headers=headers, timeout=_remaining(deadline)
            )
            response = http_client.send(request, stream=True)
        except httpx.HTTPError as e:
            http_client.close()
            raise TransportError(f"GET {url} failed: {e}") from e
        except BaseException:
            http_client.close()
            raise

        logger.debug("GET %s -> %d", url, response.status_code)

        if response.status_code == 404:
            response.close()
            http_client.close()
            raise NotFoundError(bucket, key)

        if response.status_code != 200:
            try:
                body = _read_error_body(response)
            finally:
                response.close()
                http_client.close()
            raise TransportError(
                f"S3 error {response.status_code}: {body}",
                status_code=response.status_code,
                body=body,
            )

        return ObjectStream(response, http_client, deadline, cancel)

    def put_object(
        self,
        bucket: str,
        key: str,
        body: BinaryIO,
        size: int,
        cancel: threading.Event | None = None,
    ) -> None:
        """Store an object.

        The body is read once to compute the payload hash, rewound, and
        read again while sending.

        Args:
            bucket: Bucket name.
            key: Object key.
            body: Seekable binary file positioned anywhere.
            size: Exact number of bytes in ``body``; sent as
                ``Content-Length``.
            cancel: Optional event that aborts the call when set.

        Raises:
            LocalIOError: The body cannot be read or rewound, or holds a
                different number of bytes than ``size``.
            TransportError: Non-200/204 status or network failure.
        """
        deadline = time.monotonic() + self._timeout
        payload_hash = _hash_body(body, size)

        url = self.object_url(bucket, key)
        headers = self._signed_headers(
            "PUT",
            bucket,
            key,
            url,
            payload_hash,
            {
                "content-type": "application/octet-stream",
                "content-length": str(size),
            },
        )

        with self._new_http_client() as http_client:
            logger.debug("PUT %s (%d bytes)", url, size)
            try:
                response = http_client.put(
                    url,
                    content=_iter_body(body, deadline, cancel),
                    headers=headers,
                    timeout=_remaining(deadline),
                )
            except httpx.HTTPError as e:
                raise TransportError(f"PUT {url} failed: {e}") from e

        logger.debug("PUT %s -> %d", url, response.status_code)

        if response.status_code not in (200, 204):
            body_text = response.text[:_MAX_ERROR_BODY]
            raise TransportError(
                f"S3 error {response.status_code}: {body_text}",
                status_code=response.status_code,
                body=body_text,
            )


def _hash_body(body: BinaryIO, size: int) -> str:
    """Hash a seekable body and leave it rewound.

    Raises:
        LocalIOError: On read/seek failure or a size mismatch.
    """
    digest = hashlib.sha256()
    read = 0
    try:
        body.seek(0)
        for chunk in iter(lambda: body.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
            read += len(chunk)
        body.seek(0)
    except OSError as e:
        raise LocalIOError(f"failed to hash upload body: {e}") from e

    if read != size:
        raise LocalIOError(
            f"upload body has {read} bytes, expected {size}"
        )
    return digest.hexdigest()


def _iter_body(
    body: BinaryIO, deadline: float, cancel: threading.Event | None
) -> Iterator[bytes]:
    """Yield a rewound body in chunks, honouring deadline and cancel."""
    while True:
        _check_abort(deadline, cancel)
        try:
            chunk = body.read(_CHUNK_SIZE)
        except OSError as e:
            raise LocalIOError(f"failed to read upload body: {e}") from e
        if not chunk:
            return
        yield chunk


def _read_error_body(response: httpx.Response) -> str:
    """Read at most _MAX_ERROR_BODY bytes of an error body."""
    data = bytearray()
    try:
        for chunk in response.iter_bytes():
            data += chunk
            if len(data) >= _MAX_ERROR_BODY:
                break
    except httpx.HTTPError as e:
        return f"<unreadable body: {e}>"
    encoding = response.encoding or "utf-8"
    return data[:_MAX_ERROR_BODY].decode(encoding, errors="replace")
