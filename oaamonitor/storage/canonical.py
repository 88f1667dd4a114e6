# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Canonical request construction for SigV4-signed S3 requests.

Pure functions that turn a request's method, object address, query string
and headers into the exact strings the signing algorithm hashes.  Nothing
here performs I/O or keeps state.

Preconditions: bucket names, keys, header names and header values are
well-formed ``str`` values.  Malformed input is a caller programming error;
these functions do not validate it.
"""

from __future__ import annotations

import urllib.parse
from collections.abc import Mapping


# SHA-256 of the empty byte string, sent as the payload hash of GET requests.
EMPTY_PAYLOAD_SHA256 = (
    "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
)

_UNRESERVED = frozenset(
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.~"
)


# ---------------------------------------------------------------------------
# URI encoding (RFC 3986 unreserved set)
# ---------------------------------------------------------------------------


def uri_encode(value: str) -> str:
    """Percent-encode a value using the RFC 3986 unreserved set.

    - Unreserved characters are not encoded: A-Z, a-z, 0-9, -, _, ., ~
    - Every other UTF-8 byte is encoded as %XX (uppercase hex)

    Unlike form encoding, a space becomes ``%20`` and ``/`` is always
    encoded.

    Args:
        value: String to encode.

    Returns:
        Encoded string.
    """
    result: list[str] = []
    for byte in value.encode("utf-8"):
        if byte in _UNRESERVED:
            result.append(chr(byte))
        else:
            result.append(f"%{byte:02X}")
    return "".join(result)


# ---------------------------------------------------------------------------
# Canonical URI and query
# ---------------------------------------------------------------------------


def canonical_uri(bucket: str, key: str) -> str:
    """Build the canonical (path-style) URI for an object.

    The key is split on ``/`` and each segment is encoded on its own, so
    the separators survive while reserved characters inside a segment
    are escaped::

        canonical_uri("my-bucket", "folder/a b/c+d.txt")
        -> "/my-bucket/folder/a%20b/c%2Bd.txt"

    Args:
        bucket: Bucket name.
        key: Object key, possibly containing ``/`` separators.

    Returns:
        Canonical URI path.
    """
    segments = [uri_encode(segment) for segment in key.split("/")]
    return "/" + bucket + "/" + "/".join(segments)


def canonical_query(raw_query: str) -> str:
    """Build the canonical query string.

    Parameters are decoded, re-encoded with :func:`uri_encode`, and sorted
    by name and then value.  Repeated names and blank values are kept.

    Args:
        raw_query: Raw query string (without leading ``?``).

    Returns:
        Canonical query string, or ``""`` for an empty query.
    """
    if not raw_query:
        return ""

    params = urllib.parse.parse_qsl(raw_query, keep_blank_values=True)
    encoded = sorted((uri_encode(k), uri_encode(v)) for k, v in params)
    return "&".join(f"{k}={v}" for k, v in encoded)


# ---------------------------------------------------------------------------
# Canonical headers
# ---------------------------------------------------------------------------


def canonical_headers(headers: Mapping[str, str]) -> tuple[str, str]:
    """Build the canonical header block and the signed header list.

    Header names are lower-cased and sorted; values have surrounding
    whitespace trimmed and inner whitespace runs collapsed to a single
    space.  Names that collide after lower-casing are merged with ``,``
    in insertion order.

    Both outputs are derived from the same sorted name list, so the
    header block and the signed list always agree in order.

    Args:
        headers: Headers to sign (name -> value).

    Returns:
        Tuple of (header block, signed header list).  The block holds one
        ``name:value`` line per header, each ending in a newline; the list
        is the names joined by ``;``.
    """
    merged: dict[str, str] = {}
    for name, value in headers.items():
        lower = name.strip().lower()
        trimmed = " ".join(value.split())
        if lower in merged:
            merged[lower] = f"{merged[lower]},{trimmed}"
        else:
            merged[lower] = trimmed

    names = sorted(merged)
    block = "".join(f"{name}:{merged[name]}\n" for name in names)
    return block, ";".join(names)


# ---------------------------------------------------------------------------
# Canonical request
# ---------------------------------------------------------------------------


def canonical_request(
    method: str,
    uri: str,
    query: str,
    headers: Mapping[str, str],
    payload_hash: str,
) -> str:
    """Build the canonical request string.

    Args:
        method: HTTP method (e.g. ``GET``).
        uri: Canonical URI from :func:`canonical_uri`.
        query: Raw query string; canonicalized here.
        headers: Headers to sign.
        payload_hash: Hex SHA-256 of the body, or
            :data:`EMPTY_PAYLOAD_SHA256` for body-less requests.

    Returns:
        Canonical request string.
    """
    block, signed = canonical_headers(headers)
    # The header block already ends in a newline, so joining adds the
    # blank line the protocol expects between headers and signed list.
    return "\n".join(
        [
            method.upper(),
            uri,
            canonical_query(query),
            block,
            signed,
            payload_hash,
        ]
    )
